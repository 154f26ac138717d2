"""
Notification fan-out.

Mutations commit their content change first and then hand a list of
``NotificationEvent`` to a ``NotificationDispatcher``. The recipient rules
live in the ``*_events`` functions below; they never address an event to the
actor who caused it.

Dispatch is best effort: a failure is logged and swallowed, the committed
content change is never rolled back because of it.
"""
import json
import logging
from dataclasses import dataclass, asdict
from functools import lru_cache
from typing import Iterable, List, Optional

import redis
from sqlalchemy.orm import Session

from mindcare.core.cache import RedisClient
from mindcare.core.config import settings
from mindcare.core.database import SessionLocal
from mindcare.core.exceptions import NotFoundError
from mindcare.models.notification import Notification
from mindcare.services.permissions import Principal

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    recipient_id: int
    type: str
    sender_id: Optional[int] = None
    article_id: Optional[int] = None
    forum_id: Optional[int] = None
    consultation_id: Optional[int] = None
    comment_id: Optional[int] = None
    content: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "NotificationEvent":
        return cls(**json.loads(raw))

    def to_model(self) -> Notification:
        return Notification(is_read=False, **asdict(self))


def _addressed(events: Iterable[NotificationEvent], actor_id: int) -> List[NotificationEvent]:
    return [e for e in events if e.recipient_id is not None and e.recipient_id != actor_id]


# ============ Recipient rules ============

def article_comment_events(article, comment, actor_id: int) -> List[NotificationEvent]:
    """Article author hears about new comments"""
    return _addressed([NotificationEvent(
        recipient_id=article.author_id,
        sender_id=actor_id,
        type="comment",
        article_id=article.id,
        comment_id=comment.id,
        content=comment.content,
    )], actor_id)


def article_reply_events(article, comment, reply, actor_id: int) -> List[NotificationEvent]:
    """Only the parent comment's author is notified, not the article author"""
    return _addressed([NotificationEvent(
        recipient_id=comment.user_id,
        sender_id=actor_id,
        type="reply",
        article_id=article.id,
        comment_id=comment.id,
        content=reply.content,
    )], actor_id)


def article_like_events(article, actor_id: int) -> List[NotificationEvent]:
    return _addressed([NotificationEvent(
        recipient_id=article.author_id,
        sender_id=actor_id,
        type="like",
        article_id=article.id,
    )], actor_id)


def forum_reply_events(thread, reply, actor_id: int) -> List[NotificationEvent]:
    """
    Thread author plus every distinct earlier participant, once each.

    The author is excluded from the participant set, so an author who also
    replied earlier still receives a single notification.
    """
    sender_id = None if reply.is_anonymous else actor_id

    recipients = [thread.author_id]
    for earlier in thread.replies:
        if earlier.id == reply.id:
            continue
        if earlier.user_id in (actor_id, thread.author_id) or earlier.user_id in recipients:
            continue
        recipients.append(earlier.user_id)

    events = [
        NotificationEvent(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type="forum_reply",
            forum_id=thread.id,
            content=reply.content,
        )
        for recipient_id in recipients
    ]
    return _addressed(events, actor_id)


def consultation_message_events(consultation, message, actor_id: int) -> List[NotificationEvent]:
    """
    A message from the asker goes to the assigned counselor, if any.
    A counselor message always goes to the asker. Messages from an
    anonymous asker carry no sender.
    """
    if message.is_from_user:
        recipient_id = consultation.admin_id
    else:
        recipient_id = consultation.user_id

    if recipient_id is None:
        return []

    # an anonymous asker stays anonymous to the counselor
    hide_sender = message.is_from_user and consultation.is_anonymous

    return _addressed([NotificationEvent(
        recipient_id=recipient_id,
        sender_id=None if hide_sender else actor_id,
        type="consultation_message",
        consultation_id=consultation.id,
        content=message.content,
    )], actor_id)


# ============ Dispatchers ============

def persist_events(db: Session, events: List[NotificationEvent]) -> None:
    db.add_all([event.to_model() for event in events])
    db.commit()


class NotificationDispatcher:
    """Receives events after the content change is committed"""

    def dispatch(self, events: List[NotificationEvent]) -> None:
        raise NotImplementedError


class InlineDispatcher(NotificationDispatcher):
    """Writes notifications immediately in a session of its own"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def dispatch(self, events: List[NotificationEvent]) -> None:
        if not events:
            return

        db = self.session_factory()
        try:
            persist_events(db, events)
            logger.info(f"Created {len(events)} notification(s): {[(e.type, e.recipient_id) for e in events]}")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create notifications {[ev.to_json() for ev in events]}: {e}", exc_info=True)
        finally:
            db.close()


class RedisQueueDispatcher(NotificationDispatcher):
    """Pushes events onto a Redis list, drained by the scheduler job"""

    def __init__(self, client: Optional[redis.Redis] = None, queue_key: str = settings.NOTIFICATION_QUEUE_KEY):
        self.client = client if client is not None else RedisClient().get_client()
        self.queue_key = queue_key

    def dispatch(self, events: List[NotificationEvent]) -> None:
        if not events:
            return

        try:
            self.client.rpush(self.queue_key, *[event.to_json() for event in events])
            logger.info(f"Queued {len(events)} notification(s) on {self.queue_key}")
        except redis.RedisError as e:
            logger.error(f"Failed to queue notifications {[ev.to_json() for ev in events]}: {e}", exc_info=True)


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency selecting the dispatcher from settings"""
    if settings.NOTIFICATION_DISPATCH_MODE == "queue":
        return RedisQueueDispatcher()
    return InlineDispatcher()


# ============ Read side ============

def list_notifications(db: Session, recipient_id: int, unread_only: bool = False) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(db: Session, recipient_id: int) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == recipient_id,
        Notification.is_read == False
    ).count()


def mark_as_read(db: Session, notification_id: int, principal: Principal) -> Notification:
    """Idempotent; another user's notification is reported as missing"""
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification or notification.recipient_id != principal.user_id:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, principal: Principal) -> int:
    updated = db.query(Notification).filter(
        Notification.recipient_id == principal.user_id,
        Notification.is_read == False
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    logger.info(f"Marked {updated} notification(s) read for user {principal.user_id}")
    return updated
