from typing import Dict, List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_principal
from mindcare.models.article import Article
from mindcare.models.consultation import Consultation
from mindcare.models.forum import ForumThread
from mindcare.models.notification import Notification
from mindcare.models.user import User
from mindcare.schemas.common import ResponseModel
from mindcare.schemas.notification import NotificationResponse, RefTitle, UnreadCount, MarkAllResult
from mindcare.schemas.user import UserBrief
from mindcare.services import notifications as notification_service
from mindcare.services.permissions import Principal, can_view_hidden


router = APIRouter(prefix="/notifications", tags=["notifications"])


def _by_id(db: Session, model, ids) -> Dict[int, object]:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {obj.id: obj for obj in db.query(model).filter(model.id.in_(ids)).all()}


def build_notifications(
    db: Session, notifications: List[Notification], viewer: Principal
) -> List[NotificationResponse]:
    """Resolve senders and aggregate titles in one query per kind; dangling or hidden refs become null"""
    senders = _by_id(db, User, [n.sender_id for n in notifications])
    articles = _by_id(db, Article, [n.article_id for n in notifications])
    threads = _by_id(db, ForumThread, [n.forum_id for n in notifications])
    consultations = _by_id(db, Consultation, [n.consultation_id for n in notifications])

    records = []
    for n in notifications:
        article = articles.get(n.article_id)
        thread = threads.get(n.forum_id)
        if thread is not None and thread.status == "hidden" and not can_view_hidden(thread.author_id, viewer):
            thread = None
        consultation = consultations.get(n.consultation_id)
        records.append(NotificationResponse(
            id=n.id,
            recipientId=n.recipient_id,
            type=n.type,
            sender=UserBrief.from_user(senders.get(n.sender_id)),
            article=RefTitle(id=article.id, title=article.title) if article else None,
            forum=RefTitle(id=thread.id, title=thread.title) if thread else None,
            consultation=RefTitle(id=consultation.id, title=consultation.question) if consultation else None,
            articleId=n.article_id,
            forumId=n.forum_id,
            consultationId=n.consultation_id,
            commentId=n.comment_id,
            content=n.content,
            isRead=n.is_read,
            createdAt=n.created_at
        ))
    return records


@router.get("/all", response_model=ResponseModel[List[NotificationResponse]])
def get_all_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Own notifications, newest first"""
    notifications = notification_service.list_notifications(db, principal.user_id, unread_only)
    return ResponseModel(code=200, data=build_notifications(db, notifications, principal))


@router.get("/unread-count", response_model=ResponseModel[UnreadCount])
def get_unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return ResponseModel(code=200, data=UnreadCount(unread=notification_service.unread_count(db, principal.user_id)))


@router.patch("/read-all", response_model=ResponseModel[MarkAllResult])
def mark_all_as_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Mark every unread notification as read"""
    updated = notification_service.mark_all_as_read(db, principal)
    return ResponseModel(code=200, msg="All notifications marked as read", data=MarkAllResult(updated=updated))


@router.patch("/{notification_id}/read", response_model=ResponseModel[NotificationResponse])
def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    notification = notification_service.mark_as_read(db, notification_id, principal)
    return ResponseModel(code=200, data=build_notifications(db, [notification], principal)[0])
