"""
Forum threads and their replies.

Replies fan out to the thread author and every earlier participant. A
thread carries at most one solution reply; marking is a toggle.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from mindcare.core.exceptions import ConflictError, NotFoundError
from mindcare.models.forum import ForumThread, ForumReply, ForumReplyLike
from mindcare.schemas.forum import ThreadCreate, ThreadUpdate
from mindcare.services import notifications
from mindcare.services.common import clean_content, commit, paginate
from mindcare.services.notifications import NotificationDispatcher
from mindcare.services.permissions import (
    Principal, can_delete, can_manage_thread, can_mark_solution, can_moderate,
    can_update_forum_reply, can_view_hidden, require
)

logger = logging.getLogger(__name__)


def load_thread(db: Session, thread_id: int, principal: Optional[Principal] = None) -> ForumThread:
    thread = db.query(ForumThread).options(
        selectinload(ForumThread.author),
        selectinload(ForumThread.replies).selectinload(ForumReply.user),
        selectinload(ForumThread.replies).selectinload(ForumReply.likes),
    ).filter(ForumThread.id == thread_id).first()

    if not thread:
        raise NotFoundError("Thread not found")
    if thread.status == "hidden" and not can_view_hidden(thread.author_id, principal):
        raise NotFoundError("Thread not found")
    return thread


def _find_reply(thread: ForumThread, reply_id: int) -> ForumReply:
    for reply in thread.replies:
        if reply.id == reply_id:
            return reply
    raise NotFoundError("Reply not found")


# ============ Threads ============

def list_threads(
    db: Session,
    current: int,
    size: int,
    category: Optional[str] = None,
    keyword: Optional[str] = None,
):
    query = db.query(ForumThread).options(
        selectinload(ForumThread.author),
        selectinload(ForumThread.replies),
    ).filter(ForumThread.status != "hidden")

    if category:
        query = query.filter(ForumThread.category == category)
    if keyword:
        query = query.filter(
            or_(
                ForumThread.title.contains(keyword),
                ForumThread.content.contains(keyword)
            )
        )

    query = query.order_by(ForumThread.created_at.desc(), ForumThread.id.desc())
    return paginate(query, current, size)


def get_thread(db: Session, thread_id: int, principal: Optional[Principal] = None) -> ForumThread:
    load_thread(db, thread_id, principal)

    db.query(ForumThread).filter(ForumThread.id == thread_id).update(
        {ForumThread.views: ForumThread.views + 1}, synchronize_session=False
    )
    db.commit()
    return load_thread(db, thread_id, principal)


def create_thread(db: Session, thread_in: ThreadCreate, principal: Principal) -> ForumThread:
    thread = ForumThread(
        title=clean_content(thread_in.title, "title"),
        content=clean_content(thread_in.content),
        category=thread_in.category,
        tags=[t.strip() for t in thread_in.tags if t.strip()],
        is_anonymous=thread_in.isAnonymous,
        author_id=principal.user_id,
    )
    db.add(thread)
    commit(db)
    logger.info(f"Thread {thread.id} created by user {principal.user_id}")
    return load_thread(db, thread.id, principal)


def update_thread(db: Session, thread_id: int, thread_in: ThreadUpdate, principal: Principal) -> ForumThread:
    """Author or admin; status changes go through moderate_thread"""
    thread = load_thread(db, thread_id, principal)
    require(can_manage_thread(thread, principal), "Not authorized to edit this thread")

    if thread_in.title is not None:
        thread.title = clean_content(thread_in.title, "title")
    if thread_in.content is not None:
        thread.content = clean_content(thread_in.content)
    if thread_in.category is not None:
        thread.category = thread_in.category
    if thread_in.tags is not None:
        thread.tags = [t.strip() for t in thread_in.tags if t.strip()]
    if thread_in.isAnonymous is not None:
        thread.is_anonymous = thread_in.isAnonymous

    commit(db, thread)
    return load_thread(db, thread_id, principal)


def delete_thread(db: Session, thread_id: int, principal: Principal) -> None:
    thread = load_thread(db, thread_id, principal)
    require(can_manage_thread(thread, principal), "Not authorized to delete this thread")

    db.delete(thread)
    commit(db)
    logger.info(f"Thread {thread_id} deleted by user {principal.user_id}")


def moderate_thread(db: Session, thread_id: int, status: str, principal: Principal) -> ForumThread:
    """Admin only; any status may be set from any other"""
    require(can_moderate(principal), "Only admins can moderate threads")
    thread = load_thread(db, thread_id, principal)

    previous = thread.status
    thread.status = status
    commit(db, thread)
    logger.info(f"Thread {thread_id} moderated {previous} -> {status} by user {principal.user_id}")
    return load_thread(db, thread_id, principal)


# ============ Replies ============

def reply_to_thread(
    db: Session,
    thread_id: int,
    content: str,
    is_anonymous: bool,
    principal: Principal,
    dispatcher: NotificationDispatcher,
) -> ForumThread:
    thread = load_thread(db, thread_id, principal)
    if thread.status != "active":
        raise ConflictError(f"Thread is {thread.status} and does not accept replies")
    text = clean_content(content)

    reply = ForumReply(user_id=principal.user_id, content=text, is_anonymous=bool(is_anonymous))
    thread.replies.append(reply)
    commit(db, thread)
    logger.info(f"Reply {reply.id} added to thread {thread_id} by user {principal.user_id}")

    dispatcher.dispatch(notifications.forum_reply_events(thread, reply, principal.user_id))
    return load_thread(db, thread_id, principal)


def update_reply(db: Session, thread_id: int, reply_id: int, content: str, principal: Principal) -> ForumThread:
    thread = load_thread(db, thread_id, principal)
    reply = _find_reply(thread, reply_id)
    require(can_update_forum_reply(reply.user_id, principal), "Not authorized to edit this reply")

    reply.content = clean_content(content)
    commit(db, thread)
    return load_thread(db, thread_id, principal)


def delete_reply(db: Session, thread_id: int, reply_id: int, principal: Principal) -> ForumThread:
    thread = load_thread(db, thread_id, principal)
    reply = _find_reply(thread, reply_id)
    require(can_delete(reply.user_id, principal), "Not authorized to delete this reply")

    thread.replies.remove(reply)
    commit(db, thread)
    logger.info(f"Reply {reply_id} deleted from thread {thread_id} by user {principal.user_id}")
    return load_thread(db, thread_id, principal)


def toggle_reply_like(db: Session, thread_id: int, reply_id: int, principal: Principal) -> Tuple[ForumThread, bool]:
    thread = load_thread(db, thread_id, principal)
    reply = _find_reply(thread, reply_id)

    existing = next((like for like in reply.likes if like.user_id == principal.user_id), None)
    if existing:
        reply.likes.remove(existing)
        liked = False
    else:
        reply.likes.append(ForumReplyLike(user_id=principal.user_id))
        liked = True

    commit(db, thread)
    return load_thread(db, thread_id, principal), liked


def mark_solution(db: Session, thread_id: int, reply_id: int, principal: Principal) -> ForumThread:
    """
    Toggle the solution mark.

    Marking R clears any other solution first; marking the current solution
    clears it, leaving the thread without one.
    """
    thread = load_thread(db, thread_id, principal)
    require(can_mark_solution(thread, principal), "Only the thread author or an admin can mark a solution")
    reply = _find_reply(thread, reply_id)

    if reply.is_solution:
        reply.is_solution = False
    else:
        for other in thread.replies:
            other.is_solution = False
        reply.is_solution = True

    commit(db, thread)
    return load_thread(db, thread_id, principal)
