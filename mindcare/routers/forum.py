from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_principal, get_optional_principal
from mindcare.models.forum import ForumThread, ForumReply
from mindcare.schemas.common import ResponseModel, PagedData
from mindcare.schemas.forum import (
    ThreadCreate, ThreadUpdate, ThreadModerate, ThreadListItem, ThreadDetail,
    ForumReplyCreate, ForumReplyUpdate, ForumReplyResponse
)
from mindcare.schemas.user import UserBrief
from mindcare.services import forum as forum_service
from mindcare.services.notifications import NotificationDispatcher, get_dispatcher
from mindcare.services.permissions import Principal, can_reveal_identity


router = APIRouter(prefix="/forum", tags=["forum"])


def build_forum_reply(reply: ForumReply, viewer: Optional[Principal]) -> ForumReplyResponse:
    reveal = can_reveal_identity(reply.user_id, reply.is_anonymous, viewer)
    return ForumReplyResponse(
        id=reply.id,
        userId=reply.user_id if reveal else None,
        user=UserBrief.from_user(reply.user) if reveal else None,
        content=reply.content,
        likes=reply.like_user_ids,
        likeCount=len(reply.likes),
        isSolution=reply.is_solution,
        isAnonymous=reply.is_anonymous,
        createdAt=reply.created_at
    )


def build_thread_detail(thread: ForumThread, viewer: Optional[Principal]) -> ThreadDetail:
    reveal = can_reveal_identity(thread.author_id, thread.is_anonymous, viewer)
    return ThreadDetail(
        id=thread.id,
        title=thread.title,
        content=thread.content,
        category=thread.category,
        tags=thread.tags or [],
        status=thread.status,
        authorId=thread.author_id if reveal else None,
        author=UserBrief.from_user(thread.author) if reveal else None,
        isAnonymous=thread.is_anonymous,
        views=thread.views,
        replies=[build_forum_reply(r, viewer) for r in thread.replies],
        replyCount=len(thread.replies),
        version=thread.version,
        createdAt=thread.created_at,
        updatedAt=thread.updated_at
    )


@router.get("", response_model=ResponseModel[PagedData[ThreadListItem]])
def get_threads(
    current: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    keyword: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """List visible threads"""
    threads, total = forum_service.list_threads(db, current, size, category, keyword)

    records = []
    for t in threads:
        reveal = can_reveal_identity(t.author_id, t.is_anonymous, principal)
        records.append(ThreadListItem(
            id=t.id,
            title=t.title,
            category=t.category,
            tags=t.tags or [],
            status=t.status,
            author=UserBrief.from_user(t.author) if reveal else None,
            isAnonymous=t.is_anonymous,
            views=t.views,
            replyCount=len(t.replies),
            createdAt=t.created_at
        ))

    return ResponseModel(
        code=200,
        data=PagedData(
            records=records,
            total=total,
            current=current,
            size=size
        )
    )


@router.get("/{thread_id}", response_model=ResponseModel[ThreadDetail])
def get_thread(
    thread_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """Thread detail, counts a view"""
    thread = forum_service.get_thread(db, thread_id, principal)
    return ResponseModel(code=200, data=build_thread_detail(thread, principal))


@router.post("", response_model=ResponseModel[ThreadDetail], status_code=201)
def create_thread(
    thread_in: ThreadCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Start a thread"""
    thread = forum_service.create_thread(db, thread_in, principal)
    return ResponseModel(code=201, msg="Thread created", data=build_thread_detail(thread, principal))


@router.put("/{thread_id}", response_model=ResponseModel[ThreadDetail])
def update_thread(
    thread_id: int,
    thread_in: ThreadUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Edit thread (author or admin)"""
    thread = forum_service.update_thread(db, thread_id, thread_in, principal)
    return ResponseModel(code=200, msg="Thread updated", data=build_thread_detail(thread, principal))


@router.delete("/{thread_id}", response_model=ResponseModel)
def delete_thread(
    thread_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete thread (author or admin)"""
    forum_service.delete_thread(db, thread_id, principal)
    return ResponseModel(code=200, msg="Thread deleted")


@router.patch("/{thread_id}/moderate", response_model=ResponseModel[ThreadDetail])
def moderate_thread(
    thread_id: int,
    moderate_in: ThreadModerate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Set thread status (admin)"""
    thread = forum_service.moderate_thread(db, thread_id, moderate_in.status, principal)
    return ResponseModel(code=200, msg="Thread moderated", data=build_thread_detail(thread, principal))


@router.post("/{thread_id}/replies", response_model=ResponseModel[ThreadDetail], status_code=201)
def reply_to_thread(
    thread_id: int,
    reply_in: ForumReplyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Reply to a thread"""
    thread = forum_service.reply_to_thread(
        db, thread_id, reply_in.content, reply_in.isAnonymous, principal, dispatcher
    )
    return ResponseModel(code=201, msg="Reply added", data=build_thread_detail(thread, principal))


@router.put("/{thread_id}/replies/{reply_id}", response_model=ResponseModel[ThreadDetail])
def update_reply(
    thread_id: int,
    reply_id: int,
    reply_in: ForumReplyUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Edit reply (author or admin)"""
    thread = forum_service.update_reply(db, thread_id, reply_id, reply_in.content, principal)
    return ResponseModel(code=200, msg="Reply updated", data=build_thread_detail(thread, principal))


@router.delete("/{thread_id}/replies/{reply_id}", response_model=ResponseModel[ThreadDetail])
def delete_reply(
    thread_id: int,
    reply_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete reply (author or admin)"""
    thread = forum_service.delete_reply(db, thread_id, reply_id, principal)
    return ResponseModel(code=200, msg="Reply deleted", data=build_thread_detail(thread, principal))


@router.post("/{thread_id}/replies/{reply_id}/like", response_model=ResponseModel[ThreadDetail])
def like_reply(
    thread_id: int,
    reply_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Like, or unlike when already liked"""
    thread, liked = forum_service.toggle_reply_like(db, thread_id, reply_id, principal)
    return ResponseModel(
        code=200,
        msg="liked" if liked else "unliked",
        data=build_thread_detail(thread, principal)
    )


@router.post("/{thread_id}/replies/{reply_id}/solution", response_model=ResponseModel[ThreadDetail])
def mark_solution(
    thread_id: int,
    reply_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Toggle the solution mark (thread author or admin)"""
    thread = forum_service.mark_solution(db, thread_id, reply_id, principal)
    return ResponseModel(code=200, msg="Solution updated", data=build_thread_detail(thread, principal))
