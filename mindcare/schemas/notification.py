from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from mindcare.schemas.user import UserBrief


class RefTitle(BaseModel):
    """Resolved aggregate reference for deep links"""
    id: int
    title: str


class NotificationResponse(BaseModel):
    id: int
    recipientId: int
    type: str
    sender: Optional[UserBrief] = None
    # null when the referenced aggregate no longer exists
    article: Optional[RefTitle] = None
    forum: Optional[RefTitle] = None
    consultation: Optional[RefTitle] = None
    articleId: Optional[int] = None
    forumId: Optional[int] = None
    consultationId: Optional[int] = None
    commentId: Optional[int] = None
    content: Optional[str] = None
    isRead: bool
    createdAt: datetime


class UnreadCount(BaseModel):
    unread: int


class MarkAllResult(BaseModel):
    updated: int
