"""
Comment schemas
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from mindcare.schemas.user import UserBrief


class CommentCreate(BaseModel):
    """Create a comment or a reply"""
    content: str = Field(..., min_length=1, max_length=2000, description="Comment text")


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class ReplyResponse(BaseModel):
    id: int
    userId: int
    user: Optional[UserBrief] = None
    content: str
    createdAt: datetime
    updatedAt: datetime


class CommentResponse(BaseModel):
    """Comment with its replies in posting order"""
    id: int
    userId: int
    user: Optional[UserBrief] = None
    content: str
    createdAt: datetime
    updatedAt: datetime
    replies: List[ReplyResponse] = []
