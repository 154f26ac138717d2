from typing import Optional, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field

from mindcare.schemas.user import UserBrief


ForumCategory = Literal[
    "general", "academic", "relationships", "stress", "anxiety", "depression", "self-care", "other"
]
ThreadStatus = Literal["active", "closed", "hidden"]


class ThreadCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    category: ForumCategory = "general"
    tags: List[str] = []
    isAnonymous: bool = False


class ThreadUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    category: Optional[ForumCategory] = None
    tags: Optional[List[str]] = None
    isAnonymous: Optional[bool] = None


class ThreadModerate(BaseModel):
    status: ThreadStatus


class ForumReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    isAnonymous: bool = False


class ForumReplyUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ForumReplyResponse(BaseModel):
    id: int
    # null when the reply is anonymous and the viewer is neither its author nor an admin
    userId: Optional[int] = None
    user: Optional[UserBrief] = None
    content: str
    likes: List[int] = []
    likeCount: int = 0
    isSolution: bool = False
    isAnonymous: bool = False
    createdAt: datetime


class ThreadListItem(BaseModel):
    id: int
    title: str
    category: str
    tags: List[str] = []
    status: str
    author: Optional[UserBrief] = None
    isAnonymous: bool = False
    views: int
    replyCount: int
    createdAt: Optional[datetime] = None


class ThreadDetail(BaseModel):
    id: int
    title: str
    content: str
    category: str
    tags: List[str] = []
    status: str
    authorId: Optional[int] = None
    author: Optional[UserBrief] = None
    isAnonymous: bool = False
    views: int
    replies: List[ForumReplyResponse] = []
    replyCount: int
    version: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
