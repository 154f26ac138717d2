from typing import Optional, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field

from mindcare.schemas.comment import CommentResponse
from mindcare.schemas.user import UserBrief


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    category: str = Field(default="general", max_length=50)
    imageUrl: Optional[str] = ""
    status: Literal["draft", "published"] = "published"


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    imageUrl: Optional[str] = None
    status: Optional[Literal["draft", "published"]] = None


class ArticleListItem(BaseModel):
    id: int
    title: str
    category: str
    imageUrl: Optional[str] = ""
    author: Optional[UserBrief] = None
    views: int
    likeCount: int
    commentCount: int
    createdAt: Optional[datetime] = None


class ArticleDetail(BaseModel):
    id: int
    title: str
    content: str
    category: str
    imageUrl: Optional[str] = ""
    status: str
    author: Optional[UserBrief] = None
    views: int
    likes: List[int] = []
    likeCount: int
    comments: List[CommentResponse] = []
    commentCount: int
    version: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
