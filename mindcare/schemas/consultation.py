from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from mindcare.schemas.user import UserBrief


class ConsultationCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=5000)
    isAnonymous: bool = False


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    # Optional; derived from the caller when omitted
    isFromUser: Optional[bool] = None


class MessageResponse(BaseModel):
    id: int
    content: str
    isFromUser: bool
    timestamp: datetime


class ConsultationResponse(BaseModel):
    id: int
    userId: Optional[int] = None
    user: Optional[UserBrief] = None
    adminId: Optional[int] = None
    admin: Optional[UserBrief] = None
    question: str
    isAnonymous: bool = False
    status: str
    messages: List[MessageResponse] = []
    version: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
