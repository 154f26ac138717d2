from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class UserBrief(BaseModel):
    """Display fields substituted for a user id in nested references"""
    id: int
    username: str
    fullName: str = ""
    profilePicture: str = ""

    @classmethod
    def from_user(cls, user) -> Optional["UserBrief"]:
        if user is None:
            return None
        return cls(
            id=user.id,
            username=user.username,
            fullName=user.full_name or user.username,
            profilePicture=user.profile_picture or ""
        )


class UserInfo(BaseModel):
    id: int
    username: str
    email: str
    fullName: str = ""
    profilePicture: str = ""
    bio: str = ""
    role: str
    createdAt: Optional[datetime] = None


class UserUpdate(BaseModel):
    fullName: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    profilePicture: Optional[str] = Field(None, max_length=500)
