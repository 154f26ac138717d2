import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_user
from mindcare.models.user import User, ROLE_ADMIN
from mindcare.schemas.common import ResponseModel
from mindcare.schemas.user import UserBrief, UserInfo, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def build_user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=user.username,
        email=user.email,
        fullName=user.full_name or "",
        profilePicture=user.profile_picture or "",
        bio=user.bio or "",
        role=user.role,
        createdAt=user.created_at
    )


@router.get("/me", response_model=ResponseModel[UserInfo])
def get_me(current_user: User = Depends(get_current_user)):
    return ResponseModel(code=200, data=build_user_info(current_user))


@router.put("/me", response_model=ResponseModel[UserInfo])
def update_me(
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own profile fields"""
    if user_in.fullName is not None:
        current_user.full_name = user_in.fullName.strip()
    if user_in.bio is not None:
        current_user.bio = user_in.bio
    if user_in.profilePicture is not None:
        current_user.profile_picture = user_in.profilePicture

    db.commit()
    db.refresh(current_user)
    logger.info(f"User {current_user.id} updated profile")
    return ResponseModel(code=200, msg="Profile updated", data=build_user_info(current_user))


@router.get("/admins", response_model=ResponseModel[List[UserBrief]])
def get_admins(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active counselors"""
    admins = db.query(User).filter(
        User.role == ROLE_ADMIN,
        User.is_active == True
    ).order_by(User.id).all()
    return ResponseModel(code=200, data=[UserBrief.from_user(u) for u in admins])
