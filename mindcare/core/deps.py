from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from mindcare.core.config import settings
from mindcare.core.database import get_db
from mindcare.core.security import decode_access_token
from mindcare.models.user import User
from mindcare.services.permissions import Principal


# Tokens are issued out of band (scripts/create_user.py); tokenUrl only feeds the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token", auto_error=False)


def _user_from_token(db: Session, token: str) -> Optional[User]:
    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        return None

    return db.query(User).filter(User.id == int(user_id)).first()


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = _user_from_token(db, token)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    return user


def get_optional_current_user(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme_optional)
) -> Optional[User]:
    """Current user, or None for anonymous readers"""
    if not token:
        return None

    user = _user_from_token(db, token)
    if user is None or not user.is_active:
        return None
    return user


def get_current_principal(current_user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(current_user)


def get_optional_principal(
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> Optional[Principal]:
    return Principal.from_user(current_user) if current_user else None

