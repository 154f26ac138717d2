"""
Authorization predicates.

Every ownership/role rule lives here so routers and services never compare
roles inline. Predicates return bool; ``require`` turns a failed predicate
into ``ForbiddenError``.
"""
from dataclasses import dataclass
from typing import Optional

from mindcare.core.exceptions import ForbiddenError
from mindcare.models.user import ROLE_ADMIN


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of a request"""
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(user_id=user.id, role=user.role)


def is_owner(owner_id: Optional[int], principal: Principal) -> bool:
    return owner_id is not None and owner_id == principal.user_id


def can_edit(owner_id: int, principal: Principal) -> bool:
    """Comment and reply content: author only, admins included"""
    return is_owner(owner_id, principal)


def can_delete(owner_id: int, principal: Principal) -> bool:
    return is_owner(owner_id, principal) or principal.is_admin


def can_update_forum_reply(owner_id: int, principal: Principal) -> bool:
    return is_owner(owner_id, principal) or principal.is_admin


def can_manage_thread(thread, principal: Principal) -> bool:
    """Edit or delete the thread itself"""
    return is_owner(thread.author_id, principal) or principal.is_admin


def can_mark_solution(thread, principal: Principal) -> bool:
    return is_owner(thread.author_id, principal) or principal.is_admin


def can_moderate(principal: Principal) -> bool:
    return principal.is_admin


def can_manage_articles(principal: Principal) -> bool:
    return principal.is_admin


def can_access_consultation(consultation, principal: Principal) -> bool:
    """Asker or any admin, not only the assigned one"""
    return is_owner(consultation.user_id, principal) or principal.is_admin


def can_view_hidden(owner_id: int, principal: Optional[Principal]) -> bool:
    if principal is None:
        return False
    return is_owner(owner_id, principal) or principal.is_admin


def can_reveal_identity(owner_id: int, is_anonymous: bool, principal: Optional[Principal]) -> bool:
    """Anonymous posts show their author only to that author and to admins"""
    if not is_anonymous:
        return True
    return can_view_hidden(owner_id, principal)


def require(allowed: bool, msg: str = "Not authorized") -> None:
    if not allowed:
        raise ForbiddenError(msg)
