"""Helpers shared by the article, forum and consultation services"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from mindcare.core.database import utcnow
from mindcare.core.exceptions import ConflictError, InternalError, InvalidInputError

logger = logging.getLogger(__name__)


def clean_content(content: Optional[str], field: str = "content") -> str:
    """Trim user text; blank text is rejected"""
    text = (content or "").strip()
    if not text:
        raise InvalidInputError(f"{field} must not be empty")
    return text


def touch(aggregate) -> None:
    """Force an UPDATE of the aggregate row so its version is checked and bumped"""
    aggregate.updated_at = utcnow()
    flag_modified(aggregate, "updated_at")


def commit(db: Session, aggregate=None) -> None:
    """
    Commit the unit of work for one aggregate.

    A version mismatch or a duplicate unique row means another request wrote
    first; both surface as ConflictError so the client can retry.
    """
    if aggregate is not None:
        touch(aggregate)
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Stale write rejected: {e}")
        raise ConflictError("The resource was modified concurrently, please retry", debug=str(e))
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error on commit: {e.orig}")
        raise ConflictError("The resource was modified concurrently, please retry", debug=str(e.orig))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error on commit: {e}", exc_info=True)
        raise InternalError("Failed to save changes", debug=str(e))


def paginate(query, current: int, size: int):
    total = query.count()
    records = query.offset((current - 1) * size).limit(size).all()
    return records, total
