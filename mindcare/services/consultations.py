"""
Consultations between a user and the counselors (admins).

Status only moves forward: open -> answered (first counselor message, which
also assigns that counselor) -> closed. A closed consultation rejects new
messages.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from mindcare.core.exceptions import ConflictError, NotFoundError
from mindcare.models.consultation import Consultation, ConsultationMessage
from mindcare.services import notifications
from mindcare.services.common import clean_content, commit
from mindcare.services.notifications import NotificationDispatcher
from mindcare.services.permissions import Principal, can_access_consultation, require

logger = logging.getLogger(__name__)


def _query(db: Session):
    return db.query(Consultation).options(
        selectinload(Consultation.user),
        selectinload(Consultation.admin),
        selectinload(Consultation.messages),
    )


def load_consultation(db: Session, consultation_id: int) -> Consultation:
    consultation = _query(db).filter(Consultation.id == consultation_id).first()
    if not consultation:
        raise NotFoundError("Consultation not found")
    return consultation


def create_consultation(db: Session, question: str, is_anonymous: bool, principal: Principal) -> Consultation:
    """The question doubles as the first message"""
    text = clean_content(question, "question")
    consultation = Consultation(
        user_id=principal.user_id,
        question=text,
        is_anonymous=bool(is_anonymous),
        status="open",
        messages=[ConsultationMessage(content=text, is_from_user=True, sender_id=principal.user_id)],
    )
    db.add(consultation)
    commit(db)
    logger.info(f"Consultation {consultation.id} opened by user {principal.user_id}")
    return load_consultation(db, consultation.id)


def list_my_consultations(db: Session, principal: Principal) -> List[Consultation]:
    return _query(db).filter(Consultation.user_id == principal.user_id).order_by(
        Consultation.updated_at.desc(), Consultation.id.desc()
    ).all()


def list_all_consultations(db: Session, principal: Principal, status: Optional[str] = None) -> List[Consultation]:
    require(principal.is_admin, "Only counselors can list all consultations")

    query = _query(db)
    if status:
        query = query.filter(Consultation.status == status)
    return query.order_by(Consultation.updated_at.desc(), Consultation.id.desc()).all()


def get_consultation(db: Session, consultation_id: int, principal: Principal) -> Consultation:
    consultation = load_consultation(db, consultation_id)
    require(can_access_consultation(consultation, principal), "Not authorized")
    return consultation


def _resolve_is_from_user(consultation: Consultation, requested: Optional[bool], principal: Principal) -> bool:
    """
    Which side of the conversation the principal speaks for.

    The asker speaks as the user, any other admin as the counselor. An
    explicit flag must agree with what the principal is allowed to be.
    """
    is_asker = consultation.user_id == principal.user_id
    if requested is None:
        return is_asker
    if requested:
        require(is_asker, "Only the asker can post as the user")
    else:
        require(principal.is_admin, "Only counselors can answer consultations")
    return requested


def send_message(
    db: Session,
    consultation_id: int,
    content: str,
    principal: Principal,
    dispatcher: NotificationDispatcher,
    is_from_user: Optional[bool] = None,
) -> Consultation:
    consultation = get_consultation(db, consultation_id, principal)
    if consultation.status == "closed":
        raise ConflictError("Consultation is closed")

    from_user = _resolve_is_from_user(consultation, is_from_user, principal)
    text = clean_content(content)

    if not from_user and consultation.admin_id is None:
        consultation.admin_id = principal.user_id

    message = ConsultationMessage(content=text, is_from_user=from_user, sender_id=principal.user_id)
    consultation.messages.append(message)

    if not from_user and consultation.status == "open":
        consultation.status = "answered"

    commit(db, consultation)
    logger.info(
        f"Message {message.id} on consultation {consultation_id} from "
        f"{'user' if from_user else 'counselor'} {principal.user_id}"
    )

    dispatcher.dispatch(notifications.consultation_message_events(consultation, message, principal.user_id))
    return load_consultation(db, consultation_id)


def close_consultation(db: Session, consultation_id: int, principal: Principal) -> Consultation:
    """Terminal; closing twice is a no-op"""
    consultation = get_consultation(db, consultation_id, principal)
    if consultation.status == "closed":
        return consultation

    consultation.status = "closed"
    commit(db, consultation)
    logger.info(f"Consultation {consultation_id} closed by user {principal.user_id}")
    return load_consultation(db, consultation_id)
