from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_principal
from mindcare.models.consultation import Consultation
from mindcare.schemas.common import ResponseModel
from mindcare.schemas.consultation import (
    ConsultationCreate, ConsultationResponse, MessageCreate, MessageResponse
)
from mindcare.schemas.user import UserBrief
from mindcare.services import consultations as consultation_service
from mindcare.services.notifications import NotificationDispatcher, get_dispatcher
from mindcare.services.permissions import Principal


router = APIRouter(prefix="/consultations", tags=["consultations"])


def build_consultation(consultation: Consultation, viewer: Principal) -> ConsultationResponse:
    """Anonymous askers are only shown to themselves"""
    reveal = not consultation.is_anonymous or consultation.user_id == viewer.user_id
    return ConsultationResponse(
        id=consultation.id,
        userId=consultation.user_id if reveal else None,
        user=UserBrief.from_user(consultation.user) if reveal else None,
        adminId=consultation.admin_id,
        admin=UserBrief.from_user(consultation.admin),
        question=consultation.question,
        isAnonymous=consultation.is_anonymous,
        status=consultation.status,
        messages=[MessageResponse(
            id=m.id,
            content=m.content,
            isFromUser=m.is_from_user,
            timestamp=m.timestamp
        ) for m in consultation.messages],
        version=consultation.version,
        createdAt=consultation.created_at,
        updatedAt=consultation.updated_at
    )


@router.post("", response_model=ResponseModel[ConsultationResponse], status_code=201)
def create_consultation(
    consultation_in: ConsultationCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Ask a counselor"""
    consultation = consultation_service.create_consultation(
        db, consultation_in.question, consultation_in.isAnonymous, principal
    )
    return ResponseModel(code=201, msg="Consultation created", data=build_consultation(consultation, principal))


@router.get("/my", response_model=ResponseModel[List[ConsultationResponse]])
def get_my_consultations(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Own consultation history"""
    consultations = consultation_service.list_my_consultations(db, principal)
    return ResponseModel(code=200, data=[build_consultation(c, principal) for c in consultations])


@router.get("", response_model=ResponseModel[List[ConsultationResponse]])
def get_all_consultations(
    status: Optional[str] = Query(None, pattern="^(open|answered|closed)$"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """All consultations (admin)"""
    consultations = consultation_service.list_all_consultations(db, principal, status)
    return ResponseModel(code=200, data=[build_consultation(c, principal) for c in consultations])


@router.get("/{consultation_id}", response_model=ResponseModel[ConsultationResponse])
def get_consultation(
    consultation_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    consultation = consultation_service.get_consultation(db, consultation_id, principal)
    return ResponseModel(code=200, data=build_consultation(consultation, principal))


@router.post("/{consultation_id}/messages", response_model=ResponseModel[ConsultationResponse])
def send_message(
    consultation_id: int,
    message_in: MessageCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Post a message (asker or admin, not on closed consultations)"""
    consultation = consultation_service.send_message(
        db, consultation_id, message_in.content, principal, dispatcher, is_from_user=message_in.isFromUser
    )
    return ResponseModel(code=200, msg="Message sent", data=build_consultation(consultation, principal))


@router.patch("/{consultation_id}/close", response_model=ResponseModel[ConsultationResponse])
def close_consultation(
    consultation_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Close (asker or admin)"""
    consultation = consultation_service.close_consultation(db, consultation_id, principal)
    return ResponseModel(code=200, msg="Consultation closed", data=build_consultation(consultation, principal))
