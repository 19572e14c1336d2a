import math
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from core.dependencies import require_role
from core.profile_utils import promote_to_petani
from db.db_base import get_db
from db.models import APPLICATION_STATUSES, CsMessage, PetaniApplication, User, ROLE_ADMIN
from schemas.application import (
    ApplicationStatusUpdate,
    ApplicationStatusUpdated,
    Pagination,
    PetaniApplicationBase,
    PetaniApplicationDetail,
    PetaniApplicationList,
    PetaniApplicationResponse,
    ReviewerSummary,
    UserSummary,
)
from schemas.chat import AdminReplyRequest

logger = logging.getLogger(__name__)
router = APIRouter()


def _lookup_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def _enrich_application(db: Session, base: PetaniApplicationBase) -> PetaniApplicationResponse:
    """
    Attach owner and reviewer summaries to an application.
    A lookup that fails or finds nothing leaves that relation null instead of
    failing the whole response.
    """
    owner = None
    try:
        found = _lookup_user(db, base.user_id)
        if found:
            owner = UserSummary.model_validate(found)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching owner for application {base.id}: {str(e)}")
        db.rollback()

    reviewer = None
    if base.reviewed_by:
        try:
            found = _lookup_user(db, base.reviewed_by)
            if found:
                reviewer = ReviewerSummary.model_validate(found)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching reviewer for application {base.id}: {str(e)}")
            db.rollback()

    return PetaniApplicationResponse(**base.model_dump(), user=owner, reviewer=reviewer)


@router.get("/petani-applications", response_model=PetaniApplicationList)
def list_petani_applications(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """List petani applications, newest first, optionally filtered by status ('all' for no filter)."""
    if status and status != "all" and status not in APPLICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    offset = (page - 1) * limit
    try:
        query = db.query(PetaniApplication)
        if status and status != "all":
            query = query.filter(PetaniApplication.status == status)

        total = query.count()
        applications = (
            query.order_by(PetaniApplication.created_at.desc(), PetaniApplication.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        # Serialize every row before any relation lookup can roll the session back
        rows = [PetaniApplicationBase.model_validate(application) for application in applications]
    except Exception as e:
        logger.error(f"Error fetching petani applications: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return PetaniApplicationList(
        applications=[_enrich_application(db, base) for base in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/petani-applications/{application_id}", response_model=PetaniApplicationDetail)
def detail_petani_application(
    application_id: int,
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    application = db.query(PetaniApplication).filter(PetaniApplication.id == application_id).first()
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return PetaniApplicationDetail(application=_enrich_application(db, PetaniApplicationBase.model_validate(application)))


@router.patch("/petani-applications", response_model=ApplicationStatusUpdated)
def update_petani_application_status(
    req: ApplicationStatusUpdate,
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Move an application to a new status.

    Any status may be set from any other status. On APPROVED the owner becomes
    PETANI and receives the application's name, username, bio and photo where
    those are filled in. The status change and the account change are
    committed together or not at all.
    """
    if not req.application_id or not req.status:
        raise HTTPException(status_code=400, detail="Application ID and status are required")

    if req.status not in APPLICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    try:
        application = db.query(PetaniApplication).filter(
            PetaniApplication.id == req.application_id
        ).first()
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")

        application.status = req.status
        application.admin_notes = req.admin_notes or None
        application.reviewed_by = user["id"]
        application.reviewed_at = datetime.now(timezone.utc)

        if req.status == "APPROVED":
            promote_to_petani(db, application)

        db.commit()
        db.refresh(application)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating application status: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Application {application.id} set to {application.status} by admin {user['id']}")
    return ApplicationStatusUpdated(
        message="Application status updated successfully",
        application=_enrich_application(db, PetaniApplicationBase.model_validate(application)),
    )


@router.delete("/petani-applications/{application_id}")
def delete_petani_application(
    application_id: int,
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> dict:
    try:
        application = db.query(PetaniApplication).filter(PetaniApplication.id == application_id).first()
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")

        db.delete(application)
        db.commit()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting application: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Application {application_id} deleted by admin {user['id']}")
    return {"message": "Application deleted successfully"}


@router.get("/messages")
def list_cs_messages(
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> dict:
    """All customer-service messages, newest first."""
    messages = db.query(CsMessage).order_by(CsMessage.created_at.desc(), CsMessage.id.desc()).all()
    return {
        "messages": [
            {
                "id": m.id,
                "message": m.message,
                "status": m.status,
                "adminReply": m.admin_reply,
                "adminEmail": m.admin_email,
                "createdAt": m.created_at,
                "repliedAt": m.replied_at,
                "user": {"name": m.user.name, "email": m.user.email} if m.user else None,
            }
            for m in messages
        ]
    }


@router.post("/reply")
def reply_cs_message(
    req: AdminReplyRequest,
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> dict:
    message = db.query(CsMessage).filter(CsMessage.id == req.message_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Pesan tidak ditemukan")

    try:
        message.admin_reply = req.reply
        message.admin_email = user["email"]
        message.status = "REPLIED"
        message.replied_at = datetime.now(timezone.utc)
        db.commit()
    except Exception as e:
        logger.error(f"Admin reply error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal mengirim balasan")

    return {"success": True, "message": "Balasan berhasil dikirim"}


@router.patch("/messages/{message_id}/read")
def mark_cs_message_read(
    message_id: int,
    user=Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> dict:
    message = db.query(CsMessage).filter(CsMessage.id == message_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Pesan tidak ditemukan")

    try:
        message.status = "READ"
        db.commit()
    except Exception as e:
        logger.error(f"Mark as read error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal update status")

    return {"success": True}
