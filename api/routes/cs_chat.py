import re
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from core.config import settings
from db.db_base import get_db
from db.models import CsMessage, User
from schemas.chat import CsChatDeleteRequest, CsChatRequest

logger = logging.getLogger(__name__)
router = APIRouter()


def serialize_cs_message(message: CsMessage) -> dict:
    return {
        "id": message.id,
        "message": message.message,
        "status": message.status,
        "adminReply": message.admin_reply,
        "adminEmail": message.admin_email,
        "createdAt": message.created_at,
        "repliedAt": message.replied_at,
    }


@router.post("")
def send_cs_message(req: CsChatRequest, db: Session = Depends(get_db)) -> dict:
    """Store a customer-service message; unknown emails get a guest account."""
    email = req.user_email.strip().lower()
    if not re.fullmatch(settings.EMAIL_PATTERN, email):
        raise HTTPException(status_code=400, detail="Format email tidak valid")
    if not req.message.strip():
        raise HTTPException(status_code=400, detail="Pesan wajib diisi")

    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, name=req.user_name or "Guest User")
            db.add(user)
            db.flush()

        db.add(CsMessage(message=req.message.strip(), user_id=user.id))
        db.commit()
    except Exception as e:
        logger.error(f"CS Chat Error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal memproses pesan")

    return {"success": True, "message": "Pesan berhasil diterima"}


@router.get("/history")
def cs_history(email: Optional[str] = Query(None), db: Session = Depends(get_db)) -> dict:
    if not email:
        raise HTTPException(status_code=400, detail="Email required")

    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        return {"success": True, "messages": []}

    messages = (
        db.query(CsMessage)
        .filter(CsMessage.user_id == user.id)
        .order_by(CsMessage.created_at.asc(), CsMessage.id.asc())
        .all()
    )
    return {"success": True, "messages": [serialize_cs_message(m) for m in messages]}


@router.delete("/delete")
def delete_cs_history(req: CsChatDeleteRequest, db: Session = Depends(get_db)) -> dict:
    user = db.query(User).filter(User.email == req.user_email.strip().lower()).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        db.query(CsMessage).filter(CsMessage.user_id == user.id).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        logger.error(f"Delete chat error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal menghapus chat")

    return {"success": True, "message": "Chat berhasil dihapus"}
