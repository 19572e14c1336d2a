import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from core.dependencies import get_current_user
from db.db_base import get_db
from db.models import ProyekTani, User
from schemas.user import UserProfileResponse, UserProfileUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/profile", response_model=UserProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return UserProfileResponse.model_validate(user)


@router.put("/profile", response_model=UserProfileResponse)
def update_profile(
    req: UserProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's profile. Fields left out of the body are not changed."""
    if req.username:
        taken = db.query(User).filter(User.username == req.username, User.id != user.id).first()
        if taken:
            raise HTTPException(status_code=409, detail="Username sudah digunakan")

    if req.email:
        taken = db.query(User).filter(User.email == req.email, User.id != user.id).first()
        if taken:
            raise HTTPException(status_code=409, detail="Email sudah digunakan")

    try:
        if req.name is not None:
            user.name = req.name or None
        if req.username is not None:
            user.username = req.username or None
        if req.email:
            user.email = req.email
        if req.bio is not None:
            user.bio = req.bio or None
        if req.lokasi is not None:
            user.lokasi = req.lokasi or None
        if req.link_whatsapp is not None:
            user.link_whatsapp = req.link_whatsapp or None
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"Error updating user profile: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    return UserProfileResponse.model_validate(user)


@router.delete("/delete")
def delete_account(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Delete the caller's account together with everything they own."""
    try:
        user_id = user.id
        db.delete(user)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting user account: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"User {user_id} deleted their account")
    return {"message": "Akun berhasil dihapus"}


@router.get("/projects")
def list_own_projects(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list:
    """The caller's projects as picker options, newest first."""
    try:
        projects = (
            db.query(ProyekTani.id, ProyekTani.nama_proyek)
            .filter(ProyekTani.petani_id == user.id)
            .order_by(ProyekTani.created_at.desc(), ProyekTani.id.desc())
            .all()
        )
    except Exception as e:
        logger.error(f"Error fetching user projects: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return [{"id": proyek_id, "namaProyek": nama} for proyek_id, nama in projects]
