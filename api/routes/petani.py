import re
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.dependencies import get_current_user
from db.db_base import get_db
from db.models import PetaniApplication, User, ROLE_PETANI
from schemas.application import (
    OwnApplication,
    OwnApplicationStatus,
    PetaniApplicationCreate,
    PetaniApplicationCreated,
    ReviewerSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# (attribute, wire name) in the order they are validated
REQUIRED_FIELDS = [
    ("nama", "nama"),
    ("username", "username"),
    ("email", "email"),
    ("bio", "bio"),
    ("lokasi", "lokasi"),
    ("link_whatsapp", "linkWhatsapp"),
    ("alasan_menjadi", "alasanMenjadi"),
    ("pengalaman_bertani", "pengalamanBertani"),
    ("jenis_komoditas", "jenisKomoditas"),
    ("luas_lahan", "luasLahan"),
    ("lokasi_lahan", "lokasiLahan"),
    ("foto_ktp", "fotoKTP"),
]

DUPLICATE_APPLICATION_DETAIL = "Anda sudah pernah mendaftar sebagai petani. Silakan tunggu proses review."


@router.post("/daftar-petani", status_code=201, response_model=PetaniApplicationCreated)
def daftar_petani(
    req: PetaniApplicationCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit a petani application for the logged in user.
    The application starts as PENDING; the role only changes once an admin approves it.
    """
    for attr, wire_name in REQUIRED_FIELDS:
        value = getattr(req, attr)
        if not value or not value.strip():
            raise HTTPException(status_code=400, detail=f"Field {wire_name} wajib diisi.")

    try:
        existing_application = db.query(PetaniApplication).filter(
            PetaniApplication.user_id == user.id
        ).first()
        if existing_application:
            raise HTTPException(status_code=409, detail=DUPLICATE_APPLICATION_DETAIL)

        if user.role == ROLE_PETANI:
            raise HTTPException(status_code=400, detail="Anda sudah terdaftar sebagai petani.")

        username = req.username.strip()
        if username != user.username:
            taken = db.query(User).filter(User.username == username, User.id != user.id).first()
            if taken:
                raise HTTPException(
                    status_code=409,
                    detail="Username sudah digunakan. Silakan pilih username lain.",
                )

        if not re.fullmatch(settings.WHATSAPP_LINK_PATTERN, req.link_whatsapp.strip()):
            raise HTTPException(
                status_code=400,
                detail="Format link WhatsApp tidak valid. Gunakan format: https://wa.me/628123456789",
            )

        application = PetaniApplication(
            user_id=user.id,
            nama=req.nama.strip(),
            username=username,
            email=req.email.strip(),
            bio=req.bio.strip(),
            lokasi=req.lokasi.strip(),
            link_whatsapp=req.link_whatsapp.strip(),
            alasan_menjadi=req.alasan_menjadi.strip(),
            pengalaman_bertani=req.pengalaman_bertani.strip(),
            jenis_komoditas=req.jenis_komoditas.strip(),
            luas_lahan=req.luas_lahan.strip(),
            lokasi_lahan=req.lokasi_lahan.strip(),
            foto_profil=req.foto_profil or None,
            foto_ktp=req.foto_ktp.strip(),
            sertifikat_lahan=req.sertifikat_lahan or [],
            status="PENDING",
        )
        db.add(application)
        db.commit()
        db.refresh(application)

        logger.info(f"Petani application {application.id} submitted by user {user.id}")
        return PetaniApplicationCreated(
            message="Pendaftaran berhasil dikirim. Kami akan menghubungi Anda dalam 1-3 hari kerja.",
            application_id=application.id,
        )
    except HTTPException:
        raise
    except IntegrityError as e:
        # A concurrent submission won the race past the existence check
        logger.error(f"Duplicate petani application for user {user.id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICATE_APPLICATION_DETAIL)
    except Exception as e:
        logger.error(f"Error in petani registration: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Terjadi kesalahan internal server.")


@router.get("/petani-application/status", response_model=OwnApplicationStatus)
def status_pendaftaran(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Status of the caller's own application. There is no way to ask about someone else's."""
    try:
        application = db.query(PetaniApplication).filter(
            PetaniApplication.user_id == user.id
        ).first()
    except Exception as e:
        logger.error(f"Error fetching application status: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if not application:
        return OwnApplicationStatus(
            has_application=False,
            message="Belum pernah mendaftar sebagai petani",
        )

    reviewer = application.reviewer
    return OwnApplicationStatus(
        has_application=True,
        application=OwnApplication(
            id=application.id,
            status=application.status,
            admin_notes=application.admin_notes,
            reviewed_by=ReviewerSummary.model_validate(reviewer) if reviewer else None,
            reviewed_at=application.reviewed_at,
            created_at=application.created_at,
            updated_at=application.updated_at,
        ),
    )
