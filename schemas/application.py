from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schemas.common import CamelModel


class PetaniApplicationCreate(CamelModel):
    # Everything is optional here so a missing field is reported as a 400
    # naming the field instead of a generic 422
    nama: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    lokasi: Optional[str] = None
    link_whatsapp: Optional[str] = None
    alasan_menjadi: Optional[str] = None
    pengalaman_bertani: Optional[str] = None
    jenis_komoditas: Optional[str] = None
    luas_lahan: Optional[str] = None
    lokasi_lahan: Optional[str] = None
    foto_profil: Optional[str] = None
    foto_ktp: Optional[str] = Field(None, alias="fotoKTP")
    sertifikat_lahan: Optional[List[str]] = None


class PetaniApplicationCreated(CamelModel):
    message: str
    application_id: int


class ApplicationStatusUpdate(CamelModel):
    application_id: Optional[int] = None
    status: Optional[str] = None
    admin_notes: Optional[str] = None


class UserSummary(CamelModel):
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class ReviewerSummary(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None


class PetaniApplicationBase(CamelModel):
    id: int
    user_id: int
    nama: str
    username: str
    email: str
    bio: str
    lokasi: str
    link_whatsapp: str
    alasan_menjadi: str
    pengalaman_bertani: str
    jenis_komoditas: str
    luas_lahan: str
    lokasi_lahan: str
    foto_profil: Optional[str] = None
    foto_ktp: str = Field(alias="fotoKTP")
    sertifikat_lahan: List[str] = []
    status: str
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PetaniApplicationResponse(PetaniApplicationBase):
    """Application row plus the owner and reviewer, each null when the lookup fails."""
    user: Optional[UserSummary] = None
    reviewer: Optional[ReviewerSummary] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PetaniApplicationList(CamelModel):
    applications: List[PetaniApplicationResponse]
    pagination: Pagination


class PetaniApplicationDetail(CamelModel):
    application: PetaniApplicationResponse


class ApplicationStatusUpdated(CamelModel):
    message: str
    application: PetaniApplicationResponse


class OwnApplication(CamelModel):
    id: int
    status: str
    admin_notes: Optional[str] = None
    reviewed_by: Optional[ReviewerSummary] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OwnApplicationStatus(CamelModel):
    has_application: bool
    message: Optional[str] = None
    application: Optional[OwnApplication] = None
