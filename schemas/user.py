from datetime import datetime
from typing import Optional

from schemas.common import CamelModel


class UserProfileResponse(CamelModel):
    id: int
    name: Optional[str] = None
    username: Optional[str] = None
    email: str
    bio: Optional[str] = None
    lokasi: Optional[str] = None
    link_whatsapp: Optional[str] = None
    image: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class UserProfileUpdate(CamelModel):
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    lokasi: Optional[str] = None
    link_whatsapp: Optional[str] = None
