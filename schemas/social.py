from typing import List, Optional

from schemas.common import CamelModel


class FarmingUpdateCreate(CamelModel):
    proyek_tani_id: Optional[int] = None
    judul: Optional[str] = None
    deskripsi: Optional[str] = None
    foto_url: List[str] = []


class LikeRequest(CamelModel):
    farming_update_id: int


class CommentCreate(CamelModel):
    content: Optional[str] = None
    farming_update_id: Optional[int] = None
