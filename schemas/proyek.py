from datetime import date
from typing import List, Optional

from schemas.common import CamelModel


class ProyekCreate(CamelModel):
    nama_proyek: Optional[str] = None
    deskripsi: Optional[str] = None
    lokasi_lahan: Optional[str] = None


class ProyekUpdate(CamelModel):
    nama_proyek: Optional[str] = None
    deskripsi: Optional[str] = None
    lokasi_lahan: Optional[str] = None
    status: Optional[str] = None


class ProdukCreate(CamelModel):
    proyek_tani_id: int
    nama_produk: str
    deskripsi: Optional[str] = None
    foto_url: List[str] = []
    harga: int
    unit: str
    stok_tersedia: int = 0
    status: str = "TERSEDIA"
    estimasi_panen: Optional[date] = None


class FaseCreate(CamelModel):
    nama: Optional[str] = None
    slug: Optional[str] = None
    cerita: Optional[str] = None
    gambar: Optional[str] = None
    urutan: Optional[int] = None


class FaseUpdate(CamelModel):
    nama: Optional[str] = None
    slug: Optional[str] = None
    cerita: Optional[str] = None
    gambar: Optional[str] = None
    urutan: Optional[int] = None


class ProfileViewRequest(CamelModel):
    petani_id: Optional[int] = None
