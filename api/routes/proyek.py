import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import settings
from core.dependencies import get_optional_user, require_role
from db.db_base import get_db
from db.models import (
    ACTIVE_PROYEK_STATUSES,
    FaseProyek,
    FarmingUpdate,
    PRODUK_STATUSES,
    PROYEK_STATUSES,
    ProfileView,
    Produk,
    ProyekTani,
    User,
    ROLE_PETANI,
)
from schemas.proyek import (
    FaseCreate,
    FaseUpdate,
    ProdukCreate,
    ProfileViewRequest,
    ProyekCreate,
    ProyekUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter()

MAX_LENGTHS = {"nama_proyek": 100, "deskripsi": 500, "lokasi_lahan": 200}
FIELD_LABELS = {"nama_proyek": "Nama proyek", "deskripsi": "Deskripsi", "lokasi_lahan": "Lokasi lahan"}


def serialize_proyek(proyek: ProyekTani) -> dict:
    return {
        "id": proyek.id,
        "namaProyek": proyek.nama_proyek,
        "deskripsi": proyek.deskripsi,
        "lokasiLahan": proyek.lokasi_lahan,
        "status": proyek.status,
        "petaniId": proyek.petani_id,
        "createdAt": proyek.created_at,
        "updatedAt": proyek.updated_at,
    }


def serialize_produk(produk: Produk, with_petani: bool = False) -> dict:
    data = {
        "id": produk.id,
        "namaProduk": produk.nama_produk,
        "deskripsi": produk.deskripsi,
        "fotoUrl": produk.foto_url or [],
        "harga": produk.harga,
        "unit": produk.unit,
        "stokTersedia": produk.stok_tersedia,
        "status": produk.status,
        "estimasiPanen": produk.estimasi_panen,
        "createdAt": produk.created_at,
    }
    if with_petani:
        proyek = produk.proyek_tani
        petani = proyek.petani if proyek else None
        data["proyekTani"] = {
            "id": proyek.id,
            "namaProyek": proyek.nama_proyek,
            "petani": {
                "id": petani.id,
                "name": petani.name,
                "username": petani.username,
                "lokasi": petani.lokasi,
            } if petani else None,
        } if proyek else None
    return data


def serialize_fase(fase: FaseProyek) -> dict:
    return {
        "id": fase.id,
        "proyekTaniId": fase.proyek_tani_id,
        "nama": fase.nama,
        "slug": fase.slug,
        "cerita": fase.cerita,
        "gambar": fase.gambar,
        "urutan": fase.urutan,
    }


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def _check_lengths(values: dict) -> None:
    for field, limit in MAX_LENGTHS.items():
        value = values.get(field)
        if value and len(value) > limit:
            raise HTTPException(status_code=400, detail=f"{FIELD_LABELS[field]} maksimal {limit} karakter")


def _get_owned_proyek(db: Session, proyek_id: int, user_id: int, action: str) -> ProyekTani:
    proyek = db.query(ProyekTani).filter(ProyekTani.id == proyek_id).first()
    if not proyek:
        raise HTTPException(status_code=404, detail="Proyek tidak ditemukan")
    if proyek.petani_id != user_id:
        raise HTTPException(status_code=403, detail=f"Anda tidak punya izin untuk {action} proyek ini")
    return proyek


@router.post("/proyek", status_code=201)
def create_proyek(
    req: ProyekCreate,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    if not req.nama_proyek or not req.deskripsi or not req.lokasi_lahan:
        raise HTTPException(status_code=400, detail="Semua field wajib diisi")
    _check_lengths(req.model_dump())

    try:
        proyek = ProyekTani(
            nama_proyek=req.nama_proyek.strip(),
            deskripsi=req.deskripsi.strip(),
            lokasi_lahan=req.lokasi_lahan.strip(),
            petani_id=user["id"],
        )
        db.add(proyek)
        db.commit()
        db.refresh(proyek)
    except Exception as e:
        logger.error(f"Error saat membuat proyek: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Terjadi kesalahan pada server")

    return {"message": "Proyek berhasil dibuat", "data": serialize_proyek(proyek)}


@router.get("/proyek")
def list_my_proyek(
    include: Optional[str] = Query(None),
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    """The caller's projects, newest first. include=fase adds each phase's picture for thumbnails."""
    proyek_list = (
        db.query(ProyekTani)
        .filter(ProyekTani.petani_id == user["id"])
        .order_by(ProyekTani.created_at.desc(), ProyekTani.id.desc())
        .all()
    )
    data = []
    for p in proyek_list:
        item = serialize_proyek(p)
        if include == "fase":
            item["fase"] = [{"gambar": f.gambar} for f in p.fase]
        data.append(item)
    return {"message": "Data proyek berhasil diambil", "data": data}


@router.get("/proyek/{proyek_id}")
def detail_proyek(proyek_id: int, db: Session = Depends(get_db)) -> dict:
    proyek = db.query(ProyekTani).filter(ProyekTani.id == proyek_id).first()
    if not proyek:
        raise HTTPException(status_code=404, detail="Proyek tidak ditemukan")

    data = serialize_proyek(proyek)
    petani = proyek.petani
    data["petani"] = {"name": petani.name, "email": petani.email, "image": petani.image} if petani else None
    data["produk"] = [serialize_produk(p) for p in proyek.produk]
    data["fase"] = [serialize_fase(f) for f in proyek.fase]
    return data


@router.put("/proyek/{proyek_id}")
def update_proyek(
    proyek_id: int,
    req: ProyekUpdate,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    proyek = _get_owned_proyek(db, proyek_id, user["id"], "mengubah")

    if req.status is not None and req.status not in PROYEK_STATUSES:
        raise HTTPException(status_code=400, detail="Status proyek tidak valid")
    _check_lengths(req.model_dump())

    try:
        if req.nama_proyek:
            proyek.nama_proyek = req.nama_proyek.strip()
        if req.deskripsi:
            proyek.deskripsi = req.deskripsi.strip()
        if req.lokasi_lahan:
            proyek.lokasi_lahan = req.lokasi_lahan.strip()
        if req.status:
            proyek.status = req.status
        db.commit()
        db.refresh(proyek)
    except Exception as e:
        logger.error(f"Error PUT /proyek/{proyek_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Terjadi kesalahan pada server")

    return serialize_proyek(proyek)


@router.delete("/proyek/{proyek_id}")
def delete_proyek(
    proyek_id: int,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    proyek = _get_owned_proyek(db, proyek_id, user["id"], "menghapus")
    try:
        db.delete(proyek)
        db.commit()
    except Exception as e:
        logger.error(f"Error DELETE /proyek/{proyek_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Terjadi kesalahan pada server")
    return {"message": "Proyek berhasil dihapus"}


def _get_fase(db: Session, proyek_id: int, fase_id: int) -> FaseProyek:
    fase = db.query(FaseProyek).filter(
        FaseProyek.id == fase_id,
        FaseProyek.proyek_tani_id == proyek_id,
    ).first()
    if not fase:
        raise HTTPException(status_code=404, detail="Fase tidak ditemukan")
    return fase


@router.post("/proyek/{proyek_id}/fase", status_code=201)
def create_fase(
    proyek_id: int,
    req: FaseCreate,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    """Add a phase to the caller's project. Without urutan it goes after the last phase."""
    proyek = _get_owned_proyek(db, proyek_id, user["id"], "menambah fase ke")
    if not req.nama or not req.nama.strip():
        raise HTTPException(status_code=400, detail="Nama fase wajib diisi")

    nama = req.nama.strip()
    urutan = req.urutan
    if urutan is None:
        urutan = max((f.urutan for f in proyek.fase), default=0) + 1

    try:
        fase = FaseProyek(
            proyek_tani_id=proyek.id,
            nama=nama,
            slug=(req.slug or "").strip() or slugify(nama),
            cerita=req.cerita or "",
            gambar=req.gambar or None,
            urutan=urutan,
        )
        db.add(fase)
        db.commit()
        db.refresh(fase)
    except Exception as e:
        logger.error(f"Error creating fase: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal menyimpan fase")

    return serialize_fase(fase)


@router.get("/proyek/{proyek_id}/fase/{fase_id}")
def detail_fase(proyek_id: int, fase_id: int, db: Session = Depends(get_db)) -> dict:
    return serialize_fase(_get_fase(db, proyek_id, fase_id))


@router.put("/proyek/{proyek_id}/fase/{fase_id}")
def update_fase(
    proyek_id: int,
    fase_id: int,
    req: FaseUpdate,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    _get_owned_proyek(db, proyek_id, user["id"], "mengubah fase")
    fase = _get_fase(db, proyek_id, fase_id)

    try:
        if req.nama:
            fase.nama = req.nama.strip()
        if req.slug:
            fase.slug = req.slug.strip()
        if req.cerita is not None:
            fase.cerita = req.cerita
        if req.gambar is not None:
            fase.gambar = req.gambar or None
        if req.urutan is not None:
            fase.urutan = req.urutan
        db.commit()
        db.refresh(fase)
    except Exception as e:
        logger.error(f"Error updating fase: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal memperbarui fase")

    return serialize_fase(fase)


@router.delete("/proyek/{proyek_id}/fase/{fase_id}")
def delete_fase(
    proyek_id: int,
    fase_id: int,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    _get_owned_proyek(db, proyek_id, user["id"], "menghapus fase")
    fase = _get_fase(db, proyek_id, fase_id)

    try:
        db.delete(fase)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting fase: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal menghapus fase")

    return {"message": "Fase berhasil dihapus"}


@router.post("/products", status_code=201)
def create_produk(
    req: ProdukCreate,
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    _get_owned_proyek(db, req.proyek_tani_id, user["id"], "menambah produk ke")

    if req.status not in PRODUK_STATUSES:
        raise HTTPException(status_code=400, detail="Status produk tidak valid")
    if req.harga < 0 or req.stok_tersedia < 0:
        raise HTTPException(status_code=400, detail="Harga dan stok tidak boleh negatif")
    if not req.nama_produk.strip():
        raise HTTPException(status_code=400, detail="Nama produk wajib diisi")

    try:
        produk = Produk(
            proyek_tani_id=req.proyek_tani_id,
            nama_produk=req.nama_produk.strip(),
            deskripsi=req.deskripsi,
            foto_url=req.foto_url,
            harga=req.harga,
            unit=req.unit,
            stok_tersedia=req.stok_tersedia,
            status=req.status,
            estimasi_panen=req.estimasi_panen,
        )
        db.add(produk)
        db.commit()
        db.refresh(produk)
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal menyimpan produk")

    return {"success": True, "data": serialize_produk(produk)}


@router.get("/products")
def list_produk(
    type: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict:
    """Public product listing. type: new (last 30 days), available, preorder or all."""
    try:
        query = db.query(Produk)
        if type == "new":
            query = query.filter(Produk.created_at >= datetime.now(timezone.utc) - timedelta(days=30))
        elif type == "available":
            query = query.filter(Produk.status == "TERSEDIA", Produk.stok_tersedia > 0)
        elif type == "preorder":
            query = query.filter(Produk.status == "PREORDER")

        if category:
            query = query.filter(Produk.nama_produk.ilike(f"%{category}%"))

        products = query.order_by(Produk.created_at.desc(), Produk.id.desc()).limit(limit).all()
    except Exception as e:
        logger.error(f"Error fetching products: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil data produk")

    data = [serialize_produk(p, with_petani=True) for p in products]
    return {"success": True, "data": data, "count": len(data)}


def serialize_petani(petani: User, active_only: bool = False) -> dict:
    proyek = [p for p in petani.proyek_tani if not active_only or p.status in ACTIVE_PROYEK_STATUSES]
    return {
        "id": petani.id,
        "name": petani.name,
        "username": petani.username,
        "lokasi": petani.lokasi,
        "bio": petani.bio,
        "createdAt": petani.created_at,
        "proyekTani": [
            {"id": p.id, "namaProyek": p.nama_proyek, "status": p.status} for p in proyek[:3]
        ],
    }


@router.get("/farmers")
def list_petani(
    type: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict:
    """Public PETANI listing. type=active keeps farmers with a project in the field."""
    try:
        query = db.query(User).filter(User.role == ROLE_PETANI)
        if type == "active":
            query = query.filter(
                User.proyek_tani.any(ProyekTani.status.in_(ACTIVE_PROYEK_STATUSES))
            ).order_by(User.updated_at.desc(), User.id.desc())
        else:
            query = query.order_by(User.created_at.desc(), User.id.desc())
        farmers = query.limit(limit).all()
    except Exception as e:
        logger.error(f"Error fetching farmers: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil data petani")

    data = [serialize_petani(f, active_only=type == "active") for f in farmers]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/stats")
def platform_stats(db: Session = Depends(get_db)) -> dict:
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    try:
        petani = db.query(User).filter(User.role == ROLE_PETANI)
        top_products = (
            db.query(Produk.nama_produk, func.count(Produk.id).label("count"))
            .group_by(Produk.nama_produk)
            .order_by(func.count(Produk.id).desc())
            .limit(5)
            .all()
        )
        top_locations = (
            db.query(User.lokasi, func.count(User.id).label("count"))
            .filter(User.role == ROLE_PETANI, User.lokasi.isnot(None))
            .group_by(User.lokasi)
            .order_by(func.count(User.id).desc())
            .limit(5)
            .all()
        )
        stats = {
            "totals": {
                "farmers": petani.count(),
                "products": db.query(Produk).count(),
                "projects": db.query(ProyekTani).count(),
            },
            "recent": {
                "newFarmersThisWeek": petani.filter(User.created_at >= week_ago).count(),
                "newProductsThisWeek": db.query(Produk).filter(Produk.created_at >= week_ago).count(),
            },
            "active": {
                "activeProjects": db.query(ProyekTani)
                .filter(ProyekTani.status.in_(ACTIVE_PROYEK_STATUSES))
                .count(),
                "availableProducts": db.query(Produk)
                .filter(Produk.status == "TERSEDIA", Produk.stok_tersedia > 0)
                .count(),
            },
            "insights": {
                "topProductTypes": [{"name": name, "count": count} for name, count in top_products],
                "topLocations": [{"location": lokasi, "count": count} for lokasi, count in top_locations],
            },
        }
    except Exception as e:
        logger.error(f"Error fetching stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil statistik")

    return {"success": True, "data": stats}


def serialize_project_card(proyek: ProyekTani) -> dict:
    petani = proyek.petani
    updates = sorted(proyek.farming_updates, key=lambda u: (u.created_at, u.id), reverse=True)[:3]
    return {
        **serialize_proyek(proyek),
        "petani": {
            "id": petani.id,
            "name": petani.name,
            "username": petani.username,
            "lokasi": petani.lokasi,
        } if petani else None,
        "farmingUpdates": [
            {"id": u.id, "judul": u.judul, "createdAt": u.created_at, "fotoUrl": u.foto_url or []}
            for u in updates
        ],
        "produk": [
            {"id": p.id, "namaProduk": p.nama_produk, "status": p.status, "harga": p.harga, "unit": p.unit}
            for p in proyek.produk[:5]
        ],
    }


@router.get("/projects")
def list_projects(
    type: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict:
    """Public project listing. type: new (last 7 days), active (in the field), harvest or all."""
    try:
        query = db.query(ProyekTani)
        if type == "new":
            query = query.filter(ProyekTani.created_at >= datetime.now(timezone.utc) - timedelta(days=7))
        elif type == "active":
            query = query.filter(ProyekTani.status.in_(("PENANAMAN", "PERAWATAN")))
        elif type == "harvest":
            query = query.filter(ProyekTani.status == "PANEN")
        projects = query.order_by(ProyekTani.updated_at.desc(), ProyekTani.id.desc()).limit(limit).all()
    except Exception as e:
        logger.error(f"Error fetching projects: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil data proyek")

    data = [serialize_project_card(p) for p in projects]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/dashboard/stats")
def dashboard_stats(
    user=Depends(require_role(ROLE_PETANI)),
    db: Session = Depends(get_db),
) -> dict:
    """Numbers for the caller's own dashboard."""
    month_ago = datetime.now(timezone.utc) - timedelta(days=30)
    try:
        proyek_aktif = (
            db.query(ProyekTani)
            .filter(ProyekTani.petani_id == user["id"], ProyekTani.status != "SELESAI")
            .count()
        )
        total_produk = (
            db.query(Produk)
            .join(ProyekTani, Produk.proyek_tani_id == ProyekTani.id)
            .filter(ProyekTani.petani_id == user["id"])
            .count()
        )
        pengunjung = (
            db.query(ProfileView)
            .filter(ProfileView.petani_id == user["id"], ProfileView.created_at >= month_ago)
            .count()
        )
        recent = (
            db.query(FarmingUpdate)
            .join(ProyekTani, FarmingUpdate.proyek_tani_id == ProyekTani.id)
            .filter(ProyekTani.petani_id == user["id"])
            .order_by(FarmingUpdate.created_at.desc(), FarmingUpdate.id.desc())
            .limit(5)
            .all()
        )
    except Exception as e:
        logger.error(f"Error fetching dashboard stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil statistik dashboard")

    return {
        "proyekAktif": proyek_aktif,
        "totalProduk": total_produk,
        "pengunjungProfil": pengunjung,
        "aktivitasTerbaru": [
            {
                "id": u.id,
                "judul": u.judul,
                "createdAt": u.created_at,
                "namaProyek": u.proyek_tani.nama_proyek,
            }
            for u in recent
        ],
    }


@router.post("/profile-view")
def record_profile_view(
    req: ProfileViewRequest,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> dict:
    """Count a visit to a petani profile. Guests count too; a petani viewing themselves does not."""
    if not req.petani_id:
        raise HTTPException(status_code=400, detail="petaniId diperlukan")

    petani = db.query(User).filter(User.id == req.petani_id, User.role == ROLE_PETANI).first()
    if not petani:
        raise HTTPException(status_code=404, detail="Petani tidak ditemukan")
    if viewer and viewer.id == petani.id:
        return {"message": "Self view ignored"}

    cutoff = datetime.now(timezone.utc) - timedelta(days=settings.PROFILE_VIEW_RETENTION_DAYS)
    try:
        db.add(ProfileView(petani_id=petani.id, viewer_id=viewer.id if viewer else None))
        pruned = (
            db.query(ProfileView)
            .filter(ProfileView.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception as e:
        logger.error(f"Error recording profile view: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Gagal mencatat kunjungan profil")

    if pruned:
        logger.info(f"Pruned {pruned} profile views older than {settings.PROFILE_VIEW_RETENTION_DAYS} days")
    return {"message": "View recorded"}
