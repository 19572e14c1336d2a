import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.chat_intent import Intent
from db.models import ACTIVE_PROYEK_STATUSES, FarmingUpdate, Produk, ProyekTani, User, ROLE_PETANI

logger = logging.getLogger(__name__)

RICE_KEYWORDS = ("beras", "padi")
VEGETABLE_KEYWORDS = ("sayur", "tomat", "cabai", "kangkung", "bayam", "wortel")
FRUIT_KEYWORDS = ("buah", "jeruk", "apel", "pisang", "mangga")
CHEAP_PRICE_LIMIT = 50000


def _petani(user: User) -> dict:
    return {"name": user.name, "lokasi": user.lokasi} if user else None


def _produk(produk: Produk) -> dict:
    proyek = produk.proyek_tani
    return {
        "namaProduk": produk.nama_produk,
        "harga": produk.harga,
        "unit": produk.unit,
        "stokTersedia": produk.stok_tersedia,
        "status": produk.status,
        "petani": _petani(proyek.petani) if proyek else None,
    }


def _name_matches(keywords):
    return or_(*[Produk.nama_produk.ilike(f"%{k}%") for k in keywords])


def _farmer(user: User, active_only: bool) -> dict:
    proyek = [p for p in user.proyek_tani if not active_only or p.status in ACTIVE_PROYEK_STATUSES]
    return {
        **_petani(user),
        "proyekTani": [{"namaProyek": p.nama_proyek, "status": p.status} for p in proyek[:3]],
    }


def _fetch(db: Session, intent: Intent) -> dict:
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    produk = db.query(Produk)

    if intent == Intent.PRODUCTS_NEW:
        rows = produk.filter(Produk.created_at >= week_ago).order_by(Produk.created_at.desc()).limit(6).all()
        return {"products": [_produk(p) for p in rows]}
    if intent == Intent.PRODUCTS_AVAILABLE:
        rows = (
            produk.filter(Produk.status == "TERSEDIA", Produk.stok_tersedia > 0)
            .order_by(Produk.created_at.desc())
            .limit(8)
            .all()
        )
        return {"products": [_produk(p) for p in rows]}
    if intent == Intent.PRODUCTS_RICE:
        rows = produk.filter(_name_matches(RICE_KEYWORDS)).limit(5).all()
        return {"products": [_produk(p) for p in rows]}
    if intent == Intent.PRODUCTS_VEGETABLES:
        rows = produk.filter(_name_matches(VEGETABLE_KEYWORDS)).limit(8).all()
        return {"products": [_produk(p) for p in rows]}
    if intent == Intent.PRODUCTS_FRUITS:
        rows = produk.filter(_name_matches(FRUIT_KEYWORDS)).limit(8).all()
        return {"products": [_produk(p) for p in rows]}
    if intent == Intent.PRODUCTS_CHEAP:
        rows = (
            produk.filter(Produk.harga < CHEAP_PRICE_LIMIT, Produk.status == "TERSEDIA")
            .order_by(Produk.harga.asc())
            .limit(8)
            .all()
        )
        return {"products": [_produk(p) for p in rows]}

    petani = db.query(User).filter(User.role == ROLE_PETANI)
    if intent == Intent.FARMERS_NEW:
        rows = petani.filter(User.created_at >= week_ago).order_by(User.created_at.desc()).limit(5).all()
        return {"farmers": [_farmer(u, active_only=False) for u in rows]}
    if intent == Intent.FARMERS_ACTIVE:
        rows = (
            petani.filter(User.proyek_tani.any(ProyekTani.status.in_(ACTIVE_PROYEK_STATUSES)))
            .order_by(User.updated_at.desc())
            .limit(5)
            .all()
        )
        return {"farmers": [_farmer(u, active_only=True) for u in rows]}

    if intent == Intent.PROJECTS_INFO:
        rows = (
            db.query(ProyekTani)
            .filter(ProyekTani.status.in_(ACTIVE_PROYEK_STATUSES))
            .order_by(ProyekTani.updated_at.desc())
            .limit(6)
            .all()
        )
        return {
            "projects": [
                {
                    "namaProyek": p.nama_proyek,
                    "status": p.status,
                    "lokasiLahan": p.lokasi_lahan,
                    "petani": _petani(p.petani),
                    "produk": [
                        {"namaProduk": pr.nama_produk, "status": pr.status, "harga": pr.harga}
                        for pr in p.produk
                    ],
                }
                for p in rows
            ]
        }
    if intent == Intent.STATS:
        return {
            "stats": {
                "totalFarmers": petani.count(),
                "totalProducts": produk.count(),
                "activeProjects": db.query(ProyekTani)
                .filter(ProyekTani.status.in_(ACTIVE_PROYEK_STATUSES))
                .count(),
                "availableProducts": produk.filter(Produk.status == "TERSEDIA", Produk.stok_tersedia > 0).count(),
            }
        }
    if intent == Intent.UPDATES:
        rows = db.query(FarmingUpdate).order_by(FarmingUpdate.created_at.desc(), FarmingUpdate.id.desc()).limit(5).all()
        return {
            "updates": [
                {
                    "judul": u.judul,
                    "deskripsi": u.deskripsi,
                    "namaProyek": u.proyek_tani.nama_proyek,
                    "petani": _petani(u.proyek_tani.petani),
                }
                for u in rows
            ]
        }
    if intent == Intent.LOCATIONS:
        rows = (
            db.query(User.lokasi, func.count(User.id))
            .filter(User.role == ROLE_PETANI, User.lokasi.isnot(None))
            .group_by(User.lokasi)
            .order_by(func.count(User.id).desc())
            .limit(8)
            .all()
        )
        return {"locations": [{"lokasi": lokasi, "jumlahPetani": count} for lokasi, count in rows]}

    return {}


def get_context_data(db: Session, intent: Intent) -> dict:
    """
    Load the data TaniBot needs to answer a message of the given intent.
    A database failure is reported inside the context instead of raised.
    """
    try:
        return _fetch(db, intent)
    except Exception as e:
        logger.error(f"Database error while building chat context: {str(e)}")
        db.rollback()
        return {"error": "Database tidak tersedia saat ini"}
