import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.dependencies import get_current_user
from db.db_base import get_db
from db.models import Comment, FarmingUpdate, Like, ProyekTani, User
from schemas.social import CommentCreate, FarmingUpdateCreate, LikeRequest

logger = logging.getLogger(__name__)
router = APIRouter()

FEED_SIZE = 30


def _author(user: User) -> dict:
    return {"id": user.id, "name": user.name, "username": user.username, "image": user.image}


def serialize_farming_update(update: FarmingUpdate) -> dict:
    proyek = update.proyek_tani
    return {
        "id": update.id,
        "judul": update.judul,
        "deskripsi": update.deskripsi,
        "fotoUrl": update.foto_url or [],
        "createdAt": update.created_at,
        "proyekTani": {
            "id": proyek.id,
            "namaProyek": proyek.nama_proyek,
            "petani": _author(proyek.petani),
        },
        "likes": [{"userId": like.user_id} for like in update.likes],
        "_count": {"likes": len(update.likes), "comments": len(update.comments)},
    }


def serialize_comment(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "farmingUpdateId": comment.farming_update_id,
        "createdAt": comment.created_at,
        "user": {"id": comment.user.id, "name": comment.user.name, "username": comment.user.username},
    }


@router.get("/farming-updates")
def list_farming_updates(db: Session = Depends(get_db)) -> list:
    try:
        updates = (
            db.query(FarmingUpdate)
            .order_by(FarmingUpdate.created_at.desc(), FarmingUpdate.id.desc())
            .limit(FEED_SIZE)
            .all()
        )
        return [serialize_farming_update(u) for u in updates]
    except Exception as e:
        logger.error(f"Error fetching farming updates: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil pembaruan pertanian")


@router.get("/updates")
def list_updates(
    type: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict:
    """Public update listing. type=popular orders by like count, anything else by recency."""
    try:
        query = db.query(FarmingUpdate)
        if type == "popular":
            query = (
                query.outerjoin(Like, Like.farming_update_id == FarmingUpdate.id)
                .group_by(FarmingUpdate.id)
                .order_by(func.count(Like.id).desc(), FarmingUpdate.created_at.desc(), FarmingUpdate.id.desc())
            )
        else:
            query = query.order_by(FarmingUpdate.created_at.desc(), FarmingUpdate.id.desc())
        updates = query.limit(limit).all()
    except Exception as e:
        logger.error(f"Error fetching updates: {str(e)}")
        raise HTTPException(status_code=500, detail="Gagal mengambil pembaruan pertanian")

    data = []
    for update in updates:
        item = serialize_farming_update(update)
        item["proyekTani"]["petani"]["lokasi"] = update.proyek_tani.petani.lokasi
        data.append(item)
    return {"success": True, "data": data, "count": len(data)}


@router.post("/farming-updates", status_code=201)
def create_farming_update(
    req: FarmingUpdateCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if not req.proyek_tani_id or not req.deskripsi:
        raise HTTPException(status_code=400, detail="Proyek dan deskripsi harus diisi")

    proyek = db.query(ProyekTani).filter(
        ProyekTani.id == req.proyek_tani_id,
        ProyekTani.petani_id == user.id,
    ).first()
    if not proyek:
        raise HTTPException(status_code=404, detail="Proyek tidak ditemukan atau bukan milik Anda")

    try:
        update = FarmingUpdate(
            proyek_tani_id=proyek.id,
            judul=req.judul or "",
            deskripsi=req.deskripsi,
            foto_url=req.foto_url,
        )
        db.add(update)
        db.commit()
        db.refresh(update)
    except Exception as e:
        logger.error(f"Error creating farming update: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    return serialize_farming_update(update)


@router.delete("/farming-updates/{update_id}")
def delete_farming_update(
    update_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    update = db.query(FarmingUpdate).filter(FarmingUpdate.id == update_id).first()
    if not update:
        raise HTTPException(status_code=404, detail="Pembaruan tidak ditemukan")
    if update.proyek_tani.petani_id != user.id:
        raise HTTPException(status_code=403, detail="Anda tidak punya izin untuk menghapus pembaruan ini")

    try:
        db.delete(update)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting farming update: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"message": "Pembaruan berhasil dihapus"}


@router.post("/like")
def like(
    req: LikeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if not db.query(FarmingUpdate).filter(FarmingUpdate.id == req.farming_update_id).first():
        raise HTTPException(status_code=404, detail="Pembaruan tidak ditemukan")

    try:
        new_like = Like(user_id=user.id, farming_update_id=req.farming_update_id)
        db.add(new_like)
        db.commit()
        db.refresh(new_like)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already liked")
    except Exception as e:
        logger.error(f"Error liking farming update: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to like")

    return {
        "success": True,
        "like": {"id": new_like.id, "userId": new_like.user_id, "farmingUpdateId": new_like.farming_update_id},
    }


@router.delete("/like")
def unlike(
    req: LikeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    existing = db.query(Like).filter(
        Like.user_id == user.id,
        Like.farming_update_id == req.farming_update_id,
    ).first()
    if not existing:
        raise HTTPException(status_code=404, detail="Like tidak ditemukan")

    try:
        db.delete(existing)
        db.commit()
    except Exception as e:
        logger.error(f"Error unliking farming update: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to unlike")

    return {"success": True}


@router.post("/comment", status_code=201)
def create_comment(
    req: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if not req.content or not req.content.strip() or not req.farming_update_id:
        raise HTTPException(status_code=400, detail="Content and farmingUpdateId are required")

    if not db.query(FarmingUpdate).filter(FarmingUpdate.id == req.farming_update_id).first():
        raise HTTPException(status_code=404, detail="Pembaruan tidak ditemukan")

    try:
        comment = Comment(content=req.content.strip(), user_id=user.id, farming_update_id=req.farming_update_id)
        db.add(comment)
        db.commit()
        db.refresh(comment)
    except Exception as e:
        logger.error(f"Error creating comment: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create comment")

    return serialize_comment(comment)


@router.get("/comment/{farming_update_id}")
def list_comments(farming_update_id: int, db: Session = Depends(get_db)) -> list:
    comments = (
        db.query(Comment)
        .filter(Comment.farming_update_id == farming_update_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return [serialize_comment(c) for c in comments]
