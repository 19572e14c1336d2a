import re
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from core.config import settings
from core.security import create_access_token, hash_password, verify_password
from core.dependencies import get_current_user
from db.db_base import get_db
from db.models import User, ROLE_PEMBELI
from schemas.auth import LoginResponse, RegisterRequest

logger = logging.getLogger(__name__)
router = APIRouter()

MIN_PASSWORD_LENGTH = 8


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register an account with email and password.
    New accounts start as PEMBELI. An existing OAuth-only account (no password
    yet) gets the password attached instead.
    """
    errors = {}
    email = (req.email or "").strip().lower()
    if not re.fullmatch(settings.EMAIL_PATTERN, email):
        errors["email"] = ["Format email tidak valid."]
    if len(req.password or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = [f"Password minimal {MIN_PASSWORD_LENGTH} karakter."]
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Data registrasi tidak valid.", "errors": errors},
        )

    try:
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            if existing_user.password_hash:
                raise HTTPException(status_code=409, detail="Email sudah terdaftar. Silakan login.")

            existing_user.password_hash = hash_password(req.password)
            existing_user.email_verified = datetime.now(timezone.utc)
            db.commit()
            logger.info(f"User updated with credentials: {existing_user.id}")
            return JSONResponse(
                status_code=200,
                content={
                    "message": "Password berhasil ditambahkan ke akun yang sudah ada. "
                    "Silakan login dengan email dan password."
                },
            )

        new_user = User(
            email=email,
            name=email.split("@")[0],
            password_hash=hash_password(req.password),
            role=ROLE_PEMBELI,
            provider="credentials",
            email_verified=datetime.now(timezone.utc),
        )
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
        logger.info(f"New user created successfully: {new_user.id}")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Terjadi kesalahan internal saat registrasi.")

    return {
        "message": "Pendaftaran berhasil! Silakan login dengan email dan password Anda.",
        "id": new_user.id,
    }


@router.post("/login", response_model=LoginResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> LoginResponse:
    # The OAuth2 form calls it "username"; accounts log in with their email
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": str(user.id)})
    return LoginResponse(access_token=access_token, role=user.role, name=user.name)


@router.post("/logout")
def logout(user=Depends(get_current_user)) -> dict:
    """
    Logout endpoint. Client should discard the token.
    """
    return {"message": "Logged out successfully"}
