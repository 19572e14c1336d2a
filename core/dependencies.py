from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
from sqlalchemy.orm import Session
import logging

from core.security import decode_access_token
from db.db_base import get_db
from db.models import User

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
# Same scheme for routes guests may call; a missing token yields None instead of 401
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _user_from_token(token: str, db: Session) -> User:
    try:
        user_id = decode_access_token(token)
    except ValueError as e:
        logger.error(f"JWT decode error: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        # Token outlived its account
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    return _user_from_token(token, db)


def require_role(*roles):
    """
    Dependency to require specific roles.

    The user row is loaded on every request, so a role change (for example a
    PEMBELI approved as PETANI) applies to the very next call.

    Returns a dict with id, email, name and role of the caller.
    Raises 401 when not authenticated and 403 when the role is not allowed.
    """
    def checker(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
        user = _user_from_token(token, db)
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden: insufficient permissions")
        return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}

    return checker


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The caller's User row, or None for guests and unusable tokens."""
    if not token:
        return None
    try:
        return _user_from_token(token, db)
    except HTTPException:
        return None
