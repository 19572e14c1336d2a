from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt ignores everything past 72 bytes and newer backends refuse longer input
BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    # Accounts created through an OAuth provider have no password
    if not password_hash:
        return False
    return pwd_context.verify(_bcrypt_input(password), password_hash)


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Sign a JWT carrying data; "sub" holds the user id as a string."""
    to_encode = data.copy()
    lifetime = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Return the user id carried by a token.
    Raises ValueError for a bad signature, an expired token or a malformed subject.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e

    subject = payload.get("sub")
    if not subject:
        raise ValueError("Token has no subject")
    return int(subject)
