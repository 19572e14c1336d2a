from dataclasses import dataclass, fields
from typing import Optional

from sqlalchemy.orm import Session

from db.models import PetaniApplication, User, ROLE_PETANI
import logging

logger = logging.getLogger(__name__)


@dataclass
class ProfilePatch:
    """
    Sparse update of the public profile fields of a User.

    A field left as None (or empty) is not touched when the patch is applied,
    so an application with an empty bio never wipes the bio already on the
    account.
    """
    name: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_application(cls, application: PetaniApplication) -> "ProfilePatch":
        return cls(
            name=application.nama or None,
            username=application.username or None,
            bio=application.bio or None,
            image=application.foto_profil or None,
        )

    def apply(self, user: User) -> list[str]:
        """Set every non-empty field on the user. Returns the names of the fields written."""
        updated = []
        for field in fields(self):
            value = getattr(self, field.name)
            if value:
                setattr(user, field.name, value)
                updated.append(field.name)
        return updated


def promote_to_petani(db: Session, application: PetaniApplication) -> Optional[User]:
    """
    Elevate the owner of an approved application to PETANI and copy the
    application's profile fields onto the account.

    Does not commit; the caller commits it together with the status change.
    Returns None when the owner no longer exists.
    """
    user = db.query(User).filter(User.id == application.user_id).first()
    if not user:
        logger.error(f"User with ID {application.user_id} not found")
        return None

    user.role = ROLE_PETANI
    updated = ProfilePatch.from_application(application).apply(user)
    logger.info(f"User {user.id} role updated to {ROLE_PETANI} (fields copied: {updated})")
    return user
