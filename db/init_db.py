from __future__ import annotations

import os
import logging

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from core.security import hash_password
from db.db_base import SessionLocal, engine
from db.models import Base, User, ROLE_ADMIN

logger = logging.getLogger(__name__)


def drop_all_tables() -> None:
    """
    Drop all existing tables to ensure a clean rebuild.
    PostgreSQL needs CASCADE because of the foreign keys between users and applications.
    """
    inspector = inspect(engine)
    tables = inspector.get_table_names()

    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            for table in tables:
                conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))
    else:
        Base.metadata.drop_all(bind=engine)


def init_schema() -> None:
    """
    Initialize the database schema by dropping existing tables and recreating them.
    """
    drop_all_tables()
    Base.metadata.create_all(bind=engine)


def ensure_admin(db: Session, email: str, password: str, name: str = "Admin Tandur") -> User:
    """
    Create the ADMIN account for email, or promote and re-password an existing one.
    Registration only ever creates PEMBELI accounts, so this is how admins come to exist.
    """
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        user.role = ROLE_ADMIN
        user.password_hash = hash_password(password)
    else:
        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=ROLE_ADMIN,
            provider="credentials",
        )
        db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin account ready: {user.id}")
    return user


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_schema()
    print("[db] schema initialized")

    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if admin_email and admin_password:
        session = SessionLocal()
        try:
            ensure_admin(session, admin_email, admin_password)
            print(f"[db] admin {admin_email} ready")
        finally:
            session.close()
