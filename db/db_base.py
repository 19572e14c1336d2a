import os
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

from .models import Base

logger = logging.getLogger(__name__)

# Load environment variables (only once at module import)
load_dotenv()


# Select database config based on ENVIRONMENT
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

if ENVIRONMENT == "production":
    DB_CONFIG = {
        "user": os.getenv("PRODUCTION_DB_USER"),
        "password": os.getenv("PRODUCTION_DB_PASSWORD"),
        "host": os.getenv("PRODUCTION_DB_HOST"),
        "port": os.getenv("PRODUCTION_DB_PORT"),
        "dbname": os.getenv("PRODUCTION_DB_NAME"),
    }
    # Validate production config
    required_keys = ["user", "password", "host", "port", "dbname"]
    missing_keys = [k for k in required_keys if not DB_CONFIG[k]]
    if missing_keys:
        raise ValueError(f"Missing production database config: {missing_keys}")

    DATABASE_URL = f"postgresql://{DB_CONFIG['user']}:{DB_CONFIG['password']}@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['dbname']}"
elif ENVIRONMENT == "development":
    DATABASE_URL = os.getenv("DEVELOPMENT_DATABASE_URL", "sqlite:///./dev.db")
elif ENVIRONMENT == "testing":
    DATABASE_URL = os.getenv("TESTING_DATABASE_URL", "sqlite:///:memory:")
else:
    raise ValueError(f"Unknown ENVIRONMENT: {ENVIRONMENT}")

logger.info(f"Database environment: {ENVIRONMENT}")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE / SET NULL unless this pragma is on
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,  # Test connections before using
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }


# One engine (and connection pool) per process, shared by every request
engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("SQL_ECHO", "").lower() in {"1", "true", "yes"},
    **_engine_kwargs(DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_tables_initialized = False


def ensure_tables():
    global _tables_initialized
    if not _tables_initialized:
        Base.metadata.create_all(bind=engine)
        _tables_initialized = True


def init_connection_pool():
    """
    Create tables if they don't exist.
    Initialize the database schema.
    """
    try:
        ensure_tables()
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise


def close_all_connections():
    """
    Dispose of the engine and close all connections.
    """
    try:
        engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {str(e)}")


def get_db():
    """
    Dependency for database session.
    Usage: db: Session = Depends(get_db)
    """
    ensure_tables()
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
