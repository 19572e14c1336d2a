import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    # ⚠️ CRITICAL: In production, SECRET_KEY MUST be set via environment variable
    SECRET_KEY = os.getenv("SECRET_KEY", None)
    if not SECRET_KEY:
        raise ValueError(
            "ERROR: SECRET_KEY environment variable is not set. "
            "Set a strong, random SECRET_KEY for security. "
            "Example: openssl rand -hex 32"
        )

    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

    # Database configuration validation
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    if ENVIRONMENT not in ("development", "production", "testing"):
        raise ValueError(f"Invalid ENVIRONMENT: {ENVIRONMENT}")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

    # Pagination for admin listings
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # Only wa.me links with a numeric phone are accepted on petani applications
    WHATSAPP_LINK_PATTERN = r"^https://wa\.me/\d+$"
    EMAIL_PATTERN = r"[^@\s]+@[^@\s]+\.[^@\s]+"

    # Profile views older than this are pruned; the petani dashboard counts the last 30 days
    PROFILE_VIEW_RETENTION_DAYS = int(os.getenv("PROFILE_VIEW_RETENTION_DAYS", "30"))

    # TaniBot; without GROQ_API_KEY replies are composed locally from context data
    GROQ_API_KEY = os.getenv("GROQ_API_KEY") or None
    GROQ_API_URL = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama3-8b-8192")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

settings = Settings()
