import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.router import api_router
from core.config import settings
from db.db_base import close_all_connections, init_connection_pool

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database connection pool...")
    init_connection_pool()
    logger.info("Backend API Services for Tandur is running")
    yield
    logger.info("Closing database connections...")
    close_all_connections()


app = FastAPI(
    title="Tandur API",
    version="1.0.0",
    description="API Backend Service for Tandur, marketplace sosial petani dan pembeli",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Authentication routes"},
        {"name": "User", "description": "Account routes"},
        {"name": "Petani", "description": "Petani application routes"},
        {"name": "Admin", "description": "Admin routes"},
        {"name": "Proyek", "description": "Proyek, produk and petani routes"},
        {"name": "Jejak", "description": "Social feed routes"},
        {"name": "CS Chat", "description": "Customer service routes"},
        {"name": "Chatbot", "description": "TaniBot routes"},
    ],
)

if settings.ENVIRONMENT == "production":
    # In production, MUST specify allowed origins explicitly
    logger.warning("CORS_ORIGINS in production: %s", settings.CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)


def _field_name(loc) -> str:
    # ("body", "applicationId") -> "applicationId"; ("query", "page") -> "page"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 with per-field messages, the same shape register uses."""
    errors = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error.get("loc", ())), []).append(error.get("msg", "Invalid value"))
    logger.info(f"Rejected malformed request to {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"detail": {"message": "Data permintaan tidak valid.", "errors": errors}},
    )


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}
