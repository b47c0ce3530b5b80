import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, ProgrammingError

from .config import CORS_ORIGINS, EVENT_LOCK_BACKEND
from .database import Base, engine
from .domain.events.router import router as events_router
from .domain.invitations.router import router as invitations_router
from .domain.scheduling.router import calendar_router
from .domain.scheduling.router import router as availability_router
from .domain.users.router import router as users_router
from .locking import get_event_lock_manager
from .services.notification_service import get_notification_hub
from .shared.exceptions import SchedulingError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Quiet third-party loggers
for noisy in ("httpx", "httpcore", "sqlalchemy.engine"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

SLOW_REQUEST_MS = 1000


def init_database():
    """Create missing tables; concurrent workers may race on the same DDL"""
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database tables ready")
    except (OperationalError, ProgrammingError) as e:
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("Database tables were created by another worker")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Calendar API starting...")
    init_database()
    get_notification_hub()
    try:
        get_event_lock_manager()
    except Exception as e:
        logger.error(f"❌ Event lock backend '{EVENT_LOCK_BACKEND}' unavailable: {e}")
        raise
    yield
    logger.info("👋 Calendar API shutting down")


app = FastAPI(title="Calendar Scheduling API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request: Request, exc: SchedulingError):
    """Map engine errors onto their HTTP status with the error class name"""
    if exc.status_code >= 409:
        logger.warning(f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    A malformed Authorization header surfaces as a 422 from the bearer
    scheme; report it as 401 like any other authentication failure.
    """
    errors = jsonable_encoder(exc.errors())
    if any("authorization" in str(err.get("loc", "")).lower() for err in errors):
        logger.warning(f"🔐 Rejected {request.url.path}: bad Authorization header")
        return JSONResponse(status_code=401, content={"detail": "Not authenticated"})

    logger.warning(f"Invalid request body for {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > SLOW_REQUEST_MS:
        logger.warning(f"🐌 Slow request: {request.method} {request.url.path} took {elapsed_ms:.0f}ms")
    return response


logger.info(f"CORS allowed origins: {CORS_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

for router in (users_router, events_router, invitations_router, availability_router, calendar_router):
    app.include_router(router)


@app.get("/")
def root():
    return {"message": "Calendar Scheduling API is running"}


@app.get("/health")
def health():
    return {"status": "healthy", "lockBackend": EVENT_LOCK_BACKEND}
