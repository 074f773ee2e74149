import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401
from .auth import require_api_key
from .background import BackgroundDispatcher
from .cache import Cache
from .config import (
    ALLOWED_ORIGINS,
    CACHE_DEFAULT_TTL,
    CACHE_QUEUE_SIZE,
    CACHE_QUEUE_WORKERS,
    REDIS_FALLBACK_URL,
    REDIS_URL,
    SECURITY_HEADERS_ENABLED,
)
from .database import Base, engine
from .domain.api_keys.router import admin_router, router as api_keys_router
from .domain.bookings.router import router as bookings_router
from .domain.clients.router import router as clients_router
from .domain.opening_hours.router import router as opening_hours_router
from .domain.treatments.router import router as treatments_router
from .errors import AppError
from .redis_connection import RedisConnectionManager
from .security_headers import SecurityHeadersMiddleware
from .shared.validators import format_validation_issues

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    # A pre-configured manager (tests) is kept as is
    if getattr(app.state, "redis", None) is None:
        app.state.redis = RedisConnectionManager(REDIS_URL, fallback_url=REDIS_FALLBACK_URL)
    app.state.cache = Cache(app.state.redis, default_ttl=CACHE_DEFAULT_TTL)
    app.state.dispatcher = BackgroundDispatcher(maxsize=CACHE_QUEUE_SIZE, workers=CACHE_QUEUE_WORKERS)

    if await app.state.redis.get_client() is not None:
        logger.info("Redis connection established")
    else:
        logger.warning("Redis connection failed - cache and rate limiting will operate in fail-open mode")

    yield

    logger.info("Application shutting down...")
    await app.state.dispatcher.stop()
    await app.state.redis.close()


app = FastAPI(
    title="Diva Salon API",
    version="1.0.0",
    lifespan=lifespan,
    dependencies=[Depends(require_api_key)],
)


# ============================================================================
# ERROR ENVELOPE
# ============================================================================


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Validation problems are 400s with per-field issues"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "issues": format_validation_issues(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} - Unhandled error: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/redoc", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)

# Routes
app.include_router(admin_router)
app.include_router(api_keys_router)
app.include_router(bookings_router)
app.include_router(clients_router)
app.include_router(treatments_router)
app.include_router(opening_hours_router)


@app.get("/")
def root():
    return {"message": "Diva Salon API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check(request: Request):
    """Check Redis connectivity for monitoring; never fails when Redis is down"""
    connection: RedisConnectionManager = request.app.state.redis
    client = await connection.get_client()
    if client is None:
        return {"status": "unhealthy", "redis": {"connected": False}}

    try:
        start_time = time.time()
        await client.ping()
        response_time = (time.time() - start_time) * 1000

        info = await client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        await connection.reset()
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
