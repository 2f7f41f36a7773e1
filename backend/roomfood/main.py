import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from roomfood.api import admin, auth, bookings, listings, reviews, users
from roomfood.core.exceptions import DomainException
from roomfood.core.rate_limit import limiter
from roomfood.core.settings import get_settings
from roomfood.core.uploads import UPLOAD_URL_PREFIX
from roomfood.db.session import database_health_check, db_manager
from roomfood.middleware.logging import RequestLoggingMiddleware

settings = get_settings()

SENSITIVE_KEYS = {
    "authorization",
    "password",
    "password_hash",
    "token",
    "admin_secret",
    "adminsecret",
    "jwt_secret",
}
_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")


# Scrubs credentials from event dicts before they are rendered
def redact_secrets(logger, method_name, event_dict):
    def scrub(key, v):
        if isinstance(key, str) and key.lower() in SENSITIVE_KEYS and v is not None:
            return "REDACTED"
        if isinstance(v, str):
            v = _BEARER_PATTERN.sub(r"\1REDACTED", v)
            return _JWT_PATTERN.sub("REDACTED", v)
        if isinstance(v, list):
            return [scrub(None, x) for x in v]
        if isinstance(v, dict):
            return {k: scrub(k, vv) for k, vv in v.items()}
        return v

    for k, v in list(event_dict.items()):
        event_dict[k] = scrub(k, v)
    return event_dict


# Configure structured logging with JSON output
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Configure standard library logging to output to file and console
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(message)s',  # structlog handles formatting
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(settings.LOG_FILE)
    ]
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    try:
        await db_manager.initialize()
        await db_manager.init_db()
    except Exception:
        logger.exception("Failed to initialize database manager")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await db_manager.close()
    except Exception as e:
        logger.error(f"Error during database cleanup: {e}")


app = FastAPI(
    title="Room & Food Finder API",
    description="Marketplace for rooms and home-cooked food: listings, bookings and reviews",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    if exc.status_code >= 500:
        logger.error("domain_error", code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


def _validation_errors(exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc), "message": message})
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Validation Error", "errors": _validation_errors(exc)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"}
    )


@app.get("/")
def root():
    return {"status": "API active", "version": "1.0.0"}


@app.get("/health")
async def health_check_detailed():
    """Liveness plus database connectivity"""
    db_health = await database_health_check()
    return {
        "status": "healthy" if db_health["status"] == "healthy" else "degraded",
        "version": "1.0.0",
        "components": {
            "database": db_health["status"],
            "api": "healthy"
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


prefix = "/api"

app.include_router(auth.router, prefix=prefix)
app.include_router(users.router, prefix=prefix)
app.include_router(listings.router, prefix=prefix)
app.include_router(bookings.router, prefix=prefix)
app.include_router(reviews.router, prefix=prefix)
app.include_router(admin.router, prefix=prefix)

# Uploaded listing images
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
