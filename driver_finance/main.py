"""
Driver finance API entrypoint.
Wires routers, rate limiting, request context and error responses.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time
import uuid
from contextlib import asynccontextmanager
from driver_finance.api.deps import verified_owner_id
from driver_finance.api.v1 import api_router
from driver_finance.config import (
    API_VERSION, CORS_ORIGINS, LOG_FILE, LOG_LEVEL, RATE_LIMIT_SETTINGS, SERVICE_NAME,
)
from driver_finance.database import Base, SessionLocal, engine
from driver_finance.exceptions import DomainError
from driver_finance.utils import setup_logging, get_logger
from driver_finance.utils.ratelimiter import rate_limiter

setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    enable_console=True
)

logger = get_logger(__name__)

RECORD_WRITE_METHODS = {"POST", "PUT", "DELETE"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema on startup; tables that already exist are left alone."""
    logger.info("Driver finance API starting", version=API_VERSION)
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ready", tables=len(Base.metadata.tables))
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Driver finance API failed to start", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Driver finance API stopped")


app = FastAPI(
    title="Driver Finance API",
    description="""
    Financial analytics for ride-hailing and delivery drivers.

    ## Features
    * **Daily records** - revenue, itemized expenses, distance and hours per working day
    * **Export** - records as CSV or an Excel workbook with a summary sheet
    * **Dashboard statistics** - period and all-time aggregates with fuel cost estimation
    * **Goals** - monthly, weekly and custom revenue targets with live progress
    * **Insights & alerts** - rule-based hints over the last 30 days
    * **Benchmarking** - anonymous comparison with peers in the same region
    * **Income tax report** - progressive annual estimate and monthly Carne-Leao table

    ## Authentication
    Register at `POST /api/v1/owners/` and use the returned key (more keys: `/owners/me/api-keys`):
    ```
    Authorization: Bearer <api_key>
    ```

    ## Rate Limiting
    Fixed windows per owner (or client address when unauthenticated) and category. Headers:
    `X-RateLimit-Limit`, `X-RateLimit-Remaining`, `X-RateLimit-Reset`.
    Defaults: generic=1000/hr, record writes=20/min, alert generation=10/min.
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


def rate_limit_category(path: str, method: str) -> str:
    """Map a request to its rate limit category (prefix-based).

      /api/v1/records (POST/PUT/DELETE) -> record_write
      /api/v1/alerts/generate (POST)   -> alert_generate
    Fallback: default
    """
    if path.startswith("/api/v1/records") and method in RECORD_WRITE_METHODS:
        return "record_write"
    if path.startswith("/api/v1/alerts/generate") and method == "POST":
        return "alert_generate"
    return "default"


def rate_limit_key(request: Request) -> str:
    """Bucket identity: the verified owner, otherwise the client address.

    Unknown or revoked bearer keys count against the caller's address, so
    inventing keys does not open fresh buckets.
    """
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and credentials:
        owner_id = verified_owner_id(request, credentials)
        if owner_id is not None:
            return f"owner:{owner_id}"
    host = request.client.host if request.client else "unknown"
    return f"anon:{host}"


def _set_limit_headers(response, meta: dict, remaining: int) -> None:
    response.headers["X-RateLimit-Limit"] = str(meta["limit"])
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    response.headers["X-RateLimit-Reset"] = str(meta["reset_epoch"])


# Registered before the context middleware, so it runs inside it and sees request_id
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Fixed window limits per owner and endpoint category."""
    category = rate_limit_category(request.url.path, request.method.upper())
    settings = RATE_LIMIT_SETTINGS.get(category, RATE_LIMIT_SETTINGS["default"])
    allowed, meta = await rate_limiter.check_and_increment(
        rate_limit_key(request),
        category,
        int(settings.get("limit", 1000)),
        int(settings.get("window_seconds", 3600)),
    )

    if not allowed:
        logger.warning(
            "Rate limit exceeded",
            category=category,
            limit=meta["limit"],
            retry_after=meta["retry_after"],
            request_id=getattr(request.state, "request_id", "unknown")
        )
        resp = JSONResponse(
            status_code=429,
            content={
                "success": False,
                "message": f"Rate limit exceeded for category '{category}'",
                "category": category,
                "retry_after": meta["retry_after"],
            },
        )
        resp.headers["Retry-After"] = str(meta["retry_after"])
        _set_limit_headers(resp, meta, 0)
        return resp

    response = await call_next(request)
    _set_limit_headers(response, meta, meta["remaining"])
    return response


# Request ID and logging middleware
@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """Attach a request id and timing; log each request once in and once out."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    request.state.start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        user_agent=request.headers.get("User-Agent"),
        remote_addr=request.client.host if request.client else "unknown",
        request_id=request_id
    )

    response = await call_next(request)

    process_time = time.time() - request.state.start_time

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
        request_id=request_id
    )

    return response


def _first_error_field(errors: list) -> str | None:
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            return loc[-1] if not loc[-1].isdigit() else ".".join(loc)
    return None


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 with the first offending field surfaced at top level."""
    request_id = getattr(request.state, "request_id", "unknown")
    errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]

    logger.warning(
        "Request validation failed",
        errors=errors,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Request validation failed",
            "field": _first_error_field(errors),
            "details": errors,
            "request_id": request_id
        }
    )


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map domain errors (validation, not found, conflict, permission) to their status codes."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "Domain error",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.message,
        field=exc.field,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "field": exc.field,
            "request_id": request_id
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework HTTP errors (401 from auth, 404 routes) in the common envelope."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "request_id": request_id
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last resort: log with traceback, never leak internals to the client."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "request_id": request_id
        }
    )


@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Liveness check."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "timestamp": time.time(),
    }


@app.get("/health/detailed", tags=["health"], summary="Detailed health check")
async def detailed_health_check():
    """Detailed health check with database and rate limiter status."""
    health_status = {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "timestamp": time.time(),
        "checks": {}
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"
    finally:
        db.close()

    health_status["checks"]["rate_limiter"] = {"tracked_keys": len(rate_limiter)}
    return health_status


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Driver Finance API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "api_base": "/api/v1"
    }


app.include_router(api_router, prefix="/api/v1")

if __name__ == "__main__":
    import uvicorn

    logger.info("Running uvicorn dev server", port=8000)

    uvicorn.run(
        "driver_finance.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["driver_finance"],
        log_level="info",
        access_log=True
    )
