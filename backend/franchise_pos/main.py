"""FastAPI application entry point."""

import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from itertools import takewhile

import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

import franchise_pos.models  # noqa: F401  (registers every table on Base.metadata)
from franchise_pos.api.routes import api_router
from franchise_pos.core.config import settings
from franchise_pos.core.rate_limit import client_ip, limiter
from franchise_pos.core.rbac import extract_bearer_payload
from franchise_pos.db.base import Base
from franchise_pos.db.session import engine, is_sqlite, session_scope
from franchise_pos.models.operations import AuditLogEntry
from franchise_pos.services.audit_service import log_action as _audit_log_action

VERSION = "1.0.0"
AUDIT_RETENTION_DAYS = 90

# Public paths that do NOT require a user token.
# All other /api/v1/* paths require a valid Bearer token
PUBLIC_PATH_PREFIXES = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
]

PUBLIC_EXACT_PATHS = [
    "/",
    "/health",
    "/health/ready",
]

# Terminals authenticate with X-Station-Token instead
PUBLIC_GET_PREFIXES = [
    "/api/v1/pos/bootstrap",
]

PUBLIC_WRITE_PATHS = [
    "/api/v1/auth/login",
    "/api/v1/auth/phone-pin-login",
    "/api/v1/stations/pair",
]

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        csp_origins = " ".join(settings.cors_origins_list)
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob:; "
            f"connect-src 'self' {csp_origins}; "
            "font-src 'self' data:;"
        )
        return response


class AuthEnforcementMiddleware(BaseHTTPMiddleware):
    """Global authentication enforcement middleware.

    All /api/v1/* endpoints require a valid Bearer token UNLESS the path is
    public. Route dependencies still do the role and tenant checks.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        method = request.method

        # Always allow OPTIONS (CORS preflight)
        if method == "OPTIONS":
            return await call_next(request)

        if path in PUBLIC_EXACT_PATHS or any(path.startswith(p) for p in PUBLIC_PATH_PREFIXES):
            return await call_next(request)

        if not path.startswith("/api/v1/"):
            return await call_next(request)

        if method == "GET":
            if any(path.startswith(p) for p in PUBLIC_GET_PREFIXES):
                return await call_next(request)
            message = "Authentication required"
        else:
            if any(path.startswith(p) for p in PUBLIC_WRITE_PATHS):
                return await call_next(request)
            message = "Authentication required for this operation"

        payload = extract_bearer_payload(request)
        if payload is None or not all(payload.get(k) for k in ("sub", "email", "role")):
            return JSONResponse(
                status_code=401,
                content={"detail": message},
                headers={"WWW-Authenticate": "Bearer"},
            )
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        ip = client_ip(request)
        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {ip}"
            )
            raise

        process_time = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"Response: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {ip}"
        )
        return response


def audit_target(path: str) -> tuple:
    """Entity type and id from an API path.

    /api/v1/transfers/7/ship -> ("transfers", "7")
    /api/v1/franchise/employees/3 -> ("franchise_employees", "3")
    """
    parts = [p for p in path.replace(settings.api_v1_prefix, "", 1).strip("/").split("/") if p]
    names = list(takewhile(lambda p: not p.isdigit(), parts))
    entity_type = "_".join(names[:2]) if names else "unknown"
    entity_id = next((p for p in reversed(parts) if p.isdigit()), "")
    return entity_type.replace("-", "_")[:50], entity_id


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """Auto-log all successful state-changing API requests to audit_log_entries."""

    METHOD_ACTION_MAP = {
        "POST": "create",
        "PUT": "update",
        "PATCH": "update",
        "DELETE": "delete",
    }

    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = request.url.path

        if method not in self.METHOD_ACTION_MAP or not path.startswith("/api/v1/"):
            return await call_next(request)

        # Logins are logged by the auth routes with more detail
        if any(path.startswith(p) for p in ("/api/v1/auth/login", "/api/v1/auth/phone-pin-login")):
            return await call_next(request)

        response = await call_next(request)

        if 200 <= response.status_code < 300:
            payload = extract_bearer_payload(request) or {}
            try:
                user_id = int(payload.get("sub", 0)) or None
            except (TypeError, ValueError):
                user_id = None
            entity_type, entity_id = audit_target(path)
            _audit_log_action(
                action=self.METHOD_ACTION_MAP[method],
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                user_name=str(payload.get("email", ""))[:200],
                ip_address=client_ip(request),
                details={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                },
            )

        return response


def purge_old_audit_entries() -> int:
    """Delete audit entries older than the retention window."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=AUDIT_RETENTION_DAYS)
    with session_scope() as db:
        deleted = db.query(AuditLogEntry).filter(
            AuditLogEntry.created_at < cutoff
        ).delete(synchronize_session=False)
        db.commit()
    return deleted


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Franchise POS")

    # Create tables if they don't exist (for SQLite dev)
    # In production with PostgreSQL, use Alembic migrations
    if is_sqlite(settings.database_url):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    try:
        deleted = purge_old_audit_entries()
        if deleted:
            logger.info(f"Audit log retention: purged {deleted} entries older than {AUDIT_RETENTION_DAYS} days")
    except SQLAlchemyError as e:
        logger.warning(f"Audit log retention skipped: {e}")

    yield

    logger.info("Shutting down Franchise POS")


app = FastAPI(
    title="Franchise POS",
    description="Backend API for multi-tenant point of sale and franchise management",
    version=VERSION,
    lifespan=lifespan,
    redirect_slashes=True,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Authentication enforcement middleware
app.add_middleware(AuthEnforcementMiddleware)

# Audit logging middleware (records state changes to audit_log_entries table)
app.add_middleware(AuditLoggingMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - MUST be added last so it runs first (Starlette LIFO order).
# This keeps CORS headers on every response, including 401s from
# AuthEnforcementMiddleware.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
        "X-Station-Token",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": VERSION}


@app.get("/health/ready")
def readiness_check():
    """Readiness: database and Redis connectivity."""
    checks = {
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        with session_scope() as db:
            db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"

    if settings.redis_url:
        try:
            r = redis.from_url(settings.redis_url, socket_connect_timeout=2)
            r.ping()
            checks["redis"] = "healthy"
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            checks["redis"] = "unhealthy"
    else:
        checks["redis"] = "not configured"

    all_healthy = all(c in ("healthy", "not configured") for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Franchise POS API",
        "docs": "/docs",
        "health": "/health",
    }
