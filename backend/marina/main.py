import hmac
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from marina.api.routes import router
from marina.config import settings
from marina.modules.change_feed import MarinaState
from marina.modules.errors import BookingConflictError, InvalidTransitionError, NotFoundError, PermissionDenied

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the change feed and view cache, and hook them to every ORM session."""
    state = MarinaState(settings.CHANGE_FEED_BUFFER)
    state.attach(Session)
    app.state.marina = state
    logger.info("%s API started (change feed buffer %d)", settings.MARINA_NAME, settings.CHANGE_FEED_BUFFER)
    try:
        yield
    finally:
        state.close()
        app.state.marina = None


app = FastAPI(
    title=f"{settings.MARINA_NAME} operations",
    description=(
        "Berth occupancy, transit bookings, field inspections and maintenance "
        "tickets for a single marina."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# CORS origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Simple API key check. If MARINA_API_KEY is unset, all requests pass."""

    async def dispatch(self, request: Request, call_next):
        if settings.MARINA_API_KEY is not None:
            # Allow health check and OpenAPI docs without auth
            if request.url.path not in ("/health", "/docs", "/openapi.json", "/redoc"):
                api_key = request.headers.get("X-API-Key")
                if not hmac.compare_digest(api_key or "", settings.MARINA_API_KEY):
                    return JSONResponse(
                        status_code=401,
                        content={"detail": "Invalid or missing API key"},
                    )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

limiter = Limiter(key_func=get_remote_address, default_limits=["120/minute"])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": "Validation error", "detail": str(exc)})


@app.exception_handler(BookingConflictError)
async def booking_conflict_handler(request: Request, exc: BookingConflictError):
    return JSONResponse(
        status_code=409,
        content={"error": "Conflict", "detail": str(exc), "conflicting_ids": exc.conflicting_ids},
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"error": "Conflict", "detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": "Not found", "detail": str(exc)})


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied):
    return JSONResponse(status_code=403, content={"error": "Forbidden", "detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Includes the PostgreSQL booking overlap exclusion constraint
    return JSONResponse(status_code=409, content={"error": "Conflict", "detail": str(exc.orig) if exc.orig else str(exc)})


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": "An unexpected error occurred."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": VERSION, "marina": settings.MARINA_NAME}
