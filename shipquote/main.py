from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .exceptions import PersistenceError
from .models import HealthResponse, ParsedRequest, QuoteRequest, QuoteResponse
from .routing.shipment_router import ERROR
from .services.cache import address_cache
from .services.quote_service import QuoteService
from .utils.logging_security import SecureLogger, log_secure

settings: Settings = get_settings()

logger = logging.getLogger("shipquote")
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

quote_service = QuoteService(settings=settings)


def get_quote_service() -> QuoteService:
    """Get the global quote service instance (overridable in tests)."""
    return quote_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # === STARTUP ===
    from .services.http_pool import HTTPClientPool
    HTTPClientPool()
    logger.info("HTTP client pool ready")

    if quote_service.store.enabled:
        try:
            quote_service.store.init_schema()
        except PersistenceError as e:
            logger.error(f"Quote store unavailable: {e.message} {e.details}")
    else:
        logger.info("QUOTE_DB_PATH not set, quote requests will not be stored")

    if not settings.shippo_enabled:
        logger.warning("SHIPPO_API_KEY not set, parcel rates will be skipped")

    logger.info("shipquote backend ready")

    yield  # Application runs here

    # === SHUTDOWN ===
    await quote_service.drain()
    from .services.http_pool import close_http_pool
    await close_http_pool()


app = FastAPI(title="shipquote API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins if settings.allowed_origins else ["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def secure_logging_middleware(request: Request, call_next):
    """
    Request tracing with PII redaction

    - Generates a request ID, echoed back as X-Request-ID
    - Logs sanitized request/response summaries as structured JSON
    """
    request_id = SecureLogger.generate_request_id()
    request.state.request_id = request_id
    start_time = time.perf_counter()

    request_log = SecureLogger.format_request_log(request, request_id, include_headers=settings.dev_mode)
    log_secure("info", "Request received", request_log, request_id)

    try:
        response = await call_next(request)
    except Exception as e:
        log_secure("error", "Request failed", SecureLogger.format_error_log(request_id, e), request_id)
        raise

    duration_ms = (time.perf_counter() - start_time) * 1000
    response_log = SecureLogger.format_response_log(request_id, response.status_code, duration_ms)
    log_secure("info", "Request completed", response_log, request_id)

    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(message: str, status_code: int) -> JSONResponse:
    body = QuoteResponse(success=False, error=message, quotes=[], routing=ERROR, parsed=ParsedRequest())
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    if request.url.path == "/api/quote":
        logger.info(f"Rejected quote request body: {len(exc.errors())} validation error(s)")
        return _error_response("Please provide a shipping request", status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.post("/api/quote", response_model=QuoteResponse, response_model_exclude_none=True)
async def create_quote(body: QuoteRequest, service: QuoteService = Depends(get_quote_service)):
    """Parse a free-text shipping request and return normalized quotes."""
    try:
        return await service.process_request(body)
    except Exception:
        logger.exception("Quote API error")
        return _error_response("Failed to process quote request", status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    services = {
        "shippo": settings.shippo_enabled,
        "freightosApiKey": bool(settings.freightos_api_key),
        "geocoder": bool(settings.geocoder_base_url),
        "postal": bool(settings.postal_base_url),
        "database": settings.persistence_enabled,
    }

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.environment or "development",
        services=services,
        cache=address_cache.get_stats(),
    )


@app.get("/api/cache/stats")
async def cache_stats():
    """Address cache statistics."""
    return address_cache.get_stats()


@app.post("/api/cache/clear")
async def cache_clear():
    """Clear the address cache."""
    address_cache.clear()
    logger.info("Address cache cleared")
    return {"message": "Cache cleared"}


@app.post("/api/init-db")
async def init_db(service: QuoteService = Depends(get_quote_service)):
    """Create the quote_requests table and indexes."""
    store = service.store
    if not store.enabled:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "QUOTE_DB_PATH not configured"},
        )
    try:
        store.init_schema()
    except PersistenceError as e:
        logger.error(f"Database init error: {e.message} {e.details}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": e.message, "details": e.details.get("reason", "Unknown error")},
        )
    return {"success": True, "message": "Database initialized successfully"}


@app.get("/api/init-db")
async def init_db_info():
    return {"message": "POST to this endpoint to initialize the database"}


@app.get("/")
async def root():
    return {"status": "ok"}
