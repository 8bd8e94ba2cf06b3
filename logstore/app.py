# logstore/app.py
"""
HTTP boundary for the log store.

Env vars:
- DATABASE_URL (see logstore.db)
- MAX_BODY_BYTES (default: 10485760)
- REQUEST_TIMEOUT_SECONDS deadline for a single insert (default: 30)
- EXPORT_TIMEOUT_SECONDS deadline for a full export scan (default: 300)
- CORS_ALLOW_ORIGINS comma-separated (default: *)
"""
import json
import math
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

# Load .env BEFORE any logstore imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv()

from fastapi import APIRouter, FastAPI, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from logstore import db as dbmod
from logstore import monitoring
from logstore.deadline import Deadline
from logstore.errors import OperationCancelled, PersistenceError, ValidationError
from logstore.exporter import ExportEngine, export_filename_stamp
from logstore.health import HealthReporter
from logstore.ingestion import IngestionService
from logstore.schemas import to_iso
from logstore.store import RecordStore
from logstore.validator import require_post, validate_session_id

MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024)))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
EXPORT_TIMEOUT_SECONDS = float(os.getenv("EXPORT_TIMEOUT_SECONDS", "300"))
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

# Paths reachable with GET; everything else only accepts POST
NON_POST_PATHS = ("/health", "/export", "/metrics")
INTERNAL_ERROR_MESSAGE = "Internal server error"

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _parse_finite_float(text: str) -> float:
    # 1e400 is valid JSON grammar but overflows to inf, which cannot be stored
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------
async def post_only_middleware(request: Request, call_next):
    if request.url.path in NON_POST_PATHS:
        return await call_next(request)
    if request.method == "OPTIONS":
        # preflights carrying CORS headers are answered by CORSMiddleware before this
        return Response(status_code=200)
    try:
        require_post(request.method)
    except ValidationError as e:
        return _error(e.status_code, e.message)
    return await call_next(request)


async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("/health")
def health(request: Request):
    """
    GET /health
    200 when the store answers, 503 otherwise. Never 500.
    """
    try:
        status = request.app.state.health.check_health()
        store_status = status.store_status
        return JSONResponse(
            status_code=200 if status.healthy else 503,
            content={
                "status": "healthy" if status.healthy else "unhealthy",
                "store": store_status,
                # legacy key read by existing dashboards
                "mongo": store_status,
                "uptime": status.uptime_seconds,
            },
        )
    except Exception as e:
        monitoring.logger.exception("Health check failed")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})


@router.get("/export")
def export_all(request: Request, fmt: str = Query("json", alias="format")):
    """
    GET /export?format=json|ndjson
    Downloads every stored record as an attachment.
    """
    if fmt not in ("json", "ndjson"):
        return _error(400, f"Unsupported export format: {fmt}")
    try:
        bundle = request.app.state.exporter.export_all(deadline=Deadline(EXPORT_TIMEOUT_SECONDS))
    except (PersistenceError, OperationCancelled):
        monitoring.logger.exception("Error exporting data")
        return _error(500, INTERNAL_ERROR_MESSAGE)
    except Exception:
        monitoring.logger.exception("Unexpected error in /export handler")
        return _error(500, INTERNAL_ERROR_MESSAGE)

    stamp = export_filename_stamp(bundle.exported_at)
    if fmt == "ndjson":
        return StreamingResponse(
            (line + "\n" for line in bundle.as_lines),
            media_type="application/x-ndjson",
            headers={"Content-Disposition": f'attachment; filename="export-{stamp}.ndjson"'},
        )
    return JSONResponse(
        status_code=200,
        content=bundle.as_array,
        headers={"Content-Disposition": f'attachment; filename="export-{stamp}.json"'},
    )


@router.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)


@router.post("/{session_id}")
async def store_log(request: Request, session_id: str = Path(..., description="UUID v4 session id")):
    """
    POST /{session_id}
    Body: any JSON value. Stored verbatim as one immutable record.
    """
    try:
        validate_session_id(session_id)
    except ValidationError as e:
        monitoring.inc_ingest_failure("invalid_session_id")
        return _error(e.status_code, e.message)

    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > MAX_BODY_BYTES:
        return _error(413, "Payload too large")
    body = await request.body()
    if len(body) > MAX_BODY_BYTES:
        return _error(413, "Payload too large")
    try:
        payload = json.loads(body, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except (ValueError, RecursionError):
        monitoring.inc_ingest_failure("invalid_json")
        return _error(400, "Request body must be valid JSON")

    ingestion: IngestionService = request.app.state.ingestion
    try:
        result = await run_in_threadpool(
            ingestion.ingest, session_id, payload, Deadline(REQUEST_TIMEOUT_SECONDS)
        )
    except ValidationError as e:
        return _error(e.status_code, e.message)
    except (PersistenceError, OperationCancelled):
        monitoring.logger.exception("Error storing log", extra={"session_id": session_id})
        return _error(500, INTERNAL_ERROR_MESSAGE)
    except Exception:
        monitoring.logger.exception("Unexpected error in store handler")
        return _error(500, INTERNAL_ERROR_MESSAGE)

    return JSONResponse(
        status_code=201,
        content={
            "message": "Log stored successfully",
            "id": result.id,
            "sessionId": result.session_id,
            "createdAt": to_iso(result.created_at),
        },
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(store: Optional[RecordStore] = None) -> FastAPI:
    """Build the app around ``store``; without one, open DATABASE_URL and close it on shutdown."""
    owns_store = store is None
    if store is None:
        store = RecordStore.from_url(dbmod.DATABASE_URL)
    try:
        store.init_schema()
    except PersistenceError as e:
        # the health endpoint reports it; don't crash the app at import time
        monitoring.logger.warning("Store schema initialisation failed", extra={"error": str(e)})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_store:
            store.close()

    app = FastAPI(
        title="Session Log Store API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.ingestion = IngestionService(store)
    app.state.exporter = ExportEngine(store)
    app.state.health = HealthReporter(store)

    # last added runs first: CORS -> metrics -> POST-only guard -> routes
    app.middleware("http")(post_only_middleware)
    app.middleware("http")(metrics_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )
    app.include_router(router)
    return app
