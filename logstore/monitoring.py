# logstore/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger import jsonlogger

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "logstore", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "logstore_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "logstore_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

RECORDS_INGESTED = Counter(
    "logstore_records_ingested_total",
    "Records persisted by the ingestion service",
)

INGEST_FAILURES = Counter(
    "logstore_ingest_failures_total",
    "Rejected or failed ingestion attempts",
    ["reason"],
)

EXPORT_LATENCY = Histogram(
    "logstore_export_latency_seconds",
    "Full export latency",
    ["outcome"],
)

LAST_EXPORT_RECORDS = Gauge(
    "logstore_last_export_records",
    "Records in the last completed export",
)

STORE_AVAILABLE = Gauge(
    "logstore_store_available",
    "1 if the last health check reached the store, else 0",
)


# --- Helper wrappers (never crash the app)
def _endpoint_label(path: str) -> str:
    # session ids are unbounded; collapse them so label cardinality stays fixed
    if path in ("/health", "/export", "/metrics"):
        return path
    return "/{session_id}"


def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        label = _endpoint_label(endpoint)
        REQUEST_LATENCY.labels(endpoint=label).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=label, status=status).inc()
    except Exception:
        pass


def inc_records_ingested():
    try:
        RECORDS_INGESTED.inc()
    except Exception:
        pass


def inc_ingest_failure(reason: str):
    try:
        INGEST_FAILURES.labels(reason=reason).inc()
    except Exception:
        pass


def observe_export(start_ts: float, outcome: str, records: int = None):
    try:
        EXPORT_LATENCY.labels(outcome=outcome).observe(time.time() - start_ts)
        if records is not None:
            LAST_EXPORT_RECORDS.set(records)
    except Exception:
        pass


def set_store_available(available: bool):
    try:
        STORE_AVAILABLE.set(1 if available else 0)
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
