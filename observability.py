"""
observability.py — Logging, Tracing, Error Tracking
====================================================
Covers: stdlib logging setup, OpenTelemetry tracing, Sentry error tracking,
        per-request timing and trace-id headers.

Setup in app.py:
    from observability import init_observability
    init_observability(app)
"""

import os
import time
import uuid
import logging

from flask import request, g

# ── OpenTelemetry: distributed tracing ──
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource

# ── Sentry: error tracking ──
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration

VERSION = os.getenv("FEEDBOARD_VERSION", "1.0")
SLOW_REQUEST_MS = 5000

log = logging.getLogger("obs")

_tracing_ready = False


def init_logging(level=None):
    """Configure root logging once. LOG_LEVEL overrides the default INFO."""
    level = level or os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO),
                        format="%(asctime)s %(message)s")


def init_tracing():
    """Install the tracer provider. Export only happens when OTLP_ENDPOINT is set."""
    global _tracing_ready
    if _tracing_ready:
        return
    resource = Resource.create({"service.name": "feedboard", "service.version": VERSION})
    provider = TracerProvider(resource=resource)

    otlp_endpoint = os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    trace.set_tracer_provider(provider)
    _tracing_ready = True


def init_sentry():
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_RATE", "0.1")),
        environment=os.getenv("ENVIRONMENT", "production"),
        release=VERSION,
    )
    log.info("[OBS] Sentry initialized")
    return True


def init_observability(app):
    """Initialize logging, tracing, error tracking and timing headers. Call once at startup."""
    init_logging()
    init_tracing()
    init_sentry()

    @app.before_request
    def _start_timer():
        g.start_time = time.time()
        g.trace_id = request.headers.get("X-Trace-Id", str(uuid.uuid4())[:16])

    @app.after_request
    def _record_timing(response):
        if hasattr(g, "start_time"):
            latency = (time.time() - g.start_time) * 1000
            response.headers["X-Response-Time-Ms"] = str(int(latency))
            response.headers["X-Trace-Id"] = getattr(g, "trace_id", "")
            if latency > SLOW_REQUEST_MS:
                log.warning(f"[OBS] slow request {request.method} {request.path} "
                            f"{int(latency)}ms status={response.status_code}")
        return response

    log.info("[OBS] Observability initialized (logging, tracing, error-tracking)")
