"""Logging and OpenTelemetry setup for the cafe POS service."""

import logging
import os
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.botocore import BotocoreInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "cafe-pos"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4318"
METRIC_EXPORT_INTERVAL_MS = 60000


def _service_name() -> str:
    return os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)


def _environment() -> str:
    return os.getenv("ENVIRONMENT", "development")


def _otlp_url(signal: str) -> str:
    """OTLP HTTP endpoint for one signal ("traces" or "metrics")."""
    base = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT).rstrip("/")
    return f"{base}/v1/{signal}"


def build_tracer_provider(resource: Resource, export: bool) -> TracerProvider:
    """Create the tracer provider, exporting spans over OTLP when export is set.

    Args:
        resource: Service resource attached to every span
        export: Whether spans leave the process

    Returns:
        Configured TracerProvider
    """
    provider = TracerProvider(resource=resource)
    if export:
        exporter = OTLPSpanExporter(endpoint=_otlp_url("traces"))
        provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def build_meter_provider(resource: Resource, export: bool) -> MeterProvider:
    """Create the meter provider for order and stock metrics.

    Args:
        resource: Service resource attached to every metric
        export: Whether metrics are periodically pushed over OTLP

    Returns:
        Configured MeterProvider
    """
    if not export:
        return MeterProvider(resource=resource)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=_otlp_url("metrics")),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
    )
    return MeterProvider(resource=resource, metric_readers=[reader])


def setup_observability(app: Any = None, enable_exporters: bool = True) -> None:
    """Install tracing and metrics providers and instrument boto and FastAPI.

    Exporters are always off when ENVIRONMENT is "test".

    Args:
        app: Optional FastAPI application to instrument
        enable_exporters: Whether to push telemetry to the OTLP collector
    """
    export = enable_exporters and _environment() != "test"
    resource = Resource.create(
        {
            "service.name": _service_name(),
            "deployment.environment": _environment(),
        }
    )

    trace.set_tracer_provider(build_tracer_provider(resource, export))
    metrics.set_meter_provider(build_meter_provider(resource, export))

    # DynamoDB and EventBridge calls
    BotocoreInstrumentor().instrument()

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)

    logger.info(
        f"Observability configured for {_service_name()}, "
        f"exporting to {_otlp_url('traces') if export else 'nowhere'}"
    )


def configure_logging(log_level: str = "INFO") -> None:
    """Send structured JSON logs to stderr.

    Every record carries the service name and environment so order,
    stock and notification logs can be filtered per deployment.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_name = os.getenv("LOG_LEVEL", log_level).upper()

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": _service_name(), "environment": _environment()},
        timestamp=True,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    logging.getLogger("botocore").setLevel(logging.WARNING)

    logger.info(f"JSON logging configured at {level_name} level")
