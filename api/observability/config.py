"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the grant lifecycle services,
with sampling and exporters chosen per deployment environment.
"""

import os
import logging
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'concessoes-service'

logger = logging.getLogger(__name__)


def _sampler_for(environment: str) -> TraceIdRatioBased:
    if environment == 'production':
        return TraceIdRatioBased(0.1)  # 10% sampling in production
    if environment == 'staging':
        return TraceIdRatioBased(0.5)  # 50% sampling in staging
    return TraceIdRatioBased(1.0)


def setup_observability() -> Optional[TracerProvider]:
    """
    Initialize OpenTelemetry tracing based on environment configuration.

    Returns:
        The installed TracerProvider, or None when OTEL_ENABLED is false
    """
    environment = os.getenv('ENVIRONMENT', 'development')
    otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    # Logging is configured even when tracing is off
    setup_structured_logging(environment)

    if not otel_enabled:
        logger.info("OpenTelemetry disabled by configuration")
        return None

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=_sampler_for(environment),
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')

    if environment == 'production':
        if otlp_endpoint:
            otlp_exporter = OTLPSpanExporter(
                endpoint=otlp_endpoint,
                headers={"Authorization": f"Bearer {os.getenv('OTEL_API_KEY', '')}"}
            )
            tracer_provider.add_span_processor(
                BatchSpanProcessor(otlp_exporter, max_export_batch_size=512)
            )
        else:
            logger.warning("OTEL_EXPORTER_OTLP_ENDPOINT not set; spans will not be exported")

    elif environment == 'staging':
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint or 'http://localhost:4317')
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    else:
        # Development: console output, plus a local collector when configured
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        if otlp_endpoint:
            tracer_provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )

    trace.set_tracer_provider(tracer_provider)
    logger.info(
        "OpenTelemetry tracing configured",
        extra={"environment": environment, "service_version": service_version}
    )
    return tracer_provider


def setup_structured_logging(environment: str):
    """Configure logging levels per environment."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.DEBUG
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Reduce driver noise, keep business events
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)

    elif environment == 'development':
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)
        logging.getLogger('pymongo').setLevel(logging.INFO)
