"""Monitoring and observability setup.

Tracing and metrics are exported over OTLP when ``TELEMETRY_ENABLED`` is set.
Otherwise no providers are installed and the OpenTelemetry API hands out
no-op tracers and meters, so the counters below can always be recorded.

Exemplars are attached automatically to the histograms (order and payment
amounts) when they are recorded inside an active trace context, linking a
metric spike in Grafana to the checkout traces behind it.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
import pyroscope

from config import OTEL_EXPORTER_OTLP_ENDPOINT, PYROSCOPE_SERVER, SERVICE_NAME, TELEMETRY_ENABLED

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    otlp_span_exporter = OTLPSpanExporter(
        endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
        insecure=True
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
    trace.set_tracer_provider(tracer_provider)

    logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    otlp_metric_exporter = OTLPMetricExporter(
        endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
        insecure=True
    )
    otlp_metric_reader = PeriodicExportingMetricReader(
        otlp_metric_exporter,
        export_interval_millis=5000
    )

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[otlp_metric_reader]
    )
    metrics.set_meter_provider(meter_provider)

    logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling."""
    if not TELEMETRY_ENABLED:
        return
    try:
        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": "store"}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Initialize tracer and meter
if TELEMETRY_ENABLED:
    tracer = init_tracing()
    meter = init_metrics()
else:
    tracer = trace.get_tracer(__name__)
    meter = metrics.get_meter(__name__)

# Business metrics using OpenTelemetry

# Order fulfillment metrics
orders_created_counter = meter.create_counter(
    "pos.orders.created",
    description="Total number of orders fulfilled",
    unit="1"
)

order_amount_histogram = meter.create_histogram(
    "pos.orders.amount",
    description="Order total amount",
    unit="USD"
)

order_failures_counter = meter.create_counter(
    "pos.orders.failures",
    description="Orders rejected or rolled back, by reason",
    unit="1"
)

stock_units_sold_counter = meter.create_counter(
    "pos.inventory.units_sold",
    description="Units removed from stock by order fulfillment",
    unit="1"
)

# Payment ledger metrics
payments_counter = meter.create_counter(
    "pos.payments.recorded",
    description="Total number of accepted payments",
    unit="1"
)

payment_amount_histogram = meter.create_histogram(
    "pos.payments.amount",
    description="Accepted payment amount",
    unit="USD"
)

payment_rejections_counter = meter.create_counter(
    "pos.payments.rejected",
    description="Payments rejected by the ledger, by reason",
    unit="1"
)

# Back-office metrics
catalog_changes_counter = meter.create_counter(
    "pos.catalog.changes",
    description="Create, update and delete operations on back-office records",
    unit="1"
)

# Security monitoring metrics
auth_failures_counter = meter.create_counter(
    "pos.auth.failures",
    description="Total number of authentication failures",
    unit="1"
)

auth_attempts_counter = meter.create_counter(
    "pos.auth.attempts",
    description="Total number of authentication attempts",
    unit="1"
)

rate_limit_exceeded_counter = meter.create_counter(
    "pos.rate_limit.exceeded",
    description="Total number of rate limit violations",
    unit="1"
)

suspicious_activity_counter = meter.create_counter(
    "pos.security.suspicious_activity",
    description="Total number of suspicious activity detections",
    unit="1"
)
