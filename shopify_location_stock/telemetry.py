"""OpenTelemetry helpers for metrics instrumentation."""

from opentelemetry import metrics
from opentelemetry.metrics import Histogram
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader


_meter_provider_initialized = False


def init_metrics(export_to_console: bool = False) -> None:
    """Install a meter provider, optionally exporting to the console."""
    global _meter_provider_initialized
    if _meter_provider_initialized:
        return
    readers = [PeriodicExportingMetricReader(ConsoleMetricExporter())] if export_to_console else []
    metrics.set_meter_provider(MeterProvider(metric_readers=readers))
    _meter_provider_initialized = True


def get_request_duration_histogram() -> Histogram:
    """Return a histogram for proxy request duration metrics."""
    meter = metrics.get_meter("shopify_location_stock")
    return meter.create_histogram(
        name="location_stock.request.duration",
        unit="ms",
        description="Duration of App Proxy stock requests",
    )
