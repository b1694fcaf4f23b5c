"""
Routes reconstructed telemetry to exactly one trace backend and one metrics
backend, chosen once from configuration at startup.
"""

import logging
import threading
import time
from typing import Optional

import humanfriendly

from tracebuild.config import ExporterSettings
from tracebuild.constants import DEFAULT_FLUSH_TIMEOUT
from tracebuild.errors import ExportFailure
from tracebuild.exporters.base import (
    MetricsExporter,
    NoopMetricsExporter,
    NoopTraceExporter,
    TraceExporter,
)
from tracebuild.telemetry.events import MetricSample, SpanRecord

logger = logging.getLogger(__name__)


def create_trace_exporter(settings: ExporterSettings) -> TraceExporter:
    name = settings.traces_exporter
    # Backends import their client libraries lazily to keep `id`/`now` fast
    if name == "otlp":
        from tracebuild.exporters.otlp import OtlpTraceExporter

        return OtlpTraceExporter(settings.otlp, settings.service_name)
    if name == "jaeger":
        from tracebuild.exporters.jaeger import JaegerTraceExporter

        return JaegerTraceExporter(settings.jaeger, settings.service_name)
    if name == "stdout":
        from tracebuild.exporters.stdout import StdoutTraceExporter

        return StdoutTraceExporter(settings.service_name)
    return NoopTraceExporter()


def create_metrics_exporter(settings: ExporterSettings) -> MetricsExporter:
    if settings.metrics_exporter == "prometheus":
        from tracebuild.exporters.pushgateway import PushgatewayMetricsExporter

        return PushgatewayMetricsExporter(settings.prometheus)
    return NoopMetricsExporter()


def select_exporters(settings: ExporterSettings) -> tuple[TraceExporter, MetricsExporter]:
    """Pick the one trace and one metrics backend named by ``settings``."""
    return create_trace_exporter(settings), create_metrics_exporter(settings)


class _FlushThread(threading.Thread):
    """Runs one exporter's flush and keeps whatever it raised."""

    def __init__(self, exporter, timeout: float):
        super().__init__(name=f"tracebuild-flush-{exporter.name}", daemon=True)
        self.exporter = exporter
        self.timeout = timeout
        self.error: Optional[BaseException] = None

    def run(self):
        try:
            self.exporter.flush(self.timeout)
        except Exception as e:
            self.error = e


class ExporterRouter:
    """
    Fan-out of spans and samples to the selected backends.

    Usage:
        router = ExporterRouter.from_settings(ExporterSettings.from_env())
        router.export_span(span)
        router.export_metric(sample)
        failures = router.flush()  # blocks until delivered or timed out
    """

    def __init__(
        self,
        traces: Optional[TraceExporter] = None,
        metrics: Optional[MetricsExporter] = None,
        flush_timeout: float = DEFAULT_FLUSH_TIMEOUT,
    ):
        self.traces = traces or NoopTraceExporter()
        self.metrics = metrics or NoopMetricsExporter()
        self.flush_timeout = flush_timeout

    @classmethod
    def from_settings(cls, settings: ExporterSettings) -> "ExporterRouter":
        traces, metrics = select_exporters(settings)
        router = cls(traces=traces, metrics=metrics, flush_timeout=settings.flush_timeout)
        logger.debug(
            f"Using traces exporter '{router.traces.name}' and "
            f"metrics exporter '{router.metrics.name}'"
        )
        return router

    def export_span(self, span: SpanRecord) -> None:
        self.traces.export_span(span)

    def export_metric(self, sample: MetricSample) -> None:
        self.metrics.export_metric(sample)

    def flush(self, timeout: Optional[float] = None) -> list[ExportFailure]:
        """
        Deliver everything queued, waiting at most ``timeout`` seconds.

        Both backends are flushed concurrently on daemon threads, so a
        backend that never answers cannot keep the process alive after the
        timeout. Failures are logged and returned, never raised: the
        caller's outcome must not depend on them.
        """
        if timeout is None:
            timeout = self.flush_timeout

        exporters = [
            exporter
            for exporter in (self.traces, self.metrics)
            if not isinstance(exporter, (NoopTraceExporter, NoopMetricsExporter))
        ]
        if not exporters:
            return []

        threads = [_FlushThread(exporter, timeout) for exporter in exporters]
        for thread in threads:
            thread.start()
        deadline = time.monotonic() + timeout
        for thread in threads:
            thread.join(max(0.0, deadline - time.monotonic()))

        failures: list[ExportFailure] = []
        for thread in threads:
            name = thread.exporter.name
            if thread.is_alive():
                failures.append(
                    ExportFailure(
                        name,
                        f"no confirmation within {humanfriendly.format_timespan(timeout)}",
                    )
                )
            elif thread.error is None:
                logger.debug(f"Flushed {name} exporter")
            elif isinstance(thread.error, ExportFailure):
                failures.append(thread.error)
            else:
                failures.append(ExportFailure(name, str(thread.error), thread.error))

        for failure in failures:
            logger.warning(f"Failed to export telemetry: {failure}")
        return failures
