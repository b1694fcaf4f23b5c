from abc import ABCMeta, abstractmethod

from tracebuild.telemetry.events import MetricSample, SpanRecord


class TraceExporter(metaclass=ABCMeta):
    """Interface for a trace backend."""

    name: str = "traces"

    @abstractmethod
    def export_span(self, span: SpanRecord) -> None:
        """
        Queue a span for delivery. Nothing is sent until ``flush``.

        Args:
            span (SpanRecord): reconstructed span in the backend-neutral model
        """
        raise NotImplementedError("Method not implemented yet")

    @abstractmethod
    def flush(self, timeout: float) -> None:
        """
        Deliver all queued spans, blocking for at most ``timeout`` seconds.

        Raises:
        - ExportFailure if the backend could not be reached or rejected the data.
        """
        raise NotImplementedError("Method not implemented yet")


class MetricsExporter(metaclass=ABCMeta):
    """Interface for a metrics backend."""

    name: str = "metrics"

    @abstractmethod
    def export_metric(self, sample: MetricSample) -> None:
        """Queue a sample for delivery. Nothing is sent until ``flush``."""
        raise NotImplementedError("Method not implemented yet")

    @abstractmethod
    def flush(self, timeout: float) -> None:
        """Deliver all queued samples, blocking for at most ``timeout`` seconds."""
        raise NotImplementedError("Method not implemented yet")


class NoopTraceExporter(TraceExporter):
    name = "none"

    def export_span(self, span: SpanRecord) -> None:
        pass

    def flush(self, timeout: float) -> None:
        pass


class NoopMetricsExporter(MetricsExporter):
    name = "none"

    def export_metric(self, sample: MetricSample) -> None:
        pass

    def flush(self, timeout: float) -> None:
        pass
