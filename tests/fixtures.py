import sys
from typing import Optional

from tracebuild.errors import ExportFailure
from tracebuild.exporters.base import MetricsExporter, TraceExporter
from tracebuild.telemetry.events import MetricSample, SpanRecord


class RecordingTraceExporter(TraceExporter):
    """Keeps flushed spans in memory; optionally fails every flush."""

    name = "recording"

    def __init__(self, fail_with: Optional[str] = None):
        self.fail_with = fail_with
        self.pending: list[SpanRecord] = []
        self.spans: list[SpanRecord] = []

    def export_span(self, span: SpanRecord) -> None:
        self.pending.append(span)

    def flush(self, timeout: float) -> None:
        if self.fail_with:
            raise ExportFailure(self.name, self.fail_with)
        self.spans.extend(self.pending)
        self.pending.clear()


class RecordingMetricsExporter(MetricsExporter):
    name = "recording"

    def __init__(self, fail_with: Optional[str] = None):
        self.fail_with = fail_with
        self.pending: list[MetricSample] = []
        self.samples: list[MetricSample] = []

    def export_metric(self, sample: MetricSample) -> None:
        self.pending.append(sample)

    def flush(self, timeout: float) -> None:
        if self.fail_with:
            raise ExportFailure(self.name, self.fail_with)
        self.samples.extend(self.pending)
        self.pending.clear()


def python_command(code: str) -> list[str]:
    """Command line that runs ``code`` with the current interpreter."""
    return [sys.executable, "-c", code]
