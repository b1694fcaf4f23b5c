"""
Prometheus push exporter.

A tracebuild process lives far too briefly to be scraped, so samples are
pushed to an aggregation gateway that Prometheus scrapes instead. Every
sample becomes one observation of a histogram with the fixed duration
buckets.
"""

import logging

from prometheus_client import CollectorRegistry, Histogram, pushadd_to_gateway

from tracebuild.config import PrometheusSettings
from tracebuild.constants import DURATION_BUCKETS, PUSH_JOB_NAME
from tracebuild.errors import ExportFailure
from tracebuild.exporters.base import MetricsExporter
from tracebuild.telemetry.events import MetricSample
from tracebuild.telemetry.metrics import bucket_bounds

logger = logging.getLogger(__name__)


def build_registry(samples: list[MetricSample]) -> CollectorRegistry:
    """Fill a fresh registry with one histogram per metric name."""
    registry = CollectorRegistry()
    histograms: dict[str, Histogram] = {}
    for sample in samples:
        histogram = histograms.get(sample.metric_name)
        if histogram is None:
            histogram = Histogram(
                sample.metric_name,
                "Duration of an instrumented build phase in seconds",
                labelnames=tuple(sample.labels),
                buckets=DURATION_BUCKETS,
                registry=registry,
            )
            histograms[sample.metric_name] = histogram
        lower, upper = bucket_bounds(sample.value)
        logger.debug(
            f"{sample.metric_name} {sample.value:.1f}s falls in bucket ({lower:g}, {upper:g}]"
        )
        if sample.labels:
            histogram.labels(**sample.labels).observe(sample.value)
        else:
            histogram.observe(sample.value)
    return registry


class PushgatewayMetricsExporter(MetricsExporter):
    name = "prometheus"

    def __init__(self, settings: PrometheusSettings, job: str = PUSH_JOB_NAME):
        self.settings = settings
        self.job = job
        self._samples: list[MetricSample] = []

    def export_metric(self, sample: MetricSample) -> None:
        self._samples.append(sample)

    def flush(self, timeout: float) -> None:
        if not self._samples:
            return
        registry = build_registry(self._samples)
        gateway = self.settings.gateway
        logger.debug(f"Pushing {len(self._samples)} sample(s) to {gateway}")
        try:
            pushadd_to_gateway(gateway, job=self.job, registry=registry, timeout=timeout)
        except OSError as e:
            raise ExportFailure(self.name, f"push to {gateway} failed: {e}", e)
        self._samples.clear()
