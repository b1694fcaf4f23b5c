"""
Duration samples and their histogram layout.

Build, step and cmd durations range from seconds to the better part of an
hour, so the histogram uses coarse 5 minute buckets between 5 and 45 minutes
and an overflow bucket above. Labels are limited to ``METRIC_LABELS`` to keep
cardinality in the gateway bounded.
"""

import bisect
import logging
from typing import Mapping, Optional

from tracebuild.constants import APP_NAME, DURATION_BUCKETS, METRIC_LABELS, UNSET
from tracebuild.telemetry.clock import elapsed_seconds
from tracebuild.telemetry.events import MetricSample, SpanKind, SpanRecord

logger = logging.getLogger(__name__)

OVERFLOW = float("inf")


def metric_name(kind: SpanKind) -> str:
    return f"{APP_NAME}_{kind.value}_duration_seconds"


def bucket_bounds(seconds: float) -> tuple[float, float]:
    """
    Return the ``(lower, upper]`` bucket a duration falls into.

    Durations above the last boundary land in ``(2700, inf]``.
    """
    index = bisect.bisect_left(DURATION_BUCKETS, seconds)
    lower = DURATION_BUCKETS[index - 1] if index > 0 else 0.0
    upper = DURATION_BUCKETS[index] if index < len(DURATION_BUCKETS) else OVERFLOW
    return lower, upper


def bounded_labels(labels: Mapping[str, Optional[str]]) -> dict[str, str]:
    """Keep only the allowed label keys; missing values become ``unset``."""
    dropped = sorted(set(labels) - set(METRIC_LABELS))
    if dropped:
        logger.debug(f"Dropping unsupported metric labels: {', '.join(dropped)}")
    return {
        key: UNSET if labels[key] is None else str(labels[key])
        for key in METRIC_LABELS
        if key in labels
    }


def duration_sample(
    kind: SpanKind,
    start: int,
    end: int,
    labels: Mapping[str, Optional[str]],
) -> MetricSample:
    return MetricSample(
        metric_name=metric_name(kind),
        value=elapsed_seconds(start, end),
        labels=bounded_labels(labels),
        timestamp=end,
    )


def sample_for_span(span: SpanRecord) -> MetricSample:
    """Derive the duration sample that accompanies a reconstructed span."""
    attrs = span.attributes
    if span.kind is SpanKind.CMD:
        labels = {
            "name": attrs.get("tracebuild.cmd.command"),
            "exit_code": attrs.get("tracebuild.cmd.exit_code"),
        }
    elif span.kind is SpanKind.STEP:
        labels = {
            "name": attrs.get("tracebuild.step.name"),
            "status": attrs.get("tracebuild.step.status"),
        }
    else:
        labels = {
            "name": attrs.get("tracebuild.build.name"),
            "branch": attrs.get("tracebuild.build.branch"),
            "status": attrs.get("tracebuild.build.status"),
        }
    return duration_sample(span.kind, span.start, span.end, labels)
