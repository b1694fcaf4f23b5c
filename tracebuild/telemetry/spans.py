"""
Span reconstruction from caller-supplied identifiers and timestamps.

Nothing here talks to a tracer or keeps state. Each function turns what one
invocation knows into a single ``SpanRecord``; the tree emerges because the
caller hands the same build and step handles to every invocation:

    build (root, ids from ``--id``)
    ├── cmd (parent: build, when no step is given)
    └── step (parent: build)
        └── cmd (parent: step)
"""

import logging
import shlex
from typing import Mapping, Optional, Sequence

from tracebuild.constants import UNSET
from tracebuild.errors import ClockSkew
from tracebuild.telemetry.clock import duration_ns
from tracebuild.telemetry.events import SpanKind, SpanRecord, SpanStatus
from tracebuild.telemetry.ids import SpanHandle

logger = logging.getLogger(__name__)


def build_span(
    trace_id: int,
    span_id: int,
    parent_span_id: Optional[int],
    kind: SpanKind,
    name: str,
    start: int,
    end: int,
    status: Optional[SpanStatus] = None,
    attributes: Optional[Mapping[str, Optional[str]]] = None,
) -> SpanRecord:
    """
    Assemble a span record.

    An ``end`` before ``start`` is clamped to ``start`` so that the span has a
    duration of zero. Attributes with a ``None`` value are recorded as
    ``unset``.
    """
    try:
        duration_ns(start, end)
    except ClockSkew as e:
        logger.warning(f"Clock skew in {kind.value} span '{name}': {e}. Clamping to zero.")
        end = start

    return SpanRecord(
        trace_id=trace_id,
        span_id=span_id,
        parent_span_id=parent_span_id,
        kind=kind,
        name=name,
        start=start,
        end=end,
        status=status or SpanStatus.UNSET,
        attributes={
            key: UNSET if value is None else str(value)
            for key, value in (attributes or {}).items()
        },
    )


def _status_text(status: Optional[SpanStatus]) -> str:
    return status.value if status is not None else UNSET


def _named(prefix: str, name: Optional[str]) -> str:
    return f"{prefix} - {name}" if name else prefix


def command_line(command: str, args: Sequence[str]) -> str:
    return shlex.join([command, *args])


def cmd_span(
    build: SpanHandle,
    step: Optional[SpanHandle],
    span_id: int,
    command: str,
    args: Sequence[str],
    start: int,
    end: int,
    exit_code: int,
    signal_name: Optional[str] = None,
) -> SpanRecord:
    """Span for a wrapped command; its parent is the step, or the build."""
    parent = step or build

    attributes = {
        "tracebuild.cmd.command": command,
        "tracebuild.cmd.arguments": shlex.join(args),
        "tracebuild.cmd.exit_code": str(exit_code),
    }
    if signal_name:
        attributes["tracebuild.cmd.signal"] = signal_name

    return build_span(
        trace_id=build.trace_id,
        span_id=span_id,
        parent_span_id=parent.span_id,
        kind=SpanKind.CMD,
        name=f"cmd - {command_line(command, args)}",
        start=start,
        end=end,
        status=SpanStatus.SUCCESS if exit_code == 0 else SpanStatus.FAILURE,
        attributes=attributes,
    )


def step_span(
    build: Optional[SpanHandle],
    step: SpanHandle,
    end: int,
    name: Optional[str] = None,
    status: Optional[SpanStatus] = None,
) -> SpanRecord:
    """Span for a logical phase, opened by ``id``/``now`` and closed here."""
    if step.start is None:
        raise ValueError("A step span needs the start time of the step")

    return build_span(
        trace_id=build.trace_id if build else step.trace_id,
        span_id=step.span_id,
        parent_span_id=build.span_id if build else None,
        kind=SpanKind.STEP,
        name=_named("step", name),
        start=step.start,
        end=end,
        status=status,
        attributes={
            "tracebuild.step.name": name,
            "tracebuild.step.status": _status_text(status),
        },
    )


def build_span_record(
    build: SpanHandle,
    end: int,
    name: Optional[str] = None,
    branch: Optional[str] = None,
    commit: Optional[str] = None,
    status: Optional[SpanStatus] = None,
) -> SpanRecord:
    """Root span covering the whole pipeline."""
    if build.start is None:
        raise ValueError("A build span needs the start time of the build")

    return build_span(
        trace_id=build.trace_id,
        span_id=build.span_id,
        parent_span_id=None,
        kind=SpanKind.BUILD,
        name=_named("build", name),
        start=build.start,
        end=end,
        status=status,
        attributes={
            "tracebuild.build.name": name,
            "tracebuild.build.branch": branch,
            "tracebuild.build.commit": commit,
            "tracebuild.build.status": _status_text(status),
        },
    )
