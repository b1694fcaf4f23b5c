"""click parameter types for values threaded between invocations."""

import click

from tracebuild.errors import InvalidIdentifier, InvalidTimestamp
from tracebuild.telemetry.clock import parse_timestamp
from tracebuild.telemetry.events import SpanStatus
from tracebuild.telemetry.ids import SpanHandle


class SpanHandleType(click.ParamType):
    """A 48 hex character id as printed by `tracebuild id`."""

    name = "id"

    def convert(self, value, param, ctx):
        if isinstance(value, SpanHandle):
            return value
        try:
            return SpanHandle.parse(value)
        except InvalidIdentifier as e:
            self.fail(str(e), param, ctx)


class TimestampType(click.ParamType):
    """Nanoseconds since epoch as printed by `tracebuild now`."""

    name = "timestamp"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_timestamp(value)
        except InvalidTimestamp as e:
            self.fail(str(e), param, ctx)


class StatusType(click.Choice):
    def __init__(self):
        super().__init__([SpanStatus.SUCCESS.value, SpanStatus.FAILURE.value])

    def convert(self, value, param, ctx):
        if isinstance(value, SpanStatus):
            return value
        return SpanStatus(super().convert(value, param, ctx))


SPAN_HANDLE = SpanHandleType()
TIMESTAMP = TimestampType()
STATUS = StatusType()
