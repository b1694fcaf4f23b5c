"""cli commands that open a span across invocations: `id` and `now`"""

import click

from tracebuild.telemetry.clock import format_timestamp, now
from tracebuild.telemetry.ids import SpanHandle


@click.command(name="id")
def id_command():
    """Generate an ID, usable as either a build or a step ID."""
    click.echo(SpanHandle.generate().serialize())


@click.command(name="now")
def now_command():
    """Print the current time, usable as a build or step start time."""
    click.echo(format_timestamp(now()))
