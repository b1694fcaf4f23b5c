"""cli command that closes a step span"""

import click

from tracebuild.cli.utils.params import SPAN_HANDLE, STATUS, TIMESTAMP
from tracebuild.cli.utils.pipeline import install_router, report
from tracebuild.constants import ENV_BUILD_ID, ENV_STEP_ID, ENV_STEP_START
from tracebuild.telemetry.clock import now
from tracebuild.telemetry.spans import step_span


@click.command(name="step")
@click.option(
    "--build",
    type=SPAN_HANDLE,
    envvar=ENV_BUILD_ID,
    default=None,
    help=f"Build ID the step belongs to. [env: {ENV_BUILD_ID}]",
)
@click.option(
    "--id",
    "step_id",
    type=SPAN_HANDLE,
    envvar=ENV_STEP_ID,
    required=True,
    help=f"Step ID from `tracebuild id`. [env: {ENV_STEP_ID}]",
)
@click.option(
    "--start-time",
    type=TIMESTAMP,
    envvar=ENV_STEP_START,
    required=True,
    help=f"Start time from `tracebuild now`. [env: {ENV_STEP_START}]",
)
@click.option("--name", type=str, default=None, help="Optional step name.")
@click.option("--status", type=STATUS, default=None, help="Optional step status.")
def step(build, step_id, start_time, name, status):
    """Report a step span, child of the given build."""
    end = now()
    router = install_router()
    span = step_span(
        build=build,
        step=step_id.with_start(start_time),
        end=end,
        name=name,
        status=status,
    )
    report(router, span)
