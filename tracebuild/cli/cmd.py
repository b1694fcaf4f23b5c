"""cli command that wraps and measures a single build command"""

import sys

import click
import humanfriendly

from tracebuild.cli.utils.logging import logger
from tracebuild.cli.utils.params import SPAN_HANDLE
from tracebuild.cli.utils.pipeline import install_router, log_error_and_quit, report
from tracebuild.constants import ENV_BUILD_ID, ENV_STEP_ID
from tracebuild.errors import ChildSpawnFailure
from tracebuild.process import run_child
from tracebuild.telemetry.clock import elapsed_seconds
from tracebuild.telemetry.ids import generate_span_id
from tracebuild.telemetry.spans import cmd_span


@click.command(
    name="cmd",
    context_settings=dict(ignore_unknown_options=True, allow_interspersed_args=False),
)
@click.option(
    "--build",
    type=SPAN_HANDLE,
    envvar=ENV_BUILD_ID,
    required=True,
    help=f"Build ID from `tracebuild id`. [env: {ENV_BUILD_ID}]",
)
@click.option(
    "--step",
    type=SPAN_HANDLE,
    envvar=ENV_STEP_ID,
    default=None,
    help=f"Optional parent step ID. [env: {ENV_STEP_ID}]",
)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def cmd(build, step, command):
    """Execute a command and report it as a span.

    tracebuild exits with the command's own exit code; telemetry problems
    are only reported as warnings.
    """
    # Exporter configuration errors must surface before the command runs
    router = install_router()

    try:
        result = run_child(command)
    except ChildSpawnFailure as e:
        log_error_and_quit(logger, str(e), e.exit_code)
        return

    seconds = elapsed_seconds(result.start, result.end)
    logger.debug(f"{command[0]} finished in {humanfriendly.format_timespan(seconds)}")

    span = cmd_span(
        build=build,
        step=step,
        span_id=generate_span_id(),
        command=command[0],
        args=command[1:],
        start=result.start,
        end=result.end,
        exit_code=result.returncode,
        signal_name=result.term_signal.name if result.term_signal else None,
    )
    report(router, span)

    sys.exit(result.exit_code)
