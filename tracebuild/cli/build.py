"""cli command that closes the root build span"""

import click

from tracebuild.cli.utils.params import SPAN_HANDLE, STATUS, TIMESTAMP
from tracebuild.cli.utils.pipeline import install_router, report
from tracebuild.constants import ENV_BUILD_ID, ENV_BUILD_START
from tracebuild.telemetry.clock import now
from tracebuild.telemetry.spans import build_span_record


@click.command(name="build")
@click.option(
    "--id",
    "build_id",
    type=SPAN_HANDLE,
    envvar=ENV_BUILD_ID,
    required=True,
    help=f"Build ID from `tracebuild id`. [env: {ENV_BUILD_ID}]",
)
@click.option(
    "--start-time",
    type=TIMESTAMP,
    envvar=ENV_BUILD_START,
    required=True,
    help=f"Start time from `tracebuild now`. [env: {ENV_BUILD_START}]",
)
@click.option("--name", type=str, default=None, help="Optional build name.")
@click.option("--branch", type=str, default=None, help="Optional branch name.")
@click.option("--commit", type=str, default=None, help="Optional commit SHA.")
@click.option("--status", type=STATUS, default=None, help="Optional build status.")
def build(build_id, start_time, name, branch, commit, status):
    """Report the build span with the given ID and metadata."""
    end = now()
    router = install_router()
    span = build_span_record(
        build=build_id.with_start(start_time),
        end=end,
        name=name,
        branch=branch,
        commit=commit,
        status=status,
    )
    report(router, span)
