"""tracebuild CLI"""

import click

from tracebuild import __version__
from tracebuild.cli.build import build
from tracebuild.cli.cmd import cmd
from tracebuild.cli.ident import id_command, now_command
from tracebuild.cli.step import step

from .debug import add_debug_option


@click.group()
@click.version_option(__version__, prog_name="tracebuild")
@click.pass_context
def cli(ctx):
    """
    Instrument builds with traces and metrics.

    \b
    export TRACEBUILD_BUILD_ID=$(tracebuild id)
    export TRACEBUILD_BUILD_START=$(tracebuild now)
    tracebuild cmd -- make
    tracebuild build --name example --status success
    """
    ctx.ensure_object(dict)


# Add subcommands to the CLI
cli.add_command(id_command)
cli.add_command(now_command)
cli.add_command(add_debug_option(cmd))
cli.add_command(add_debug_option(step))
cli.add_command(add_debug_option(build))

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
