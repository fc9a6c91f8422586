"""
Entry point of the ``mdb-dashboard`` command.

Examples:
    mdb-dashboard serve --port 9000
    mdb-dashboard ping mongodb://localhost:27017
"""

import click

from .. import __version__
from .commands import ping, serve


@click.group()
@click.version_option(version=__version__, prog_name="mdb-dashboard")
def cli() -> None:
    """MongoDB dashboard backend."""


cli.add_command(serve)
cli.add_command(ping)


if __name__ == "__main__":
    cli()
