"""
Serve command for CLI.

Runs the dashboard API with uvicorn.
"""

import click
import uvicorn

from ...app import create_app
from ...config import DashboardConfig
from ...exceptions import ConfigurationError
from ..utils import configure_logging


@click.command()
@click.option("--host", default=None, help="Bind address (default: DASHBOARD_HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Bind port (default: DASHBOARD_PORT or 8000)")
@click.option("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
def serve(host: str | None, port: int | None, log_level: str | None) -> None:
    """
    Start the dashboard HTTP server.

    Examples:
        mdb-dashboard serve
        mdb-dashboard serve --host 0.0.0.0 --port 9000 --log-level debug
    """
    try:
        config = DashboardConfig(host=host, port=port, log_level=log_level)
        app = create_app(config)
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e

    configure_logging(config.log_level)
    click.echo(f"Serving MongoDB dashboard on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
