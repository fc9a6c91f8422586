"""
Utility functions for CLI commands.
"""

import logging

import click

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """
    Configure root logging for a CLI run.

    Args:
        level: Level name such as "INFO" or "debug"

    Raises:
        click.ClickException: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise click.ClickException(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
