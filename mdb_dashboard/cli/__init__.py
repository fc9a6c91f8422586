"""
Command line interface for MDB_DASHBOARD.
"""

from .main import cli

__all__ = ["cli"]
