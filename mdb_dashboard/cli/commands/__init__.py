"""
CLI commands.
"""

from .ping import ping
from .serve import serve

__all__ = ["ping", "serve"]
