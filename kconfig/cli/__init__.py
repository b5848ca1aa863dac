"""CLI front-end module for kconfig

This module implements the Typer-based kconfig-util interface with the
kset, koff, complete and version commands.
"""

from .main import app, run

__all__ = ['app', 'run']
