"""
CLI module for Buildup.

Provides command-line interface components with a thin CLI layer over the
upload and trigger services.
"""
from buildup.cli.app import app as _app

# Export app function for pyproject.toml entry point
def app():
    """Entry point function for pyproject.toml scripts."""
    _app()

__all__ = ['app']
