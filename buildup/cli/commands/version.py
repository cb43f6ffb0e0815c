"""
Version command implementation.
"""
from buildup.core.uploader import UploadService


def version_command():
    """Show the agent version."""
    UploadService().display_version()
