"""
Upload command implementation.

Thin wrapper around UploadService that handles CLI argument parsing
and delegates business logic to the service layer.
"""
import sys
from typing import Optional

import typer

from buildup.core.uploader import UploadService
from buildup.rich_utils.ui_helpers import configure_logging


def upload_command(
    build_path: str = typer.Argument(..., help="The path to the build artifact to upload."),
    app_id: Optional[str] = typer.Option(None, "--app-id", help="An app ID (if not using an app token)."),
    git_branch: Optional[str] = typer.Option(None, "--git-branch", help="The originating git commit branch name."),
    git_commit: Optional[str] = typer.Option(None, "--git-commit", help="The originating git commit hash."),
    upload_token: Optional[str] = typer.Option(None, "--upload-token", help="The upload token (overrides BUILDUP_UPLOAD_TOKEN)."),
    variant_name: Optional[str] = typer.Option(None, "--variant-name", help="An optional variant name."),
    verbose: bool = typer.Option(False, "--verbose", help="Show extra verbiage."),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML")
):
    """Upload a build artifact to Buildup."""
    configure_logging(verbose)

    upload_service = UploadService()
    exit_code = upload_service.execute_upload(
        build_path=build_path,
        config_path=config_path,
        app_id=app_id,
        git_branch=git_branch,
        git_commit=git_commit,
        upload_token=upload_token,
        variant_name=variant_name,
        verbose=verbose
    )

    # Exit with appropriate code
    if exit_code != 0:
        sys.exit(exit_code)
