"""
Trigger command implementation.
"""
import sys
from typing import Optional

import typer

from buildup.core.uploader import UploadService
from buildup.rich_utils.ui_helpers import configure_logging


def trigger_command(
    git_commit: Optional[str] = typer.Option(None, "--git-commit", help="The originating git commit hash."),
    rule_name: Optional[str] = typer.Option(None, "--rule-name", help="An optional rule name."),
    upload_token: Optional[str] = typer.Option(None, "--upload-token", help="The upload token (overrides BUILDUP_UPLOAD_TOKEN)."),
    verbose: bool = typer.Option(False, "--verbose", help="Show extra verbiage."),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML")
):
    """Trigger a run on Buildup."""
    configure_logging(verbose)

    upload_service = UploadService()
    exit_code = upload_service.execute_trigger(
        config_path=config_path,
        git_commit=git_commit,
        rule_name=rule_name,
        upload_token=upload_token,
        verbose=verbose
    )

    if exit_code != 0:
        sys.exit(exit_code)
