"""
Main CLI application for Buildup.

Defines the Typer application structure and command routing.
"""
import typer

from buildup.cli.commands.trigger import trigger_command
from buildup.cli.commands.upload import upload_command
from buildup.cli.commands.version import version_command


# Initialize Typer app
app = typer.Typer(help="Buildup - upload mobile builds and trigger runs from CI")

# Register commands
app.command("upload", help="Upload a build artifact (.apk, .ipa or .app).")(upload_command)
app.command("trigger", help="Trigger a run without uploading a build.")(trigger_command)
app.command("version", help="Show the agent version.")(version_command)
