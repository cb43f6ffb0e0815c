"""
Upload and trigger services for Buildup.

Builds the agent configuration, runs the orchestrators and maps their
outcome to a process exit code.
"""
import logging
from typing import Optional

from buildup.core.config_manager import ConfigManager
from buildup.rich_utils.ui_helpers import get_console, get_error_console
from buildup.upload.exceptions import BuildupError
from buildup.upload.models import AgentConfig
from buildup.upload.runtime import detect_runtime_info, version_string
from buildup.upload.trigger_orchestrator import TriggerOrchestrator
from buildup.upload.upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


class UploadService:
    """Service for uploading builds and triggering runs."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self.config_manager = config_manager or ConfigManager()
        self.console = get_console()
        self.error_console = get_error_console()

    def emit_error(self, message: str) -> None:
        self.error_console.print(f"buildup: {message}", style="bold red", markup=False, highlight=False)

    def display_version(self, config: Optional[AgentConfig] = None) -> None:
        if config is not None:
            text = version_string(detect_runtime_info(), config.wrapper_name, config.wrapper_version)
        else:
            text = version_string(detect_runtime_info())
        self.console.print(text, markup=False, highlight=False)

    def _load_config(self, config_path: Optional[str], **cli_values) -> Optional[AgentConfig]:
        try:
            return self.config_manager.build_agent_config(config_path, **cli_values)
        except BuildupError as e:
            self.emit_error(str(e))
            return None

    def execute_upload(self, build_path: str, config_path: Optional[str] = None, **cli_values) -> int:
        """Execute upload workflow and return exit code."""
        config = self._load_config(config_path, build_path=build_path, **cli_values)
        if config is None:
            return 1

        self.display_version(config)

        if not config.build_path:
            self.emit_error("Missing required \"build-path\" argument")
            return 1

        if not config.upload_token:
            self.emit_error("Missing required \"--upload-token\" option")
            return 1

        orchestrator = UploadOrchestrator(config, console=self.console)
        result = orchestrator.execute_upload_workflow()

        if not result.success:
            self.emit_error(result.error)
            return 1

        return 0

    def execute_trigger(self, config_path: Optional[str] = None, **cli_values) -> int:
        """Execute trigger workflow and return exit code."""
        config = self._load_config(config_path, **cli_values)
        if config is None:
            return 1

        self.display_version(config)

        if not config.upload_token:
            self.emit_error("Missing required \"--upload-token\" option")
            return 1

        orchestrator = TriggerOrchestrator(config, console=self.console)

        try:
            orchestrator.execute_trigger_workflow()
        except BuildupError as e:
            self.emit_error(str(e))
            return 1

        return 0
