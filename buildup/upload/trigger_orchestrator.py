"""
Trigger Orchestrator

Triggers a remote test run without uploading a build.
"""

import json
import logging
from typing import Dict, Mapping, Optional

import requests
from rich.console import Console

from buildup import AGENT_NAME, __version__
from .models import AgentConfig, CIProvider, ProvenanceInfo, DEFAULT_API_TRIGGER_ENDPOINT
from .api_client import BuildupAPIClient, add_if_not_empty, is_success, should_retry
from .environment_detector import detect_ci_info
from .exceptions import AuthenticationError, ConfigurationError, HTTPStatusError
from .file_validator import JSON_CONTENT_TYPE
from .runtime import detect_runtime_info, version_string
from .upload_orchestrator import FALLBACK_CI_NAME, summarize, summarize_secure

logger = logging.getLogger(__name__)


class TriggerOrchestrator:
    """Triggers a run with the same retry discipline as build uploads"""

    def __init__(self, config: AgentConfig, console: Console = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config = config
        self.console = console or Console()
        self.environ = environ
        self.rt_info = detect_runtime_info()
        self.ci_info: Optional[ProvenanceInfo] = None
        self.validated = False

    def validate(self) -> None:
        if self.validated:
            return

        if not self.config.upload_token:
            raise ConfigurationError("Missing required upload token")

        self.ci_info = detect_ci_info(False, self.environ)
        self.validated = True

    def perform(self) -> requests.Response:
        self.validate()

        with BuildupAPIClient(
            upload_token=self.config.upload_token,
            user_agent=self.user_agent(),
            verbose=self.config.verbose,
            console=self.console
        ) as client:
            return client.post_with_retry(
                lambda attempt_index: self.trigger_run(client),
                max_attempts=self.config.max_attempts,
                label="trigger"
            )

    def execute_trigger_workflow(self) -> bool:
        """Validate, show the run summary and trigger; errors propagate to the caller"""
        self.validate()
        self.display_summary()
        self.perform()
        self.console.print("\nRun successfully triggered!", style="bold green")
        return True

    def trigger_run(self, client: BuildupAPIClient) -> requests.Response:
        self.console.print("Triggering run…", style="cyan")

        url = self.make_url()
        response = client.post(url, self.make_payload().encode("utf-8"), JSON_CONTENT_TYPE, "trigger")

        status = response.status_code
        logger.debug(f"Trigger response status: {status}")

        if status == 401:
            raise AuthenticationError(url=url, status_code=status)

        if not is_success(status):
            raise HTTPStatusError(
                f"Unable to trigger run, HTTP status: {status}",
                url=url,
                status_code=status,
                retryable=should_retry(status)
            )

        return response

    def make_url(self) -> str:
        return self.config.overrides.get("apiTriggerEndpoint") or DEFAULT_API_TRIGGER_ENDPOINT

    def make_payload(self) -> str:
        payload: Dict[str, str] = {}
        add_if_not_empty(payload, "agentName", AGENT_NAME)
        add_if_not_empty(payload, "agentVersion", __version__)
        add_if_not_empty(payload, "arch", self.rt_info.arch)
        add_if_not_empty(payload, "ci", self.ci_info.provider.value)
        add_if_not_empty(payload, "gitSha", self.config.git_commit)
        add_if_not_empty(payload, "platform", self.rt_info.platform)
        add_if_not_empty(payload, "ruleName", self.config.rule_name)
        add_if_not_empty(payload, "wrapperName", self.config.wrapper_name)
        add_if_not_empty(payload, "wrapperVersion", self.config.wrapper_version)

        return json.dumps(payload)

    def user_agent(self) -> str:
        provider = self.ci_info.provider if self.ci_info else CIProvider.UNKNOWN
        ci = FALLBACK_CI_NAME if provider == CIProvider.UNKNOWN else provider.value
        version = self.config.wrapper_version or __version__

        return f"Buildup {ci} v{version}"

    def version(self) -> str:
        return version_string(self.rt_info, self.config.wrapper_name, self.config.wrapper_version)

    def display_summary(self) -> None:
        lines = [
            f"Git commit:          {summarize(self.config.git_commit)}",
            f"Rule name:           {summarize(self.config.rule_name)}",
            f"Upload token:        {summarize_secure(self.config.upload_token, self.config.verbose)}",
        ]
        self.console.print("\n" + "\n".join(lines) + "\n", markup=False, highlight=False)
