"""
Upload Orchestrator

Coordinates the build upload: validation, workspace preparation, packaging,
upload with retry, and best-effort error reporting when the upload fails.
"""

import json
import logging
import os
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode, urlparse

import requests
from rich.console import Console

from buildup import AGENT_NAME, __version__
from .models import (
    AgentConfig,
    BuildDescriptor,
    CIProvider,
    GitInfo,
    ProvenanceInfo,
    SubmissionAttempt,
    UploadResponse,
    UploadResult,
    DEFAULT_API_BUILD_NEW_ENDPOINT,
    DEFAULT_API_BUILD_OLD_ENDPOINT,
    DEFAULT_API_ERROR_ENDPOINT
)
from .api_client import (
    BuildupAPIClient,
    add_if_not_empty,
    fetch_json_body,
    is_success,
    is_waf_response,
    should_retry
)
from .environment_detector import detect_ci_info
from .exceptions import (
    AuthenticationError,
    BuildupError,
    ConfigurationError,
    HTTPStatusError,
    SubmissionError,
    WAFBlockedError
)
from .file_validator import (
    BuildValidator,
    JSON_CONTENT_TYPE,
    determine_working_path,
    scoped_workspace
)
from .metadata import UploadMetadata
from .process_runner import ProcessRunner
from .repository import infer_git_info
from .runtime import detect_runtime_info, version_string

logger = logging.getLogger(__name__)

FALLBACK_CI_NAME = "Python Agent"


def summarize(value: str) -> str:
    return json.dumps(value) if value else "(none)"


def summarize_secure(value: str, verbose: bool) -> str:
    if not value:
        return "(none)"

    if not verbose:
        prefix = value[:6]
        value = prefix + "*" * (len(value) - len(prefix))

    return json.dumps(value)


class UploadOrchestrator:
    """Coordinates the complete build upload workflow"""

    def __init__(self, config: AgentConfig, console: Console = None,
                 environ: Optional[Mapping[str, str]] = None,
                 runner: Optional[ProcessRunner] = None,
                 builds_dir: Optional[str] = None):
        self.config = config
        self.console = console or Console()
        self.environ = environ
        self.runner = runner
        self.builds_dir = builds_dir
        self.validator = BuildValidator()
        self.rt_info = detect_runtime_info()

        self.retry_count = 0
        self.attempts: List[SubmissionAttempt] = []
        self.working_path = determine_working_path()
        self.descriptor: Optional[BuildDescriptor] = None
        self.ci_info: Optional[ProvenanceInfo] = None
        self.git_info: Optional[GitInfo] = None
        self.upload_id: Optional[str] = None
        self.upload_metadata: Optional[UploadMetadata] = None
        self.failure_body: Any = None
        self.failure_headers: Optional[Dict[str, str]] = None
        self.failure_status_code = 0
        self.error_reported = False
        self.validated = False

    # Validating

    def validate(self) -> None:
        """Resolve provenance and the build descriptor; no network access."""
        if self.validated:
            return

        if not self.config.upload_token:
            raise ConfigurationError("Missing required upload token")

        self.descriptor = self.validator.validate_build_path(self.config.build_path, self.working_path)
        self.ci_info = detect_ci_info(True, self.environ)
        self.git_info = infer_git_info(self.ci_info.skip_count, self.runner)
        self.upload_id = uuid.uuid4().hex
        self.validated = True

    # PreparingWorkspace, Packaging, Uploading, ReportingError

    def perform(self) -> UploadMetadata:
        """Upload the validated build; on failure report it and re-raise."""
        self.validate()

        try:
            with scoped_workspace(self.working_path):
                self.validator.create_payload(self.descriptor)
                self.upload_build_with_retry()
        except BuildupError as e:
            self.upload_error_with_retry(e)
            raise

        return self.upload_metadata

    def execute_upload_workflow(self) -> UploadResult:
        """Validate, show the run summary and upload, returning a result"""
        build_name = os.path.basename(self.config.build_path)

        try:
            self.validate()
            self.display_summary()
            self.perform()
        except BuildupError as e:
            return UploadResult(
                success=False,
                build_name=build_name,
                error=str(e),
                attempts=len(self.attempts),
                error_reported=self.error_reported
            )

        self.console.print(f"\nBuild {build_name!r} successfully uploaded!", style="bold green")

        metadata = self.upload_metadata
        return UploadResult(
            success=True,
            build_name=build_name,
            app_version_id=metadata.app_version_id if metadata else None,
            attempts=len(self.attempts),
            upload_time=metadata.upload_time if metadata else None
        )

    def upload_build_with_retry(self) -> requests.Response:
        with self._make_client() as client:
            self.attempts = client.attempts
            return client.post_with_retry(
                lambda attempt_index: self.upload_build(client, attempt_index),
                max_attempts=self.config.max_attempts,
                label="upload"
            )

    def upload_build(self, client: BuildupAPIClient, attempt_index: int) -> requests.Response:
        self.retry_count = attempt_index
        self.console.print("Uploading build…", style="cyan")

        url = self.make_build_url()

        try:
            with open(self.descriptor.payload_path, "rb") as payload:
                response = client.post(url, payload, self.descriptor.content_type, "build")
        except OSError as e:
            raise SubmissionError(f"Unable to upload build, error: {e}, url: {url!r}", url=url)

        error = self.check_build_status(response, url)

        if error is not None:
            self.failure_body = fetch_json_body(response)
            self.failure_headers = dict(response.headers)
            self.failure_status_code = response.status_code
            raise error

        self._save_upload_metadata(response, urlparse(url).netloc)

        return response

    def upload_error_with_retry(self, error: Exception) -> None:
        """Report a fatal upload error; failures here are logged and dropped."""
        try:
            with self._make_client() as client:
                client.post_with_retry(
                    lambda attempt_index: self.upload_error(client, error),
                    max_attempts=self.config.max_attempts,
                    label="upload error"
                )
            self.error_reported = True
        except SubmissionError as e:
            logger.warning(f"Unable to report upload error: {e}")

    def upload_error(self, client: BuildupAPIClient, error: Exception) -> requests.Response:
        url = self.make_error_url()
        body = self.make_error_payload(error)

        response = client.post(url, body.encode("utf-8"), JSON_CONTENT_TYPE, "error")

        status = response.status_code

        if status == 403 and is_waf_response(response):
            raise WAFBlockedError("Upload error blocked by WAF server!", url=url, status_code=status)

        if not is_success(status):
            raise HTTPStatusError(
                f"Unable to upload error, HTTP status: {status}",
                url=url,
                status_code=status,
                retryable=should_retry(status)
            )

        return response

    # Request construction

    def check_build_status(self, response: requests.Response, url: str) -> Optional[SubmissionError]:
        status = response.status_code

        if status == 401:
            return AuthenticationError(url=url, status_code=status)

        if status == 403 and is_waf_response(response):
            return WAFBlockedError("Upload build blocked by WAF server!", url=url, status_code=status)

        if not is_success(status):
            return HTTPStatusError(
                f"Unable to upload build, HTTP status: {status}",
                url=url,
                status_code=status,
                retryable=should_retry(status)
            )

        return None

    def make_build_url(self) -> str:
        build_url = self.config.overrides.get("apiBuildEndpoint", "")

        if not build_url:
            if self.config.upload_token.startswith("u-"):
                build_url = DEFAULT_API_BUILD_NEW_ENDPOINT.replace("${APP_ID}", self.config.app_id)
            else:
                build_url = DEFAULT_API_BUILD_OLD_ENDPOINT

        query: Dict[str, str] = {}
        add_if_not_empty(query, "agentName", AGENT_NAME)
        add_if_not_empty(query, "agentVersion", __version__)
        add_if_not_empty(query, "arch", self.rt_info.arch)
        add_if_not_empty(query, "ci", self.ci_info.provider.value)
        add_if_not_empty(query, "ciGitBranch", self.ci_info.ci_git_branch)
        add_if_not_empty(query, "ciGitCommit", self.ci_info.ci_git_commit)
        add_if_not_empty(query, "flavor", self.descriptor.flavor.value)
        add_if_not_empty(query, "gitAccess", self.git_info.access.value)
        add_if_not_empty(query, "gitBranch", self.git_info.branch)
        add_if_not_empty(query, "gitCommit", self.git_info.commit)
        add_if_not_empty(query, "platform", self.rt_info.platform)
        add_if_not_empty(query, "retry", str(self.retry_count))
        add_if_not_empty(query, "userGitBranch", self.config.git_branch)
        add_if_not_empty(query, "userGitCommit", self.config.git_commit)
        add_if_not_empty(query, "variantName", self.config.variant_name)
        add_if_not_empty(query, "wrapperName", self.config.wrapper_name)
        add_if_not_empty(query, "wrapperVersion", self.config.wrapper_version)

        return f"{build_url}?{urlencode(query)}"

    def make_error_url(self) -> str:
        return self.config.overrides.get("apiErrorEndpoint") or DEFAULT_API_ERROR_ENDPOINT

    def make_error_payload(self, error: Exception) -> str:
        ci_info = self.ci_info or ProvenanceInfo()

        payload: Dict[str, Any] = {}
        add_if_not_empty(payload, "agentName", AGENT_NAME)
        add_if_not_empty(payload, "agentVersion", __version__)
        add_if_not_empty(payload, "arch", self.rt_info.arch)
        add_if_not_empty(payload, "ci", ci_info.provider.value)
        add_if_not_empty(payload, "ciGitBranch", ci_info.ci_git_branch)
        add_if_not_empty(payload, "ciGitCommit", ci_info.ci_git_commit)
        if self.failure_body is not None:
            payload["failureBody"] = self.failure_body
        if self.failure_headers:
            payload["failureHeaders"] = self.failure_headers
        payload["failureStatusCode"] = self.failure_status_code
        add_if_not_empty(payload, "message", str(error))
        add_if_not_empty(payload, "platform", self.rt_info.platform)
        payload["retry"] = self.retry_count
        add_if_not_empty(payload, "wrapperName", self.config.wrapper_name)
        add_if_not_empty(payload, "wrapperVersion", self.config.wrapper_version)

        return json.dumps(payload)

    def user_agent(self) -> str:
        provider = self.ci_info.provider if self.ci_info else CIProvider.UNKNOWN
        ci = FALLBACK_CI_NAME if provider == CIProvider.UNKNOWN else provider.value
        flavor = self.descriptor.flavor.value if self.descriptor else ""
        version = self.config.wrapper_version or __version__

        return f"Buildup {ci}/{flavor} v{version}"

    def version(self) -> str:
        return version_string(self.rt_info, self.config.wrapper_name, self.config.wrapper_version)

    def display_summary(self) -> None:
        lines = [
            f"App ID:              {summarize(self.config.app_id)}",
            f"Build path:          {summarize(self.descriptor.absolute_path if self.descriptor else self.config.build_path)}",
            f"Git branch:          {summarize(self.config.git_branch)}",
            f"Git commit:          {summarize(self.config.git_commit)}",
            f"Upload token:        {summarize_secure(self.config.upload_token, self.config.verbose)}",
            f"Variant name:        {summarize(self.config.variant_name)}",
        ]

        if self.config.verbose and self.validated:
            lines.extend([
                "",
                f"Build payload path:  {summarize(self.descriptor.payload_path)}",
                f"CI git branch:       {summarize(self.ci_info.ci_git_branch)}",
                f"CI git commit:       {summarize(self.ci_info.ci_git_commit)}",
                f"CI provider:         {summarize(self.ci_info.provider.value)}",
                f"Git access:          {summarize(self.git_info.access.value)}",
                f"Inferred git branch: {summarize(self.git_info.branch)}",
                f"Inferred git commit: {summarize(self.git_info.commit)}",
            ])

        self.console.print("\n" + "\n".join(lines) + "\n", markup=False, highlight=False)

    def _make_client(self) -> BuildupAPIClient:
        return BuildupAPIClient(
            upload_token=self.config.upload_token,
            user_agent=self.user_agent(),
            verbose=self.config.verbose,
            console=self.console,
            upload_id=self.upload_id
        )

    def _save_upload_metadata(self, response: requests.Response, host: str) -> None:
        try:
            upload_response = UploadResponse.from_json(response.json())
            metadata = UploadMetadata(
                app_id=upload_response.application_id,
                app_version_id=upload_response.app_version_id,
                host=host,
                upload_time=datetime.now()
            )
            metadata.save(self.builds_dir)
        except (ValueError, AttributeError, OSError) as e:
            logger.error(f"Unable to save upload metadata locally, error: {e}")
            self.console.print(f"⚠️ Unable to save upload metadata locally, error: {e}", style="yellow")
            return

        self.upload_metadata = metadata
