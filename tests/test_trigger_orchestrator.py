"""
Tests for the Trigger Orchestrator

Triggering shares the retry discipline of build uploads but sends a small
JSON payload and never reports errors.
"""

import io
import json
import pytest
from unittest.mock import patch

import requests
from rich.console import Console

from buildup.core.config_manager import ConfigManager
from buildup.core.uploader import UploadService
from buildup.upload.trigger_orchestrator import TriggerOrchestrator
from buildup.upload.models import AgentConfig
from buildup.upload.exceptions import (
    AuthenticationError,
    BuildupError,
    ConfigurationError,
    HTTPStatusError
)


def make_response(status_code, body=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = "Reason"
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    return response


class TestTriggerOrchestrator:

    def setup_method(self):
        self.console = Console(file=io.StringIO(), force_terminal=False)

    def make_orchestrator(self, environ=None, **config_kwargs):
        config_kwargs.setdefault("upload_token", "u-token")
        return TriggerOrchestrator(
            AgentConfig(**config_kwargs),
            console=self.console,
            environ=environ if environ is not None else {}
        )

    def test_payload_omits_empty_fields(self):
        orchestrator = self.make_orchestrator(rule_name="smoke", git_commit="abc123")
        orchestrator.validate()

        payload = json.loads(orchestrator.make_payload())

        assert payload["agentName"] == "Buildup Agent"
        assert payload["ci"] == "Unknown"
        assert payload["gitSha"] == "abc123"
        assert payload["ruleName"] == "smoke"
        assert "wrapperName" not in payload
        assert set(payload) <= {
            "agentName", "agentVersion", "arch", "ci", "gitSha",
            "platform", "ruleName", "wrapperName", "wrapperVersion"
        }

    def test_user_agent_has_no_flavor(self):
        orchestrator = self.make_orchestrator(environ={"TRAVIS": "true"})
        orchestrator.validate()
        assert orchestrator.user_agent().startswith("Buildup Travis CI v")

    def test_user_agent_falls_back_without_ci(self):
        orchestrator = self.make_orchestrator(overrides={"wrapperVersion": "1.0.0"})
        orchestrator.validate()
        assert orchestrator.user_agent() == "Buildup Python Agent v1.0.0"

    def test_missing_token_rejected(self):
        with pytest.raises(ConfigurationError):
            self.make_orchestrator(upload_token="").validate()

    def test_endpoint_override(self):
        orchestrator = self.make_orchestrator(overrides={"apiTriggerEndpoint": "https://x.test/suites"})
        assert orchestrator.make_url() == "https://x.test/suites"

    @patch.object(requests.Session, "send")
    def test_trigger_posts_json(self, mock_send):
        mock_send.return_value = make_response(200)
        orchestrator = self.make_orchestrator(rule_name="smoke")

        assert orchestrator.execute_trigger_workflow() is True

        request = mock_send.call_args[0][0]
        assert request.url == "https://api.buildup.io/suites"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Authorization"] == "Upload-Token u-token"
        assert "X-Upload-Id" not in request.headers
        assert json.loads(request.body)["ruleName"] == "smoke"
        assert "successfully triggered" in self.console.file.getvalue()

    @patch.object(requests.Session, "send")
    def test_retryable_then_success(self, mock_send):
        mock_send.side_effect = [make_response(503), make_response(200)]

        self.make_orchestrator().perform()

        assert mock_send.call_count == 2

    @patch.object(requests.Session, "send")
    def test_unauthorized_is_fatal(self, mock_send):
        mock_send.side_effect = [make_response(401), make_response(200)]

        with pytest.raises(AuthenticationError):
            self.make_orchestrator().perform()

        assert mock_send.call_count == 1

    @patch.object(requests.Session, "send")
    def test_final_retryable_failure_raised(self, mock_send):
        mock_send.side_effect = [make_response(500), make_response(504)]

        with pytest.raises(HTTPStatusError, match="Unable to trigger run, HTTP status: 504"):
            self.make_orchestrator().perform()

        assert mock_send.call_count == 2

    @patch.object(requests.Session, "send")
    def test_malformed_endpoint_is_fatal(self, mock_send):
        orchestrator = self.make_orchestrator(overrides={"apiTriggerEndpoint": "not-a-url"})

        with pytest.raises(BuildupError, match="Unable to create trigger request"):
            orchestrator.perform()

        mock_send.assert_not_called()


class TestTriggerService:

    @patch.object(requests.Session, "send")
    def test_malformed_endpoint_exits_with_error(self, mock_send):
        environ = {"BUILDUP_API_TRIGGER_ENDPOINT_OVERRIDE": "not-a-url"}
        service = UploadService(config_manager=ConfigManager(environ=environ))
        service.error_console = Console(file=io.StringIO(), force_terminal=False)

        exit_code = service.execute_trigger(upload_token="u-token")

        assert exit_code == 1
        assert "buildup: Unable to create trigger request" in service.error_console.file.getvalue()
        mock_send.assert_not_called()
