"""
Tests for the command-line interface.
"""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from buildup import __version__
from buildup.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("BUILDUP_UPLOAD_TOKEN", "BUILDUP_CONFIG"):
        monkeypatch.delenv(name, raising=False)


class TestCLI:

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"Buildup Agent {__version__}" in result.stdout

    def test_upload_without_token_fails(self, tmp_path):
        build = tmp_path / "app.apk"
        build.write_bytes(b"apk")

        result = runner.invoke(app, ["upload", str(build)])

        assert result.exit_code == 1

    def test_upload_bad_extension_fails_before_network(self, tmp_path):
        with patch("requests.Session.send") as mock_send:
            result = runner.invoke(app, ["upload", str(tmp_path / "notes.txt"), "--upload-token", "t"])

        assert result.exit_code == 1
        mock_send.assert_not_called()

    def test_upload_passes_options_to_service(self):
        with patch("buildup.core.uploader.UploadService.execute_upload", return_value=0) as mock_upload:
            result = runner.invoke(app, [
                "upload", "app.apk",
                "--upload-token", "tok",
                "--variant-name", "prod",
                "--git-branch", "main",
                "--verbose"
            ])

        assert result.exit_code == 0
        kwargs = mock_upload.call_args.kwargs
        assert kwargs["build_path"] == "app.apk"
        assert kwargs["upload_token"] == "tok"
        assert kwargs["variant_name"] == "prod"
        assert kwargs["git_branch"] == "main"
        assert kwargs["app_id"] is None
        assert kwargs["verbose"] is True

    def test_trigger_failure_exit_code(self):
        with patch("buildup.core.uploader.UploadService.execute_trigger", return_value=1):
            result = runner.invoke(app, ["trigger", "--upload-token", "tok", "--rule-name", "smoke"])

        assert result.exit_code == 1

    def test_trigger_without_token_fails(self):
        result = runner.invoke(app, ["trigger"])
        assert result.exit_code == 1
