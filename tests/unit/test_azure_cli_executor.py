"""Tests for az CLI execution and error classification."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from tests.fixtures.azure_responses import (
    AUTHORIZATION_FAILED_STDERR,
    NOT_LOGGED_IN_STDERR,
    RESOURCE_NOT_FOUND_STDERR,
    SKU_NOT_AVAILABLE_STDERR,
)
from vmclone.azure_cli_executor import (
    AzureCLIError,
    classify_az_error,
    run_az_command,
    run_az_json,
)
from vmclone.errors import CloneError, ErrorKind


class TestClassifyAzError:
    """Tests for stderr classification."""

    def test_not_found(self):
        assert classify_az_error(RESOURCE_NOT_FOUND_STDERR) == ErrorKind.NOT_FOUND

    def test_authorization_failed(self):
        assert classify_az_error(AUTHORIZATION_FAILED_STDERR) == ErrorKind.PERMISSION_DENIED

    def test_not_logged_in(self):
        assert classify_az_error(NOT_LOGGED_IN_STDERR) == ErrorKind.UNAUTHENTICATED

    def test_unrecognized_is_provider_failure(self):
        assert classify_az_error(SKU_NOT_AVAILABLE_STDERR) == ErrorKind.PROVIDER_FAILURE

    def test_empty_stderr(self):
        assert classify_az_error("") == ErrorKind.PROVIDER_FAILURE


class TestRunAzCommand:
    """Tests for run_az_command."""

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_success_returns_completed_process(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="{}", stderr="")

        result = run_az_command(["az", "group", "list"], timeout=30)

        assert result.stdout == "{}"
        mock_run.assert_called_once_with(
            ["az", "group", "list"], capture_output=True, text=True, timeout=30, check=True
        )

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_called_process_error_is_classified(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            3, ["az", "vm", "show"], stderr=RESOURCE_NOT_FOUND_STDERR
        )

        with pytest.raises(AzureCLIError, match="ResourceNotFound") as exc_info:
            run_az_command(["az", "vm", "show", "--name", "ghost"])

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert exc_info.value.returncode == 3
        assert exc_info.value.cmd[:3] == ["az", "vm", "show"]

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_failure_is_not_retried(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["az"], stderr="ERROR: boom")

        with pytest.raises(AzureCLIError):
            run_az_command(["az", "disk", "create"])

        assert mock_run.call_count == 1

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["az"], 5)

        with pytest.raises(AzureCLIError, match="timed out after 5s") as exc_info:
            run_az_command(["az", "vm", "create"], timeout=5)

        assert exc_info.value.kind == ErrorKind.PROVIDER_FAILURE

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_missing_az_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("az")

        with pytest.raises(AzureCLIError, match="Azure CLI \\(az\\) not found"):
            run_az_command(["az", "version"])

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_os_error_is_provider_failure(self, mock_run):
        mock_run.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(AzureCLIError, match="Could not run") as exc_info:
            run_az_command(["az", "snapshot", "create"])

        assert exc_info.value.kind == ErrorKind.PROVIDER_FAILURE

    def test_azure_cli_error_is_clone_error(self):
        assert issubclass(AzureCLIError, CloneError)


class TestRunAzJson:
    """Tests for run_az_json."""

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_appends_json_output(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout='[{"name": "rg1"}]', stderr="")

        result = run_az_json(["az", "group", "list"])

        assert result == [{"name": "rg1"}]
        assert mock_run.call_args[0][0] == ["az", "group", "list", "--output", "json"]

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_keeps_explicit_output(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout='"x"', stderr="")

        run_az_json(["az", "account", "show", "-o", "json"])

        assert mock_run.call_args[0][0] == ["az", "account", "show", "-o", "json"]

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_empty_output_is_none(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="  \n", stderr="")

        assert run_az_json(["az", "snapshot", "delete", "--ids", "x"]) is None

    @patch("vmclone.azure_cli_executor.subprocess.run")
    def test_invalid_json(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="not json{", stderr="")

        with pytest.raises(AzureCLIError, match="Failed to parse output"):
            run_az_json(["az", "vm", "list"])
