"""Tests for azure_cli_executor module.

Tests run_az_command (thin subprocess.run wrapper) and run_az_json, which
parses output and maps CLI failures onto ExternalApiError.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from azprov.azure_cli_executor import extract_error_code, run_az_command, run_az_json
from azprov.planner.errors import ExternalApiError


class TestRunAzCommand:
    """Test run_az_command helper function."""

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_success_returns_completed_process(self, mock_run: MagicMock) -> None:
        """Successful az command returns CompletedProcess."""
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az", "group", "list"], returncode=0, stdout='["rg1"]', stderr=""
        )

        result = run_az_command(["az", "group", "list"])

        assert result.returncode == 0
        assert result.stdout == '["rg1"]'
        mock_run.assert_called_once()

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_passes_default_kwargs(self, mock_run: MagicMock) -> None:
        """Verifies default capture_output, text, check, timeout are passed."""
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az", "account", "show"], returncode=0, stdout="{}", stderr=""
        )

        run_az_command(["az", "account", "show"])

        _, kwargs = mock_run.call_args
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["check"] is True
        assert kwargs["timeout"] == 30

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_check_false_is_forwarded(self, mock_run: MagicMock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az"], returncode=3, stdout="", stderr="boom"
        )

        result = run_az_command(["az", "account", "show"], check=False, timeout=5)

        assert result.returncode == 3
        _, kwargs = mock_run.call_args
        assert kwargs["check"] is False
        assert kwargs["timeout"] == 5

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_no_retries(self, mock_run: MagicMock) -> None:
        """A failing command is attempted exactly once."""
        mock_run.side_effect = subprocess.CalledProcessError(1, "az", stderr="ServiceUnavailable")

        with pytest.raises(subprocess.CalledProcessError):
            run_az_command(["az", "group", "list"])

        assert mock_run.call_count == 1


class TestRunAzJson:
    """Test run_az_json error mapping."""

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_parses_json(self, mock_run: MagicMock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az"], returncode=0, stdout='{"id": "/rg"}\n', stderr=""
        )

        assert run_az_json(["az", "group", "show"]) == {"id": "/rg"}

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_empty_output_is_none(self, mock_run: MagicMock) -> None:
        """Commands like 'az group delete' print nothing."""
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az"], returncode=0, stdout="  \n", stderr=""
        )

        assert run_az_json(["az", "group", "delete"]) is None

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_non_json_output(self, mock_run: MagicMock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["az"], returncode=0, stdout="Done.", stderr=""
        )

        with pytest.raises(ExternalApiError, match="non-JSON"):
            run_az_json(["az", "group", "show"])

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_cli_failure_carries_code(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(
            3,
            "az",
            stderr="ERROR: (ResourceGroupNotFound) Resource group 'rg-x' could not be found.",
        )

        with pytest.raises(ExternalApiError) as exc_info:
            run_az_json(["az", "group", "show", "--name", "rg-x"])

        assert exc_info.value.code == "ResourceGroupNotFound"
        assert not exc_info.value.transient

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_throttling_is_transient(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(
            1, "az", stderr="ERROR: (TooManyRequests) Too many requests."
        )

        with pytest.raises(ExternalApiError) as exc_info:
            run_az_json(["az", "storage", "account", "create"])

        assert exc_info.value.transient

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_timeout_is_transient(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired("az", 30)

        with pytest.raises(ExternalApiError) as exc_info:
            run_az_json(["az", "group", "show"])

        assert exc_info.value.code == "RequestTimeout"
        assert exc_info.value.transient

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_az_missing(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError("az")

        with pytest.raises(ExternalApiError, match="not found on PATH"):
            run_az_json(["az", "group", "show"])

    @patch("azprov.azure_cli_executor.subprocess.run")
    def test_os_error_is_api_error(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = PermissionError(13, "Permission denied", "az")

        with pytest.raises(ExternalApiError, match="Failed to run az"):
            run_az_json(["az", "group", "show"])


class TestExtractErrorCode:
    """Test ARM error code extraction."""

    def test_parenthesised_code(self) -> None:
        assert extract_error_code("ERROR: (AuthorizationFailed) no access") == "AuthorizationFailed"

    def test_code_line(self) -> None:
        assert extract_error_code("ERROR: Bad request\nCode: InvalidSubnet\nMessage: x") == "InvalidSubnet"

    def test_no_code(self) -> None:
        assert extract_error_code("something went wrong") is None
