"""Standardized Azure CLI subprocess execution.

Provides run_az_command(), a thin wrapper around subprocess.run, and
run_az_json() which additionally parses JSON output and converts CLI
failures into ExternalApiError. Neither retries: transient failures are
flagged on the error and left to the caller.

Usage:
    from azprov.azure_cli_executor import run_az_json

    payload = run_az_json(["az", "group", "show", "--name", "rg-logicapp-tf"])
"""

import json
import logging
import re
import subprocess
from typing import Any

from azprov.planner.errors import ExternalApiError

logger = logging.getLogger(__name__)

# "(ResourceGroupNotFound) Resource group 'x' could not be found." / "Code: ResourceGroupNotFound"
_ERROR_CODE_PATTERNS = (
    re.compile(r"^Code:\s*(?P<code>[A-Za-z][A-Za-z0-9_.]*)", re.MULTILINE),
    re.compile(r"\((?P<code>[A-Z][A-Za-z0-9_.]*)\)"),
)


def extract_error_code(stderr: str) -> str | None:
    """Extract the ARM error code from Azure CLI stderr, if present."""
    for pattern in _ERROR_CODE_PATTERNS:
        match = pattern.search(stderr)
        if match:
            return match.group("code")
    return None


def run_az_command(
    cmd: list[str],
    *,
    timeout: float = 30,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute an Azure CLI command.

    Args:
        cmd: Command list starting with "az", e.g. ["az", "group", "list"]
        timeout: Subprocess timeout in seconds (default: 30)
        check: If True, raise CalledProcessError on non-zero exit (default: True)

    Returns:
        subprocess.CompletedProcess with stdout/stderr

    Raises:
        subprocess.CalledProcessError: On non-zero exit (when check=True)
        subprocess.TimeoutExpired: If the command exceeds timeout
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    return subprocess.run(cmd, capture_output=True, text=True, check=check, timeout=timeout)


def run_az_json(cmd: list[str], *, timeout: float = 30) -> Any:
    """Execute an Azure CLI command and parse its JSON output.

    Returns:
        Parsed JSON payload, or None when the command printed nothing

    Raises:
        ExternalApiError: If az is missing, exits non-zero, times out or
            prints something that is not JSON
    """
    try:
        result = run_az_command(cmd, timeout=timeout)
    except FileNotFoundError as e:
        raise ExternalApiError("Azure CLI (az) not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalApiError(
            f"'{' '.join(cmd[:4])}' timed out after {timeout:.0f}s",
            code="RequestTimeout",
            transient=True,
        ) from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip() or f"az exited with code {e.returncode}"
        raise ExternalApiError.from_message(stderr, code=extract_error_code(stderr)) from e
    except OSError as e:
        raise ExternalApiError(f"Failed to run az: {e}") from e

    output = result.stdout.strip()
    if not output:
        return None
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise ExternalApiError(f"Unexpected non-JSON output from az: {output[:200]}") from e


__all__ = ["extract_error_code", "run_az_command", "run_az_json"]
