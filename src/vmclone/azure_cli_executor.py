"""Azure CLI subprocess execution with error classification.

Provides run_az_command() - a thin wrapper around subprocess.run for "az"
invocations - and run_az_json() which parses the JSON output. Failures are
raised as AzureCLIError carrying an ErrorKind derived from az's stderr, so
callers can tell "not found" from "permission denied" from anything else.

Failed calls are never retried: a clone must either succeed step by step or
roll back.

Usage:
    from vmclone.azure_cli_executor import run_az_json

    vm = run_az_json(["az", "vm", "show", "--name", "web01", "--resource-group", "rg1"])
"""

import json
import logging
import subprocess
from typing import Any

from vmclone.errors import CloneError, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60

# Checked in order; the first matching marker wins.
_ERROR_MARKERS: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (
        ErrorKind.UNAUTHENTICATED,
        (
            "az login",
            "InvalidAuthenticationToken",
            "ExpiredAuthenticationToken",
            "No subscription found",
            "AADSTS",
        ),
    ),
    (
        ErrorKind.PERMISSION_DENIED,
        ("AuthorizationFailed", "Forbidden", "does not have authorization"),
    ),
    (
        ErrorKind.NOT_FOUND,
        (
            "ResourceNotFound",
            "ResourceGroupNotFound",
            "NotFound",
            "was not found",
            "could not be found",
        ),
    ),
]


class AzureCLIError(CloneError):
    """Raised when an az command fails.

    Attributes:
        cmd: Command that was executed
        returncode: Process exit code (None for timeouts / missing binary)
        stderr: Captured standard error
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PROVIDER_FAILURE,
        cmd: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message, kind)
        self.cmd = cmd or []
        self.returncode = returncode
        self.stderr = stderr


def classify_az_error(stderr: str) -> ErrorKind:
    """Map az stderr text to an ErrorKind.

    Args:
        stderr: Error output from the az CLI

    Returns:
        ErrorKind for the failure (PROVIDER_FAILURE when unrecognized)
    """
    for kind, markers in _ERROR_MARKERS:
        if any(marker in stderr for marker in markers):
            return kind
    return ErrorKind.PROVIDER_FAILURE


def _summarize_stderr(stderr: str) -> str:
    """Return the most useful line of az error output."""
    lines = [line.strip() for line in stderr.strip().splitlines() if line.strip()]
    for line in lines:
        if line.startswith("ERROR:") or line.startswith("("):
            return line
    return lines[0] if lines else "no error output"


def run_az_command(cmd: list[str], *, timeout: int = DEFAULT_TIMEOUT) -> subprocess.CompletedProcess[str]:
    """Execute an Azure CLI command once.

    Args:
        cmd: Command list starting with "az", e.g. ["az", "vm", "list"]
        timeout: Subprocess timeout in seconds

    Returns:
        subprocess.CompletedProcess with stdout/stderr

    Raises:
        AzureCLIError: On non-zero exit, timeout, missing az binary or other OS error
    """
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=True)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr or ""
        kind = classify_az_error(stderr)
        raise AzureCLIError(
            f"'{' '.join(cmd[:3])}' failed: {_summarize_stderr(stderr)}",
            kind=kind,
            cmd=cmd,
            returncode=e.returncode,
            stderr=stderr,
        ) from e
    except subprocess.TimeoutExpired as e:
        raise AzureCLIError(
            f"'{' '.join(cmd[:3])}' timed out after {timeout}s", cmd=cmd
        ) from e
    except FileNotFoundError as e:
        raise AzureCLIError(
            "Azure CLI (az) not found. Install it from https://aka.ms/installazurecli",
            cmd=cmd,
        ) from e
    except OSError as e:
        raise AzureCLIError(f"Could not run '{' '.join(cmd[:3])}': {e}", cmd=cmd) from e

    return result


def run_az_json(cmd: list[str], *, timeout: int = DEFAULT_TIMEOUT) -> Any:
    """Execute an az command and parse its JSON output.

    "--output json" is appended when the command does not set an output
    format. Empty output parses to None.

    Raises:
        AzureCLIError: On command failure or unparseable output
    """
    if "--output" not in cmd and "-o" not in cmd:
        cmd = [*cmd, "--output", "json"]

    result = run_az_command(cmd, timeout=timeout)
    if not result.stdout.strip():
        return None

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise AzureCLIError(
            f"Failed to parse output of '{' '.join(cmd[:3])}': {e}", cmd=cmd
        ) from e


__all__ = ["AzureCLIError", "classify_az_error", "run_az_command", "run_az_json"]
