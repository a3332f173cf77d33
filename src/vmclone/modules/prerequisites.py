"""
Environment Validation Module

Read-only checks that the machine and account can run a clone:
- the az CLI is on PATH and reports its version
- an az session is active
- resource groups, VMs, snapshots and virtual networks are readable

Security Requirements:
- No credential storage
- Read-only checks, nothing is created or modified
- No shell=True in subprocess calls
"""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from vmclone.azure_auth import require_session
from vmclone.azure_cli_executor import run_az_json
from vmclone.errors import CloneError

logger = logging.getLogger(__name__)


class CheckStatus(str, Enum):
    """Outcome of one environment check."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass
class CheckResult:
    """Result of a single check."""

    name: str
    status: CheckStatus
    detail: str


@dataclass
class ValidationReport:
    """All check results plus the overall verdict."""

    checks: list[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when no check failed (warnings allowed)."""
        return all(c.status is not CheckStatus.FAIL for c in self.checks)

    def count(self, status: CheckStatus) -> int:
        return sum(1 for c in self.checks if c.status is status)


class EnvironmentValidator:
    """
    Validate that vmclone can run against the current account.

    Checks run in order. When the az CLI is missing or no session is
    active, the remaining checks are skipped: they could only fail the same
    way.
    """

    def __init__(self, client, which: Callable[[str], str | None] = shutil.which):
        """
        Initialize validator.

        Args:
            client: Cloud client used for the read checks
            which: PATH lookup (shutil.which; replaceable in tests)
        """
        self.client = client
        self.which = which

    def check_az_installed(self) -> CheckResult:
        path = self.which("az")
        if not path:
            return CheckResult(
                "Azure CLI",
                CheckStatus.FAIL,
                "az not found on PATH. Install: https://aka.ms/InstallAzureCLI",
            )
        logger.debug(f"Found az at {path}")
        return CheckResult("Azure CLI", CheckStatus.PASS, path)

    def check_az_version(self) -> CheckResult:
        try:
            info = run_az_json(["az", "version"]) or {}
        except CloneError as e:
            return CheckResult("Azure CLI version", CheckStatus.WARN, f"Could not read version: {e}")
        version = info.get("azure-cli", "unknown")
        return CheckResult("Azure CLI version", CheckStatus.PASS, f"azure-cli {version}")

    def check_session(self) -> CheckResult:
        try:
            account = require_session(self.client)
        except CloneError as e:
            return CheckResult("Azure session", CheckStatus.FAIL, str(e))
        name = account.subscription_name or account.subscription_id
        who = f" as {account.user}" if account.user else ""
        return CheckResult("Azure session", CheckStatus.PASS, f"Subscription {name}{who}")

    def _check_listing(
        self,
        name: str,
        noun: str,
        lister: Callable[[], list],
        failure_status: CheckStatus = CheckStatus.FAIL,
    ) -> CheckResult:
        try:
            items = lister()
        except CloneError as e:
            return CheckResult(name, failure_status, f"Cannot list {noun}: {e}")
        if not items:
            return CheckResult(name, CheckStatus.WARN, f"No {noun} found")
        return CheckResult(name, CheckStatus.PASS, f"{len(items)} {noun} readable")

    def check_resource_group(self, resource_group: str) -> CheckResult:
        try:
            self.client.get_resource_group(resource_group)
        except CloneError as e:
            return CheckResult("Resource group", CheckStatus.FAIL, f"{resource_group}: {e}")
        return CheckResult("Resource group", CheckStatus.PASS, f"{resource_group} readable")

    def run_all(self, resource_group: str | None = None) -> ValidationReport:
        """
        Run every check.

        Args:
            resource_group: Limit VM/snapshot/VNet listings to this group

        Returns:
            ValidationReport
        """
        report = ValidationReport()

        report.checks.append(self.check_az_installed())
        if not report.passed:
            logger.error("Azure CLI missing; skipping remaining checks")
            return report

        report.checks.append(self.check_az_version())

        report.checks.append(self.check_session())
        if not report.passed:
            logger.error("No active session; skipping remaining checks")
            return report

        if resource_group:
            report.checks.append(self.check_resource_group(resource_group))
        else:
            report.checks.append(
                self._check_listing(
                    "Resource groups", "resource groups", self.client.list_resource_groups
                )
            )

        report.checks.append(
            self._check_listing("Virtual machines", "VMs", lambda: self.client.list_vms(resource_group))
        )
        report.checks.append(
            self._check_listing(
                "Snapshots",
                "snapshots",
                lambda: self.client.list_snapshots(resource_group),
                failure_status=CheckStatus.WARN,
            )
        )
        report.checks.append(
            self._check_listing(
                "Virtual networks", "virtual networks", lambda: self.client.list_vnets(resource_group)
            )
        )

        if report.passed:
            logger.info(f"Environment OK ({report.count(CheckStatus.WARN)} warning(s))")
        else:
            logger.error(f"Environment check failed ({report.count(CheckStatus.FAIL)} failure(s))")
        return report


__all__ = ["CheckResult", "CheckStatus", "EnvironmentValidator", "ValidationReport"]
