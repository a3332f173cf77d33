"""Tests for environment validation."""

from unittest.mock import patch

import pytest

from tests.mocks.azure_mock import create_clone_environment
from vmclone.azure_cli_executor import AzureCLIError
from vmclone.errors import ErrorKind
from vmclone.modules.prerequisites import CheckStatus, EnvironmentValidator


def _which_found(name):
    return f"/usr/bin/{name}"


def _which_missing(name):
    return None


@pytest.fixture(autouse=True)
def az_version():
    with patch("vmclone.modules.prerequisites.run_az_json") as mock_json:
        mock_json.return_value = {"azure-cli": "2.67.0", "extensions": {}}
        yield mock_json


def _statuses(report):
    return {check.name: check.status for check in report.checks}


class TestEnvironmentValidator:
    """Tests for EnvironmentValidator.run_all."""

    def test_all_pass(self):
        client = create_clone_environment()

        report = EnvironmentValidator(client, which=_which_found).run_all()

        assert report.passed
        statuses = _statuses(report)
        assert statuses["Azure CLI"] is CheckStatus.PASS
        assert statuses["Azure CLI version"] is CheckStatus.PASS
        assert statuses["Azure session"] is CheckStatus.PASS
        assert statuses["Resource groups"] is CheckStatus.PASS
        assert statuses["Virtual machines"] is CheckStatus.PASS
        assert statuses["Virtual networks"] is CheckStatus.PASS
        # The sample environment has no snapshots
        assert statuses["Snapshots"] is CheckStatus.WARN

    def test_version_detail(self):
        report = EnvironmentValidator(create_clone_environment(), which=_which_found).run_all()

        assert report.checks[1].detail == "azure-cli 2.67.0"

    def test_missing_az_skips_the_rest(self):
        report = EnvironmentValidator(create_clone_environment(), which=_which_missing).run_all()

        assert not report.passed
        assert [c.name for c in report.checks] == ["Azure CLI"]
        assert "InstallAzureCLI" in report.checks[0].detail

    def test_version_failure_is_warning(self, az_version):
        az_version.side_effect = AzureCLIError("boom")

        report = EnvironmentValidator(create_clone_environment(), which=_which_found).run_all()

        assert _statuses(report)["Azure CLI version"] is CheckStatus.WARN
        assert report.passed

    def test_no_session_fails_and_skips_reads(self):
        client = create_clone_environment()
        client.logged_in = False

        report = EnvironmentValidator(client, which=_which_found).run_all()

        assert not report.passed
        assert report.checks[-1].name == "Azure session"
        assert "az login" in report.checks[-1].detail

    def test_unreadable_vms_fail(self):
        client = create_clone_environment()
        client.fail_on("list_vms", AzureCLIError("denied", kind=ErrorKind.PERMISSION_DENIED))

        report = EnvironmentValidator(client, which=_which_found).run_all()

        assert _statuses(report)["Virtual machines"] is CheckStatus.FAIL
        assert not report.passed
        assert report.count(CheckStatus.FAIL) == 1

    def test_unreadable_snapshots_only_warn(self):
        client = create_clone_environment()
        client.fail_on("list_snapshots")

        report = EnvironmentValidator(client, which=_which_found).run_all()

        assert _statuses(report)["Snapshots"] is CheckStatus.WARN
        assert report.passed

    def test_resource_group_scope(self):
        client = create_clone_environment()

        report = EnvironmentValidator(client, which=_which_found).run_all("rg1")

        assert _statuses(report)["Resource group"] is CheckStatus.PASS
        assert ("list_vms", ("rg1",)) in client.calls

    def test_missing_resource_group_fails(self):
        report = EnvironmentValidator(create_clone_environment(), which=_which_found).run_all(
            "nope"
        )

        assert _statuses(report)["Resource group"] is CheckStatus.FAIL
        assert not report.passed

    def test_read_only(self):
        client = create_clone_environment()

        EnvironmentValidator(client, which=_which_found).run_all()

        assert client.created == []
        assert client.deleted == []

    def test_empty_subscription_warns(self):
        client = create_clone_environment()
        client.vms.clear()

        report = EnvironmentValidator(client, which=_which_found).run_all()

        assert _statuses(report)["Virtual machines"] is CheckStatus.WARN
        assert report.passed
