"""Tests for source VM resolution."""

import pytest

from tests.fixtures.azure_responses import disk_id, nic_id, vm_json
from tests.mocks.azure_mock import create_clone_environment
from vmclone.azure_cli_executor import AzureCLIError
from vmclone.errors import ErrorKind, NotFoundError
from vmclone.models import OSKind
from vmclone.source_resolver import resolve_source, select_primary_nic_id


class TestSelectPrimaryNic:
    """Tests for NIC selection."""

    def test_single_nic(self):
        vm = vm_json("web01", nic_ids=[nic_id("rg1", "a")])
        assert select_primary_nic_id(vm) == nic_id("rg1", "a")

    def test_flagged_primary_wins(self):
        ids = [nic_id("rg1", "a"), nic_id("rg1", "b")]
        vm = vm_json("web01", nic_ids=ids, primary_nic=ids[1])

        assert select_primary_nic_id(vm) == ids[1]

    def test_multiple_unflagged_uses_first_with_warning(self, caplog):
        ids = [nic_id("rg1", "a"), nic_id("rg1", "b")]
        vm = vm_json("web01", nic_ids=ids)

        with caplog.at_level("WARNING"):
            assert select_primary_nic_id(vm) == ids[0]

        assert "2 NICs" in caplog.text

    def test_zero_nics(self):
        vm = vm_json("web01", nic_ids=[])

        with pytest.raises(NotFoundError, match="no network interface"):
            select_primary_nic_id(vm)


class TestResolveSource:
    """Tests for resolve_source."""

    def test_resolves_linux_vm(self):
        client = create_clone_environment()

        source = resolve_source(client, "rg1", "web01")

        assert source.name == "web01"
        assert source.resource_group == "rg1"
        assert source.os_kind is OSKind.LINUX
        assert source.size == "Standard_B2s"
        assert source.location == "eastus"
        assert source.os_disk.name == "osdisk-web01"
        assert source.os_disk.sku == "Standard_LRS"
        assert source.nic.name == "web01-nic"
        assert source.tags == {"env": "prod"}

    def test_resolves_windows_vm(self):
        client = create_clone_environment(vm_name="win01", os_type="Windows")

        assert resolve_source(client, "rg1", "win01").os_kind is OSKind.WINDOWS

    def test_idempotent(self):
        client = create_clone_environment()

        assert resolve_source(client, "rg1", "web01") == resolve_source(client, "rg1", "web01")

    def test_read_only(self):
        client = create_clone_environment()

        resolve_source(client, "rg1", "web01")

        assert client.created == []
        assert client.deleted == []

    def test_missing_resource_group(self):
        client = create_clone_environment()

        with pytest.raises(NotFoundError, match="Resource group 'nope' not found"):
            resolve_source(client, "nope", "web01")

    def test_missing_vm(self):
        client = create_clone_environment()

        with pytest.raises(NotFoundError, match="VM 'ghost' not found"):
            resolve_source(client, "rg1", "ghost")

    def test_missing_disk(self):
        client = create_clone_environment()
        del client.resources[disk_id("rg1", "osdisk-web01").lower()]

        with pytest.raises(NotFoundError, match="OS disk"):
            resolve_source(client, "rg1", "web01")

    def test_unmanaged_disk(self):
        client = create_clone_environment()
        client.vms[("rg1", "web01")]["storageProfile"]["osDisk"]["managedDisk"] = None

        with pytest.raises(NotFoundError, match="no managed OS disk"):
            resolve_source(client, "rg1", "web01")

    def test_missing_nic(self):
        client = create_clone_environment()
        del client.resources[nic_id("rg1", "web01-nic").lower()]

        with pytest.raises(NotFoundError, match="Network interface"):
            resolve_source(client, "rg1", "web01")

    def test_other_errors_propagate(self):
        client = create_clone_environment()
        client.fail_on("get_disk", AzureCLIError("throttled", kind=ErrorKind.PROVIDER_FAILURE))

        with pytest.raises(AzureCLIError, match="throttled"):
            resolve_source(client, "rg1", "web01")
