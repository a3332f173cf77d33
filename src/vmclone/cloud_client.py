"""Azure cloud management facade.

AzureCloudClient is the only component that talks to Azure. Every read and
write the clone workflow needs is one method here, implemented with a
single az CLI invocation. Tests substitute an in-memory fake with the same
method surface.

All Azure operations delegate to the Azure CLI; authentication is whatever
`az login` established.
"""

import logging
from typing import Any

from vmclone.azure_cli_executor import AzureCLIError, run_az_command, run_az_json
from vmclone.errors import ErrorKind, ProviderFailureError
from vmclone.models import ResourceKind, SecurityRule

logger = logging.getLogger(__name__)


def format_tags(tags: dict[str, str]) -> list[str]:
    """Format a tag dict as az's space-separated key=value arguments."""
    return [f"{key}={value}" for key, value in tags.items()]


def _endpoint_args(
    rule: SecurityRule, side: str, prefixes: tuple[str, ...], asgs: tuple[str, ...]
) -> list[str]:
    """Source or destination arguments of az network nsg rule create.

    Application security groups take the place of prefixes. A rule with
    neither is refused, never widened to "*".

    Raises:
        ProviderFailureError: If the rule names no prefix and no ASG
    """
    if asgs:
        return [f"--{side}-asgs", *asgs]
    if prefixes:
        return [f"--{side}-address-prefixes", *prefixes]
    raise ProviderFailureError(
        f"Security rule '{rule.name}' has no {side} address prefix or application security group"
    )


class AzureCloudClient:
    """Read and write Azure resources through the az CLI.

    Example:
        >>> client = AzureCloudClient()
        >>> vm = client.get_vm("rg1", "web01")
        >>> vm["hardwareProfile"]["vmSize"]
        'Standard_B2s'
    """

    READ_TIMEOUT = 60

    def __init__(self, write_timeout: int = 600):
        """Initialize client.

        Args:
            write_timeout: Timeout in seconds for create/delete operations
        """
        self.write_timeout = write_timeout

    def _read(self, cmd: list[str]) -> Any:
        return run_az_json(cmd, timeout=self.READ_TIMEOUT)

    def _write(self, cmd: list[str]) -> Any:
        return run_az_json(cmd, timeout=self.write_timeout)

    def _read_optional(self, cmd: list[str]) -> Any:
        """Run a read, returning None instead of raising on NOT_FOUND."""
        try:
            return self._read(cmd)
        except AzureCLIError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                return None
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_account(self) -> dict[str, Any]:
        """Return the signed-in account (az account show)."""
        return self._read(["az", "account", "show"])

    def get_resource_group(self, name: str) -> dict[str, Any]:
        return self._read(["az", "group", "show", "--name", name])

    def list_resource_groups(self) -> list[dict[str, Any]]:
        return self._read(["az", "group", "list"]) or []

    def get_vm(self, resource_group: str, name: str) -> dict[str, Any]:
        return self._read(["az", "vm", "show", "--resource-group", resource_group, "--name", name])

    def find_vm(self, resource_group: str, name: str) -> dict[str, Any] | None:
        """Return the VM, or None when it does not exist."""
        return self._read_optional(
            ["az", "vm", "show", "--resource-group", resource_group, "--name", name]
        )

    def list_vms(self, resource_group: str | None = None) -> list[dict[str, Any]]:
        cmd = ["az", "vm", "list"]
        if resource_group:
            cmd += ["--resource-group", resource_group]
        return self._read(cmd) or []

    def get_disk(self, disk_id: str) -> dict[str, Any]:
        return self._read(["az", "disk", "show", "--ids", disk_id])

    def get_nic(self, nic_id: str) -> dict[str, Any]:
        return self._read(["az", "network", "nic", "show", "--ids", nic_id])

    def get_nsg(self, nsg_id: str) -> dict[str, Any]:
        return self._read(["az", "network", "nsg", "show", "--ids", nsg_id])

    def find_nsg(self, resource_group: str, name: str) -> dict[str, Any] | None:
        """Return the NSG with this name, or None when it does not exist."""
        return self._read_optional(
            ["az", "network", "nsg", "show", "--resource-group", resource_group, "--name", name]
        )

    def get_subnet(self, subnet_id: str) -> dict[str, Any]:
        return self._read(["az", "network", "vnet", "subnet", "show", "--ids", subnet_id])

    def list_storage_accounts(self, resource_group: str) -> list[dict[str, Any]]:
        return (
            self._read(["az", "storage", "account", "list", "--resource-group", resource_group])
            or []
        )

    def list_snapshots(self, resource_group: str | None = None) -> list[dict[str, Any]]:
        cmd = ["az", "snapshot", "list"]
        if resource_group:
            cmd += ["--resource-group", resource_group]
        return self._read(cmd) or []

    def list_vnets(self, resource_group: str | None = None) -> list[dict[str, Any]]:
        cmd = ["az", "network", "vnet", "list"]
        if resource_group:
            cmd += ["--resource-group", resource_group]
        return self._read(cmd) or []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_snapshot(
        self,
        resource_group: str,
        name: str,
        location: str,
        source_disk_id: str,
        sku: str,
        tags: dict[str, str],
    ) -> dict[str, Any]:
        """Create a full (copy) snapshot of a managed disk."""
        return self._write(
            [
                "az",
                "snapshot",
                "create",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--location",
                location,
                "--source",
                source_disk_id,
                "--sku",
                sku,
                "--incremental",
                "false",
                "--tags",
                *format_tags(tags),
            ]
        )

    def create_disk(
        self,
        resource_group: str,
        name: str,
        location: str,
        source_snapshot_id: str,
        sku: str,
        tags: dict[str, str],
    ) -> dict[str, Any]:
        """Create a managed disk whose content comes from a snapshot."""
        return self._write(
            [
                "az",
                "disk",
                "create",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--location",
                location,
                "--source",
                source_snapshot_id,
                "--sku",
                sku,
                "--tags",
                *format_tags(tags),
            ]
        )

    def create_nsg(
        self, resource_group: str, name: str, location: str, tags: dict[str, str]
    ) -> dict[str, Any]:
        """Create an empty NSG (Azure adds its default rules)."""
        result = self._write(
            [
                "az",
                "network",
                "nsg",
                "create",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--location",
                location,
                "--tags",
                *format_tags(tags),
            ]
        )
        # az wraps the created NSG in {"NewNSG": {...}}
        return (result or {}).get("NewNSG", result)

    def create_nsg_rule(self, resource_group: str, nsg_name: str, rule: SecurityRule) -> dict[str, Any]:
        cmd = [
            "az",
            "network",
            "nsg",
            "rule",
            "create",
            "--resource-group",
            resource_group,
            "--nsg-name",
            nsg_name,
            "--name",
            rule.name,
            "--priority",
            str(rule.priority),
            "--direction",
            rule.direction,
            "--access",
            rule.access,
            "--protocol",
            rule.protocol,
            *_endpoint_args(rule, "source", rule.source_address_prefixes, rule.source_asgs),
            "--source-port-ranges",
            *(rule.source_port_ranges or ("*",)),
            *_endpoint_args(
                rule, "destination", rule.destination_address_prefixes, rule.destination_asgs
            ),
            "--destination-port-ranges",
            *(rule.destination_port_ranges or ("*",)),
        ]
        if rule.description:
            cmd += ["--description", rule.description]
        return self._write(cmd)

    def create_nic(
        self,
        resource_group: str,
        name: str,
        location: str,
        subnet_id: str,
        nsg_id: str | None,
        tags: dict[str, str],
    ) -> dict[str, Any]:
        """Create a NIC on an existing subnet (which may live in another RG)."""
        cmd = [
            "az",
            "network",
            "nic",
            "create",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--location",
            location,
            "--subnet",
            subnet_id,
            "--tags",
            *format_tags(tags),
        ]
        if nsg_id:
            cmd += ["--network-security-group", nsg_id]
        result = self._write(cmd)
        return (result or {}).get("NewNIC", result)

    def create_storage_account(
        self,
        resource_group: str,
        name: str,
        location: str,
        sku: str,
        tags: dict[str, str],
    ) -> dict[str, Any]:
        return self._write(
            [
                "az",
                "storage",
                "account",
                "create",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--location",
                location,
                "--sku",
                sku,
                "--kind",
                "StorageV2",
                "--tags",
                *format_tags(tags),
            ]
        )

    def create_vm(self, args: list[str]) -> dict[str, Any]:
        """Create a VM from pre-assembled az vm create arguments."""
        return self._write(["az", "vm", "create", *args])

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    _DELETE_COMMANDS: dict[ResourceKind, list[str]] = {
        ResourceKind.VM: ["az", "vm", "delete", "--yes"],
        ResourceKind.NIC: ["az", "network", "nic", "delete"],
        ResourceKind.DISK: ["az", "disk", "delete", "--yes"],
        ResourceKind.SNAPSHOT: ["az", "snapshot", "delete"],
        ResourceKind.STORAGE_ACCOUNT: ["az", "storage", "account", "delete", "--yes"],
        ResourceKind.NSG: ["az", "network", "nsg", "delete"],
    }

    def delete_resource(self, kind: ResourceKind, resource_id: str) -> None:
        """Delete a resource by id.

        Raises:
            AzureCLIError: If deletion fails
        """
        cmd = [*self._DELETE_COMMANDS[kind], "--ids", resource_id]
        run_az_command(cmd, timeout=self.write_timeout)
        logger.debug("Deleted %s: %s", kind.value, resource_id)


__all__ = ["AzureCloudClient", "format_tags"]
