"""Source VM resolution.

Resolves the VM to clone together with its managed OS disk and primary
network interface. Read-only: nothing here creates or modifies resources,
so resolving the same VM twice yields equal SourceVM values.
"""

import logging
from typing import Any, NoReturn

from vmclone.azure_cli_executor import AzureCLIError
from vmclone.errors import ErrorKind, NotFoundError
from vmclone.models import NetworkInterfaceInfo, OSDisk, OSKind, SourceVM

logger = logging.getLogger(__name__)


def _not_found_or_raise(e: AzureCLIError, message: str) -> NoReturn:
    if e.kind == ErrorKind.NOT_FOUND:
        raise NotFoundError(message) from e
    raise e


def select_primary_nic_id(vm: dict[str, Any]) -> str:
    """Pick the NIC to clone from a VM's network profile.

    The NIC flagged primary wins; with several NICs and none flagged, the
    first is used and a warning is logged.

    Raises:
        NotFoundError: If the VM has no network interfaces
    """
    nics = (vm.get("networkProfile") or {}).get("networkInterfaces") or []
    if not nics:
        raise NotFoundError(f"VM '{vm.get('name')}' has no network interface to clone")

    primary = [nic for nic in nics if nic.get("primary")]
    if primary:
        return primary[0]["id"]

    if len(nics) > 1:
        logger.warning(
            f"VM '{vm.get('name')}' has {len(nics)} NICs and none is marked primary; "
            f"cloning the first one only"
        )
    return nics[0]["id"]


def resolve_source(client, resource_group: str, vm_name: str) -> SourceVM:
    """Resolve a source VM with its OS disk and primary NIC.

    Args:
        client: Cloud client
        resource_group: Resource group of the source VM
        vm_name: Source VM name

    Returns:
        SourceVM

    Raises:
        NotFoundError: If the resource group, VM, OS disk or NIC is missing
        AzureCLIError: For any other lookup failure
    """
    try:
        client.get_resource_group(resource_group)
    except AzureCLIError as e:
        _not_found_or_raise(e, f"Resource group '{resource_group}' not found")

    vm = client.find_vm(resource_group, vm_name)
    if vm is None:
        raise NotFoundError(f"VM '{vm_name}' not found in resource group '{resource_group}'")

    os_disk_profile = (vm.get("storageProfile") or {}).get("osDisk") or {}
    disk_id = (os_disk_profile.get("managedDisk") or {}).get("id")
    if not disk_id:
        raise NotFoundError(f"VM '{vm_name}' has no managed OS disk")

    try:
        disk = OSDisk.from_az(client.get_disk(disk_id))
    except AzureCLIError as e:
        _not_found_or_raise(e, f"OS disk '{disk_id}' of VM '{vm_name}' not found")

    nic_id = select_primary_nic_id(vm)
    try:
        nic = NetworkInterfaceInfo.from_az(client.get_nic(nic_id))
    except AzureCLIError as e:
        _not_found_or_raise(e, f"Network interface '{nic_id}' of VM '{vm_name}' not found")

    if not nic.subnet_id:
        raise NotFoundError(f"Network interface '{nic.name}' is not bound to a subnet")

    source = SourceVM(
        resource_group=resource_group,
        name=vm["name"],
        id=vm["id"],
        size=(vm.get("hardwareProfile") or {}).get("vmSize", ""),
        os_kind=OSKind.from_az(os_disk_profile.get("osType")),
        location=vm["location"],
        os_disk=disk,
        nic=nic,
        tags=dict(vm.get("tags") or {}),
    )
    logger.info(
        f"Resolved source VM {source.name} ({source.os_kind.value}, {source.size}) "
        f"in {source.location}"
    )
    return source


__all__ = ["resolve_source", "select_primary_nic_id"]
