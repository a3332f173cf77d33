"""Data models for clone sources and created resources.

All models are built from az CLI JSON output and are transient: the cloud
is the system of record. Source-side models are frozen so no code path
can alter what was read about the source VM.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OSKind(str, Enum):
    """Operating system family of a VM."""

    WINDOWS = "Windows"
    LINUX = "Linux"

    @classmethod
    def from_az(cls, value: str | None) -> "OSKind":
        """Parse az's osType; anything not Windows is treated as Linux."""
        if value and value.lower() == "windows":
            return cls.WINDOWS
        return cls.LINUX

    @property
    def management_port(self) -> int:
        """Remote-management port: RDP for Windows, SSH otherwise."""
        return 3389 if self is OSKind.WINDOWS else 22

    @property
    def management_protocol_name(self) -> str:
        return "RDP" if self is OSKind.WINDOWS else "SSH"


class ResourceKind(str, Enum):
    """Kinds of resources the pipeline creates."""

    SNAPSHOT = "snapshot"
    DISK = "disk"
    NSG = "nsg"
    NIC = "nic"
    STORAGE_ACCOUNT = "storage-account"
    VM = "vm"


def _as_tuple(single: str | None, plural: list[str] | None) -> tuple[str, ...]:
    """Merge az's singular/plural prefix and port fields."""
    if plural:
        return tuple(plural)
    if single:
        return (single,)
    return ()


def _asg_ids(groups: list[dict[str, Any]] | None) -> tuple[str, ...]:
    """Application security group ids referenced by a rule."""
    return tuple(g["id"] for g in groups or [])


@dataclass(frozen=True)
class SecurityRule:
    """One NSG security rule."""

    name: str
    priority: int
    direction: str
    access: str
    protocol: str
    source_address_prefixes: tuple[str, ...]
    source_port_ranges: tuple[str, ...]
    destination_address_prefixes: tuple[str, ...]
    destination_port_ranges: tuple[str, ...]
    description: str | None = None
    source_asgs: tuple[str, ...] = ()
    destination_asgs: tuple[str, ...] = ()

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "SecurityRule":
        return cls(
            name=data["name"],
            priority=int(data["priority"]),
            direction=data["direction"],
            access=data["access"],
            protocol=data["protocol"],
            source_address_prefixes=_as_tuple(
                data.get("sourceAddressPrefix"), data.get("sourceAddressPrefixes")
            ),
            source_port_ranges=_as_tuple(
                data.get("sourcePortRange"), data.get("sourcePortRanges")
            ),
            destination_address_prefixes=_as_tuple(
                data.get("destinationAddressPrefix"), data.get("destinationAddressPrefixes")
            ),
            destination_port_ranges=_as_tuple(
                data.get("destinationPortRange"), data.get("destinationPortRanges")
            ),
            description=data.get("description"),
            source_asgs=_asg_ids(data.get("sourceApplicationSecurityGroups")),
            destination_asgs=_asg_ids(data.get("destinationApplicationSecurityGroups")),
        )

    def unbound_sides(self) -> list[str]:
        """Sides ("source", "destination") with neither a prefix nor an ASG."""
        sides = []
        if not self.source_address_prefixes and not self.source_asgs:
            sides.append("source")
        if not self.destination_address_prefixes and not self.destination_asgs:
            sides.append("destination")
        return sides


@dataclass(frozen=True)
class NSGInfo:
    """Network security group with its custom rules."""

    id: str
    name: str
    resource_group: str
    location: str | None = None
    rules: tuple[SecurityRule, ...] = ()

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "NSGInfo":
        return cls(
            id=data["id"],
            name=data["name"],
            resource_group=data.get("resourceGroup", ""),
            location=data.get("location"),
            rules=tuple(SecurityRule.from_az(r) for r in data.get("securityRules") or []),
        )


@dataclass(frozen=True)
class OSDisk:
    """Managed OS disk of the source VM."""

    id: str
    name: str
    size_gb: int | None
    sku: str
    disk_state: str | None = None

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "OSDisk":
        return cls(
            id=data["id"],
            name=data["name"],
            size_gb=data.get("diskSizeGb"),
            sku=(data.get("sku") or {}).get("name", "Standard_LRS"),
            disk_state=data.get("diskState"),
        )


@dataclass(frozen=True)
class NetworkInterfaceInfo:
    """Primary NIC of the source VM."""

    id: str
    name: str
    subnet_id: str
    nsg_id: str | None = None

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "NetworkInterfaceInfo":
        ip_configs = data.get("ipConfigurations") or []
        primary = next((c for c in ip_configs if c.get("primary")), None)
        config = primary or (ip_configs[0] if ip_configs else {})
        subnet_id = (config.get("subnet") or {}).get("id", "")
        nsg = data.get("networkSecurityGroup") or {}
        return cls(
            id=data["id"],
            name=data["name"],
            subnet_id=subnet_id,
            nsg_id=nsg.get("id"),
        )


@dataclass(frozen=True)
class SourceVM:
    """The VM being cloned, with its OS disk and primary NIC resolved."""

    resource_group: str
    name: str
    id: str
    size: str
    os_kind: OSKind
    location: str
    os_disk: OSDisk
    nic: NetworkInterfaceInfo
    tags: dict[str, str] = field(default_factory=dict, hash=False, compare=True)


@dataclass(frozen=True)
class StorageAccountInfo:
    """Storage account used for boot diagnostics."""

    id: str
    name: str
    blob_endpoint: str | None = None

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "StorageAccountInfo":
        endpoints = data.get("primaryEndpoints") or {}
        return cls(id=data["id"], name=data["name"], blob_endpoint=endpoints.get("blob"))


@dataclass(frozen=True)
class CreatedResource:
    """One entry of the created-resources ledger."""

    kind: ResourceKind
    resource_id: str
    name: str


__all__ = [
    "CreatedResource",
    "NSGInfo",
    "NetworkInterfaceInfo",
    "OSDisk",
    "OSKind",
    "ResourceKind",
    "SecurityRule",
    "SourceVM",
    "StorageAccountInfo",
]
