"""NSG policy for cloned VMs.

This module decides which Network Security Group the clone's NIC gets:

- reuse:    attach the source's NSG (NIC-level first, then subnet-level)
- hardened: create a new NSG allowing the management port from the
            VirtualNetwork only and denying management ports from Internet
- copy:     create a new NSG replicating every source rule

reuse and copy fall back to hardened when the source has no NSG. A new NSG
always gets the derived name {vm}-nsg; if one by that name already exists
it is reused instead of duplicated.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from vmclone.errors import ProviderFailureError
from vmclone.models import NSGInfo, OSKind, SecurityRule, SourceVM

logger = logging.getLogger(__name__)

HARDENED_ALLOW_PRIORITY = 100
HARDENED_DENY_PRIORITY = 4000
MANAGEMENT_PORTS = ("22", "3389", "5985", "5986")


class NSGMode(str, Enum):
    """NSG policy choices."""

    REUSE = "reuse"
    HARDENED = "hardened"
    COPY = "copy"

    @property
    def description(self) -> str:
        return {
            NSGMode.REUSE: "Reuse the source VM's NSG",
            NSGMode.HARDENED: "Create a new hardened NSG (management port from VNet only)",
            NSGMode.COPY: "Create a new NSG copying the source VM's rules",
        }[self]


class NSGAssociation(str, Enum):
    """Where the source NSG is attached."""

    NIC = "nic"
    SUBNET = "subnet"


@dataclass(frozen=True)
class SourceNSG:
    """NSG protecting the source VM and where it is attached."""

    nsg: NSGInfo
    association: NSGAssociation


@dataclass(frozen=True)
class NSGResolution:
    """Result of the NSG stage.

    Attributes:
        mode: Policy actually applied (after any fallback)
        nsg_id: NSG resource id
        nsg_name: NSG name
        attach_to_nic: Whether the new NIC references the NSG
        created: NSG was created by this run
        preexisting: Derived name already existed and that NSG was reused
    """

    mode: NSGMode
    nsg_id: str
    nsg_name: str
    attach_to_nic: bool
    created: bool = False
    preexisting: bool = False


def hardened_rules(os_kind: OSKind) -> list[SecurityRule]:
    """The two-rule hardened policy for an OS family.

    An allow rule for the remote-management port restricted to
    VirtualNetwork traffic, and a deny rule for management ports from
    Internet.
    """
    port = str(os_kind.management_port)
    protocol_name = os_kind.management_protocol_name
    return [
        SecurityRule(
            name=f"Allow-{protocol_name}-VNet",
            priority=HARDENED_ALLOW_PRIORITY,
            direction="Inbound",
            access="Allow",
            protocol="Tcp",
            source_address_prefixes=("VirtualNetwork",),
            source_port_ranges=("*",),
            destination_address_prefixes=("*",),
            destination_port_ranges=(port,),
            description=f"Allow {protocol_name} from the virtual network only",
        ),
        SecurityRule(
            name="Deny-Mgmt-Internet",
            priority=HARDENED_DENY_PRIORITY,
            direction="Inbound",
            access="Deny",
            protocol="*",
            source_address_prefixes=("Internet",),
            source_port_ranges=("*",),
            destination_address_prefixes=("*",),
            destination_port_ranges=MANAGEMENT_PORTS,
            description="Deny management ports from the Internet",
        ),
    ]


class NSGManager:
    """Resolve or create the NSG for a cloned VM."""

    def __init__(self, client, handler):
        """Initialize NSG manager.

        Args:
            client: Cloud client
            handler: Interaction handler used for fallback warnings
        """
        self.client = client
        self.handler = handler

    def find_source_nsg(self, source: SourceVM, subnet: dict[str, Any]) -> SourceNSG | None:
        """Locate the NSG protecting the source NIC.

        Args:
            source: Source VM
            subnet: Subnet JSON of the source NIC's subnet

        Returns:
            SourceNSG, or None when neither NIC nor subnet has one
        """
        if source.nic.nsg_id:
            return SourceNSG(
                nsg=NSGInfo.from_az(self.client.get_nsg(source.nic.nsg_id)),
                association=NSGAssociation.NIC,
            )

        subnet_nsg_id = (subnet.get("networkSecurityGroup") or {}).get("id")
        if subnet_nsg_id:
            return SourceNSG(
                nsg=NSGInfo.from_az(self.client.get_nsg(subnet_nsg_id)),
                association=NSGAssociation.SUBNET,
            )

        return None

    def resolve(
        self,
        mode: NSGMode,
        source: SourceVM,
        nsg_name: str,
        subnet: dict[str, Any],
        tags: dict[str, str],
    ) -> NSGResolution:
        """Apply an NSG policy.

        Args:
            mode: Requested policy
            source: Source VM
            nsg_name: Name for a new NSG
            subnet: Subnet JSON of the source NIC's subnet
            tags: Tags for a newly created NSG

        Returns:
            NSGResolution

        Raises:
            AzureCLIError: If reading or creating the NSG fails
            ProviderFailureError: If a source rule cannot be copied faithfully
        """
        source_nsg = None
        if mode in (NSGMode.REUSE, NSGMode.COPY):
            source_nsg = self.find_source_nsg(source, subnet)
            if source_nsg is None:
                self.handler.show_warning(
                    f"Source VM '{source.name}' has no NSG; "
                    f"creating a hardened NSG instead of '{mode.value}'"
                )
                mode = NSGMode.HARDENED

        if mode is NSGMode.REUSE:
            nsg = source_nsg.nsg
            attach = source_nsg.association is NSGAssociation.NIC
            if not attach:
                logger.info(f"NSG {nsg.name} is attached to the subnet; the new NIC inherits it")
            return NSGResolution(
                mode=mode, nsg_id=nsg.id, nsg_name=nsg.name, attach_to_nic=attach
            )

        if mode is NSGMode.COPY:
            rules = list(source_nsg.nsg.rules)
            for rule in rules:
                unbound = rule.unbound_sides()
                if unbound:
                    raise ProviderFailureError(
                        f"Cannot copy rule '{rule.name}' of NSG {source_nsg.nsg.name}: "
                        f"no {' or '.join(unbound)} address prefix or application security group"
                    )
            logger.info(f"Copying {len(rules)} rule(s) from NSG {source_nsg.nsg.name}")
        else:
            rules = hardened_rules(source.os_kind)

        return self._create_or_reuse(mode, nsg_name, source, rules, tags)

    def _create_or_reuse(
        self,
        mode: NSGMode,
        nsg_name: str,
        source: SourceVM,
        rules: list[SecurityRule],
        tags: dict[str, str],
    ) -> NSGResolution:
        resource_group = source.resource_group

        existing = self.client.find_nsg(resource_group, nsg_name)
        if existing is not None:
            self.handler.show_warning(
                f"NSG '{nsg_name}' already exists in '{resource_group}' and will be reused "
                "as-is; review its rules, it may be left over from an earlier run"
            )
            return NSGResolution(
                mode=mode,
                nsg_id=existing["id"],
                nsg_name=nsg_name,
                attach_to_nic=True,
                preexisting=True,
            )

        created = self.client.create_nsg(resource_group, nsg_name, source.location, tags)
        for rule in rules:
            self.client.create_nsg_rule(resource_group, nsg_name, rule)
            logger.debug(f"Added rule {rule.name} ({rule.access} {rule.direction} p{rule.priority})")

        logger.info(f"Created NSG {nsg_name} with {len(rules)} rule(s)")
        return NSGResolution(
            mode=mode,
            nsg_id=created["id"],
            nsg_name=nsg_name,
            attach_to_nic=True,
            created=True,
        )


__all__ = [
    "HARDENED_ALLOW_PRIORITY",
    "HARDENED_DENY_PRIORITY",
    "MANAGEMENT_PORTS",
    "NSGAssociation",
    "NSGManager",
    "NSGMode",
    "NSGResolution",
    "SourceNSG",
    "hardened_rules",
]
