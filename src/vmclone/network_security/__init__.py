"""Network security for cloned VMs.

Public API:
    NSGManager: Resolve or create the NSG attached to a clone's NIC
    NSGMode: reuse / hardened / copy policy
    NSGResolution: Outcome of the NSG stage
    hardened_rules: The default two-rule policy
"""

from vmclone.network_security.nsg_manager import (
    NSGManager,
    NSGMode,
    NSGResolution,
    hardened_rules,
)

__all__ = ["NSGManager", "NSGMode", "NSGResolution", "hardened_rules"]
