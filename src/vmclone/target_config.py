"""Target VM configuration.

Collects the new VM's name and size. The name must follow Azure VM naming
rules and must not collide with an existing VM in the source resource
group. The size defaults to the source VM's size and is not checked for
regional availability; an unavailable size fails at VM creation.
"""

import logging
import re
from dataclasses import dataclass

from vmclone.errors import ConflictError
from vmclone.models import SourceVM

logger = logging.getLogger(__name__)

VM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]{0,62}[a-zA-Z0-9_]$|^[a-zA-Z0-9]$")


class InvalidNameError(ConflictError):
    """Raised when a VM name violates Azure naming rules.

    A precondition failure like a name collision: nothing has been created yet.
    """

    pass


@dataclass(frozen=True)
class TargetConfig:
    """Name and size of the VM to create, plus derived resource names."""

    name: str
    size: str
    resource_group: str

    @property
    def disk_name(self) -> str:
        return f"{self.name}-osdisk"

    @property
    def nic_name(self) -> str:
        return f"{self.name}-nic"

    @property
    def nsg_name(self) -> str:
        return f"{self.name}-nsg"


def validate_vm_name(name: str) -> str:
    """Validate a VM name against Azure naming rules.

    Raises:
        InvalidNameError: If name is empty or malformed
    """
    name = (name or "").strip()
    if not name or not VM_NAME_PATTERN.match(name):
        raise InvalidNameError(
            f"Invalid VM name: {name!r}. Use 1-64 letters, digits, '-', '_' or '.', "
            "starting with a letter or digit and not ending with '-' or '.'"
        )
    return name


def configure_target(
    client,
    handler,
    source: SourceVM,
    name: str | None = None,
    size: str | None = None,
) -> TargetConfig:
    """Collect and validate the target VM configuration.

    Values passed in skip their prompt.

    Args:
        client: Cloud client
        handler: Interaction handler for prompts
        source: Resolved source VM
        name: New VM name (prompted when None)
        size: VM size (prompted with the source size as default when None)

    Returns:
        TargetConfig in the source resource group

    Raises:
        InvalidNameError: If the name is malformed
        ConflictError: If a VM with the name already exists
    """
    if name is None:
        name = handler.prompt_text("New VM name")
    name = validate_vm_name(name)

    if name.lower() == source.name.lower():
        raise ConflictError(f"New VM name '{name}' is the source VM's own name")

    if client.find_vm(source.resource_group, name) is not None:
        raise ConflictError(
            f"A VM named '{name}' already exists in resource group '{source.resource_group}'"
        )

    if size is None:
        size = handler.prompt_text("VM size", default=source.size)
    size = size.strip() or source.size

    target = TargetConfig(name=name, size=size, resource_group=source.resource_group)
    logger.info(f"Target VM {target.name} ({target.size}) in {target.resource_group}")
    return target


__all__ = ["InvalidNameError", "TargetConfig", "configure_target", "validate_vm_name"]
