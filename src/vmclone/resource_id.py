"""Azure resource identifier parsing.

Philosophy:
- Validate the shape, never index blindly into path segments
- Fail with a descriptive error on anything unexpected
- Standard library only

Public API:
    ResourceId: Parsed generic resource identifier
    SubnetReference: Parsed subnet identifier (subscription, RG, VNet, subnet)
    parse_resource_id: Parse any ARM resource identifier
    build_resource_id: Compose an identifier from its parts
    parse_subnet_id: Parse and validate a subnet identifier
    ResourceIdError: Raised on malformed identifiers
"""

from dataclasses import dataclass

from vmclone.errors import CloneError

__all__ = [
    "ResourceId",
    "ResourceIdError",
    "SubnetReference",
    "build_resource_id",
    "parse_resource_id",
    "parse_subnet_id",
]


class ResourceIdError(CloneError):
    """Raised when a resource identifier has an unexpected shape."""

    pass


@dataclass(frozen=True)
class ResourceId:
    """Components of an ARM resource identifier.

    /subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}[/{child_type}/{child_name}...]
    """

    subscription_id: str
    resource_group: str
    provider: str
    types: tuple[str, ...]
    names: tuple[str, ...]

    @property
    def name(self) -> str:
        """Name of the innermost resource."""
        return self.names[-1]

    @property
    def resource_type(self) -> str:
        """Full type, e.g. Microsoft.Network/virtualNetworks/subnets."""
        return "/".join((self.provider, *self.types))


@dataclass(frozen=True)
class SubnetReference:
    """A subnet located by subscription, resource group, VNet and subnet name."""

    subscription_id: str
    resource_group: str
    vnet_name: str
    subnet_name: str
    resource_id: str

    def is_cross_resource_group(self, resource_group: str) -> bool:
        """Check whether the VNet lives outside the given resource group.

        Resource group names are case-insensitive in Azure.
        """
        return self.resource_group.lower() != resource_group.lower()


def parse_resource_id(resource_id: str) -> ResourceId:
    """Parse an ARM resource identifier.

    Args:
        resource_id: Identifier string

    Returns:
        ResourceId components

    Raises:
        ResourceIdError: If the identifier is not a well-formed resource id

    Example:
        >>> rid = parse_resource_id(
        ...     "/subscriptions/s1/resourceGroups/rg1/providers/Microsoft.Compute/disks/d1"
        ... )
        >>> rid.resource_type
        'Microsoft.Compute/disks'
    """
    if not resource_id or not resource_id.startswith("/"):
        raise ResourceIdError(f"Malformed resource id: {resource_id!r}")

    segments = resource_id.strip("/").split("/")
    if any(not segment for segment in segments):
        raise ResourceIdError(f"Malformed resource id (empty segment): {resource_id!r}")

    if len(segments) < 8:
        raise ResourceIdError(f"Malformed resource id (too short): {resource_id!r}")

    if segments[0].lower() != "subscriptions":
        raise ResourceIdError(f"Resource id must start with /subscriptions: {resource_id!r}")
    if segments[2].lower() != "resourcegroups":
        raise ResourceIdError(f"Resource id missing resourceGroups segment: {resource_id!r}")
    if segments[4].lower() != "providers":
        raise ResourceIdError(f"Resource id missing providers segment: {resource_id!r}")

    tail = segments[6:]
    if len(tail) % 2 != 0:
        raise ResourceIdError(f"Resource id has unpaired type/name segments: {resource_id!r}")

    return ResourceId(
        subscription_id=segments[1],
        resource_group=segments[3],
        provider=segments[5],
        types=tuple(tail[0::2]),
        names=tuple(tail[1::2]),
    )


def parse_subnet_id(subnet_id: str) -> SubnetReference:
    """Parse a subnet identifier into its location components.

    Args:
        subnet_id: /subscriptions/.../providers/Microsoft.Network/virtualNetworks/{vnet}/subnets/{subnet}

    Returns:
        SubnetReference

    Raises:
        ResourceIdError: If the identifier does not name a subnet
    """
    rid = parse_resource_id(subnet_id)

    if rid.provider.lower() != "microsoft.network":
        raise ResourceIdError(f"Not a Microsoft.Network resource: {subnet_id!r}")
    if [t.lower() for t in rid.types] != ["virtualnetworks", "subnets"]:
        raise ResourceIdError(f"Not a subnet resource id: {subnet_id!r}")

    return SubnetReference(
        subscription_id=rid.subscription_id,
        resource_group=rid.resource_group,
        vnet_name=rid.names[0],
        subnet_name=rid.names[1],
        resource_id=subnet_id,
    )


def build_resource_id(
    subscription_id: str, resource_group: str, resource_type: str, name: str
) -> str:
    """Compose an ARM identifier.

    Example:
        >>> build_resource_id("s1", "rg1", "Microsoft.Compute/disks", "d1")
        '/subscriptions/s1/resourceGroups/rg1/providers/Microsoft.Compute/disks/d1'
    """
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/{resource_type}/{name}"
    )
