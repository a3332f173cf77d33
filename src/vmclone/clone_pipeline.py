"""Clone provisioning pipeline.

The pipeline is a forward-only state machine:

    INIT -> SNAPSHOT_CREATED -> DISK_CREATED -> NETWORK_RESOLVED -> NSG_RESOLVED
         -> NIC_CREATED -> DIAG_STORAGE_RESOLVED -> VM_CONFIGURED -> VM_CREATED

Each stage is a method taking the PipelineContext and returning a
StageResult. The orchestrator (ClonePipeline.run) inspects every result;
the first failure moves the context to FAILED and rolls back everything in
the ledger. Stages never let provider errors escape.

Example:
    >>> pipeline = ClonePipeline(client, handler, progress)
    >>> ctx = PipelineContext(source=source, target=target, options=CloneOptions())
    >>> outcome = pipeline.run(ctx)
    >>> outcome.succeeded
    True
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

import click

from vmclone.azure_cli_executor import AzureCLIError
from vmclone.cloud_client import format_tags
from vmclone.diagnostics_storage import DiagnosticsStorage, resolve_diagnostics_storage
from vmclone.errors import (
    CloneError,
    ErrorKind,
    NotFoundError,
    PartialFailureError,
    PermissionDeniedError,
    ProviderFailureError,
)
from vmclone.models import OSKind, ResourceKind, SourceVM
from vmclone.network_security.nsg_manager import NSGManager, NSGMode, NSGResolution
from vmclone.resource_id import (
    SubnetReference,
    build_resource_id,
    parse_resource_id,
    parse_subnet_id,
)
from vmclone.rollback import ResourceLedger, RollbackReport, rollback
from vmclone.target_config import TargetConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_SKU = "Standard_LRS"
BASELINE_DISK_SKU = "Standard_LRS"
PREMIUM_DISK_SKU = "Premium_LRS"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class PipelineState(str, Enum):
    """States of the provisioning pipeline."""

    INIT = "init"
    SNAPSHOT_CREATED = "snapshot_created"
    DISK_CREATED = "disk_created"
    NETWORK_RESOLVED = "network_resolved"
    NSG_RESOLVED = "nsg_resolved"
    NIC_CREATED = "nic_created"
    DIAG_STORAGE_RESOLVED = "diag_storage_resolved"
    VM_CONFIGURED = "vm_configured"
    VM_CREATED = "vm_created"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Success value or classified error of one stage."""

    value: T | None = None
    error: CloneError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: CloneError) -> "StageResult[T]":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None


@dataclass
class CloneOptions:
    """Operator choices that shape the pipeline."""

    nsg_mode: NSGMode = NSGMode.HARDENED
    offer_premium_upgrade: bool = True
    diagnostics_prefix: str = "vmclonediag"
    creator: str = "unknown"


@dataclass(frozen=True)
class VMDefinition:
    """Everything needed to create the clone VM."""

    name: str
    resource_group: str
    location: str
    size: str
    nic_id: str
    os_disk_id: str
    os_kind: OSKind
    boot_diagnostics_storage: str
    tags: dict[str, str] = field(default_factory=dict, hash=False)

    def to_az_args(self) -> list[str]:
        """Arguments for az vm create, attaching the existing OS disk."""
        return [
            "--resource-group",
            self.resource_group,
            "--name",
            self.name,
            "--location",
            self.location,
            "--size",
            self.size,
            "--nics",
            self.nic_id,
            "--attach-os-disk",
            self.os_disk_id,
            "--os-type",
            self.os_kind.value.lower(),
            "--boot-diagnostics-storage",
            self.boot_diagnostics_storage,
            "--tags",
            *format_tags(self.tags),
        ]


@dataclass
class PipelineContext:
    """State threaded through every stage of one clone run."""

    source: SourceVM
    target: TargetConfig
    options: CloneOptions
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ledger: ResourceLedger = field(default_factory=ResourceLedger)
    state: PipelineState = PipelineState.INIT

    snapshot_name: str | None = None
    snapshot_id: str | None = None
    disk_id: str | None = None
    disk_sku: str | None = None
    subnet: SubnetReference | None = None
    subnet_data: dict[str, Any] | None = None
    cross_resource_group: bool = False
    nsg: NSGResolution | None = None
    nic_id: str | None = None
    diagnostics: DiagnosticsStorage | None = None
    vm_definition: VMDefinition | None = None
    vm: dict[str, Any] | None = None
    snapshot_deleted: bool = False

    failed_stage: str | None = None
    error: CloneError | None = None

    @property
    def timestamp(self) -> str:
        return self.started_at.strftime(TIMESTAMP_FORMAT)

    def base_tags(self) -> dict[str, str]:
        """Provenance tags applied to every created resource."""
        return {
            "SourceVM": self.source.name,
            "CreatedBy": self.options.creator,
            "CreatedOn": self.started_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

    def provenance_tags(self) -> dict[str, str]:
        """Base tags plus the snapshot the clone was built from."""
        tags = self.base_tags()
        if self.snapshot_name:
            tags["SourceSnapshot"] = self.snapshot_name
        return tags


def snapshot_name_for(disk_name: str, when: datetime) -> str:
    """Derive the snapshot name: {disk}-snapshot-{YYYYmmdd-HHMMSS}."""
    return f"{disk_name}-snapshot-{when.strftime(TIMESTAMP_FORMAT)}"


@dataclass
class CloneOutcome:
    """Result of a pipeline run."""

    context: PipelineContext
    error: CloneError | None = None
    rollback: RollbackReport | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ClonePipeline:
    """Run the provisioning stages and roll back on failure."""

    def __init__(self, client, handler, progress, nsg_manager: NSGManager | None = None):
        """Initialize pipeline.

        Args:
            client: Cloud client
            handler: Interaction handler for mid-pipeline decisions
            progress: ProgressDisplay for operator output
            nsg_manager: NSG policy implementation (built from client if None)
        """
        self.client = client
        self.handler = handler
        self.progress = progress
        self.nsg_manager = nsg_manager or NSGManager(client, handler)

    def stages(self) -> list[tuple[str, str, PipelineState, Callable[[PipelineContext], StageResult]]]:
        """Ordered (name, label, state reached, method) tuples."""
        return [
            ("snapshot", "Creating OS disk snapshot", PipelineState.SNAPSHOT_CREATED, self.create_snapshot),
            ("disk", "Creating managed disk", PipelineState.DISK_CREATED, self.create_disk),
            ("network", "Resolving network", PipelineState.NETWORK_RESOLVED, self.resolve_network),
            ("nsg", "Resolving network security group", PipelineState.NSG_RESOLVED, self.resolve_nsg),
            ("nic", "Creating network interface", PipelineState.NIC_CREATED, self.create_nic),
            (
                "diagnostics",
                "Resolving boot diagnostics storage",
                PipelineState.DIAG_STORAGE_RESOLVED,
                self.resolve_diagnostics,
            ),
            ("vm-config", "Assembling VM definition", PipelineState.VM_CONFIGURED, self.assemble_vm),
            ("vm", "Creating virtual machine", PipelineState.VM_CREATED, self.create_vm),
        ]

    def run(self, ctx: PipelineContext) -> CloneOutcome:
        """Run every stage in order, rolling back on the first failure."""
        for name, label, reached, stage in self.stages():
            self.progress.start_operation(label)
            result = stage(ctx)

            if not result.succeeded:
                self.progress.complete(False, f"{label} failed: {result.error}")
                return self._fail(ctx, name, result.error)

            ctx.state = reached
            self.progress.complete(True, result.value or f"{label} done")

        logger.info(f"Clone {ctx.target.name} created from {ctx.source.name}")
        return CloneOutcome(context=ctx)

    def _fail(self, ctx: PipelineContext, stage: str, error: CloneError) -> CloneOutcome:
        ctx.state = PipelineState.FAILED
        ctx.failed_stage = stage
        ctx.error = error
        logger.error(f"Stage '{stage}' failed ({error.kind.value}): {error}")

        if not len(ctx.ledger):
            return CloneOutcome(context=ctx, error=error)

        report = rollback(self.client, ctx.ledger, self.progress)
        return CloneOutcome(
            context=ctx,
            error=PartialFailureError(stage, error, report),
            rollback=report,
        )

    @staticmethod
    def _guard(action: Callable[[], str]) -> StageResult[str]:
        """Run stage work, converting errors into a failed StageResult."""
        try:
            return StageResult.ok(action())
        except CloneError as e:
            return StageResult.fail(e)
        except (KeyError, TypeError, ValueError) as e:
            return StageResult.fail(ProviderFailureError(f"Unexpected response from Azure: {e!r}"))
        except (click.Abort, KeyboardInterrupt, EOFError):
            return StageResult.fail(CloneError("Cancelled by operator"))
        except Exception as e:
            logger.debug("Unexpected stage error", exc_info=True)
            return StageResult.fail(ProviderFailureError(f"Unexpected error: {e!r}"))

    @staticmethod
    def _created_id(ctx: PipelineContext, data: Any, resource_type: str, name: str) -> str:
        """Id of a resource just created, derived from its name when az returned none."""
        if isinstance(data, dict) and data.get("id"):
            return data["id"]
        logger.warning(f"az returned no id for {name}; tracking it by name")
        subscription = parse_resource_id(ctx.source.id).subscription_id
        return build_resource_id(subscription, ctx.target.resource_group, resource_type, name)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def create_snapshot(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            source = ctx.source
            name = snapshot_name_for(source.os_disk.name, ctx.started_at)
            data = self.client.create_snapshot(
                source.resource_group,
                name,
                source.location,
                source.os_disk.id,
                SNAPSHOT_SKU,
                ctx.base_tags(),
            )
            snapshot_id = self._created_id(ctx, data, "Microsoft.Compute/snapshots", name)
            ctx.ledger.record(ResourceKind.SNAPSHOT, snapshot_id, name)
            ctx.snapshot_name = name
            ctx.snapshot_id = snapshot_id
            return f"Snapshot {name} created"

        return self._guard(action)

    def create_disk(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            source = ctx.source
            sku = source.os_disk.sku
            if sku == BASELINE_DISK_SKU and ctx.options.offer_premium_upgrade:
                if self.handler.confirm(
                    f"Source disk uses {BASELINE_DISK_SKU}. Upgrade the clone's disk to "
                    f"{PREMIUM_DISK_SKU}?",
                    default=False,
                ):
                    sku = PREMIUM_DISK_SKU

            name = ctx.target.disk_name
            data = self.client.create_disk(
                ctx.target.resource_group,
                name,
                source.location,
                ctx.snapshot_id,
                sku,
                ctx.provenance_tags(),
            )
            disk_id = self._created_id(ctx, data, "Microsoft.Compute/disks", name)
            ctx.ledger.record(ResourceKind.DISK, disk_id, name)
            ctx.disk_id = disk_id
            ctx.disk_sku = sku
            return f"Disk {name} ({sku}) created"

        return self._guard(action)

    def resolve_network(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            subnet = parse_subnet_id(ctx.source.nic.subnet_id)

            if subnet.is_cross_resource_group(ctx.source.resource_group):
                ctx.cross_resource_group = True
                self.progress.warn(
                    f"VNet {subnet.vnet_name} lives in resource group {subnet.resource_group}, "
                    f"not {ctx.source.resource_group}; the clone stays in "
                    f"{ctx.source.resource_group}"
                )
                try:
                    self.client.get_resource_group(subnet.resource_group)
                except AzureCLIError as e:
                    raise PermissionDeniedError(
                        f"Cannot read VNet resource group '{subnet.resource_group}': {e}"
                    ) from e

            try:
                ctx.subnet_data = self.client.get_subnet(subnet.resource_id)
            except AzureCLIError as e:
                if e.kind == ErrorKind.NOT_FOUND:
                    raise NotFoundError(
                        f"Subnet {subnet.subnet_name} of VNet {subnet.vnet_name} not found"
                    ) from e
                raise

            ctx.subnet = subnet
            return f"Subnet {subnet.vnet_name}/{subnet.subnet_name} ({subnet.resource_group})"

        return self._guard(action)

    def resolve_nsg(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            resolution = self.nsg_manager.resolve(
                ctx.options.nsg_mode,
                ctx.source,
                ctx.target.nsg_name,
                ctx.subnet_data or {},
                ctx.base_tags(),
            )
            ctx.nsg = resolution
            if resolution.created:
                return f"NSG {resolution.nsg_name} created ({resolution.mode.value})"
            if resolution.preexisting:
                return f"Existing NSG {resolution.nsg_name} reused"
            return f"Source NSG {resolution.nsg_name} reused"

        return self._guard(action)

    def create_nic(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            nsg_id = ctx.nsg.nsg_id if ctx.nsg and ctx.nsg.attach_to_nic else None
            name = ctx.target.nic_name
            data = self.client.create_nic(
                ctx.target.resource_group,
                name,
                ctx.source.location,
                ctx.subnet.resource_id,
                nsg_id,
                ctx.base_tags(),
            )
            nic_id = self._created_id(ctx, data, "Microsoft.Network/networkInterfaces", name)
            ctx.ledger.record(ResourceKind.NIC, nic_id, name)
            ctx.nic_id = nic_id
            return f"NIC {name} created"

        return self._guard(action)

    def resolve_diagnostics(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            storage = resolve_diagnostics_storage(
                self.client,
                self.handler,
                ctx.source,
                ctx.target.name,
                ctx.options.diagnostics_prefix,
                ctx.base_tags(),
            )
            if storage.created:
                ctx.ledger.record(
                    ResourceKind.STORAGE_ACCOUNT, storage.account.id, storage.account.name
                )
            ctx.diagnostics = storage
            verb = "created" if storage.created else "reused"
            return f"Storage account {storage.account.name} {verb}"

        return self._guard(action)

    def assemble_vm(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            ctx.vm_definition = VMDefinition(
                name=ctx.target.name,
                resource_group=ctx.target.resource_group,
                location=ctx.source.location,
                size=ctx.target.size,
                nic_id=ctx.nic_id,
                os_disk_id=ctx.disk_id,
                os_kind=ctx.source.os_kind,
                boot_diagnostics_storage=ctx.diagnostics.boot_diagnostics_target,
                tags=ctx.provenance_tags(),
            )
            return f"VM {ctx.target.name}: {ctx.target.size}, {ctx.source.os_kind.value}"

        return self._guard(action)

    def create_vm(self, ctx: PipelineContext) -> StageResult[str]:
        def action() -> str:
            definition = ctx.vm_definition
            try:
                data = self.client.create_vm(definition.to_az_args())
            except CloneError:
                self._track_partial_vm(ctx)
                raise

            data = data or {}
            if data.get("id"):
                ctx.ledger.record(ResourceKind.VM, data["id"], definition.name)
            state = data.get("provisioningState", "Succeeded")
            if not data.get("id") or state != "Succeeded":
                if not data.get("id"):
                    self._track_partial_vm(ctx)
                raise ProviderFailureError(
                    f"VM creation reported provisioning state '{state}'"
                )

            ctx.vm = data
            return f"VM {definition.name} created"

        return self._guard(action)

    def _track_partial_vm(self, ctx: PipelineContext) -> None:
        """Record a VM that exists despite a failed create, so rollback removes it."""
        try:
            existing = self.client.find_vm(ctx.target.resource_group, ctx.target.name)
        except CloneError as e:
            logger.warning(f"Could not check for a partially created VM: {e}")
            return
        if existing and existing.get("id") and not ctx.ledger.find(ResourceKind.VM):
            ctx.ledger.record(ResourceKind.VM, existing["id"], ctx.target.name)


__all__ = [
    "CloneOptions",
    "CloneOutcome",
    "ClonePipeline",
    "PipelineContext",
    "PipelineState",
    "StageResult",
    "VMDefinition",
    "snapshot_name_for",
]
