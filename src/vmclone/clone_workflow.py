"""End-to-end clone workflow.

Session check, source resolution, target configuration, the provisioning
pipeline and the optional snapshot cleanup, in that order. Precondition
failures raise before anything is created; pipeline failures come back in
the CloneOutcome after rollback.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from vmclone.azure_auth import require_session, resolve_creator
from vmclone.clone_pipeline import CloneOptions, CloneOutcome, ClonePipeline, PipelineContext
from vmclone.config_manager import VmcloneConfig
from vmclone.errors import CloneError
from vmclone.models import ResourceKind
from vmclone.network_security import NSGMode
from vmclone.source_resolver import resolve_source
from vmclone.target_config import configure_target

logger = logging.getLogger(__name__)


@dataclass
class CloneRequest:
    """What the operator asked for. None means ask interactively.

    Attributes:
        resource_group: Source resource group
        vm_name: Source VM name
        new_name: Name of the clone
        size: VM size of the clone
        nsg_mode: NSG policy
        delete_snapshot: True deletes, False keeps the snapshot after success
    """

    resource_group: str
    vm_name: str
    new_name: str | None = None
    size: str | None = None
    nsg_mode: NSGMode | None = None
    delete_snapshot: bool | None = None


class CloneWorkflow:
    """Run one clone from precondition check to cleanup."""

    def __init__(
        self,
        client,
        handler,
        progress,
        config: VmcloneConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.client = client
        self.handler = handler
        self.progress = progress
        self.config = config or VmcloneConfig()
        self.clock = clock or (lambda: datetime.now(UTC))

    def choose_nsg_mode(self, requested: NSGMode | None) -> NSGMode:
        """Return the requested mode, or prompt with the configured default."""
        if requested is not None:
            return requested
        modes = list(NSGMode)
        default = modes.index(NSGMode(self.config.default_nsg_mode))
        choice = self.handler.prompt_choice(
            "Network security group policy:",
            [(mode.value, mode.description) for mode in modes],
            default=default,
        )
        return modes[choice]

    def run(self, request: CloneRequest) -> CloneOutcome:
        """Clone a VM.

        Raises:
            UnauthenticatedError: No az session
            NotFoundError: Source resource group, VM, disk or NIC missing
            ConflictError: Target name already taken
        """
        account = require_session(self.client)
        source = resolve_source(self.client, request.resource_group, request.vm_name)
        target = configure_target(
            self.client, self.handler, source, name=request.new_name, size=request.size
        )

        options = CloneOptions(
            nsg_mode=self.choose_nsg_mode(request.nsg_mode),
            offer_premium_upgrade=self.config.offer_premium_upgrade,
            diagnostics_prefix=self.config.diagnostics_prefix,
            creator=resolve_creator(account, self.config.creator),
        )
        ctx = PipelineContext(
            source=source, target=target, options=options, started_at=self.clock()
        )

        outcome = ClonePipeline(self.client, self.handler, self.progress).run(ctx)
        if outcome.succeeded:
            self.cleanup_snapshot(ctx, request.delete_snapshot)
        return outcome

    def cleanup_snapshot(self, ctx: PipelineContext, delete: bool | None = None) -> bool:
        """Offer to delete the intermediate snapshot after a successful clone.

        A failed deletion is reported as a warning; the clone itself
        succeeded.

        Returns:
            True if the snapshot was deleted
        """
        if not ctx.snapshot_id:
            return False

        if delete is None:
            delete = self.handler.confirm(
                f"Delete intermediate snapshot '{ctx.snapshot_name}'?", default=False
            )
        if not delete:
            self.handler.show_info(f"Snapshot kept: {ctx.snapshot_name}")
            return False

        try:
            self.client.delete_resource(ResourceKind.SNAPSHOT, ctx.snapshot_id)
        except CloneError as e:
            self.handler.show_warning(
                f"Could not delete snapshot '{ctx.snapshot_name}': {e}. Remove it manually."
            )
            return False

        ctx.ledger.discard(ctx.snapshot_id)
        ctx.snapshot_deleted = True
        logger.info(f"Deleted snapshot {ctx.snapshot_name}")
        return True


__all__ = ["CloneRequest", "CloneWorkflow"]
