"""Created-resource ledger and compensating rollback.

Every resource the clone pipeline creates is recorded, in creation order,
in a ResourceLedger. When the pipeline fails, rollback() walks the ledger
backwards and deletes each entry independently: one failed deletion never
stops the others, and no deletion failure is raised.

Ordering:
- Primary resources (VM, NIC, disk, snapshot) in strict reverse creation order
- Then auxiliary resources (a newly created diagnostics storage account)
- NSGs are never recorded, so never deleted
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from vmclone.models import CreatedResource, ResourceKind

logger = logging.getLogger(__name__)


class ResourceLedger:
    """Ordered record of resources created during one run."""

    AUXILIARY_KINDS = frozenset({ResourceKind.STORAGE_ACCOUNT})

    def __init__(self) -> None:
        self._entries: list[CreatedResource] = []

    def record(self, kind: ResourceKind, resource_id: str, name: str) -> CreatedResource:
        """Track a created resource.

        Raises:
            ValueError: If asked to track an NSG
        """
        if kind is ResourceKind.NSG:
            raise ValueError("NSGs may be shared and are never tracked for rollback")

        entry = CreatedResource(kind=kind, resource_id=resource_id, name=name)
        self._entries.append(entry)
        logger.debug(f"Tracking {kind.value}: {name}")
        return entry

    def discard(self, resource_id: str) -> None:
        """Stop tracking a resource that was deleted deliberately."""
        self._entries = [e for e in self._entries if e.resource_id != resource_id]

    def find(self, kind: ResourceKind) -> CreatedResource | None:
        """Most recently recorded entry of a kind."""
        for entry in reversed(self._entries):
            if entry.kind is kind:
                return entry
        return None

    def rollback_order(self) -> list[CreatedResource]:
        """Entries in the order rollback deletes them."""
        newest_first = list(reversed(self._entries))
        primary = [e for e in newest_first if e.kind not in self.AUXILIARY_KINDS]
        auxiliary = [e for e in newest_first if e.kind in self.AUXILIARY_KINDS]
        return primary + auxiliary

    @property
    def entries(self) -> list[CreatedResource]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CreatedResource]:
        return iter(list(self._entries))


@dataclass
class RollbackReport:
    """Outcome of a rollback attempt."""

    deleted: list[CreatedResource] = field(default_factory=list)
    failed: list[tuple[CreatedResource, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> list[CreatedResource]:
        return self.deleted + [entry for entry, _ in self.failed]


def rollback(client, ledger: ResourceLedger, progress=None) -> RollbackReport:
    """Delete every ledger entry, best-effort.

    Args:
        client: Cloud client exposing delete_resource(kind, resource_id)
        ledger: Resources created so far
        progress: Optional ProgressDisplay for operator output

    Returns:
        RollbackReport listing deleted and failed entries
    """
    report = RollbackReport()
    order = ledger.rollback_order()

    if not order:
        logger.info("No resources to roll back")
        return report

    logger.warning(f"Rolling back {len(order)} created resource(s)")
    if progress:
        progress.start_operation("Rolling back created resources")

    for entry in order:
        try:
            client.delete_resource(entry.kind, entry.resource_id)
        except Exception as e:
            logger.error(f"Failed to delete {entry.kind.value} {entry.name}: {e}")
            report.failed.append((entry, str(e)))
            if progress:
                progress.warn(f"Could not delete {entry.kind.value} {entry.name}; remove it manually")
            continue

        report.deleted.append(entry)
        ledger.discard(entry.resource_id)
        logger.info(f"Deleted {entry.kind.value}: {entry.name}")
        if progress:
            progress.update(f"Deleted {entry.kind.value} {entry.name}")

    if progress:
        if report.complete:
            progress.complete(True, "Rollback completed")
        else:
            progress.complete(False, f"Rollback left {len(report.failed)} resource(s) behind")

    return report


__all__ = ["ResourceLedger", "RollbackReport", "rollback"]
