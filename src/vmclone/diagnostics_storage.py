"""Boot-diagnostics storage account resolution.

Looks for an existing storage account in the resource group whose name
suggests diagnostics use (*bootdiag* first, then *diag*) and offers it for
reuse. Otherwise creates a Standard_LRS account named prefix + random
digits.
"""

import fnmatch
import logging
import random
from dataclasses import dataclass

from vmclone.models import SourceVM, StorageAccountInfo
from vmclone.resource_id import build_resource_id, parse_resource_id

logger = logging.getLogger(__name__)

NAME_PATTERNS = ("*bootdiag*", "*diag*")
STORAGE_SKU = "Standard_LRS"
MAX_NAME_LENGTH = 24


@dataclass(frozen=True)
class DiagnosticsStorage:
    """Storage account chosen for boot diagnostics."""

    account: StorageAccountInfo
    created: bool

    @property
    def boot_diagnostics_target(self) -> str:
        """Value for az vm create --boot-diagnostics-storage."""
        return self.account.blob_endpoint or self.account.name


def find_diagnostics_account(accounts: list[dict]) -> StorageAccountInfo | None:
    """Return the first account matching a diagnostics name pattern.

    Patterns are tried in order, so a *bootdiag* account beats a *diag* one.
    """
    for pattern in NAME_PATTERNS:
        for account in accounts:
            if fnmatch.fnmatch(account.get("name", "").lower(), pattern):
                return StorageAccountInfo.from_az(account)
    return None


def generate_account_name(prefix: str, rng: random.Random | None = None) -> str:
    """Build a storage account name: prefix plus random digits, 24 chars max."""
    rng = rng or random.Random()
    digits = max(4, min(8, MAX_NAME_LENGTH - len(prefix)))
    suffix = "".join(str(rng.randint(0, 9)) for _ in range(digits))
    return f"{prefix}{suffix}"[:MAX_NAME_LENGTH]


def resolve_diagnostics_storage(
    client,
    handler,
    source: SourceVM,
    target_vm_name: str,
    prefix: str,
    tags: dict[str, str],
    rng: random.Random | None = None,
) -> DiagnosticsStorage:
    """Reuse or create the boot-diagnostics storage account.

    Args:
        client: Cloud client
        handler: Interaction handler (reuse confirmation, default yes)
        source: Source VM (resource group and location)
        target_vm_name: New VM name, recorded in tags
        prefix: Name prefix for a new account
        tags: Base tags (CreatedBy etc.) for a new account
        rng: Random source for the name suffix

    Returns:
        DiagnosticsStorage with created=True only for a new account

    Raises:
        AzureCLIError: If listing or creating fails
    """
    existing = find_diagnostics_account(client.list_storage_accounts(source.resource_group))
    if existing is not None:
        if handler.confirm(
            f"Reuse storage account '{existing.name}' for boot diagnostics?", default=True
        ):
            logger.info(f"Reusing diagnostics storage account {existing.name}")
            return DiagnosticsStorage(account=existing, created=False)
        logger.info(f"Not reusing {existing.name}; creating a new diagnostics account")

    name = generate_account_name(prefix, rng)
    account_tags = {**tags, "Purpose": "BootDiagnostics", "TargetVM": target_vm_name}
    data = client.create_storage_account(
        source.resource_group, name, source.location, STORAGE_SKU, account_tags
    )
    data = dict(data or {})
    data.setdefault("name", name)
    if not data.get("id"):
        logger.warning(f"az returned no id for storage account {name}; tracking it by name")
        data["id"] = build_resource_id(
            parse_resource_id(source.id).subscription_id,
            source.resource_group,
            "Microsoft.Storage/storageAccounts",
            name,
        )
    account = StorageAccountInfo.from_az(data)
    logger.info(f"Created diagnostics storage account {account.name}")
    return DiagnosticsStorage(account=account, created=True)


__all__ = [
    "DiagnosticsStorage",
    "find_diagnostics_account",
    "generate_account_name",
    "resolve_diagnostics_storage",
]
