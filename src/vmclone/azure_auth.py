"""Azure session precondition check.

vmclone never stores or manages credentials. It only verifies that the
az CLI already holds an active session (`az account show`) and reads the
signed-in identity for provenance tags.

Security:
- No credential storage
- Delegates to az CLI
- Never logs tokens
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

from vmclone.azure_cli_executor import AzureCLIError
from vmclone.errors import ErrorKind, UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass
class AccountInfo:
    """Signed-in az CLI account."""

    subscription_id: str
    subscription_name: str | None
    tenant_id: str | None
    user: str | None

    @classmethod
    def from_az(cls, data: dict[str, Any]) -> "AccountInfo":
        return cls(
            subscription_id=data.get("id", ""),
            subscription_name=data.get("name"),
            tenant_id=data.get("tenantId"),
            user=(data.get("user") or {}).get("name"),
        )


def require_session(client) -> AccountInfo:
    """Verify an authenticated az session exists.

    Args:
        client: Cloud client exposing get_account()

    Returns:
        AccountInfo for the active subscription

    Raises:
        UnauthenticatedError: If no session is active
    """
    try:
        data = client.get_account()
    except AzureCLIError as e:
        if e.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.NOT_FOUND):
            raise UnauthenticatedError(
                "No active Azure session. Please run: az login"
            ) from e
        raise

    if not data or not data.get("id"):
        raise UnauthenticatedError("No active Azure session. Please run: az login")

    account = AccountInfo.from_az(data)
    logger.info(f"Using subscription {account.subscription_name or account.subscription_id}")
    return account


def resolve_creator(account: AccountInfo | None, configured: str | None = None) -> str:
    """Name recorded in CreatedBy tags.

    Priority: configured value, signed-in user, $USER, "unknown".
    """
    if configured:
        return configured
    if account and account.user:
        return account.user
    return os.environ.get("USER", "unknown")


__all__ = ["AccountInfo", "require_session", "resolve_creator"]
