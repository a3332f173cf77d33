"""Command groups for vmclone CLI."""

from vmclone.commands.config import config_group

__all__ = ["config_group"]
