"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores operator defaults like the resource group, NSG policy and the
boot-diagnostics storage prefix.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- Input sanitization
"""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import tomli
import tomlkit

from vmclone.errors import CloneError

logger = logging.getLogger(__name__)

NSG_MODES = ("reuse", "hardened", "copy")
OPTIONAL_KEYS = ("default_resource_group", "creator")


class ConfigError(CloneError):
    """Raised when configuration operations fail."""

    pass


@dataclass
class VmcloneConfig:
    """vmclone configuration data."""

    default_resource_group: str | None = None
    default_nsg_mode: str = "hardened"
    diagnostics_prefix: str = "vmclonediag"
    offer_premium_upgrade: bool = True
    creator: str | None = None
    az_timeout: int = 600

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VmcloneConfig":
        """Create from dictionary, validating known keys."""
        config = cls(
            default_resource_group=data.get("default_resource_group"),
            default_nsg_mode=data.get("default_nsg_mode", "hardened"),
            diagnostics_prefix=data.get("diagnostics_prefix", "vmclonediag"),
            offer_premium_upgrade=bool(data.get("offer_premium_upgrade", True)),
            creator=data.get("creator"),
            az_timeout=int(data.get("az_timeout", 600)),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.default_nsg_mode not in NSG_MODES:
            raise ConfigError(
                f"Invalid default_nsg_mode '{self.default_nsg_mode}'. "
                f"Must be one of: {', '.join(NSG_MODES)}"
            )
        prefix = self.diagnostics_prefix
        if not prefix or not prefix.isalnum() or not prefix.islower() or len(prefix) > 16:
            raise ConfigError(
                f"Invalid diagnostics_prefix '{prefix}'. "
                "Must be 1-16 lowercase letters/digits"
            )
        if self.az_timeout < 30:
            raise ConfigError("az_timeout must be at least 30 seconds")


class ConfigManager:
    """Manage vmclone configuration file.

    Configuration is stored at ~/.vmclone/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".vmclone"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path for security.

        Ensures the path is within ~/.vmclone/, the current working directory
        or the system temporary directory.

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()

        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Raises:
            ConfigError: If path is invalid or outside allowed directories
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            return cls._validate_config_path(path)

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> VmcloneConfig:
        """Load configuration from file.

        A missing file yields the defaults.

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return VmcloneConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return VmcloneConfig.from_dict(data)

        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: VmcloneConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file, preserving comments in an existing file.

        Returns:
            Path written

        Raises:
            ConfigError: If saving fails
        """
        config.validate()
        config_path = cls.get_config_path(custom_path)
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            if config_path.parent == cls.DEFAULT_CONFIG_DIR:
                os.chmod(config_path.parent, 0o700)

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                doc[key] = value
            # Keys set back to None are removed from the file
            for key in [k for k in doc if k not in config.to_dict()]:
                del doc[key]

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def set_value(cls, key: str, raw_value: str, custom_path: str | None = None) -> VmcloneConfig:
        """Update one key from its string form and save.

        Raises:
            ConfigError: If the key is unknown or the value invalid
        """
        config = cls.load_config(custom_path)
        if key not in VmcloneConfig.__dataclass_fields__:
            raise ConfigError(
                f"Unknown config key: {key}. "
                f"Valid keys: {', '.join(VmcloneConfig.__dataclass_fields__)}"
            )

        value: Any
        if key == "offer_premium_upgrade":
            lowered = raw_value.strip().lower()
            if lowered not in ("true", "false", "yes", "no", "1", "0"):
                raise ConfigError(f"{key} must be true or false")
            value = lowered in ("true", "yes", "1")
        elif key == "az_timeout":
            try:
                value = int(raw_value)
            except ValueError as e:
                raise ConfigError(f"{key} must be an integer") from e
        elif raw_value == "":
            if key not in OPTIONAL_KEYS:
                raise ConfigError(f"{key} cannot be empty")
            value = None
        else:
            value = raw_value

        setattr(config, key, value)
        cls.save_config(config, custom_path)
        return config

    @classmethod
    def get_resource_group(
        cls, cli_value: str | None = None, custom_path: str | None = None
    ) -> str | None:
        """Get resource group with CLI override."""
        if cli_value:
            return cli_value
        return cls.load_config(custom_path).default_resource_group


__all__ = ["NSG_MODES", "ConfigError", "ConfigManager", "VmcloneConfig"]
