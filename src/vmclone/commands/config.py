"""Configuration commands.

This module provides commands for showing and changing the vmclone
configuration file.
"""

import sys

import click
from rich.console import Console
from rich.table import Table

from vmclone.config_manager import ConfigError, ConfigManager, VmcloneConfig

__all__ = ["config_group"]


@click.group(name="config")
def config_group() -> None:
    """Show or change vmclone configuration.

    \b
    EXAMPLES:
        # Show current settings
        $ vmclone config show

    \b
        # Default to the copy NSG policy
        $ vmclone config set default_nsg_mode copy

    \b
        # Clear the default resource group
        $ vmclone config set default_resource_group ""
    """
    pass


@config_group.command(name="show")
@click.option("--config", help="Config file path", type=click.Path())
def config_show(config: str | None):
    """Show configuration values and the file they come from."""
    try:
        path = ConfigManager.get_config_path(config)
        current = ConfigManager.load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    table = Table(title=str(path), show_header=True, header_style="bold", border_style="dim")
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key in VmcloneConfig.__dataclass_fields__:
        value = getattr(current, key)
        table.add_row(key, "[dim]not set[/dim]" if value is None else str(value))

    Console().print(table)
    if not path.exists():
        click.echo("Config file does not exist yet; showing defaults.")


@config_group.command(name="set")
@click.argument("key", type=str)
@click.argument("value", type=str)
@click.option("--config", help="Config file path", type=click.Path())
def config_set(key: str, value: str, config: str | None):
    """Set KEY to VALUE in the configuration file.

    An empty VALUE clears default_resource_group or creator.

    \b
    Examples:
        vmclone config set default_resource_group prod-rg
        vmclone config set offer_premium_upgrade false
    """
    try:
        ConfigManager.set_value(key, value, config)
        path = ConfigManager.get_config_path(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    shown = value if value != "" else "(cleared)"
    click.echo(f"✓ {key} = {shown}")
    click.echo(f"  Saved to {path}")
