"""CLI entry point for vmclone.

Commands:
    vmclone clone    Clone a VM from a snapshot of its OS disk
    vmclone check    Validate the az CLI, session and read permissions
    vmclone config   Show or change ~/.vmclone/config.toml
"""

import logging
import sys
from typing import Any

import click
from rich.console import Console

from vmclone import __version__
from vmclone.azure_auth import require_session
from vmclone.cloud_client import AzureCloudClient
from vmclone.clone_workflow import CloneRequest, CloneWorkflow
from vmclone.commands import config_group
from vmclone.config_manager import ConfigManager
from vmclone.errors import CloneError, NotFoundError
from vmclone.modules.interaction_handler import CLIInteractionHandler
from vmclone.modules.prerequisites import EnvironmentValidator
from vmclone.modules.progress import ProgressDisplay
from vmclone.network_security import NSGMode
from vmclone.reporting import (
    check_report_table,
    print_clone_outcome,
    resource_group_table,
    vm_table,
)

logger = logging.getLogger(__name__)


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _select_by_number(console: Console, table, items: list[dict[str, Any]], label: str) -> str:
    """Show a numbered table and return the name of the chosen row."""
    console.print(table)
    number = click.prompt(
        f"Select {label}", type=click.IntRange(1, len(items)), default=1, show_default=True
    )
    return items[number - 1]["name"]


def select_resource_group(client, console: Console) -> str:
    """Prompt for a resource group from the subscription's list."""
    groups = sorted(client.list_resource_groups(), key=lambda g: g.get("name", "").lower())
    if not groups:
        raise NotFoundError("No resource groups found in the current subscription")
    return _select_by_number(console, resource_group_table(groups), groups, "resource group")


def select_vm(client, console: Console, resource_group: str) -> str:
    """Prompt for a VM in a resource group."""
    vms = sorted(client.list_vms(resource_group), key=lambda v: v.get("name", "").lower())
    if not vms:
        raise NotFoundError(f"No VMs found in resource group '{resource_group}'")
    return _select_by_number(console, vm_table(vms), vms, "VM to clone")


@click.group(context_settings={"help_option_names": ["--help", "-h"]})
@click.version_option(version=__version__)
def main() -> None:
    """vmclone - clone Azure VMs from OS disk snapshots.

    Creates a new VM in the source VM's resource group from a snapshot of
    the source's OS disk: new managed disk, NIC on the same subnet, an NSG
    per the chosen policy and boot diagnostics storage. On any failure the
    resources created so far are deleted again.

    \b
    EXAMPLES:
        # Clone interactively
        $ vmclone clone

    \b
        # Clone web01 to web02 with a hardened NSG, keep the snapshot
        $ vmclone clone -g prod-rg --vm web01 --name web02 --nsg-mode hardened --keep-snapshot

    \b
        # Check the environment before cloning
        $ vmclone check -g prod-rg

    \b
    CONFIGURATION:
        Config file: ~/.vmclone/config.toml
        Set defaults: default_resource_group, default_nsg_mode, diagnostics_prefix
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s")


@main.command(name="clone")
@click.option("--resource-group", "-g", "--rg", "resource_group", help="Source resource group")
@click.option("--vm", "vm_name", help="Source VM name")
@click.option("--name", "new_name", help="Name of the new VM")
@click.option("--size", help="VM size of the clone (default: source size)")
@click.option(
    "--nsg-mode",
    type=click.Choice([m.value for m in NSGMode]),
    help="NSG policy: reuse the source NSG, create a hardened one, or copy the source rules",
)
@click.option(
    "--keep-snapshot/--delete-snapshot",
    "keep_snapshot",
    default=None,
    help="Keep or delete the intermediate snapshot after success (default: ask)",
)
@click.option("--config", help="Config file path", type=click.Path())
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def clone(
    resource_group: str | None,
    vm_name: str | None,
    new_name: str | None,
    size: str | None,
    nsg_mode: str | None,
    keep_snapshot: bool | None,
    config: str | None,
    verbose: bool,
):
    """Clone a VM from a snapshot of its OS disk.

    Missing options are prompted for. The clone is created in the source
    VM's resource group and location, on the source NIC's subnet.

    \b
    Examples:
        vmclone clone
        vmclone clone -g prod-rg --vm web01 --name web02
        vmclone clone -g prod-rg --vm web01 --name web02 --size Standard_D2s_v3 --nsg-mode copy
    """
    _set_verbose(verbose)
    console = Console()

    try:
        vmclone_config = ConfigManager.load_config(config)
        client = AzureCloudClient(write_timeout=vmclone_config.az_timeout)
        handler = CLIInteractionHandler()

        rg = ConfigManager.get_resource_group(resource_group, config)
        if not rg or not vm_name:
            require_session(client)
        if not rg:
            rg = select_resource_group(client, console)
        if not vm_name:
            vm_name = select_vm(client, console, rg)

        request = CloneRequest(
            resource_group=rg,
            vm_name=vm_name,
            new_name=new_name,
            size=size,
            nsg_mode=NSGMode(nsg_mode) if nsg_mode else None,
            delete_snapshot=None if keep_snapshot is None else not keep_snapshot,
        )
        workflow = CloneWorkflow(client, handler, ProgressDisplay(), vmclone_config)
        outcome = workflow.run(request)

    except CloneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except click.Abort:
        click.echo("\nCancelled.", err=True)
        sys.exit(1)

    print_clone_outcome(outcome, console)
    if not outcome.succeeded:
        sys.exit(1)


@main.command(name="check")
@click.option("--resource-group", "-g", "--rg", "resource_group", help="Limit checks to this group")
@click.option("--config", help="Config file path", type=click.Path())
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def check(resource_group: str | None, config: str | None, verbose: bool):
    """Validate that vmclone can run.

    Checks the az CLI and its version, the az session, and that resource
    groups, VMs, snapshots and virtual networks can be read. Nothing is
    created or changed. Exits non-zero when any check fails.

    \b
    Examples:
        vmclone check
        vmclone check -g prod-rg
    """
    _set_verbose(verbose)

    try:
        vmclone_config = ConfigManager.load_config(config)
    except CloneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    rg = resource_group or vmclone_config.default_resource_group
    validator = EnvironmentValidator(AzureCloudClient(write_timeout=vmclone_config.az_timeout))
    report = validator.run_all(rg)

    Console().print(check_report_table(report))
    if report.passed:
        click.secho("Environment OK", fg="green")
    else:
        click.secho("Environment check failed", fg="red", err=True)
        sys.exit(1)


main.add_command(config_group)


__all__ = ["main"]


if __name__ == "__main__":
    main()
