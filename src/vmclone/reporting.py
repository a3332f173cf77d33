"""Console tables for clone results, environment checks and listings."""

from typing import Any

from rich.console import Console
from rich.table import Table

from vmclone.clone_pipeline import CloneOutcome
from vmclone.errors import PartialFailureError
from vmclone.modules.prerequisites import CheckStatus, ValidationReport

STATUS_STYLES = {
    CheckStatus.PASS: "green",
    CheckStatus.WARN: "yellow",
    CheckStatus.FAIL: "red",
}


def clone_summary_table(outcome: CloneOutcome) -> Table:
    """Summary of a successful clone."""
    ctx = outcome.context
    table = Table(
        title=f"Clone [cyan]{ctx.target.name}[/cyan] created",
        show_header=True,
        header_style="bold",
        border_style="cyan",
    )
    table.add_column("Item", style="cyan")
    table.add_column("Value")

    table.add_row("Source VM", f"{ctx.source.name} ({ctx.source.resource_group})")
    table.add_row("New VM", ctx.target.name)
    table.add_row("Size", ctx.target.size)
    table.add_row("OS", ctx.source.os_kind.value)
    table.add_row("Location", ctx.source.location)
    table.add_row("OS disk", f"{ctx.target.disk_name} ({ctx.disk_sku})")
    table.add_row("NIC", ctx.target.nic_name)

    if ctx.subnet:
        network = f"{ctx.subnet.vnet_name}/{ctx.subnet.subnet_name}"
        if ctx.cross_resource_group:
            network += f" [yellow](VNet in {ctx.subnet.resource_group})[/yellow]"
        table.add_row("Subnet", network)

    if ctx.nsg:
        nsg = f"{ctx.nsg.nsg_name} ({ctx.nsg.mode.value})"
        if ctx.nsg.preexisting:
            nsg += " [yellow]existing NSG reused, review its rules[/yellow]"
        elif not ctx.nsg.attach_to_nic:
            nsg += " [dim]inherited from subnet[/dim]"
        table.add_row("NSG", nsg)

    if ctx.diagnostics:
        verb = "new" if ctx.diagnostics.created else "reused"
        table.add_row("Boot diagnostics", f"{ctx.diagnostics.account.name} ({verb})")

    snapshot = ctx.snapshot_name or "-"
    snapshot += " [dim](deleted)[/dim]" if ctx.snapshot_deleted else " (kept)"
    table.add_row("Snapshot", snapshot)

    private_ip = (ctx.vm or {}).get("privateIpAddress")
    if private_ip:
        table.add_row("Private IP", private_ip)

    return table


def rollback_table(outcome: CloneOutcome) -> Table:
    """Per-resource result of the rollback after a failed clone."""
    table = Table(
        title="Rollback",
        show_header=True,
        header_style="bold",
        border_style="red",
    )
    table.add_column("Resource", style="white")
    table.add_column("Kind")
    table.add_column("Result")

    report = outcome.rollback
    if report is None:
        table.add_row("[dim]Nothing was created[/dim]", "", "")
        return table

    for entry in report.deleted:
        table.add_row(entry.name, entry.kind.value, "[green]deleted[/green]")
    for entry, reason in report.failed:
        table.add_row(entry.name, entry.kind.value, f"[red]left behind[/red]: {reason}")
    return table


def check_report_table(report: ValidationReport) -> Table:
    table = Table(
        title="Environment check",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("Check", style="white")
    table.add_column("Status", width=6)
    table.add_column("Detail")

    for check in report.checks:
        style = STATUS_STYLES[check.status]
        table.add_row(check.name, f"[{style}]{check.status.value}[/{style}]", check.detail)
    return table


def resource_group_table(groups: list[dict[str, Any]]) -> Table:
    """Numbered resource group listing for interactive selection."""
    table = Table(show_header=True, header_style="bold", border_style="dim")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Resource group", style="white")
    table.add_column("Location")

    for i, group in enumerate(groups, 1):
        table.add_row(str(i), group.get("name", ""), group.get("location", ""))
    return table


def vm_table(vms: list[dict[str, Any]]) -> Table:
    """Numbered VM listing for interactive selection."""
    table = Table(show_header=True, header_style="bold", border_style="dim")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("VM Name", style="white")
    table.add_column("Size")
    table.add_column("OS")
    table.add_column("Region")

    for i, vm in enumerate(vms, 1):
        os_disk = (vm.get("storageProfile") or {}).get("osDisk") or {}
        table.add_row(
            str(i),
            vm.get("name", ""),
            (vm.get("hardwareProfile") or {}).get("vmSize", ""),
            os_disk.get("osType") or "",
            vm.get("location", ""),
        )
    return table


def print_clone_outcome(outcome: CloneOutcome, console: Console | None = None) -> None:
    """Print the success summary or the failure with its rollback."""
    console = console or Console()

    if outcome.succeeded:
        console.print(clone_summary_table(outcome))
        return

    error = outcome.error
    console.print(f"[bold red]Clone failed:[/bold red] {error}")
    if isinstance(error, PartialFailureError):
        console.print(f"[red]Cause ({error.cause.kind.value}):[/red] {error.cause}")
        console.print(rollback_table(outcome))
        if outcome.rollback and not outcome.rollback.complete:
            console.print(
                "[yellow]Some resources could not be deleted; remove them manually.[/yellow]"
            )


__all__ = [
    "check_report_table",
    "clone_summary_table",
    "print_clone_outcome",
    "resource_group_table",
    "rollback_table",
    "vm_table",
]
