"""
CLI Reporter Module
===================

Rich terminal output for azure-reaper runs.

Displays:
- the run header (tenant, regions and mode)
- one table row per listed instance with its fate
- per-instance removal progress lines
- the final summary and any listing errors
- the resource type catalog

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from azure_reaper.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.print_header(tenant, regions=["global", "eastus"], dry_run=True)
>>> reporter.report_listing(summary.scan_results)
>>> reporter.report_summary(summary)

Notes
-----
Rich degrades gracefully in terminals with limited capabilities, and
writes plain text when the output is not a terminal.

See Also
--------
rich : Python library for rich text and formatting.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from azure_reaper.cleaners.remover import DeleteResult, DeleteStatus
from azure_reaper.core.registry import Registry, Scope
from azure_reaper.core.scanner import ScanResult

# Module logger
logger = logging.getLogger(__name__)

SCOPE_STYLES = {
    Scope.TENANT: "magenta",
    Scope.SUBSCRIPTION: "yellow",
    Scope.RESOURCE_GROUP: "cyan",
}

STATUS_ICONS = {
    DeleteStatus.SUCCESS: "[green]✓[/green]",
    DeleteStatus.FAILED: "[red]✗[/red]",
    DeleteStatus.SKIPPED: "[yellow]○[/yellow]",
    DeleteStatus.DRY_RUN: "[blue]~[/blue]",
    DeleteStatus.FILTERED: "[dim]-[/dim]",
    DeleteStatus.BLOCKED: "[yellow]![/yellow]",
}


class CLIReporter:
    """
    Reporter for displaying run results in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    max_properties : int, default=4
        Properties shown per instance in the listing table.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report_listing(scan_results)

    With custom console:

    >>> from rich.console import Console
    >>> reporter = CLIReporter(console=Console(force_terminal=True))
    """

    def __init__(self, console: Optional[Console] = None, max_properties: int = 4) -> None:
        self.console = console or Console()
        self.max_properties = max_properties

    # =========================================================================
    # Run Output
    # =========================================================================

    def print_header(
        self,
        tenant: Any,
        regions: Sequence[str],
        dry_run: bool,
        version: Optional[str] = None,
    ) -> None:
        """
        Print the run header panel.

        Parameters
        ----------
        tenant : Tenant
            The discovered tenant.
        regions : sequence of str
            Configured regions.
        dry_run : bool
            Whether removal is simulated.
        version : str, optional
            Version banner.
        """
        header = Text()
        header.append("\nazure-reaper", style="bold blue")
        if version:
            header.append(f" {version}", style="dim")
        header.append(f"\nTenant: {tenant.id}\n", style="white")
        header.append(
            f"Subscriptions: {len(tenant.subscription_ids)}, "
            f"resource groups: {tenant.resource_group_count}\n",
            style="dim",
        )
        header.append(f"Regions: {', '.join(regions)}", style="dim")
        self.console.print(Panel(header, border_style="blue"))

        if dry_run:
            self.console.print(
                Panel(
                    "[yellow bold]DRY-RUN MODE[/yellow bold]\n"
                    "Nothing will be removed. Use --no-dry-run to remove resources.",
                    border_style="yellow",
                )
            )
        else:
            self.console.print(
                Panel(
                    "[red bold]REMOVAL MODE[/red bold]\n"
                    "Every listed resource that is not filtered will be DELETED.",
                    border_style="red",
                )
            )

    def report_listing(self, results: List[ScanResult]) -> None:
        """
        Print every listed instance and whether it would be removed.

        Parameters
        ----------
        results : list of ScanResult
            Classified listing results.
        """
        items = [(result, item) for result in results for item in result.items]
        if not items:
            self.console.print("\n[green]No resources found.[/green]")
            self._print_errors(self._errors(results))
            return

        table = Table(title="\nListed Resources", title_style="bold", show_lines=False)
        table.add_column("Owner", style="yellow", no_wrap=True)
        table.add_column("Type", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Properties", style="dim", max_width=50)
        table.add_column("State")

        for result, item in items:
            if item.filtered:
                state = f"[dim]filtered: {item.filter_reason}[/dim]"
            elif result.has_errors:
                state = "[yellow]blocked: listing failed[/yellow]"
            else:
                state = "[green]would remove[/green]"
            table.add_row(
                item.owner,
                item.resource_type,
                item.name,
                self._format_properties(item.properties),
                state,
            )

        self.console.print(table)
        self._print_errors(self._errors(results))

    def print_delete_result(self, result: DeleteResult) -> None:
        """Print one removal outcome; used as the remover's progress callback."""
        icon = STATUS_ICONS.get(result.status, "?")
        text = {
            DeleteStatus.SUCCESS: "Removed",
            DeleteStatus.FAILED: f"Failed: {result.error_message}",
            DeleteStatus.DRY_RUN: "Would remove",
        }.get(result.status, result.status.value)
        self.console.print(
            f"  {icon} {result.owner} - {result.resource_type} - {result.name} - {text}"
        )

    def report_summary(self, summary: Any) -> None:
        """
        Print the run summary.

        Parameters
        ----------
        summary : RunSummary
            The engine's run summary.
        """
        deleting = summary.delete_summary

        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Listed:", str(deleting.total))
        table.add_row("Filtered:", f"[dim]{deleting.filtered}[/dim]")
        if summary.dry_run:
            table.add_row("Would remove:", f"[blue]{deleting.dry_run}[/blue]")
        else:
            table.add_row("Removed:", f"[green]{deleting.deleted}[/green]")
            failed_style = "red" if deleting.failed else "green"
            table.add_row("Failed:", f"[{failed_style}]{deleting.failed}[/]")
            table.add_row("Skipped:", f"[yellow]{deleting.skipped}[/yellow]")
        if deleting.blocked:
            table.add_row("Blocked:", f"[yellow]{deleting.blocked}[/yellow]")
        if summary.listing_errors:
            table.add_row(
                "Errors:",
                f"[yellow]{len(summary.listing_errors)} scanner unit(s) had listing errors[/]",
            )

        self.console.print()
        self.console.print(Panel(table, title="[bold]Summary[/bold]", border_style="blue"))

        if deleting.failed:
            self.console.print("\n[yellow]Some removals failed. Common reasons:[/yellow]")
            self.console.print("  • A management lock protects the resource group")
            self.console.print("  • Another resource still references the resource")
            self.console.print("  • The credential lacks permission to delete it")

        if summary.aborted:
            self.console.print("\n[yellow]Run aborted, nothing further was removed.[/yellow]")

    def report_resource_types(self, registry: Registry) -> None:
        """
        Print every registered resource type, coloured by scope.

        Superseded types point at their replacement instead.
        """
        for registration in registry.registrations():
            if registration.superseded:
                self.console.print(
                    f"{registration.name} [dim]> {registration.alternative_resource} "
                    f"alternative resource[/dim]"
                )
                continue
            style = SCOPE_STYLES.get(registration.scope, "white")
            self.console.print(
                f"{registration.name} [{style}]{registration.scope.value}[/{style}]"
            )

    # =========================================================================
    # Messages
    # =========================================================================

    def print_error(self, message: str) -> None:
        self.console.print(f"\n[red bold]Error:[/red bold] {message}")

    # =========================================================================
    # Private Methods
    # =========================================================================

    @staticmethod
    def _errors(results: List[ScanResult]) -> Dict[str, List[str]]:
        return {
            result.owner: [str(e) for e in result.errors.values()]
            for result in results
            if result.has_errors
        }

    def _print_errors(self, errors: Dict[str, List[str]]) -> None:
        if not errors:
            return

        self.console.print("\n[yellow bold]Listing errors:[/yellow bold]")
        for owner, messages in errors.items():
            self.console.print(f"\n[yellow]{owner}:[/yellow]")
            for message in messages:
                self.console.print(f"  [red]• {message}[/red]")

    def _format_properties(self, properties: Dict[str, str]) -> str:
        shown = [
            f"{key}={value}"
            for key, value in properties.items()
            if key not in ("Name", "SubscriptionID", "ResourceGroup")
        ]
        text = ", ".join(shown[: self.max_properties])
        if len(shown) > self.max_properties:
            text += f", +{len(shown) - self.max_properties}"
        return text

    def __repr__(self) -> str:
        return "CLIReporter()"
