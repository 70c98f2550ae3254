"""Rich terminal display for dclean."""

import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dclean.categories import CATEGORIES, Category
from dclean.history import HistoryEntry, total_freed
from dclean.models import CategoryTag, CleanupReport, ScanItem, ScanReport, format_bytes

console = Console()

MAX_ROWS_PER_CATEGORY = 25
HISTORY_ROWS = 20


def format_days_ago(days: Optional[int]) -> str:
    """Coarse age label for a last-modified day count."""
    if days is None or days < 0:
        return "unknown"
    if days == 0:
        return "today"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{days} days"
    if days < 60:
        return "2 months"
    if days < 90:
        return "3 months"
    if days < 180:
        return "6 months"
    if days < 365:
        return "1 year"
    years = days // 365
    return "1 year" if years == 1 else f"{years} years"


def color_size(size_bytes: int) -> str:
    """Size string colored red for large (>= 500 MB), yellow for medium, green for small."""
    mb = size_bytes / (1024 * 1024)
    if mb >= 500:
        color = "red"
    elif mb >= 100:
        color = "yellow"
    else:
        color = "green"
    return f"[{color}]{format_bytes(size_bytes)}[/{color}]"


def short_label(path: str | Path, home: Optional[Path] = None) -> str:
    """Show paths under home as ~/..., and shorten long paths elsewhere."""
    full = os.path.normpath(str(path))
    home_str = os.path.normpath(str(home or Path.home()))
    if full == home_str:
        return "~"
    if full.startswith(home_str + os.sep):
        return "~" + full[len(home_str):]
    return "..." + full[-35:] if len(full) > 38 else full


def path_under_root(path: str | Path, roots: list[str], home: Optional[Path] = None) -> str:
    """Path relative to the first scan root containing it, else its short label."""
    full = os.path.normpath(str(path))
    for root in roots:
        root_norm = os.path.normpath(root)
        if full == root_norm:
            return os.path.basename(full) or "."
        if full.startswith(root_norm + os.sep):
            return full[len(root_norm) + len(os.sep):]
    return short_label(full, home)


def _item_label(item: ScanItem, category: Category, roots: list[str]) -> str:
    if item.name:
        return item.name
    if item.version:
        return item.version
    if category.tag in (CategoryTag.NODE_MODULES, CategoryTag.PYTHON_VENV, CategoryTag.PODS):
        return path_under_root(os.path.dirname(item.path), roots)
    return path_under_root(item.path, roots)


def _item_age(item: ScanItem) -> str:
    if item.is_current:
        return "[green]current[/green]"
    return format_days_ago(item.last_modified_days)


def show_category_result(report: ScanReport, tag: CategoryTag) -> None:
    """Display one category's items, largest first."""
    result = report.get(tag)
    if result.count == 0:
        return

    category = CATEGORIES[tag]
    title = f"{category.icon} {category.name} ({result.count})"
    if not category.deletable:
        title += " for review only"
    console.print(f"\n[bold cyan]{title}[/bold cyan]")
    if not category.deletable:
        console.print(
            "[yellow]  Deletion is not offered for these. Review them yourself if needed.[/yellow]"
        )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Version" if tag == CategoryTag.NVM else "Folder")
    table.add_column("Size", justify="right")
    table.add_column("Last used", justify="right")

    items = sorted(result.items, key=lambda x: x.size_bytes, reverse=True)
    for item in items[:MAX_ROWS_PER_CATEGORY]:
        table.add_row(_item_label(item, category, report.roots), color_size(item.size_bytes), _item_age(item))
    if len(items) > MAX_ROWS_PER_CATEGORY:
        table.add_row(f"[dim]... +{len(items) - MAX_ROWS_PER_CATEGORY} more[/dim]", "", "")

    console.print(table)
    console.print(f"[dim]Subtotal: {result.size_human}[/dim]")


def reclaimable_bytes(report: ScanReport) -> int:
    """Total size of categories that cleanup is offered for."""
    return sum(
        result.total_size_bytes
        for tag, result in report.results.items()
        if CATEGORIES[tag].deletable
    )


def show_report(report: ScanReport) -> None:
    """Display full scan results."""
    console.print("\n[bold]🔍 Scan Results[/bold]")
    if report.roots:
        console.print(f"[dim]Path: {', '.join(short_label(r) for r in report.roots)}[/dim]")

    if not report.has_items:
        console.print("\n[green]Nothing to clean up. Your disk is tidy![/green]")
        return

    for tag in CATEGORIES:
        show_category_result(report, tag)

    console.print()
    console.print(
        Panel(
            f"[bold]💾 Total reclaimable:[/bold] {format_bytes(reclaimable_bytes(report))}",
            border_style="blue",
        )
    )


def show_cleanup_summary(result: CleanupReport) -> None:
    """Display cleanup summary."""
    console.print()
    if result.dry_run:
        console.print("[yellow]DRY RUN - nothing was moved to the trash[/yellow]")

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    label = "Would free" if result.dry_run else "Space freed"
    table.add_row(label, format_bytes(result.total_freed_bytes))
    table.add_row("Items cleaned", str(result.success_count))
    if result.fail_count > 0:
        table.add_row("[red]Failed[/red]", str(result.fail_count))
    console.print(table)

    for failure in result.failures:
        console.print(f"  [red]✗[/red] {short_label(failure.path)}: {failure.error}")

    if not result.dry_run and result.success_count > 0:
        console.print("\n[green]Items moved to Trash.[/green]")
        console.print("[dim]Tip: empty the Trash to actually reclaim the space.[/dim]")


def show_history(entries: list[HistoryEntry]) -> None:
    """Display the most recent cleanups and the all-time total."""
    if not entries:
        console.print("[dim]No cleanup history yet.[/dim]")
        return

    table = Table(title="Cleanup History", show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Freed", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Categories")

    for entry in reversed(entries[-HISTORY_ROWS:]):
        table.add_row(
            entry.date.strftime("%Y-%m-%d %H:%M"),
            entry.freed_human,
            str(entry.items_deleted),
            ", ".join(entry.categories),
        )

    console.print(table)
    console.print(f"\n[bold]All-time freed:[/bold] {format_bytes(total_freed(entries))}")


def show_categories() -> None:
    """Display every known category."""
    table = Table(title="Categories", show_header=True, header_style="bold")
    table.add_column("Tag", style="cyan")
    table.add_column("Name")
    table.add_column("Scope")
    table.add_column("Recovery")

    for category in CATEGORIES.values():
        scope = "global" if category.is_global else "per path"
        if not category.deletable:
            scope += " (review only)"
        table.add_row(category.tag.value, f"{category.icon} {category.name}", scope, category.recovery)

    console.print(table)


def confirm_action(message: str, default: bool = False) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message, default=default, console=console)
