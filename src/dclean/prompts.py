"""Interactive prompts for dclean."""

from pathlib import Path
from typing import Optional

from dclean.analyzer import CleanupChoice, build_category_choices, sort_by_size
from dclean.categories import CATEGORIES
from dclean.cleaner import flatten_and_dedupe
from dclean.config import resolve_path
from dclean.display import confirm_action, console, format_days_ago, short_label
from dclean.models import CategoryTag, ScanItem, ScanReport, Selection, format_bytes

# Directories under home offered when choosing what to scan
COMMON_SCAN_DIRS = ["Desktop", "Documents", "projects", "dev", "code", "work", "src", "repos"]


def _to_number(text: str) -> int:
    if not text.strip().isdigit():
        raise ValueError(f"Not a number: {text}")
    return int(text)


def parse_selection(text: str, count: int) -> list[int]:
    """
    Parse a numbered multi-select answer into zero-based indices.

    Accepts "1,3", "2-4", "all", or blank for nothing. Order of first
    mention is kept and duplicates are dropped.

    Raises:
        ValueError: The answer is not a valid selection
    """
    answer = text.strip().lower()
    if not answer:
        return []
    if answer in ("all", "a", "*"):
        return list(range(count))

    picked: list[int] = []
    for part in answer.replace(" ", ",").split(","):
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            start, end = _to_number(start_s), _to_number(end_s)
            if start > end:
                raise ValueError(f"Invalid range: {part}")
            numbers = range(start, end + 1)
        else:
            numbers = range(_to_number(part), _to_number(part) + 1)
        for number in numbers:
            if not 1 <= number <= count:
                raise ValueError(f"Please enter numbers between 1 and {count}")
            if number - 1 not in picked:
                picked.append(number - 1)
    return picked


def ask_multi_select(message: str, labels: list[str]) -> list[int]:
    """Show a numbered list and ask until a valid selection is entered."""
    console.print(f"\n[bold]{message}[/bold]")
    for i, label in enumerate(labels, 1):
        console.print(f"  [cyan]{i:>2}.[/cyan] {label}")
    console.print("[dim]Enter numbers (e.g. 1,3 or 2-4), 'all', or press Enter to skip[/dim]")

    while True:
        answer = console.input("\n[bold cyan]Select:[/bold cyan] ")
        try:
            return parse_selection(answer, len(labels))
        except ValueError as e:
            console.print(f"[yellow]{e}[/yellow]")


def prompt_for_categories() -> list[CategoryTag]:
    """Ask which categories to scan."""
    categories = list(CATEGORIES.values())
    labels = [f"{c.icon} {c.name} [dim]{c.description}[/dim]" for c in categories]
    picked = ask_multi_select("What should dclean look for?", labels)
    return [categories[i].tag for i in picked]


def prompt_for_scan_paths(home: Optional[Path] = None) -> list[Path]:
    """Ask which directories to scan: common folders plus an optional custom path."""
    home = home or Path.home()
    labels = [f"~/{name}" for name in COMMON_SCAN_DIRS] + ["➕ Enter custom path..."]
    picked = ask_multi_select("Which directories should dclean scan?", labels)

    paths = [home / COMMON_SCAN_DIRS[i] for i in picked if i < len(COMMON_SCAN_DIRS)]
    if len(COMMON_SCAN_DIRS) in picked:
        custom = console.input(
            "[bold cyan]Path to scan (e.g. ~/my-projects). Enter to skip:[/bold cyan] "
        )
        resolved = resolve_path(custom, home)
        if resolved is not None:
            paths.append(resolved)
    return paths


def _item_line(item: ScanItem) -> str:
    age = format_days_ago(item.last_modified_days)
    return f"{short_label(item.path)} [dim]{format_bytes(item.size_bytes)}  {age}[/dim]"


def prompt_for_specific_items(category_name: str, items: list[ScanItem]) -> list[ScanItem]:
    """Pick individual items of a category, largest first."""
    ordered = sort_by_size(items)
    picked = ask_multi_select(
        f"Select specific {category_name} to delete:", [_item_line(item) for item in ordered]
    )
    return [ordered[i] for i in picked]


def prompt_for_cleanup(report: ScanReport) -> list[Selection]:
    """
    Ask what to clean from a scan report.

    Returns:
        Selections to clean (empty if the user skipped)
    """
    choices: list[CleanupChoice] = []
    for tag in CATEGORIES:
        choices.extend(build_category_choices(report.get(tag)))

    if not choices:
        return []

    picked = ask_multi_select(
        "Choose what to move to the Trash (nothing is deleted unless chosen):",
        [choice.label for choice in choices],
    )

    selections: list[Selection] = []
    for index in picked:
        choice = choices[index]
        if choice.pick_specific:
            category = CATEGORIES[choice.selection.category]
            items = prompt_for_specific_items(category.name, choice.selection.items)
            if items:
                selections.append(Selection(category=choice.selection.category, items=items))
        else:
            selections.append(choice.selection)
    return selections


def confirm_cleanup(selections: list[Selection]) -> bool:
    """List every path that will be moved to the Trash and ask to confirm."""
    to_delete = flatten_and_dedupe(selections)
    if not to_delete:
        return False

    total = sum(item.size_bytes for item in to_delete)
    console.print("\n[yellow]⚠️  The following will be moved to Trash (recoverable):[/yellow]\n")
    for i, item in enumerate(to_delete, 1):
        console.print(f"  [dim]{i}.[/dim] {_item_line(item)}")
    console.print(f"\n[yellow]  Total: {len(to_delete)} item(s), {format_bytes(total)}[/yellow]\n")

    return confirm_action("Move these to Trash? You can restore them from Trash if needed.")
