"""CLI interface for dclean."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from dclean import __version__
from dclean.analyzer import run_scans
from dclean.categories import CATEGORIES
from dclean.cleaner import perform_cleanup
from dclean.config import get_config_path, load_config, resolve_path, resolve_scan_paths, save_config
from dclean.display import (
    confirm_action,
    console,
    reclaimable_bytes,
    short_label,
    show_categories,
    show_cleanup_summary,
    show_history,
    show_report,
)
from dclean.history import get_history, log_cleanup
from dclean.models import CategoryTag, ScanReport
from dclean.prompts import confirm_cleanup, prompt_for_categories, prompt_for_cleanup, prompt_for_scan_paths

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

# Create Typer app
app = typer.Typer(
    name="dclean",
    help="Find and clean up disposable development artifacts (moved to Trash, recoverable)",
    add_completion=False,
)


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through rich on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dclean version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """dclean - find node_modules, venvs, build output and other dev cruft."""
    setup_logging()

    # If no command specified, run an interactive scan
    if ctx.invoked_subcommand is None:
        run_scan()


def _enabled_from_flags(flags: dict[CategoryTag, bool]) -> list[CategoryTag]:
    return [tag for tag, enabled in flags.items() if enabled]


def _resolve_roots(
    path: Optional[str],
    enabled: list[CategoryTag],
    interactive: bool,
    home: Path,
) -> list[Path]:
    """
    Decide which directories to scan.

    Order: --path, then the config file, then home for global-only scans,
    then an interactive prompt. An empty list means there is nothing to do.
    """
    if path is not None:
        resolved = resolve_path(path, home)
        if resolved is None:
            console.print("[red]Error: Invalid --path. Provide an existing directory.[/red]")
            raise typer.Exit(EXIT_ERROR)
        if not resolved.is_dir() or not os.access(resolved, os.R_OK):
            console.print(f"[red]Error: Path is not a readable directory: {resolved}[/red]")
            raise typer.Exit(EXIT_ERROR)
        return [resolved]

    config = load_config(home)
    if config.scan_paths:
        resolved_paths = resolve_scan_paths(config.scan_paths, home)
        if resolved_paths.missing:
            logger.warning(
                "Skipping non-existent or unreadable path(s): %s",
                ", ".join(short_label(p, home) for p in resolved_paths.missing),
            )
        if not resolved_paths.paths:
            console.print(
                "[yellow]None of the configured scan paths exist or are readable. "
                "Run [bold]dclean init[/bold] or use --path.[/yellow]"
            )
            raise typer.Exit(EXIT_ERROR)
        return resolved_paths.paths

    if all(CATEGORIES[tag].is_global for tag in enabled):
        return [home]

    if not interactive:
        console.print(
            "[yellow]No scan paths configured. Run [bold]dclean init[/bold] "
            "or use --path <dir> to scan one directory.[/yellow]"
        )
        return []

    console.print("[dim]No scan paths set yet. Choose directories to scan.[/dim]")
    chosen = prompt_for_scan_paths(home)
    save_prompt = f"Save these paths to {short_label(get_config_path(home), home)} for next time?"
    if chosen and confirm_action(save_prompt, default=True):
        if save_config(chosen, home):
            console.print(f"[green]Saved to {get_config_path(home)}[/green]")
    return [p for p in chosen if p.is_dir()]


def _scan_with_status(roots: list[Path], enabled: list[CategoryTag], home: Path) -> ScanReport:
    with console.status("[bold blue]Scanning...[/bold blue]") as status:

        def on_enter(directory: Path, depth: int) -> None:
            status.update(f"[bold blue]Scanning[/bold blue] {short_label(directory, home)}")

        return asyncio.run(run_scans(roots, enabled, on_enter_directory=on_enter, home=home))


def run_scan(
    flags: Optional[dict[CategoryTag, bool]] = None,
    path: Optional[str] = None,
    dry_run: bool = False,
    yes: bool = False,
    interactive: bool = True,
    verbose: bool = False,
) -> None:
    """Scan, show results, then interactively clean up."""
    setup_logging(verbose)
    home = Path.home()

    try:
        enabled = _enabled_from_flags(flags or {})
        if not enabled:
            enabled = prompt_for_categories() if interactive else list(CATEGORIES)
            if not enabled:
                console.print("[yellow]Nothing selected. Exiting.[/yellow]")
                raise typer.Exit(EXIT_SUCCESS)

        roots = _resolve_roots(path, enabled, interactive, home)
        if not roots:
            raise typer.Exit(EXIT_SUCCESS)

        report = _scan_with_status(roots, enabled, home)
        show_report(report)

        if reclaimable_bytes(report) == 0:
            raise typer.Exit(EXIT_SUCCESS)

        if not interactive:
            console.print("[dim]Run without --no-interactive to choose what to clean.[/dim]")
            raise typer.Exit(EXIT_SUCCESS)

        selections = prompt_for_cleanup(report)
        if not selections:
            console.print("[yellow]Nothing selected. No files were touched.[/yellow]")
            raise typer.Exit(EXIT_SUCCESS)

        if not yes and not confirm_cleanup(selections):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(EXIT_CANCELLED)

        if dry_run:
            console.print("\n[yellow][DRY RUN] No files will be moved to Trash.[/yellow]")

        result = asyncio.run(perform_cleanup(selections, dry_run=dry_run))
        show_cleanup_summary(result)

        if result.success_count > 0 and not dry_run:
            categories = list(dict.fromkeys(s.category.value for s in selections))
            log_cleanup(result.total_freed_bytes, result.success_count, categories, home=home)

    except (KeyboardInterrupt, EOFError):
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(EXIT_ERROR)


@app.command()
def scan(
    node_modules: bool = typer.Option(False, "--node-modules", help="Scan for node_modules"),
    python: bool = typer.Option(False, "--python", help="Scan for Python virtual environments"),
    nvm: bool = typer.Option(False, "--nvm", help="Scan installed nvm Node.js versions"),
    pods: bool = typer.Option(False, "--pods", help="Scan for CocoaPods Pods folders"),
    rust: bool = typer.Option(False, "--rust", help="Scan for Rust target directories"),
    gradle: bool = typer.Option(False, "--gradle", help="Scan for Gradle build output"),
    cmake: bool = typer.Option(False, "--cmake", help="Scan for CMake build directories"),
    flutter: bool = typer.Option(False, "--flutter", help="Scan for Flutter build output"),
    xcode: bool = typer.Option(False, "--xcode", help="Scan for Xcode DerivedData and build dirs"),
    ai_dev_tools: bool = typer.Option(
        False, "--ai-dev-tools", help="Report AI coding tool data directories (review only)"
    ),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Scan only this directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without moving anything"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip the final confirmation"),
    no_interactive: bool = typer.Option(
        False, "--no-interactive", help="Only scan and show results, no cleanup prompts"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging and tracebacks"),
) -> None:
    """Scan for development artifacts and clean them up."""
    flags = {
        CategoryTag.NODE_MODULES: node_modules,
        CategoryTag.PYTHON_VENV: python,
        CategoryTag.NVM: nvm,
        CategoryTag.PODS: pods,
        CategoryTag.RUST_TARGET: rust,
        CategoryTag.GRADLE_BUILD: gradle,
        CategoryTag.CMAKE_BUILD: cmake,
        CategoryTag.FLUTTER_BUILD: flutter,
        CategoryTag.XCODE_BUILD: xcode,
        CategoryTag.AI_DEV_TOOLS: ai_dev_tools,
    }
    run_scan(
        flags=flags,
        path=path,
        dry_run=dry_run,
        yes=yes,
        interactive=not no_interactive,
        verbose=verbose,
    )


@app.command()
def init() -> None:
    """Choose directories to scan and save them to the config file."""
    home = Path.home()
    console.print(f"[dim]Your selection will be saved to {get_config_path(home)}[/dim]")
    try:
        chosen = prompt_for_scan_paths(home)
    except (KeyboardInterrupt, EOFError):
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)

    if not chosen:
        console.print("[yellow]No paths selected. Config not changed.[/yellow]")
        return

    if not save_config(chosen, home):
        console.print(f"[red]Could not write config file. Check permissions for {get_config_path(home)}[/red]")
        raise typer.Exit(EXIT_ERROR)

    console.print(f"[green]Saved {len(chosen)} path(s) to {get_config_path(home)}[/green]")
    console.print(f"[dim]Paths: {', '.join(short_label(p, home) for p in chosen)}[/dim]")
    console.print("[dim]Run [bold]dclean scan --node-modules[/bold] to start[/dim]")


@app.command()
def history() -> None:
    """Show past cleanup operations."""
    show_history(get_history())


@app.command(name="list")
def list_categories() -> None:
    """List all artifact categories."""
    show_categories()
    console.print("\n[dim]Run [bold]dclean scan --help[/bold] for the matching flags[/dim]")


if __name__ == "__main__":
    app()
