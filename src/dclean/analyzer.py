"""Scan orchestration and selection building for dclean."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from dclean.categories import CATEGORIES, Category, ScanHandler
from dclean.cleaner import flatten_and_dedupe
from dclean.models import CategoryResult, CategoryTag, ScanItem, ScanReport, Selection, format_bytes
from dclean.scanner import ScanContext, SizeOracle
from dclean.walker import EnterHook

logger = logging.getLogger(__name__)

# Age thresholds (days) and size thresholds (bytes) offered as cleanup shortcuts
AGE_BUCKETS: list[tuple[int, str]] = [
    (90, "3 months"),
    (180, "6 months"),
    (365, "1 year"),
]
SIZE_BUCKETS: list[tuple[int, str]] = [
    (500 * 1024 * 1024, "500 MB"),
    (1024 * 1024 * 1024, "1 GB"),
]


async def _scan_one(
    category: Category,
    handler: ScanHandler,
    ctx: ScanContext,
    root: Optional[Path],
) -> CategoryResult:
    """Run a single (category, root) scan; failures degrade to an empty result."""
    try:
        return await handler(ctx, root)
    except Exception as e:
        where = f" for {root}" if root is not None else ""
        logger.warning("%s scanner failed%s: %s", category.name, where, e)
        return CategoryResult.empty(category.tag)


async def _scan_category(
    category: Category,
    ctx: ScanContext,
    roots: list[Path],
) -> CategoryResult:
    if category.is_global:
        return await _scan_one(category, category.handler, ctx, None)

    # A fixed-location pass runs as its own slice so a failing root cannot drop it
    slices = [_scan_one(category, category.handler, ctx, root) for root in roots]
    if category.global_handler is not None:
        slices.insert(0, _scan_one(category, category.global_handler, ctx, None))

    per_slice = await asyncio.gather(*slices)
    return CategoryResult.merge(category.tag, list(per_slice))


async def run_scans(
    roots: Iterable[str | Path],
    enabled: Iterable[CategoryTag | str],
    oracle: Optional[SizeOracle] = None,
    on_enter_directory: Optional[EnterHook] = None,
    home: Optional[Path] = None,
) -> ScanReport:
    """
    Run every enabled category scanner over the given roots.

    Global categories are scanned once; per-root categories are scanned
    concurrently for each root and merged. Disabled categories get an empty
    result so the report always has every category.

    Args:
        roots: Existing directories to scan
        enabled: Category tags to scan
        oracle: Size oracle (and cache) to use; a fresh one if omitted
        on_enter_directory: Progress hook for each top-level directory entered
        home: Home directory for global locations (defaults to Path.home())

    Returns:
        ScanReport with one CategoryResult per known category
    """
    root_paths = [Path(r) for r in roots]
    enabled_tags = {CategoryTag(tag) for tag in enabled}

    ctx = ScanContext(
        oracle=oracle or SizeOracle(),
        home=home or Path.home(),
        on_enter_directory=on_enter_directory,
    )

    active = [c for tag, c in CATEGORIES.items() if tag in enabled_tags]
    scanned = await asyncio.gather(*(_scan_category(c, ctx, root_paths) for c in active))

    results = {tag: CategoryResult.empty(tag) for tag in CATEGORIES}
    for category, result in zip(active, scanned):
        results[category.tag] = result

    return ScanReport(
        results=results,
        total_size_bytes=sum(r.total_size_bytes for r in results.values()),
        roots=[str(p) for p in root_paths],
        scanned_at=datetime.now(),
    )


def filter_older_than(items: list[ScanItem], days: int) -> list[ScanItem]:
    """Items not modified for more than days (unknown age counts as old)."""
    return [item for item in items if item.is_older_than(days)]


def filter_larger_than(items: list[ScanItem], min_bytes: int) -> list[ScanItem]:
    """Items of at least min_bytes."""
    return [item for item in items if item.size_bytes >= min_bytes]


def sort_by_size(items: list[ScanItem]) -> list[ScanItem]:
    """Largest first."""
    return sorted(items, key=lambda item: item.size_bytes, reverse=True)


@dataclass
class CleanupChoice:
    """One pickable line in the cleanup menu for a category."""

    label: str
    selection: Selection
    pick_specific: bool = False


def build_category_choices(result: CategoryResult) -> list[CleanupChoice]:
    """
    Build cleanup shortcuts for a category.

    Age and size shortcuts only appear when they would select something. The
    last two choices are always "ALL" and a marker for picking items one by one.
    The active nvm version and review-only categories are never offered.
    """
    category = CATEGORIES[result.category]
    if not category.deletable:
        return []
    items = [item for item in result.items if not item.is_current]
    if not items:
        return []

    prefix = f"{category.icon} {category.name}".strip()
    choices: list[CleanupChoice] = []

    def _add(label: str, subset: list[ScanItem]) -> None:
        total = sum(item.size_bytes for item in subset)
        choices.append(
            CleanupChoice(
                label=f"{label} ({len(subset)}, {format_bytes(total)})",
                selection=Selection(category=result.category, items=subset),
            )
        )

    for days, label in AGE_BUCKETS:
        subset = filter_older_than(items, days)
        if subset:
            _add(f"{prefix} older than {label}", subset)

    for min_bytes, label in SIZE_BUCKETS:
        subset = filter_larger_than(items, min_bytes)
        if subset:
            _add(f"{prefix} larger than {label}", subset)

    _add(f"{category.icon} ALL {category.name}".strip(), items)
    choices.append(
        CleanupChoice(
            label=f"  ↳ Select specific {category.name}...",
            selection=Selection(category=result.category, items=sort_by_size(items)),
            pick_specific=True,
        )
    )
    return choices


def estimate_cleanup_savings(selections: list[Selection]) -> int:
    """Bytes that cleaning the selections would free, counting each path once."""
    return sum(item.size_bytes for item in flatten_and_dedupe(selections))
