"""Cleanup execution with safety checks for dclean."""

import asyncio
import errno
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from send2trash import send2trash

from dclean.models import CleanupReport, DeletionOutcome, ScanItem, Selection

logger = logging.getLogger(__name__)

# Directories directly under home that must never be removed themselves.
# Their contents are fair game (a node_modules under ~/Documents is fine).
PROTECTED_DIRS = [
    "Desktop",
    "Documents",
    "Downloads",
    ".ssh",
    "Library",
]

TrashFunc = Callable[[str], None]


class UnsafePathError(ValueError):
    """A path failed validation and must not be deleted."""


class InvalidPathError(UnsafePathError):
    """Empty path, or the filesystem root."""


class OutsideHomeError(UnsafePathError):
    """Path is not strictly inside the home directory."""


class ProtectedDirectoryError(UnsafePathError):
    """Path is one of the protected directories."""


def get_protected_paths(home: Optional[Path] = None) -> list[Path]:
    """Home itself plus the protected directories directly under it."""
    home = Path(os.path.abspath(home or Path.home()))
    return [home] + [home / name for name in PROTECTED_DIRS]


def validate_for_deletion(path: str | Path, home: Optional[Path] = None) -> Path:
    """
    Check that a path is safe to move to the trash.

    Args:
        path: Path to check
        home: Home directory (defaults to Path.home())

    Returns:
        The absolute, normalized path

    Raises:
        InvalidPathError: Path is empty or resolves to /
        OutsideHomeError: Path is home itself or not below it
        ProtectedDirectoryError: Path is a protected directory
    """
    if path is None or str(path).strip() == "":
        raise InvalidPathError("Invalid path for deletion")

    resolved = Path(os.path.abspath(os.path.expanduser(str(path))))
    if resolved == Path(resolved.anchor):
        raise InvalidPathError("Invalid path for deletion")

    home = Path(os.path.abspath(home or Path.home()))
    if resolved == home or not resolved.is_relative_to(home):
        raise OutsideHomeError(f"Can only delete within home directory: {path}")

    if resolved in get_protected_paths(home):
        raise ProtectedDirectoryError(f"Cannot delete protected directory: {path}")

    return resolved


def is_path_safe(path: str | Path, home: Optional[Path] = None) -> bool:
    """
    Check if a path is safe to delete.

    Returns:
        True if validate_for_deletion accepts it, False otherwise
    """
    try:
        validate_for_deletion(path, home)
    except UnsafePathError:
        return False
    return True


def flatten_and_dedupe(selections: list[Selection]) -> list[ScanItem]:
    """
    Flatten selections into one list with each path at most once.

    The first occurrence of a path wins, so overlapping shortcuts
    ("older than 3 months" and "ALL") never target a path twice.
    """
    by_path: dict[str, ScanItem] = {}
    for selection in selections:
        for item in selection.items:
            by_path.setdefault(item.path, item)
    return list(by_path.values())


def _error_code(error: BaseException) -> Optional[int]:
    return getattr(error, "errno", None)


async def safe_delete(
    path: str | Path,
    dry_run: bool = False,
    trash: TrashFunc = send2trash,
    home: Optional[Path] = None,
) -> None:
    """
    Move a path to the trash after safety checks.

    A path that no longer exists counts as deleted.

    Raises:
        UnsafePathError: Validation failed (nothing was touched)
        PermissionError: The trash move was not permitted
        Exception: Any other failure from the trash primitive
    """
    resolved = validate_for_deletion(path, home)

    if dry_run:
        return

    try:
        await asyncio.to_thread(trash, str(resolved))
    except Exception as e:
        if isinstance(e, FileNotFoundError) or _error_code(e) == errno.ENOENT:
            logger.debug("Already gone: %s", resolved)
            return
        if isinstance(e, PermissionError) or _error_code(e) in (errno.EACCES, errno.EPERM):
            raise PermissionError(f"Permission denied: {path}") from e
        raise


async def perform_cleanup(
    selections: list[Selection],
    dry_run: bool = False,
    trash: TrashFunc = send2trash,
    home: Optional[Path] = None,
) -> CleanupReport:
    """
    Move every selected path to the trash.

    Args:
        selections: Selected items per category (may overlap)
        dry_run: If True, validate and report without touching the filesystem
        trash: Trash primitive taking an absolute path
        home: Home directory for validation (defaults to Path.home())

    Returns:
        CleanupReport with one outcome per unique path
    """
    outcomes: list[DeletionOutcome] = []

    for item in flatten_and_dedupe(selections):
        try:
            await safe_delete(item.path, dry_run=dry_run, trash=trash, home=home)
        except Exception as e:
            logger.warning("Failed to delete %s: %s", item.path, e)
            outcomes.append(DeletionOutcome(path=item.path, size_bytes=0, success=False, error=str(e)))
            continue

        if dry_run:
            logger.info("[DRY RUN] Would move to trash: %s", item.path)
        outcomes.append(DeletionOutcome(path=item.path, size_bytes=item.size_bytes, success=True))

    return CleanupReport(outcomes=outcomes, dry_run=dry_run)
