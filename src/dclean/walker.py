"""Depth-bounded asynchronous directory walking.

This module provides the traversal shared by every scanner: a recursive walk
that never follows symlinks, skips well-known unproductive directories, and
can stop descending into directories it was asked to find (there is no need to
search inside a node_modules for more node_modules).
"""

import asyncio
import inspect
import logging
import os
import stat
from pathlib import Path, PurePath
from typing import Awaitable, Callable, Iterable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

# Directories never walked (system, VCS, trash, caches)
IGNORE_DIRS: tuple[str, ...] = (
    ".Trash",
    "Library",
    "System",
    ".git",
    ".cache",
    "node_modules/node_modules",
)

# Hard bound against pathological trees and accidental whole-disk scans
MAX_SCAN_DEPTH = 5

Visitor = Callable[[Path, os.stat_result], Union[None, Awaitable[None]]]
EnterHook = Callable[[Path, int], None]
T = TypeVar("T")


def _is_access_error(error: OSError) -> bool:
    return isinstance(error, (PermissionError, FileNotFoundError))


async def gather_or_cancel(coros: Iterable[Awaitable[T]]) -> list[T]:
    """Await coroutines concurrently; if one fails, the others are cancelled."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


def is_ignored(path: Path, ignore_names: Iterable[str]) -> bool:
    """
    Check whether a directory matches an ignore entry.

    Single-name entries match the base name. Entries with several components
    (e.g. 'node_modules/node_modules') match the trailing components of the path.
    """
    parts = path.parts
    for ignore in ignore_names:
        ignore_parts = PurePath(ignore).parts
        if not ignore_parts:
            continue
        if len(ignore_parts) == 1:
            if path.name == ignore_parts[0]:
                return True
        elif tuple(parts[-len(ignore_parts):]) == ignore_parts:
            return True
    return False


async def walk(
    root: Union[str, Path],
    visit: Visitor,
    max_depth: int = MAX_SCAN_DEPTH,
    ignore_names: Iterable[str] = IGNORE_DIRS,
    skip_descending_into: Iterable[str] = (),
    on_enter_directory: Optional[EnterHook] = None,
) -> None:
    """
    Walk a directory tree, calling visit(path, stats) for files and directories.

    Args:
        root: Directory to start from (depth 0)
        visit: Callback for every non-ignored entry; may be a coroutine function
        max_depth: Entries deeper than this are not walked
        ignore_names: Directory names (or trailing path components) skipped entirely
        skip_descending_into: Directory names reported but not descended into
        on_enter_directory: Progress hook called for each direct child directory of root

    Raises:
        OSError: Any I/O error other than permission denied or not found
    """
    ignore_names = tuple(ignore_names)
    skip_names = frozenset(skip_descending_into)

    async def _walk(current: Path, depth: int) -> None:
        if depth > max_depth:
            return

        try:
            stats = await asyncio.to_thread(os.lstat, current)
        except OSError as e:
            if _is_access_error(e):
                logger.debug("Skipping %s: %s", current, e)
                return
            raise

        mode = stats.st_mode
        if stat.S_ISLNK(mode):
            return

        if stat.S_ISREG(mode):
            await _call_visit(current, stats)
            return

        if not stat.S_ISDIR(mode):
            return

        if is_ignored(current, ignore_names):
            return

        if on_enter_directory is not None and depth == 1:
            try:
                on_enter_directory(current, depth)
            except Exception as e:
                logger.debug("Progress hook failed for %s: %s", current, e)

        await _call_visit(current, stats)

        if current.name in skip_names:
            return

        try:
            names = await asyncio.to_thread(os.listdir, current)
        except OSError as e:
            if _is_access_error(e):
                logger.debug("Cannot list %s: %s", current, e)
                return
            raise

        await gather_or_cancel(_walk(current / name, depth + 1) for name in names)

    async def _call_visit(path: Path, stats: os.stat_result) -> None:
        result = visit(path, stats)
        if inspect.isawaitable(result):
            await result

    await _walk(Path(root), 0)


async def find_directories(
    root: Union[str, Path],
    names: Iterable[str],
    max_depth: int = MAX_SCAN_DEPTH,
    ignore_names: Iterable[str] = IGNORE_DIRS,
    skip_descending_into: Optional[Iterable[str]] = None,
    on_enter_directory: Optional[EnterHook] = None,
) -> list[Path]:
    """
    Find directories under root whose base name is one of names.

    Matches are not descended into unless skip_descending_into says otherwise.

    Returns:
        Paths of matching directories, in no particular order
    """
    names = frozenset(names)
    found: list[Path] = []

    def _collect(path: Path, stats: os.stat_result) -> None:
        if stat.S_ISDIR(stats.st_mode) and path.name in names:
            found.append(path)

    await walk(
        root,
        _collect,
        max_depth=max_depth,
        ignore_names=ignore_names,
        skip_descending_into=names if skip_descending_into is None else skip_descending_into,
        on_enter_directory=on_enter_directory,
    )
    return found
