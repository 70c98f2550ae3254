"""Artifact scanning for dclean.

Sizes and ages come from a SizeOracle owned by the caller; each category is
an async scan function taking a ScanContext and (for per-root categories) a
root directory, and returning a CategoryResult.
"""

import asyncio
import json
import logging
import math
import os
import stat
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from dclean.models import CategoryResult, CategoryTag, ScanItem
from dclean.walker import IGNORE_DIRS, MAX_SCAN_DEPTH, EnterHook, find_directories, gather_or_cancel

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

NODE_MODULES = "node_modules"
PODS = "Pods"
VENV_NAMES = ("venv", ".venv", "env", "virtualenv")
VENV_MARKERS = ("bin/python", "Scripts/python.exe", "pyvenv.cfg")
GRADLE_MANIFESTS = ("build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts")
CMAKE_BUILD_DIRS = ("cmake-build-debug", "cmake-build-release")
XCODE_PROJECT_SUFFIXES = (".xcodeproj", ".xcworkspace")

NVM_VERSIONS_DIR = ".nvm/versions/node"
NVM_DEFAULT_ALIAS = ".nvm/alias/default"
DERIVED_DATA_DIR = "Library/Developer/Xcode/DerivedData"

# Fixed AI/dev tool data paths under home (review only, never deleted)
AI_DEV_TOOL_PATHS: list[tuple[str, str]] = [
    ("Cursor", ".cursor"),
    ("Claude", ".claude"),
    ("Antigravity (Google)", "Library/Application Support/Antigravity"),
]


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


# =============================================================================
# Size & Metadata Oracle
# =============================================================================


class SizeOracle:
    """
    Measures directory sizes and ages.

    Sizes are cached by resolved path so a directory is walked once per run,
    even when filtering and confirmation ask for it again. The cache is only
    touched from the event loop thread, so it needs no lock.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._cache: dict[Path, int] = {}

    def clear_cache(self) -> None:
        """Forget all measured sizes."""
        self._cache.clear()

    def cached_size(self, path: str | Path) -> int | None:
        return self._cache.get(Path(os.path.abspath(path)))

    async def directory_size(self, path: str | Path) -> int:
        """
        Total size in bytes of regular files under path.

        Symlinks count as zero and are not followed. Subtrees that cannot be
        read (permission denied, vanished) count as zero.

        Raises:
            OSError: Any other I/O error
        """
        resolved = Path(os.path.abspath(path))
        if resolved in self._cache:
            return self._cache[resolved]

        total = await self._measure(resolved)
        self._cache[resolved] = total
        return total

    async def _measure(self, path: Path) -> int:
        try:
            stats = await asyncio.to_thread(os.lstat, path)
        except (PermissionError, FileNotFoundError):
            return 0

        mode = stats.st_mode
        if stat.S_ISLNK(mode):
            return 0
        if stat.S_ISREG(mode):
            return stats.st_size
        if not stat.S_ISDIR(mode):
            return 0

        try:
            names = await asyncio.to_thread(os.listdir, path)
        except PermissionError as e:
            logger.warning("Permission denied, counting %s as empty: %s", path, e)
            return 0
        except FileNotFoundError:
            return 0

        sizes = await gather_or_cancel(self._measure(path / name) for name in names)
        return sum(sizes)

    async def last_modified(self, path: str | Path) -> datetime | None:
        """Modification time of path, or None if it cannot be read."""
        try:
            stats = await asyncio.to_thread(os.stat, path)
        except OSError:
            return None
        return datetime.fromtimestamp(stats.st_mtime)

    def days_since(self, moment: datetime | None) -> int | None:
        """Whole days between moment and now; None stays None (unknown)."""
        if moment is None:
            return None
        elapsed = self.clock() - moment.timestamp()
        return max(0, math.floor(elapsed / SECONDS_PER_DAY))

    async def last_modified_days(self, path: str | Path) -> int | None:
        """Age of path in whole days, or None if its mtime is unreadable."""
        return self.days_since(await self.last_modified(path))


# =============================================================================
# Scan context shared by all scanners
# =============================================================================


@dataclass
class ScanContext:
    """Collaborators and limits handed to every scanner in one run."""

    oracle: SizeOracle = field(default_factory=SizeOracle)
    home: Path = field(default_factory=Path.home)
    max_depth: int = MAX_SCAN_DEPTH
    ignore_names: tuple[str, ...] = IGNORE_DIRS
    on_enter_directory: Optional[EnterHook] = None
    _claimed: set[str] = field(default_factory=set, init=False, repr=False)

    def claim_global(self, key: str) -> bool:
        """
        Claim a once-per-run global scan.

        Returns True the first time a key is claimed. There is no await
        between the check and the add, so concurrent scans cannot both win.
        """
        if key in self._claimed:
            return False
        self._claimed.add(key)
        return True

    async def find(
        self,
        root: Path,
        names: Iterable[str],
        skip_descending_into: Iterable[str] | None = None,
    ) -> list[Path]:
        return await find_directories(
            root,
            names,
            max_depth=self.max_depth,
            ignore_names=self.ignore_names,
            skip_descending_into=skip_descending_into,
            on_enter_directory=self.on_enter_directory,
        )

    async def measure(self, path: Path) -> int:
        """Directory size, or 0 if it cannot be measured."""
        try:
            return await self.oracle.directory_size(path)
        except OSError as e:
            logger.debug("Size calculation failed for %s: %s", path, e)
            return 0

    async def build_item(self, path: Path, **extras) -> ScanItem:
        """Measure a directory and wrap it in a ScanItem."""
        size = await self.measure(path)
        modified = await self.oracle.last_modified(path)
        return ScanItem(
            path=str(path),
            size_bytes=size,
            last_modified_days=self.oracle.days_since(modified),
            last_modified=modified.date() if modified else None,
            **extras,
        )


# =============================================================================
# Filesystem predicates
# =============================================================================


async def path_exists(path: Path) -> bool:
    return await asyncio.to_thread(os.path.exists, path)


async def is_directory(path: Path) -> bool:
    return await asyncio.to_thread(os.path.isdir, path)


async def has_sibling(path: Path, filenames: Iterable[str]) -> bool:
    """Check whether the parent of path contains any of filenames."""
    for filename in filenames:
        if await path_exists(path.parent / filename):
            return True
    return False


async def is_python_venv(path: Path) -> bool:
    """A venv has an interpreter or a pyvenv.cfg directly inside."""
    for marker in VENV_MARKERS:
        if await path_exists(path / marker):
            return True
    return False


async def has_xcode_project(directory: Path) -> bool:
    """Check whether directory holds a .xcodeproj or .xcworkspace."""
    try:
        names = await asyncio.to_thread(os.listdir, directory)
    except OSError:
        return False
    return any(name.endswith(XCODE_PROJECT_SUFFIXES) for name in names)


async def list_subdirectories(directory: Path) -> list[Path]:
    """Direct child directories (not symlinks) of directory."""

    def _list() -> list[Path]:
        with os.scandir(directory) as entries:
            return [Path(e.path) for e in entries if e.is_dir(follow_symlinks=False)]

    return await asyncio.to_thread(_list)


def is_nested_match(path: Path, root: Path, name: str) -> bool:
    """Whether a match sits inside another directory of the same name below root."""
    try:
        between = path.parent.relative_to(root).parts
    except ValueError:
        between = path.parent.parts
    return name in between


async def read_project_name(project_dir: Path) -> str:
    """Project name from package.json, falling back to the directory name."""
    fallback = project_dir.name or "unknown"
    package_json = project_dir / "package.json"

    def _read() -> str:
        with open(package_json, encoding="utf-8") as f:
            data = json.load(f)
        name = data.get("name") if isinstance(data, dict) else None
        return name if isinstance(name, str) and name else fallback

    try:
        return await asyncio.to_thread(_read)
    except (OSError, ValueError):
        return fallback


async def _accept(ctx: ScanContext, candidates: Iterable[Path], manifests: Iterable[str]) -> list[ScanItem]:
    """Build items for candidates that have one of manifests beside them."""
    manifests = tuple(manifests)
    accepted = [d for d in candidates if await has_sibling(d, manifests)]
    return list(await asyncio.gather(*(ctx.build_item(d) for d in accepted)))


# =============================================================================
# Per-root scanners
# =============================================================================


async def scan_node_modules(ctx: ScanContext, root: Path) -> CategoryResult:
    """Top-level node_modules per project (nested ones are skipped)."""
    dirs = await ctx.find(root, [NODE_MODULES])
    top_level = [d for d in dirs if not is_nested_match(d, root, NODE_MODULES)]

    async def _item(path: Path) -> ScanItem:
        return await ctx.build_item(path, parent_project=await read_project_name(path.parent))

    items = await asyncio.gather(*(_item(d) for d in top_level))
    return CategoryResult.from_items(CategoryTag.NODE_MODULES, items)


async def scan_pods(ctx: ScanContext, root: Path) -> CategoryResult:
    """Top-level CocoaPods Pods directories."""
    dirs = await ctx.find(root, [PODS])
    top_level = [d for d in dirs if not is_nested_match(d, root, PODS)]
    items = await asyncio.gather(
        *(ctx.build_item(d, parent_project=d.parent.name or None) for d in top_level)
    )
    return CategoryResult.from_items(CategoryTag.PODS, items)


async def scan_python_venvs(ctx: ScanContext, root: Path) -> CategoryResult:
    """Python virtual environments, identified by interpreter or pyvenv.cfg."""
    candidates = await ctx.find(root, VENV_NAMES)
    venvs = [d for d in candidates if await is_python_venv(d)]
    items = await asyncio.gather(
        *(ctx.build_item(d, parent_project=d.parent.name or None) for d in venvs)
    )
    return CategoryResult.from_items(CategoryTag.PYTHON_VENV, items)


async def scan_rust_targets(ctx: ScanContext, root: Path) -> CategoryResult:
    """Rust target directories next to a Cargo.toml."""
    candidates = await ctx.find(root, ["target"])
    items = await _accept(ctx, candidates, ["Cargo.toml"])
    return CategoryResult.from_items(CategoryTag.RUST_TARGET, items)


async def scan_gradle_builds(ctx: ScanContext, root: Path) -> CategoryResult:
    """Gradle build and .gradle directories next to a Gradle build script."""
    candidates = await ctx.find(root, ["build", ".gradle"])
    items = await _accept(ctx, candidates, GRADLE_MANIFESTS)
    return CategoryResult.from_items(CategoryTag.GRADLE_BUILD, items)


async def scan_cmake_builds(ctx: ScanContext, root: Path) -> CategoryResult:
    """CLion-style CMake build directories next to a CMakeLists.txt."""
    candidates = await ctx.find(root, CMAKE_BUILD_DIRS)
    items = await _accept(ctx, candidates, ["CMakeLists.txt"])
    return CategoryResult.from_items(CategoryTag.CMAKE_BUILD, items)


async def scan_flutter_builds(ctx: ScanContext, root: Path) -> CategoryResult:
    """Flutter build and .dart_tool directories next to a pubspec.yaml."""
    candidates = await ctx.find(root, ["build", ".dart_tool"])
    items = await _accept(ctx, candidates, ["pubspec.yaml"])
    return CategoryResult.from_items(CategoryTag.FLUTTER_BUILD, items)


async def scan_xcode_derived_data(ctx: ScanContext, root: Optional[Path] = None) -> CategoryResult:
    """
    Project folders in Xcode's DerivedData.

    DerivedData is a fixed global location, so it is listed at most once per
    run however many roots are scanned.
    """
    derived_data = ctx.home / DERIVED_DATA_DIR
    if not ctx.claim_global("xcode_derived_data") or not await is_directory(derived_data):
        return CategoryResult.empty(CategoryTag.XCODE_BUILD)

    try:
        projects = await list_subdirectories(derived_data)
    except OSError as e:
        logger.debug("Cannot list %s: %s", derived_data, e)
        projects = []
    items = await asyncio.gather(*(ctx.build_item(p, is_derived_data=True) for p in projects))
    return CategoryResult.from_items(CategoryTag.XCODE_BUILD, items)


async def scan_xcode_builds(ctx: ScanContext, root: Path) -> CategoryResult:
    """Project-local Xcode build directories beside a .xcodeproj or .xcworkspace."""
    items: list[ScanItem] = []
    derived_data = ctx.home / DERIVED_DATA_DIR

    for build_dir in await ctx.find(root, ["build"]):
        if build_dir.is_relative_to(derived_data):
            continue
        if await has_xcode_project(build_dir.parent):
            items.append(await ctx.build_item(build_dir, parent_project=build_dir.parent.name))

    return CategoryResult.from_items(CategoryTag.XCODE_BUILD, items)


# =============================================================================
# Global scanners
# =============================================================================


def _normalize_version(label: str) -> str:
    return label.strip().lstrip("v")


async def read_current_nvm_version(home: Path) -> str | None:
    """Read the nvm default alias, or None if it is not set."""
    alias = home / NVM_DEFAULT_ALIAS
    try:
        content = await asyncio.to_thread(alias.read_text, encoding="utf-8")
    except OSError:
        return None
    return content.strip() or None


async def scan_nvm_versions(ctx: ScanContext, root: Optional[Path] = None) -> CategoryResult:
    """Installed nvm Node versions, flagging the default one."""
    versions_dir = ctx.home / NVM_VERSIONS_DIR
    if not await is_directory(versions_dir):
        return CategoryResult.empty(CategoryTag.NVM)

    current = await read_current_nvm_version(ctx.home)
    try:
        version_dirs = await list_subdirectories(versions_dir)
    except OSError as e:
        logger.debug("Cannot list %s: %s", versions_dir, e)
        return CategoryResult.empty(CategoryTag.NVM)

    def _is_current(version: str) -> bool:
        return current is not None and _normalize_version(version) == _normalize_version(current)

    items = await asyncio.gather(
        *(
            ctx.build_item(d, version=d.name, is_current=_is_current(d.name))
            for d in version_dirs
        )
    )
    return CategoryResult.from_items(CategoryTag.NVM, items, current_version=current)


async def scan_ai_dev_tools(ctx: ScanContext, root: Optional[Path] = None) -> CategoryResult:
    """Data directories of AI coding tools at fixed paths under home."""
    items: list[ScanItem] = []
    for name, rel_path in AI_DEV_TOOL_PATHS:
        path = ctx.home / rel_path
        if not await is_directory(path):
            continue
        items.append(await ctx.build_item(path, name=name))
    return CategoryResult.from_items(CategoryTag.AI_DEV_TOOLS, items)
