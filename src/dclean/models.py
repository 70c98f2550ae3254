"""Data models for dclean."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryTag(str, Enum):
    """Kinds of disposable development artifacts."""

    NODE_MODULES = "node_modules"
    PYTHON_VENV = "python_venv"
    NVM = "nvm"
    PODS = "pods"
    RUST_TARGET = "rust_target"
    GRADLE_BUILD = "gradle_build"
    CMAKE_BUILD = "cmake_build"
    FLUTTER_BUILD = "flutter_build"
    XCODE_BUILD = "xcode_build"
    AI_DEV_TOOLS = "ai_dev_tools"


def format_bytes(size_bytes: int) -> str:
    """Format bytes as a human-readable string (binary units)."""
    if size_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return f"{size_bytes} B"
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {units[index]}"


class ScanItem(BaseModel):
    """One discovered artifact directory."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the directory")
    size_bytes: int = Field(0, ge=0, description="Total recursive size in bytes")
    last_modified_days: Optional[int] = Field(
        None, ge=0, description="Days since last modification, None if unknown"
    )
    last_modified: Optional[date] = Field(None, description="Date of last modification")

    # Category-specific extras
    parent_project: Optional[str] = Field(None, description="Owning project directory name")
    version: Optional[str] = Field(None, description="Toolchain version label")
    is_current: bool = Field(False, description="Whether this is the active version")
    name: Optional[str] = Field(None, description="Display name for fixed tool paths")
    is_derived_data: bool = Field(False, description="Whether this lives in Xcode DerivedData")

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_bytes(self.size_bytes)

    def is_older_than(self, days: int) -> bool:
        """Unknown age counts as older than any threshold."""
        if self.last_modified_days is None:
            return True
        return self.last_modified_days > days


class CategoryResult(BaseModel):
    """One classifier's output for one run."""

    model_config = ConfigDict(frozen=True)

    category: CategoryTag
    items: list[ScanItem] = Field(default_factory=list)
    total_size_bytes: int = Field(0, ge=0)
    count: int = Field(0, ge=0)
    current_version: Optional[str] = Field(None, description="Active version, nvm only")

    @classmethod
    def from_items(
        cls,
        category: CategoryTag,
        items: list[ScanItem],
        current_version: Optional[str] = None,
    ) -> "CategoryResult":
        """Build a result whose totals always match its items."""
        items = list(items)
        return cls(
            category=category,
            items=items,
            total_size_bytes=sum(item.size_bytes for item in items),
            count=len(items),
            current_version=current_version,
        )

    @classmethod
    def empty(cls, category: CategoryTag) -> "CategoryResult":
        return cls.from_items(category, [])

    @classmethod
    def merge(cls, category: CategoryTag, results: list["CategoryResult"]) -> "CategoryResult":
        """
        Combine results from several roots and recompute totals.

        Overlapping roots can report the same directory more than once; the
        first occurrence of a path wins.
        """
        by_path: dict[str, ScanItem] = {}
        for result in results:
            for item in result.items:
                by_path.setdefault(item.path, item)
        items = list(by_path.values())
        current = next((r.current_version for r in results if r.current_version), None)
        return cls.from_items(category, items, current_version=current)

    @property
    def size_human(self) -> str:
        return format_bytes(self.total_size_bytes)


class ScanReport(BaseModel):
    """Aggregate of every category's result for one run."""

    model_config = ConfigDict(frozen=True)

    results: dict[CategoryTag, CategoryResult] = Field(default_factory=dict)
    total_size_bytes: int = Field(0, ge=0)
    roots: list[str] = Field(default_factory=list)
    scanned_at: datetime = Field(default_factory=datetime.now)

    def get(self, category: CategoryTag) -> CategoryResult:
        """Result for a category; never missing."""
        return self.results.get(category) or CategoryResult.empty(category)

    @property
    def has_items(self) -> bool:
        """Whether any category found something."""
        return any(result.count > 0 for result in self.results.values())

    @property
    def size_human(self) -> str:
        return format_bytes(self.total_size_bytes)


class Selection(BaseModel):
    """A user-chosen subset of one category's items."""

    category: CategoryTag
    items: list[ScanItem] = Field(default_factory=list)

    @property
    def total_size_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items)


class DeletionOutcome(BaseModel):
    """Result of a cleanup attempt on a single path."""

    path: str = Field(..., description="Path that was targeted")
    size_bytes: int = Field(0, description="Bytes reclaimed if successful")
    success: bool = Field(True, description="Whether the move to trash succeeded")
    error: Optional[str] = Field(None, description="Error message if failed")


class CleanupReport(BaseModel):
    """Aggregate result of a cleanup batch."""

    outcomes: list[DeletionOutcome] = Field(default_factory=list)
    dry_run: bool = Field(False, description="Whether this was a dry run")

    @property
    def total_freed_bytes(self) -> int:
        """Total bytes freed (or that would be freed in a dry run)."""
        return sum(o.size_bytes for o in self.outcomes if o.success)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def failures(self) -> list[DeletionOutcome]:
        return [o for o in self.outcomes if not o.success]
