"""Cleanup history stored next to the config."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from dclean.config import get_config_dir
from dclean.models import format_bytes

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "history.json"
MAX_HISTORY_ENTRIES = 50


class HistoryEntry(BaseModel):
    """One completed cleanup."""

    date: datetime = Field(default_factory=datetime.now, description="When the cleanup ran")
    freed_bytes: int = Field(..., ge=0, description="Bytes moved to the trash")
    items_deleted: int = Field(..., ge=0, description="Number of paths moved to the trash")
    categories: list[str] = Field(default_factory=list, description="Category tags cleaned")

    @property
    def freed_human(self) -> str:
        return format_bytes(self.freed_bytes)


_HISTORY_ADAPTER = TypeAdapter(list[HistoryEntry])


def get_history_path(home: Optional[Path] = None) -> Path:
    return get_config_dir(home) / HISTORY_FILENAME


def get_history(home: Optional[Path] = None) -> list[HistoryEntry]:
    """Load history, oldest first. A missing or unreadable file gives no entries."""
    history_path = get_history_path(home)
    if not history_path.exists():
        return []

    try:
        return _HISTORY_ADAPTER.validate_python(json.loads(history_path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError, OSError) as e:
        logger.warning("Ignoring unreadable history at %s: %s", history_path, e)
        return []


def log_cleanup(
    freed_bytes: int,
    items_deleted: int,
    categories: list[str],
    home: Optional[Path] = None,
) -> bool:
    """
    Append a cleanup to the history, keeping the newest entries only.

    Returns:
        True if the history was written
    """
    entries = get_history(home)
    entries.append(
        HistoryEntry(freed_bytes=freed_bytes, items_deleted=items_deleted, categories=categories)
    )
    entries = entries[-MAX_HISTORY_ENTRIES:]

    history_path = get_history_path(home)
    try:
        history_path.parent.mkdir(parents=True, exist_ok=True)
        history_path.write_bytes(_HISTORY_ADAPTER.dump_json(entries, indent=2))
        return True
    except OSError as e:
        logger.debug("Could not write history to %s: %s", history_path, e)
        return False


def total_freed(entries: list[HistoryEntry]) -> int:
    return sum(entry.freed_bytes for entry in entries)
