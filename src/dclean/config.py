"""User configuration (scan paths) for dclean."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".dclean"
CONFIG_FILENAME = "config.json"
LEGACY_CONFIG_FILENAME = ".devclean.json"


class DcleanConfig(BaseModel):
    """Contents of ~/.dclean/config.json."""

    scan_paths: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("scan_paths", "scanPaths"),
        description="Directories to scan (~ or absolute)",
    )


def get_config_dir(home: Optional[Path] = None) -> Path:
    return (home or Path.home()) / CONFIG_DIR_NAME


def get_config_path(home: Optional[Path] = None) -> Path:
    """Path to the config file (~/.dclean/config.json)."""
    return get_config_dir(home) / CONFIG_FILENAME


def resolve_path(raw: str, home: Optional[Path] = None) -> Optional[Path]:
    """Resolve ~ and relative paths to an absolute path; None for blank input."""
    if not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None
    home = home or Path.home()
    if trimmed == "~" or trimmed.startswith("~/"):
        trimmed = str(home) + trimmed[1:]
    return Path(os.path.abspath(trimmed))


def to_stored_path(path: Path, home: Optional[Path] = None) -> str:
    """Store paths under home as ~/..., others as absolute paths."""
    home = Path(os.path.abspath(home or Path.home()))
    normalized = Path(os.path.abspath(path))
    if normalized != home and normalized.is_relative_to(home):
        return "~/" + normalized.relative_to(home).as_posix()
    return str(normalized)


def migrate_legacy_config(home: Optional[Path] = None) -> bool:
    """Move ~/.devclean.json to ~/.dclean/config.json if only the old one exists."""
    home = home or Path.home()
    legacy = home / LEGACY_CONFIG_FILENAME
    target = get_config_path(home)
    if not legacy.exists() or target.exists():
        return False
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        legacy.rename(target)
    except OSError as e:
        logger.debug("Could not migrate %s: %s", legacy, e)
        return False
    return True


def load_config(home: Optional[Path] = None) -> DcleanConfig:
    """
    Load the config, resolving every scan path to an absolute path.

    A missing file gives an empty config. An unreadable or malformed file
    gives an empty config and a warning.
    """
    migrate_legacy_config(home)
    config_path = get_config_path(home)

    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return DcleanConfig()
    except OSError as e:
        logger.warning("Cannot read config at %s: %s", config_path, e)
        return DcleanConfig()

    try:
        config = DcleanConfig.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Invalid config at %s, using no paths. Fix or delete the file.", config_path)
        return DcleanConfig()

    resolved = [resolve_path(p, home) for p in config.scan_paths]
    return DcleanConfig(scan_paths=[str(p) for p in resolved if p is not None])


def save_config(paths: list[Path], home: Optional[Path] = None) -> bool:
    """Save scan paths to the config file. Returns False if it cannot be written."""
    config_path = get_config_path(home)
    config = DcleanConfig(scan_paths=[to_stored_path(p, home) for p in paths])
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        return True
    except OSError as e:
        logger.debug("Could not write %s: %s", config_path, e)
        return False


@dataclass
class ResolvedPaths:
    """Scan paths split into usable directories and the rest."""

    paths: list[Path] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)


def resolve_scan_paths(raw_paths: list[str], home: Optional[Path] = None) -> ResolvedPaths:
    """Resolve, dedupe, and keep only existing readable directories."""
    result = ResolvedPaths()
    seen: set[Path] = set()

    for raw in raw_paths:
        resolved = resolve_path(raw, home)
        if resolved is None:
            result.invalid.append(raw)
            continue
        if resolved in seen:
            continue
        seen.add(resolved)
        if resolved.is_dir() and os.access(resolved, os.R_OK):
            result.paths.append(resolved)
        else:
            result.missing.append(resolved)

    return result
