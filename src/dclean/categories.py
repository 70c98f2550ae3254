"""Artifact category definitions for dclean."""

from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from dclean.models import CategoryResult, CategoryTag
from dclean.scanner import (
    scan_ai_dev_tools,
    scan_cmake_builds,
    scan_flutter_builds,
    scan_gradle_builds,
    scan_node_modules,
    scan_nvm_versions,
    scan_pods,
    scan_python_venvs,
    scan_rust_targets,
    scan_xcode_builds,
    scan_xcode_derived_data,
)

ScanHandler = Callable[..., Awaitable[CategoryResult]]


class Category(BaseModel):
    """Definition of an artifact category and how it is scanned."""

    tag: CategoryTag = Field(..., description="Unique identifier for the category")
    name: str = Field(..., description="Human-readable name")
    icon: str = Field("", description="Icon shown before the name")
    handler: ScanHandler = Field(..., description="Async scan function")
    is_global: bool = Field(
        False, description="Scanned once from a fixed location instead of once per root"
    )
    global_handler: Optional[ScanHandler] = Field(
        None, description="Extra once-per-run scan of a fixed location, merged with the per-root results"
    )
    deletable: bool = Field(True, description="Whether cleanup is offered for this category")
    description: str = Field(..., description="What this category contains")
    recovery: str = Field(..., description="How to get it back after deletion")


CATEGORIES: dict[CategoryTag, Category] = {
    CategoryTag.NODE_MODULES: Category(
        tag=CategoryTag.NODE_MODULES,
        name="node_modules",
        icon="📦",
        handler=scan_node_modules,
        description="npm/yarn/pnpm dependency folders, one per project",
        recovery="npm install (or yarn / pnpm install) in the project",
    ),
    CategoryTag.PYTHON_VENV: Category(
        tag=CategoryTag.PYTHON_VENV,
        name="Python venvs",
        icon="🐍",
        handler=scan_python_venvs,
        description="Python virtual environments (venv, .venv, env, virtualenv)",
        recovery="python -m venv .venv && pip install -r requirements.txt",
    ),
    CategoryTag.NVM: Category(
        tag=CategoryTag.NVM,
        name="NVM versions",
        icon="⬢",
        handler=scan_nvm_versions,
        is_global=True,
        description="Node.js versions installed by nvm in ~/.nvm/versions/node",
        recovery="nvm install <version>",
    ),
    CategoryTag.PODS: Category(
        tag=CategoryTag.PODS,
        name="CocoaPods",
        icon="🍫",
        handler=scan_pods,
        description="CocoaPods Pods folders in iOS/macOS projects",
        recovery="pod install in the project",
    ),
    CategoryTag.RUST_TARGET: Category(
        tag=CategoryTag.RUST_TARGET,
        name="Rust targets",
        icon="🦀",
        handler=scan_rust_targets,
        description="Cargo target directories next to a Cargo.toml",
        recovery="cargo build",
    ),
    CategoryTag.GRADLE_BUILD: Category(
        tag=CategoryTag.GRADLE_BUILD,
        name="Gradle builds",
        icon="🐘",
        handler=scan_gradle_builds,
        description="Gradle/Android build and .gradle directories",
        recovery="./gradlew build",
    ),
    CategoryTag.CMAKE_BUILD: Category(
        tag=CategoryTag.CMAKE_BUILD,
        name="CMake builds",
        icon="🔧",
        handler=scan_cmake_builds,
        description="cmake-build-* directories next to a CMakeLists.txt",
        recovery="Reload the CMake project and rebuild",
    ),
    CategoryTag.FLUTTER_BUILD: Category(
        tag=CategoryTag.FLUTTER_BUILD,
        name="Flutter builds",
        icon="💙",
        handler=scan_flutter_builds,
        description="Flutter build and .dart_tool directories next to a pubspec.yaml",
        recovery="flutter pub get && flutter build",
    ),
    CategoryTag.XCODE_BUILD: Category(
        tag=CategoryTag.XCODE_BUILD,
        name="Xcode builds",
        icon="🔨",
        handler=scan_xcode_builds,
        global_handler=scan_xcode_derived_data,
        description="Xcode DerivedData and project-local build directories",
        recovery="Rebuild in Xcode",
    ),
    CategoryTag.AI_DEV_TOOLS: Category(
        tag=CategoryTag.AI_DEV_TOOLS,
        name="AI dev tools",
        icon="🤖",
        handler=scan_ai_dev_tools,
        is_global=True,
        deletable=False,
        description="Data directories of AI coding tools (Cursor, Claude, Antigravity)",
        recovery="Not offered for deletion, review only",
    ),
}


def get_category(tag: CategoryTag | str) -> Optional[Category]:
    """Get a category by tag."""
    try:
        return CATEGORIES.get(CategoryTag(tag))
    except ValueError:
        return None


def get_all_categories() -> list[Category]:
    """Get all categories."""
    return list(CATEGORIES.values())


def get_deletable_categories() -> list[Category]:
    """Get categories that cleanup is offered for."""
    return [c for c in CATEGORIES.values() if c.deletable]


def get_global_categories() -> list[Category]:
    """Get categories scanned from fixed locations."""
    return [c for c in CATEGORIES.values() if c.is_global]

