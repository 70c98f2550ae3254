"""Tests for cleanup functionality."""

import errno
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dclean.cleaner import (
    PROTECTED_DIRS,
    InvalidPathError,
    OutsideHomeError,
    ProtectedDirectoryError,
    flatten_and_dedupe,
    get_protected_paths,
    is_path_safe,
    perform_cleanup,
    safe_delete,
    validate_for_deletion,
)
from dclean.models import CategoryTag, ScanItem, Selection


def make_item(path, size: int = 0) -> ScanItem:
    """Helper to create scan items."""
    return ScanItem(path=str(path), size_bytes=size)


@pytest.fixture
def home(tmp_path):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


class TestValidateForDeletion:
    def test_rejects_empty(self, home):
        with pytest.raises(InvalidPathError, match="Invalid path for deletion"):
            validate_for_deletion("", home)

    def test_rejects_blank(self, home):
        with pytest.raises(InvalidPathError):
            validate_for_deletion("   ", home)

    def test_rejects_root(self, home):
        with pytest.raises(InvalidPathError):
            validate_for_deletion("/", home)

    def test_rejects_home(self, home):
        with pytest.raises(OutsideHomeError, match="Can only delete within home directory"):
            validate_for_deletion(home, home)

    def test_rejects_outside_home(self, home, tmp_path):
        with pytest.raises(OutsideHomeError):
            validate_for_deletion(tmp_path / "elsewhere", home)

    def test_rejects_sibling_with_common_prefix(self, home):
        sibling = Path(str(home) + "-other") / "x"
        with pytest.raises(OutsideHomeError):
            validate_for_deletion(sibling, home)

    def test_rejects_dot_dot_escape(self, home):
        with pytest.raises(OutsideHomeError):
            validate_for_deletion(home / "a" / ".." / "..", home)

    @pytest.mark.parametrize("name", PROTECTED_DIRS)
    def test_rejects_protected(self, home, name):
        with pytest.raises(ProtectedDirectoryError, match="Cannot delete protected directory"):
            validate_for_deletion(home / name, home)

    def test_allows_inside_protected(self, home):
        target = home / "Documents" / "proj" / "node_modules"
        assert validate_for_deletion(target, home) == target

    def test_normalizes(self, home):
        assert validate_for_deletion(home / "a" / "." / "b", home) == home / "a" / "b"

    def test_allows_missing_path(self, home):
        assert validate_for_deletion(home / "gone", home) == home / "gone"


class TestIsPathSafe:
    def test_blocks_home_directory(self, home):
        assert not is_path_safe(home, home)

    def test_blocks_documents(self, home):
        assert not is_path_safe(home / "Documents", home)

    def test_allows_project_artifact(self, home):
        assert is_path_safe(home / "dev" / "app" / "node_modules", home)

    def test_default_home(self):
        assert not is_path_safe(Path.home())


class TestGetProtectedPaths:
    def test_includes_home_and_dirs(self, home):
        paths = get_protected_paths(home)
        assert paths[0] == home
        assert home / ".ssh" in paths
        assert len(paths) == len(PROTECTED_DIRS) + 1


class TestFlattenAndDedupe:
    def test_dedupes_by_path(self):
        a, b, c = make_item("/h/a", 1), make_item("/h/b", 2), make_item("/h/c", 3)
        selections = [
            Selection(category=CategoryTag.NODE_MODULES, items=[a, b]),
            Selection(category=CategoryTag.NODE_MODULES, items=[a, b, c]),
        ]

        flat = flatten_and_dedupe(selections)

        assert [i.path for i in flat] == ["/h/a", "/h/b", "/h/c"]

    def test_first_occurrence_wins(self):
        first = make_item("/h/a", 1)
        second = make_item("/h/a", 99)
        selections = [
            Selection(category=CategoryTag.PODS, items=[first]),
            Selection(category=CategoryTag.PODS, items=[second]),
        ]
        assert flatten_and_dedupe(selections)[0].size_bytes == 1

    def test_empty(self):
        assert flatten_and_dedupe([]) == []


class TestSafeDelete:
    @pytest.mark.asyncio
    async def test_moves_to_trash(self, home):
        trash = MagicMock()
        target = home / "p" / "node_modules"

        await safe_delete(target, trash=trash, home=home)

        trash.assert_called_once_with(str(target))

    @pytest.mark.asyncio
    async def test_dry_run_does_not_call_trash(self, home):
        trash = MagicMock()

        await safe_delete(home / "p" / "node_modules", dry_run=True, trash=trash, home=home)

        trash.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsafe_path_never_reaches_trash(self, home):
        trash = MagicMock()

        with pytest.raises(ProtectedDirectoryError):
            await safe_delete(home / "Desktop", trash=trash, home=home)
        trash.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_counts_as_deleted(self, home):
        trash = MagicMock(side_effect=FileNotFoundError("gone"))
        await safe_delete(home / "p" / "venv", trash=trash, home=home)

    @pytest.mark.asyncio
    async def test_enoent_errno_counts_as_deleted(self, home):
        trash = MagicMock(side_effect=OSError(errno.ENOENT, "No such file"))
        await safe_delete(home / "p" / "venv", trash=trash, home=home)

    @pytest.mark.asyncio
    async def test_permission_denied(self, home):
        target = home / "p" / "venv"
        trash = MagicMock(side_effect=OSError(errno.EACCES, "denied"))

        with pytest.raises(PermissionError, match="Permission denied"):
            await safe_delete(target, trash=trash, home=home)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, home):
        trash = MagicMock(side_effect=RuntimeError("trash unavailable"))

        with pytest.raises(RuntimeError, match="trash unavailable"):
            await safe_delete(home / "p" / "venv", trash=trash, home=home)


class TestPerformCleanup:
    @pytest.mark.asyncio
    async def test_dry_run_with_overlapping_selections(self, home):
        a = make_item(home / "a" / "node_modules", 100)
        b = make_item(home / "b" / "node_modules", 200)
        c = make_item(home / "c" / "node_modules", 300)
        selections = [
            Selection(category=CategoryTag.NODE_MODULES, items=[a, b]),
            Selection(category=CategoryTag.NODE_MODULES, items=[a, b, c]),
        ]
        trash = MagicMock()

        report = await perform_cleanup(selections, dry_run=True, trash=trash, home=home)

        assert report.success_count == 3
        assert report.fail_count == 0
        assert report.total_freed_bytes == 600
        assert report.dry_run is True
        trash.assert_not_called()

    @pytest.mark.asyncio
    async def test_dry_run_touches_nothing(self, home):
        target = home / "p" / "node_modules"
        target.mkdir(parents=True)
        selections = [Selection(category=CategoryTag.NODE_MODULES, items=[make_item(target, 1)])]

        await perform_cleanup(selections, dry_run=True, home=home)

        assert target.exists()

    @pytest.mark.asyncio
    async def test_each_path_trashed_once(self, home):
        a = make_item(home / "a", 10)
        selections = [
            Selection(category=CategoryTag.PODS, items=[a]),
            Selection(category=CategoryTag.PODS, items=[a]),
        ]
        trash = MagicMock()

        report = await perform_cleanup(selections, trash=trash, home=home)

        trash.assert_called_once_with(str(home / "a"))
        assert report.success_count == 1

    @pytest.mark.asyncio
    async def test_mixed_outcomes(self, home):
        ok = make_item(home / "ok", 100)
        denied = make_item(home / "denied", 200)
        protected = make_item(home / "Library", 300)

        def trash(path):
            if path.endswith("denied"):
                raise PermissionError(errno.EACCES, "denied")

        report = await perform_cleanup(
            [Selection(category=CategoryTag.XCODE_BUILD, items=[ok, denied, protected])],
            trash=trash,
            home=home,
        )

        assert report.success_count == 1
        assert report.fail_count == 2
        assert report.total_freed_bytes == 100
        errors = {o.path: o.error for o in report.failures}
        assert "Permission denied" in errors[str(home / "denied")]
        assert "Cannot delete protected directory" in errors[str(home / "Library")]

    @pytest.mark.asyncio
    async def test_failed_outcome_has_zero_size(self, home):
        item = make_item(home / "x", 500)
        trash = MagicMock(side_effect=OSError(errno.EIO, "I/O error"))

        report = await perform_cleanup(
            [Selection(category=CategoryTag.RUST_TARGET, items=[item])], trash=trash, home=home
        )

        assert report.outcomes[0].success is False
        assert report.outcomes[0].size_bytes == 0

    @pytest.mark.asyncio
    async def test_really_moves_to_trash(self, home):
        target = home / "p" / "build"
        target.mkdir(parents=True)
        trashed = []

        def fake_trash(path):
            trashed.append(path)
            Path(path).rmdir()

        report = await perform_cleanup(
            [Selection(category=CategoryTag.GRADLE_BUILD, items=[make_item(target, 5)])],
            trash=fake_trash,
            home=home,
        )

        assert trashed == [str(target)]
        assert not target.exists()
        assert report.total_freed_bytes == 5

    @pytest.mark.asyncio
    async def test_empty_selection(self, home):
        report = await perform_cleanup([], home=home)
        assert report.outcomes == []
