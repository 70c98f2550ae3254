"""Tests for CLI interface."""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from dclean import __version__
from dclean.cleaner import perform_cleanup
from dclean.cli import app
from dclean.config import get_config_path, save_config
from dclean.history import get_history, get_history_path, log_cleanup

runner = CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def project(home):
    """A project with a 2 KB node_modules under ~/projects."""
    node_modules = home / "projects" / "shop" / "node_modules"
    node_modules.mkdir(parents=True)
    (node_modules / "index.js").write_bytes(b"x" * 2048)
    return node_modules


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"dclean version {__version__}" in result.output

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "dclean version" in result.output


class TestHelp:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("scan", "init", "history", "list"):
            assert command in result.output

    def test_scan_help(self):
        result = runner.invoke(app, ["scan", "--help"])
        assert result.exit_code == 0
        assert "--node-modules" in result.output
        assert "--dry-run" in result.output
        assert "--no-interactive" in result.output


class TestList:
    def test_list_command(self):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "node_modules" in result.output
        assert "python_venv" in result.output


class TestLogging:
    @pytest.mark.parametrize("command", ["history", "list", "init"])
    def test_every_command_routes_logging_through_rich(self, home, command):
        with patch("dclean.cli.setup_logging") as setup:
            runner.invoke(app, [command], input="\n")

        setup.assert_called()

    def test_history_warning_shown_on_console(self, home):
        history_path = get_history_path(home)
        history_path.parent.mkdir(parents=True)
        history_path.write_text("{not json")

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "Ignoring unreadable history" in result.output


class TestHistory:
    def test_empty(self, home):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No cleanup history" in result.output

    def test_with_entries(self, home):
        log_cleanup(2048, 1, ["node_modules"], home=home)

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "All-time freed" in result.output
        assert "2 KB" in result.output


class TestInit:
    def test_saves_selected_paths(self, home):
        result = runner.invoke(app, ["init"], input="3,4\n")

        assert result.exit_code == 0
        stored = json.loads(get_config_path(home).read_text())
        assert stored["scan_paths"] == ["~/projects", "~/dev"]

    def test_nothing_selected(self, home):
        result = runner.invoke(app, ["init"], input="\n")

        assert result.exit_code == 0
        assert "Config not changed" in result.output
        assert not get_config_path(home).exists()


class TestScanNonInteractive:
    def test_shows_results(self, home, project):
        result = runner.invoke(
            app, ["scan", "--node-modules", "--path", str(home / "projects"), "--no-interactive"]
        )

        assert result.exit_code == 0
        assert "node_modules (1)" in result.output
        assert "2 KB" in result.output
        assert project.exists()

    def test_invalid_path(self, home):
        result = runner.invoke(
            app, ["scan", "--node-modules", "--path", str(home / "missing"), "--no-interactive"]
        )

        assert result.exit_code == 1
        assert "not a readable directory" in result.output

    def test_uses_config(self, home, project):
        save_config([home / "projects"], home)

        result = runner.invoke(app, ["scan", "--node-modules", "--no-interactive"])

        assert result.exit_code == 0
        assert "node_modules (1)" in result.output

    def test_config_with_only_missing_paths(self, home):
        save_config([home / "gone"], home)

        result = runner.invoke(app, ["scan", "--node-modules", "--no-interactive"])

        assert result.exit_code == 1
        assert "None of the configured scan paths" in result.output

    def test_no_paths_configured(self, home):
        result = runner.invoke(app, ["scan", "--python", "--no-interactive"])

        assert result.exit_code == 0
        assert "No scan paths configured" in result.output

    def test_global_only_scans_home(self, home):
        versions = home / ".nvm" / "versions" / "node"
        (versions / "v18.0.0").mkdir(parents=True)
        (versions / "v18.0.0" / "node").write_bytes(b"x" * 100)

        result = runner.invoke(app, ["scan", "--nvm", "--no-interactive"])

        assert result.exit_code == 0
        assert "v18.0.0" in result.output


class TestScanInteractive:
    def test_no_subcommand_asks_for_categories(self, home):
        result = runner.invoke(app, [], input="\n")

        assert result.exit_code == 0
        assert "Nothing selected" in result.output

    def test_dry_run_leaves_files(self, home, project):
        result = runner.invoke(
            app,
            ["scan", "--node-modules", "--path", str(home / "projects"), "--dry-run"],
            input="1\ny\n",
        )

        assert result.exit_code == 0
        assert "DRY RUN" in result.output
        assert project.exists()
        assert get_history(home) == []

    def test_nothing_selected(self, home, project):
        result = runner.invoke(
            app, ["scan", "--node-modules", "--path", str(home / "projects")], input="\n"
        )

        assert result.exit_code == 0
        assert "Nothing selected" in result.output
        assert project.exists()

    def test_declined_confirmation(self, home, project):
        result = runner.invoke(
            app, ["scan", "--node-modules", "--path", str(home / "projects")], input="1\nn\n"
        )

        assert result.exit_code == 130
        assert project.exists()

    def test_cleanup_moves_to_trash_and_logs_history(self, home, project):
        trash = MagicMock()

        async def cleanup_with_fake_trash(selections, dry_run=False):
            return await perform_cleanup(selections, dry_run=dry_run, trash=trash)

        with patch("dclean.cli.perform_cleanup", cleanup_with_fake_trash):
            result = runner.invoke(
                app,
                ["scan", "--node-modules", "--path", str(home / "projects"), "--yes"],
                input="1\n",
            )

        assert result.exit_code == 0
        trash.assert_called_once_with(str(project))
        assert "Items moved to Trash" in result.output

        history = get_history(home)
        assert len(history) == 1
        assert history[0].freed_bytes == 2048
        assert history[0].categories == ["node_modules"]

    def test_keyboard_interrupt(self, home, project):
        with patch("dclean.cli.run_scans", MagicMock(side_effect=KeyboardInterrupt)):
            result = runner.invoke(
                app, ["scan", "--node-modules", "--path", str(home / "projects")]
            )

        assert result.exit_code == 130
        assert "Cancelled" in result.output

    def test_unexpected_error(self, home, project):
        with patch("dclean.cli.run_scans", MagicMock(side_effect=RuntimeError("boom"))):
            result = runner.invoke(
                app, ["scan", "--node-modules", "--path", str(home / "projects")]
            )

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "boom" in result.output
