"""Tests for CLI commands using context injection.

Commands accept a _context parameter for dependency injection, so they can be
called directly with a mocked runner and resolver.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import typer

from pak import cli
from pak.context import AppContext

from helpers import called_args, called_cwd, nok, ok


@pytest.fixture
def mock_tui(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the CLI output helper."""
    tui = MagicMock()
    monkeypatch.setattr(cli, "tui", tui)
    return tui


@pytest.fixture
def mock_console(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the CLI console."""
    console = MagicMock()
    monkeypatch.setattr(cli, "console", console)
    return console


class TestVersionOption:
    """Tests for the --version option."""

    def test_version_callback_exits(self, mock_console: MagicMock) -> None:
        """Test --version prints and exits."""
        with pytest.raises(typer.Exit):
            cli.version_callback(True)

        mock_console.print.assert_called_once_with(f"pak v{cli.__version__}")

    def test_version_callback_noop(self, mock_console: MagicMock) -> None:
        """Test the callback does nothing when the flag is absent."""
        cli.version_callback(False)

        mock_console.print.assert_not_called()


class TestDetectCommand:
    """Tests for detect command."""

    def test_detect(self, npm_project: Path, mock_context: AppContext, mock_tui) -> None:
        """Test the detected manager and root are shown."""
        cli.detect(cwd=npm_project / "src", _context=mock_context)

        mock_tui.show_success.assert_called_once_with(f"npm in {npm_project}")

    def test_detect_nothing(self, tmp_path: Path, mock_context: AppContext, mock_tui) -> None:
        """Test detection failure exits with 1."""
        mock_context.runner.run.return_value = nok()

        with pytest.raises(typer.Exit) as exc_info:
            cli.detect(cwd=tmp_path, _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_tui.show_error.assert_called_once()


class TestInstallCommand:
    """Tests for install command."""

    def test_install_packages(self, npm_project: Path, mock_context: AppContext, mock_tui) -> None:
        """Test options reach the detected manager."""
        cli.install(
            packages=["is-even"],
            cwd=npm_project,
            dev=True,
            exact=True,
            _context=mock_context,
        )

        assert called_args(mock_context.runner) == [
            "install",
            "--save-dev",
            "--save-exact",
            "is-even",
        ]
        assert called_cwd(mock_context.runner) == npm_project
        mock_tui.show_result.assert_called_once()

    def test_install_all_development(
        self, npm_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test a plain development install."""
        cli.install(cwd=npm_project, environment="development", _context=mock_context)

        assert called_args(mock_context.runner) == ["install"]

    def test_install_explicit_manager(
        self, tmp_path: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test --manager skips detection."""
        cli.install(packages=["a"], cwd=tmp_path, manager="yarn", _context=mock_context)

        assert mock_context.runner.run.call_args.args[0] == "yarn"
        assert called_args(mock_context.runner) == ["add", "a"]

    def test_install_failure_exit_code(
        self, npm_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test a failed command exits with its exit code."""
        mock_context.runner.run.return_value = nok("E404", exit_code=4)

        with pytest.raises(typer.Exit) as exc_info:
            cli.install(packages=["nope"], cwd=npm_project, _context=mock_context)

        assert exc_info.value.exit_code == 4

    def test_install_invalid_loglevel(
        self, npm_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test an unknown loglevel is rejected before running anything."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.install(cwd=npm_project, loglevel="loud", _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_context.runner.run.assert_not_called()

    def test_install_invalid_environment(
        self, npm_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test an unknown environment is rejected."""
        with pytest.raises(typer.Exit):
            cli.install(cwd=npm_project, environment="staging", _context=mock_context)

    def test_install_unknown_manager(
        self, npm_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test an unknown manager exits with 1."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.install(cwd=npm_project, manager="pnpm", _context=mock_context)

        assert exc_info.value.exit_code == 1

    def test_install_nothing_detected(
        self, tmp_path: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test a directory without a package manager exits with 1."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.install(cwd=tmp_path, _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_tui.show_info.assert_called_once()


class TestOtherCommands:
    """Tests for uninstall, update and rebuild commands."""

    def test_uninstall(self, npm_project: Path, mock_context: AppContext, mock_tui) -> None:
        """Test uninstall."""
        cli.uninstall(packages=["a"], cwd=npm_project, global_=True, _context=mock_context)

        assert called_args(mock_context.runner) == ["uninstall", "--global", "a"]

    def test_update(self, npm_project: Path, mock_context: AppContext, mock_tui) -> None:
        """Test update."""
        cli.update(cwd=npm_project, loglevel="silent", _context=mock_context)

        assert called_args(mock_context.runner) == ["update", "--loglevel", "silent"]

    def test_rebuild_unsupported(
        self, yarn_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test an unsupported operation exits with 1."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.rebuild(cwd=yarn_project, manager="yarn-classic", _context=mock_context)

        assert exc_info.value.exit_code == 1


class TestPackCommand:
    """Tests for pack command."""

    def test_pack_prints_path(
        self, npm_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test the tarball path is printed."""
        mock_context.runner.run.side_effect = [ok("10.2.4"), ok("test-0.0.1.tgz")]

        cli.pack(cwd=npm_project, target_dir=npm_project / "dist", _context=mock_context)

        mock_console.print.assert_called_once_with(
            str(npm_project / "dist" / "test-0.0.1.tgz")
        )

    def test_pack_version_unknown(
        self, npm_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test an undetectable npm version exits with 1."""
        mock_context.runner.run.return_value = nok()

        with pytest.raises(typer.Exit) as exc_info:
            cli.pack(cwd=npm_project, _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_console.print.assert_not_called()

    def test_pack_missing_workspace_manifest(
        self, yarn_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test a workspace without a package.json exits with 1."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.pack(
                cwd=yarn_project, manager="yarn", workspace="packages/a", _context=mock_context
            )

        assert exc_info.value.exit_code == 1
        assert "Could not read package.json" in mock_tui.show_error.call_args.args[0]
        mock_context.runner.run.assert_not_called()
        mock_console.print.assert_not_called()

    def test_pack_invalid_workspace_manifest(
        self, yarn_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test a package.json that is not valid JSON exits with 1."""
        (yarn_project / "package.json").write_text("{not json")

        with pytest.raises(typer.Exit) as exc_info:
            cli.pack(cwd=yarn_project, manager="yarn", _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_console.print.assert_not_called()


class TestOverrideCommand:
    """Tests for override command."""

    def test_override(
        self, yarn_project: Path, mock_context: AppContext, mock_tui, read_json
    ) -> None:
        """Test name@version pairs, scoped names included, reach the manager."""
        cli.override(
            dependencies=["is-odd@1.0.0", "@scope/a@2.0.0"],
            cwd=yarn_project,
            manager="yarn",
            _context=mock_context,
        )

        assert read_json(yarn_project / "package.json")["resolutions"] == {
            "is-odd": "1.0.0",
            "@scope/a": "2.0.0",
        }

    @pytest.mark.parametrize("spec", ["is-odd", "is-odd@", "@scope/a"])
    def test_override_invalid(
        self, spec: str, yarn_project: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test an override without a version is rejected."""
        with pytest.raises(typer.Exit) as exc_info:
            cli.override(dependencies=[spec], cwd=yarn_project, _context=mock_context)

        assert exc_info.value.exit_code == 1
        mock_context.runner.run.assert_not_called()


class TestInfoCommands:
    """Tests for workspaces, version and root commands."""

    def test_workspaces(
        self, tmp_path: Path, write_json, mock_context: AppContext, mock_tui
    ) -> None:
        """Test workspaces are listed relative to the root."""
        write_json(tmp_path / "package.json", {"workspaces": ["packages/*"]})
        write_json(tmp_path / "packages" / "a" / "package.json", {"name": "a"})

        cli.workspaces(cwd=tmp_path, _context=mock_context)

        mock_tui.show_workspaces.assert_called_once_with(
            tmp_path, [tmp_path / "packages" / "a"]
        )

    def test_workspaces_no_manifest(
        self, tmp_path: Path, mock_context: AppContext, mock_tui
    ) -> None:
        """Test a missing package.json exits with 1."""
        with pytest.raises(typer.Exit):
            cli.workspaces(cwd=tmp_path, _context=mock_context)

    def test_version(
        self, npm_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test the manager version is printed."""
        mock_context.runner.run.return_value = ok("10.2.4")

        cli.manager_version(cwd=npm_project, _context=mock_context)

        mock_console.print.assert_called_once_with("npm 10.2.4")

    def test_root(
        self, npm_project: Path, mock_context: AppContext, mock_tui, mock_console
    ) -> None:
        """Test the package root is printed."""
        cli.root(cwd=npm_project / "src", lockfile="package-lock.json", _context=mock_context)

        mock_console.print.assert_called_once_with(str(npm_project))

    def test_root_not_found(self, tmp_path: Path, mock_context: AppContext, mock_tui) -> None:
        """Test a missing root exits with 1."""
        with pytest.raises(typer.Exit):
            cli.root(cwd=tmp_path, _context=mock_context)
