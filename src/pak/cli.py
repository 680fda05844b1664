"""CLI commands using Typer."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, get_args

if TYPE_CHECKING:
    from pak.context import AppContext
    from pak.protocols import PackageManager

import typer
from rich.console import Console

from pak import __version__
from pak.console import TUI
from pak.context import create_context
from pak.managers import (
    PACKAGE_MANAGERS,
    PackageManagerNotFoundError,
    detect_package_manager,
    get_package_manager,
)
from pak.roots import PackageRootNotFoundError, find_root
from pak.types import (
    CommandResult,
    Environment,
    InstallOptions,
    LogLevel,
    ManagerConfig,
    OutputSinks,
    PackOptions,
    UninstallOptions,
    UpdateOptions,
    VersionDetectionError,
)

app = typer.Typer(
    name="pak",
    help="One interface for npm, yarn classic and yarn berry",
    no_args_is_help=True,
)

console = Console()
tui = TUI(console)

CwdOption = Annotated[
    Path, typer.Option("--cwd", "-C", help="Directory to run in", file_okay=False)
]
ManagerOption = Annotated[
    str | None,
    typer.Option(
        "--manager",
        "-m",
        help=f"Package manager ({', '.join(PACKAGE_MANAGERS)}). Detected when omitted",
    ),
]
LoglevelOption = Annotated[
    str | None, typer.Option("--loglevel", help="Loglevel passed to the package manager")
]
DevOption = Annotated[bool, typer.Option("--dev", "-D", help="Dev dependency")]
GlobalOption = Annotated[bool, typer.Option("--global", "-g", help="Global packages")]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"pak v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log debug output")] = False,
) -> None:
    """One interface for npm, yarn classic and yarn berry."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )


# ============================================================================
# Helpers
# ============================================================================


def _build_config(
    cwd: Path,
    loglevel: str | None = None,
    environment: str = "production",
) -> ManagerConfig:
    """Build adapter settings streaming command output to the terminal.

    Raises:
        typer.Exit: If loglevel or environment are invalid.
    """
    if loglevel is not None and loglevel not in get_args(LogLevel):
        tui.show_error(f"Unknown loglevel: {loglevel}. Supported: {list(get_args(LogLevel))}")
        raise typer.Exit(1)
    if environment not in get_args(Environment):
        tui.show_error(
            f"Unknown environment: {environment}. Supported: {list(get_args(Environment))}"
        )
        raise typer.Exit(1)
    return ManagerConfig(
        cwd=cwd.absolute(),
        loglevel=loglevel,
        environment=environment,
        sinks=OutputSinks(stdout=sys.stdout, stderr=sys.stderr),
    )


def _get_manager(
    ctx: AppContext, manager_name: str | None, config: ManagerConfig
) -> PackageManager:
    """Get the requested adapter, or detect one.

    Raises:
        typer.Exit: If the manager is unknown or none is detected.
    """
    try:
        if manager_name:
            return get_package_manager(manager_name, config, ctx)
        return detect_package_manager(config=config, context=ctx)
    except ValueError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e
    except PackageManagerNotFoundError as e:
        tui.show_error(str(e))
        tui.show_info("Pass --manager to choose one explicitly")
        raise typer.Exit(1) from e


def _finish(action: str, result: CommandResult) -> None:
    """Report a command result, exiting with its code on failure."""
    tui.show_result(action, result)
    if not result.success:
        raise typer.Exit(result.exit_code or 1)


def _parse_override(spec: str) -> tuple[str, str]:
    """Split name@version, keeping the @ of scoped names.

    Raises:
        typer.Exit: If no version is given.
    """
    name, _, version = spec.rpartition("@")
    if not name or not version:
        tui.show_error(f"Invalid override '{spec}'. Use: name@version")
        raise typer.Exit(1)
    return name, version


# ============================================================================
# Commands
# ============================================================================


@app.command()
def detect(
    cwd: CwdOption = Path("."),
    require_lockfile: Annotated[
        bool, typer.Option("--require-lockfile/--no-require-lockfile", help="Require a lockfile")
    ] = True,
    _context=None,
) -> None:
    """Show which package manager owns a directory."""
    ctx = _context or create_context()
    try:
        manager = detect_package_manager(
            cwd.absolute(),
            require_lockfile=require_lockfile,
            set_cwd_to_package_root=True,
            context=ctx,
        )
    except PackageManagerNotFoundError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e
    tui.show_success(f"{manager.name} in {manager.config.cwd}")


@app.command()
def install(
    packages: Annotated[list[str] | None, typer.Argument(help="Packages to install")] = None,
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    dev: DevOption = False,
    exact: Annotated[bool, typer.Option("--exact", "-E", help="Save exact versions")] = False,
    global_: GlobalOption = False,
    force: Annotated[bool, typer.Option("--force", help="Force fetching")] = False,
    ignore_scripts: Annotated[
        bool, typer.Option("--ignore-scripts", help="Skip lifecycle scripts")
    ] = False,
    loglevel: LoglevelOption = None,
    environment: Annotated[
        str, typer.Option("--environment", help="production or development")
    ] = "production",
    _context=None,
) -> None:
    """Install packages, or all dependencies when none are given."""
    ctx = _context or create_context()
    config = _build_config(cwd, loglevel, environment)
    pm = _get_manager(ctx, manager, config)
    options = InstallOptions(
        dependency_type="dev" if dev else "prod",
        global_=global_,
        exact=exact,
        force=force,
        ignore_scripts=ignore_scripts,
    )
    _finish("install", pm.install(packages or [], options))


@app.command()
def uninstall(
    packages: Annotated[list[str], typer.Argument(help="Packages to remove")],
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    dev: DevOption = False,
    global_: GlobalOption = False,
    loglevel: LoglevelOption = None,
    _context=None,
) -> None:
    """Remove packages."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager, _build_config(cwd, loglevel))
    options = UninstallOptions(dependency_type="dev" if dev else "prod", global_=global_)
    _finish("uninstall", pm.uninstall(packages, options))


@app.command()
def update(
    packages: Annotated[list[str] | None, typer.Argument(help="Packages to update")] = None,
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    dev: DevOption = False,
    global_: GlobalOption = False,
    loglevel: LoglevelOption = None,
    _context=None,
) -> None:
    """Update packages, or all of them when none are given."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager, _build_config(cwd, loglevel))
    options = UpdateOptions(dependency_type="dev" if dev else "prod", global_=global_)
    _finish("update", pm.update(packages or [], options))


@app.command()
def rebuild(
    packages: Annotated[list[str] | None, typer.Argument(help="Packages to rebuild")] = None,
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    loglevel: LoglevelOption = None,
    _context=None,
) -> None:
    """Rebuild native addons."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager, _build_config(cwd, loglevel))
    _finish("rebuild", pm.rebuild(packages or []))


@app.command()
def pack(
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    workspace: Annotated[
        str, typer.Option("--workspace", "-w", help="Workspace relative to --cwd")
    ] = ".",
    target_dir: Annotated[
        Path | None, typer.Option("--target-dir", "-o", help="Directory for the tarball")
    ] = None,
    _context=None,
) -> None:
    """Create a tarball of a package."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager, _build_config(cwd))
    options = PackOptions(
        workspace=workspace,
        target_dir=target_dir.absolute() if target_dir else None,
    )
    try:
        result = pm.pack(options)
    except VersionDetectionError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e
    except (OSError, ValueError) as e:
        tui.show_error(f"Could not read package.json: {e}")
        raise typer.Exit(1) from e
    _finish("pack", result)
    console.print(result.stdout)


@app.command()
def override(
    dependencies: Annotated[list[str], typer.Argument(help="Overrides as name@version")],
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    _context=None,
) -> None:
    """Force exact versions of (transitive) dependencies."""
    ctx = _context or create_context()
    versions = dict(_parse_override(spec) for spec in dependencies)
    pm = _get_manager(ctx, manager, _build_config(cwd))
    _finish("override", pm.override_dependencies(versions))


@app.command()
def workspaces(
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    _context=None,
) -> None:
    """List the workspaces of a monorepo."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager or "npm", _build_config(cwd))
    try:
        found = pm.workspaces()
    except (OSError, ValueError) as e:
        tui.show_error(f"Could not read package.json: {e}")
        raise typer.Exit(1) from e
    tui.show_workspaces(pm.config.cwd, found)


@app.command("version")
def manager_version(
    cwd: CwdOption = Path("."),
    manager: ManagerOption = None,
    _context=None,
) -> None:
    """Show the version of the package manager binary."""
    ctx = _context or create_context()
    pm = _get_manager(ctx, manager, _build_config(cwd))
    try:
        console.print(f"{pm.name} {pm.version()}")
    except VersionDetectionError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def root(
    cwd: CwdOption = Path("."),
    lockfile: Annotated[
        str | None, typer.Option("--lockfile", help="Lockfile that must exist in the root")
    ] = None,
    _context=None,
) -> None:
    """Show the nearest package root."""
    ctx = _context or create_context()
    try:
        console.print(str(find_root(cwd.absolute(), lockfile, ctx.filesystem)))
    except PackageRootNotFoundError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e


if __name__ == "__main__":
    app()
