"""yarn classic (v1) adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from pak.manifest import MANIFEST_FILE, add_resolutions
from pak.protocols import CommandRunner, FileSystem
from pak.roots import PackageRootNotFoundError, find_root, find_workspaces
from pak.types import (
    CommandResult,
    InstallOptions,
    ManagerConfig,
    PackOptions,
    UninstallOptions,
    UpdateOptions,
    VersionDetectionError,
)

YARN_LOCKFILE = "yarn.lock"

# yarn classic only knows these two loglevels
SUPPORTED_LOGLEVELS = ("silent", "verbose")


def yarn_version(runner: CommandRunner, config: ManagerConfig) -> str:
    """Ask the yarn binary for its version.

    Raises:
        VersionDetectionError: If yarn does not report its version.
    """
    result = runner.run("yarn", ["-v"], config.cwd, config.sinks)
    if not result.success:
        raise VersionDetectionError(
            f"Could not detect yarn version: {result.stderr}! Exit code: {result.exit_code}."
        )
    return result.stdout.strip()


class YarnClassic:
    """Drives the yarn 1.x CLI.

    Satisfies the PackageManager protocol structurally.
    """

    name = "yarn-classic"
    lockfile_name = YARN_LOCKFILE

    def __init__(
        self,
        config: ManagerConfig,
        runner: CommandRunner,
        filesystem: FileSystem,
    ) -> None:
        """Initialize the adapter with required dependencies.

        Args:
            config: Working directory, loglevel, environment and output sinks.
            runner: Executes yarn.
            filesystem: Filesystem abstraction.
        """
        self.config = config
        self.runner = runner
        self.fs = filesystem

    @classmethod
    def create(cls, config: ManagerConfig | None = None, context=None) -> YarnClassic:
        """Factory method for production instantiation."""
        from pak.context import create_context

        ctx = context or create_context()
        return cls(config or ManagerConfig(), ctx.runner, ctx.filesystem)

    def relocate(self, cwd: Path) -> YarnClassic:
        """Return an equivalent adapter bound to another directory."""
        return YarnClassic(self.config.with_cwd(cwd), self.runner, self.fs)

    def _command(self, args: list[str]) -> CommandResult:
        return self.runner.run("yarn", args, self.config.cwd, self.config.sinks)

    def _loglevel_args(self) -> list[str]:
        if self.config.loglevel in SUPPORTED_LOGLEVELS:
            return [f"--{self.config.loglevel}"]
        return []

    def find_root(self, lockfile_name: str | None = None) -> Path:
        """Find the nearest package root above the cwd."""
        return find_root(self.config.cwd, lockfile_name, self.fs)

    def workspaces(self) -> list[Path]:
        """List the workspace directories declared in the cwd manifest."""
        return find_workspaces(self.config.cwd, self.fs)

    def install(
        self,
        packages: Sequence[str] = (),
        options: InstallOptions | None = None,
    ) -> CommandResult:
        """Install packages with `yarn add`, or run `yarn install` if none are given."""
        options = options or InstallOptions()
        args: list[str] = []
        if packages:
            if options.global_:
                args.append("global")
            args.append("add")
            args.extend(packages)
            if options.dependency_type == "dev":
                args.append("--dev")
            if options.exact:
                args.append("--exact")
        else:
            args.append("install")
            if self.config.environment == "production":
                args.append("--production")
            if options.ignore_scripts:
                args.append("--ignore-scripts")
            if options.force:
                args.append("--force")
        args.extend(self._loglevel_args())
        args.extend(options.additional_args)
        return self._command(args)

    def uninstall(
        self,
        packages: Sequence[str],
        options: UninstallOptions | None = None,
    ) -> CommandResult:
        """Remove the given packages."""
        options = options or UninstallOptions()
        args: list[str] = []
        if options.global_:
            args.append("global")
        args.append("remove")
        args.extend(packages)
        if options.dependency_type == "dev":
            args.append("--dev")
        args.extend(self._loglevel_args())
        args.extend(options.additional_args)
        return self._command(args)

    def update(
        self,
        packages: Sequence[str] = (),
        options: UpdateOptions | None = None,
    ) -> CommandResult:
        """Update packages.

        Only `yarn add` rewrites the ranges in package.json, `yarn upgrade`
        would leave them untouched. Updating is therefore an install.
        """
        return self.install(packages, options)

    def rebuild(self, packages: Sequence[str] = ()) -> CommandResult:
        """yarn classic cannot rebuild native addons."""
        return CommandResult.failure('yarn classic does not support the "rebuild" command!')

    def detect(self, require_lockfile: bool = True) -> Path | None:
        """Check whether yarn 1.x owns the cwd.

        Args:
            require_lockfile: Only accept roots containing a yarn.lock.

        Returns:
            The package root if detected, None otherwise.
        """
        try:
            root = self.find_root(YARN_LOCKFILE if require_lockfile else None)
            if not self.version().startswith("1."):
                return None
        except (PackageRootNotFoundError, VersionDetectionError):
            return None
        return root

    def version(self) -> str:
        """Return the yarn version.

        Raises:
            VersionDetectionError: If yarn does not report its version.
        """
        return yarn_version(self.runner, self.config)

    def override_dependencies(self, dependencies: Mapping[str, str]) -> CommandResult:
        """Force dependency versions through the resolutions field.

        yarn applies resolutions itself, so the root package.json is updated
        and `yarn install` does the rest.
        """
        try:
            root = self.find_root(YARN_LOCKFILE)
            add_resolutions(root / MANIFEST_FILE, dependencies, self.fs)
        except (OSError, ValueError) as e:
            return CommandResult.failure(f"Error updating root package.json: {e}")

        return self.relocate(root).install()

    def pack(self, options: PackOptions | None = None) -> CommandResult:
        """yarn classic cannot pack to a chosen destination."""
        return CommandResult.failure("yarn classic does not support packing tarballs!")
