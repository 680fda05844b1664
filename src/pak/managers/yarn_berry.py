"""yarn berry (v2 and later) adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from pak.managers.yarn_classic import YARN_LOCKFILE, yarn_version
from pak.manifest import MANIFEST_FILE, PackageManifest, add_resolutions, tarball_filename
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

SUPPORTED_MAJOR_VERSIONS = ("2.", "3.", "4.")


class YarnBerry:
    """Drives the yarn 2+ CLI.

    yarn berry has no loglevel flags, so the configured loglevel is ignored.
    Satisfies the PackageManager protocol structurally.
    """

    name = "yarn"
    lockfile_name = YARN_LOCKFILE

    def __init__(
        self,
        config: ManagerConfig,
        runner: CommandRunner,
        filesystem: FileSystem,
    ) -> None:
        self.config = config
        self.runner = runner
        self.fs = filesystem

    @classmethod
    def create(cls, config: ManagerConfig | None = None, context=None) -> YarnBerry:
        """Factory method for production instantiation."""
        from pak.context import create_context

        ctx = context or create_context()
        return cls(config or ManagerConfig(), ctx.runner, ctx.filesystem)

    def relocate(self, cwd: Path) -> YarnBerry:
        """Return an equivalent adapter bound to another directory."""
        return YarnBerry(self.config.with_cwd(cwd), self.runner, self.fs)

    def _command(self, args: list[str], cwd: Path | None = None) -> CommandResult:
        return self.runner.run("yarn", args, cwd or self.config.cwd, self.config.sinks)

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
        if options.global_:
            return CommandResult.failure("yarn berry does not support global installs!")

        args: list[str] = []
        if packages:
            args.append("add")
            args.extend(packages)
            if options.dependency_type == "dev":
                args.append("--dev")
            if options.exact:
                args.append("--exact")
        else:
            args.append("install")
        args.extend(options.additional_args)
        return self._command(args)

    def uninstall(
        self,
        packages: Sequence[str],
        options: UninstallOptions | None = None,
    ) -> CommandResult:
        """Remove the given packages."""
        options = options or UninstallOptions()
        if options.global_:
            return CommandResult.failure("yarn berry does not support global uninstalls!")

        args = ["remove", *packages, *options.additional_args]
        return self._command(args)

    def update(
        self,
        packages: Sequence[str] = (),
        options: UpdateOptions | None = None,
    ) -> CommandResult:
        """Update packages through `yarn add`, which also rewrites package.json ranges."""
        return self.install(packages, options)

    def rebuild(self, packages: Sequence[str] = ()) -> CommandResult:
        """Rebuild native addons."""
        return self._command(["rebuild", *packages])

    def detect(self, require_lockfile: bool = True) -> Path | None:
        """Check whether yarn 2, 3 or 4 owns the cwd.

        Args:
            require_lockfile: Only accept roots containing a yarn.lock.

        Returns:
            The package root if detected, None otherwise.
        """
        try:
            root = self.find_root(YARN_LOCKFILE if require_lockfile else None)
            if not self.version().startswith(SUPPORTED_MAJOR_VERSIONS):
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
        """Force dependency versions through the resolutions field."""
        try:
            root = self.find_root(YARN_LOCKFILE)
            add_resolutions(root / MANIFEST_FILE, dependencies, self.fs)
        except (OSError, ValueError) as e:
            return CommandResult.failure(f"Error updating root package.json: {e}")

        return self.relocate(root).install()

    def pack(self, options: PackOptions | None = None) -> CommandResult:
        """Create a tarball of the workspace.

        yarn wants the output file rather than a directory, and names it
        differently from npm, so the npm file name is computed here.

        Returns:
            CommandResult whose stdout is the absolute path of the tarball.
        """
        options = options or PackOptions()
        target_dir = Path(options.target_dir or self.config.cwd)
        workspace_dir = self.config.cwd / options.workspace
        self.fs.ensure_dir(target_dir)

        manifest = PackageManifest.from_file(workspace_dir / MANIFEST_FILE, self.fs)
        target_path = target_dir / tarball_filename(manifest.name, manifest.version)

        result = self._command(["pack", "--out", str(target_path)], cwd=workspace_dir)
        # yarn prints a progress log, not just the file name
        return result.with_stdout(str(target_path))
