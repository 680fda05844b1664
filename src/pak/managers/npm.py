"""npm adapter."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from packaging.version import InvalidVersion, Version

from pak.lockfile import LOCKFILE_NAME, UnsupportedLockfileError, apply_overrides, lockfile_version
from pak.manifest import MANIFEST_FILE, PackageManifest, pin_dependencies, tarball_filename
from pak.protocols import CommandRunner, DependencyResolver, FileSystem
from pak.registry import PackageVersionNotFoundError, RegistryError, ResolvedDependency
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

logger = logging.getLogger(__name__)

# A package spec like "foo@1.2.3" pins an exact version
EXACT_VERSION_PATTERN = re.compile(r".+@\d+")

# First npm release supporting --pack-destination
PACK_DESTINATION_VERSION = Version("7.0.0")


class Npm:
    """Drives the npm CLI.

    Satisfies the PackageManager protocol structurally.
    """

    name = "npm"
    lockfile_name = LOCKFILE_NAME

    def __init__(
        self,
        config: ManagerConfig,
        runner: CommandRunner,
        filesystem: FileSystem,
        resolver: DependencyResolver,
    ) -> None:
        """Initialize the adapter with required dependencies.

        Args:
            config: Working directory, loglevel, environment and output sinks.
            runner: Executes npm.
            filesystem: Filesystem abstraction.
            resolver: Registry client used for dependency overrides.

        Note:
            Use factory method `create()` for production code.
        """
        self.config = config
        self.runner = runner
        self.fs = filesystem
        self.resolver = resolver

    @classmethod
    def create(cls, config: ManagerConfig | None = None, context=None) -> Npm:
        """Factory method for production instantiation.

        Args:
            config: Adapter settings. Defaults to the current directory.
            context: AppContext supplying collaborators. Created if omitted.

        Returns:
            Configured Npm instance.
        """
        from pak.context import create_context

        ctx = context or create_context()
        return cls(config or ManagerConfig(), ctx.runner, ctx.filesystem, ctx.resolver)

    def relocate(self, cwd: Path) -> Npm:
        """Return an equivalent adapter bound to another directory."""
        return Npm(self.config.with_cwd(cwd), self.runner, self.fs, self.resolver)

    def _command(self, args: list[str], cwd: Path | None = None) -> CommandResult:
        return self.runner.run("npm", args, cwd or self.config.cwd, self.config.sinks)

    def _loglevel_args(self) -> list[str]:
        if self.config.loglevel:
            return ["--loglevel", self.config.loglevel]
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
        """Install the given packages, or all dependencies if none are given."""
        options = options or InstallOptions()
        args = ["install"]
        if options.dependency_type == "dev":
            args.append("--save-dev")
        if options.exact or any(EXACT_VERSION_PATTERN.search(p) for p in packages):
            args.append("--save-exact")
        if options.global_:
            args.append("--global")
        if options.force:
            args.append("--force")
        args.extend(self._loglevel_args())
        args.extend(packages)

        if not packages:
            if self.config.environment == "production":
                args.append("--production")
            if options.ignore_scripts:
                args.append("--ignore-scripts")

        args.extend(options.additional_args)
        return self._command(args)

    def uninstall(
        self,
        packages: Sequence[str],
        options: UninstallOptions | None = None,
    ) -> CommandResult:
        """Remove the given packages."""
        options = options or UninstallOptions()
        args = ["uninstall"]
        if options.dependency_type == "dev":
            args.append("--save-dev")
        if options.global_:
            args.append("--global")
        args.extend(self._loglevel_args())
        args.extend(packages)
        args.extend(options.additional_args)
        return self._command(args)

    def update(
        self,
        packages: Sequence[str] = (),
        options: UpdateOptions | None = None,
    ) -> CommandResult:
        """Update the given packages, or all of them if none are given."""
        options = options or UpdateOptions()
        args = ["update"]
        if options.dependency_type == "dev":
            args.append("--save-dev")
        if options.global_:
            args.append("-g")
        args.extend(self._loglevel_args())
        args.extend(packages)
        args.extend(options.additional_args)
        return self._command(args)

    def rebuild(self, packages: Sequence[str] = ()) -> CommandResult:
        """Rebuild native addons."""
        args = ["rebuild", *self._loglevel_args(), *packages]
        return self._command(args)

    def detect(self, require_lockfile: bool = True) -> Path | None:
        """Check whether npm owns the cwd.

        Args:
            require_lockfile: Only accept roots containing a package-lock.json.

        Returns:
            The package root if detected, None otherwise.
        """
        try:
            return self.find_root(LOCKFILE_NAME if require_lockfile else None)
        except PackageRootNotFoundError:
            return None

    def version(self) -> str:
        """Return the npm version.

        Raises:
            VersionDetectionError: If npm does not report its version.
        """
        result = self._command(["-v"])
        if not result.success:
            raise VersionDetectionError(
                f"Could not detect npm version: {result.stderr}! Exit code: {result.exit_code}."
            )
        return result.stdout.strip()

    def override_dependencies(self, dependencies: Mapping[str, str]) -> CommandResult:
        """Force exact versions of (transitive) dependencies.

        The entries of the overridden packages in package-lock.json are replaced,
        the package.json files of their dependents are pointed at the new versions,
        and `npm install` reconciles node_modules with the patched files. A final
        `npm dedupe` restores the canonical tree structure.

        Args:
            dependencies: Mapping of package name to exact version.

        Returns:
            CommandResult of the reconciling install, or a failed result
            describing the first step that went wrong.
        """
        try:
            root = self.find_root(LOCKFILE_NAME)
            lockfile_path = root / LOCKFILE_NAME
            lockfile = self.fs.read_json(lockfile_path)
        except (OSError, ValueError) as e:
            return CommandResult.failure(
                f"Error loading root package.json and package-lock.json: {e}"
            )

        try:
            lockfile_version(lockfile)
        except UnsupportedLockfileError as e:
            return CommandResult.failure(str(e))

        overrides: dict[str, ResolvedDependency] = {}
        for name, version in dependencies.items():
            try:
                overrides[name] = self.resolver.resolve(name, version)
            except (RegistryError, PackageVersionNotFoundError) as e:
                return CommandResult.failure(str(e))

        affected_manifests = apply_overrides(lockfile, overrides, root)
        affected_manifests.add(root / MANIFEST_FILE)
        versions = {name: resolved.version for name, resolved in overrides.items()}

        try:
            for manifest_path in sorted(affected_manifests):
                self._pin_manifest(manifest_path, versions, root)
            # The lockfile goes last: updated manifests with an old lockfile
            # are repaired by a plain install, the reverse is not
            self.fs.write_json(lockfile_path, lockfile)
            logger.debug("Wrote patched lockfile %s", lockfile_path)
        except (OSError, ValueError) as e:
            return CommandResult.failure(f"Error updating package files: {e}")

        installer = self.relocate(root)
        result = installer.install()
        installer._command(["dedupe"])
        return result

    def _pin_manifest(self, manifest_path: Path, versions: dict[str, str], root: Path) -> None:
        if manifest_path != root / MANIFEST_FILE and not self.fs.exists(manifest_path):
            logger.warning("Skipping %s, the package is not installed", manifest_path)
            return
        manifest = self.fs.read_json(manifest_path)
        if pin_dependencies(manifest, versions):
            self.fs.write_json(manifest_path, manifest)
            logger.debug("Pinned overridden dependencies in %s", manifest_path)

    def pack(self, options: PackOptions | None = None) -> CommandResult:
        """Create a tarball of the workspace.

        Returns:
            CommandResult whose stdout is the absolute path of the tarball.

        Raises:
            VersionDetectionError: If the npm version cannot be determined.
        """
        options = options or PackOptions()
        target_dir = Path(options.target_dir or self.config.cwd)
        workspace_dir = self.config.cwd / options.workspace

        npm_version = self.version()
        if _supports_pack_destination(npm_version):
            self.fs.ensure_dir(target_dir)
            result = self._command(
                ["pack", "--pack-destination", str(target_dir)], cwd=workspace_dir
            )
            if not result.success:
                return result
            # npm prints the file name, callers want the full path
            return result.with_stdout(str(target_dir / result.stdout.strip()))

        if options.workspace != ".":
            return CommandResult.failure(f"npm {npm_version} does not support monorepos")

        self.fs.ensure_dir(target_dir)
        manifest = PackageManifest.from_file(workspace_dir / MANIFEST_FILE, self.fs)
        target_path = target_dir / tarball_filename(manifest.name, manifest.version)

        result = self._command(["pack"], cwd=workspace_dir)
        if not result.success:
            return result

        # npm 6 names scoped tarballs differently, move it where we promised
        npm_tarball_path = workspace_dir / result.stdout.strip()
        if npm_tarball_path != target_path:
            self.fs.move(npm_tarball_path, target_path)
        return result.with_stdout(str(target_path))


def _supports_pack_destination(npm_version: str) -> bool:
    try:
        return Version(npm_version) >= PACK_DESTINATION_VERSION
    except InvalidVersion:
        logger.debug("Unparseable npm version %r, assuming a current release", npm_version)
        return True
