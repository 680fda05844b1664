"""Protocol definitions for core abstractions.

This module defines abstract interfaces (Protocols) for the collaborators
pak talks to: the process runner, the filesystem, the package registry and
the package manager adapters themselves.

All concrete implementations satisfy these protocols structurally (duck typing),
so tests can substitute MagicMock instances or small fakes.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pak.types import (
    CommandResult,
    InstallOptions,
    ManagerConfig,
    OutputSinks,
    PackOptions,
    UninstallOptions,
    UpdateOptions,
)

if TYPE_CHECKING:
    from pak.registry import ResolvedDependency


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for executing external programs."""

    def run(
        self,
        command: str,
        args: Sequence[str],
        cwd: Path,
        sinks: OutputSinks | None = None,
    ) -> CommandResult:
        """Run a program to completion.

        Args:
            command: Binary name, e.g. "npm".
            args: Argument vector without the binary.
            cwd: Working directory.
            sinks: Streams that receive output while the process runs.

        Returns:
            CommandResult describing the finished process.
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for filesystem operations.

    Enables testing without real I/O by allowing mock implementations.
    """

    def read_text(self, path: Path) -> str:
        """Read text content from a file."""
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Write text content to a file."""
        ...

    def read_json(self, path: Path) -> Any:
        """Read and parse a JSON document."""
        ...

    def write_json(self, path: Path, data: Any) -> None:
        """Serialize a JSON document with 2-space indentation."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...

    def ensure_dir(self, path: Path) -> None:
        """Create a directory and its parents if missing."""
        ...

    def move(self, src: Path, dst: Path) -> None:
        """Move a file, replacing the destination."""
        ...

    def glob(self, directory: Path, pattern: str) -> Iterator[Path]:
        """Expand a glob pattern relative to a directory."""
        ...


@runtime_checkable
class DependencyResolver(Protocol):
    """Protocol for looking up published package versions."""

    def resolve(self, name: str, version: str) -> ResolvedDependency:
        """Fetch the metadata of one exact package version.

        Args:
            name: Package name, possibly scoped.
            version: Exact version string.

        Returns:
            ResolvedDependency snapshot.

        Raises:
            RegistryError: If the registry could not be queried.
            PackageVersionNotFoundError: If the version is not published.
        """
        ...


@runtime_checkable
class PackageManager(Protocol):
    """Protocol implemented by every package manager adapter.

    New package managers can be added to the adapter table without
    modifying existing adapters.
    """

    name: str
    lockfile_name: str
    config: ManagerConfig

    def relocate(self, cwd: Path) -> PackageManager:
        """Return an equivalent adapter bound to another directory."""
        ...

    def find_root(self, lockfile_name: str | None = None) -> Path:
        """Find the nearest package root above the adapter cwd."""
        ...

    def workspaces(self) -> list[Path]:
        """List the workspace directories declared in the cwd manifest."""
        ...

    def detect(self, require_lockfile: bool = True) -> Path | None:
        """Check whether this package manager owns the cwd.

        Args:
            require_lockfile: Only accept roots carrying this manager's lockfile.

        Returns:
            The package root if detected, None otherwise.
        """
        ...

    def version(self) -> str:
        """Return the version of the package manager binary.

        Raises:
            VersionDetectionError: If the version cannot be determined.
        """
        ...

    def install(
        self,
        packages: Sequence[str] = (),
        options: InstallOptions | None = None,
    ) -> CommandResult:
        """Install the given packages, or all dependencies if none are given."""
        ...

    def uninstall(
        self,
        packages: Sequence[str],
        options: UninstallOptions | None = None,
    ) -> CommandResult:
        """Remove the given packages."""
        ...

    def update(
        self,
        packages: Sequence[str] = (),
        options: UpdateOptions | None = None,
    ) -> CommandResult:
        """Update the given packages, or all of them if none are given."""
        ...

    def rebuild(self, packages: Sequence[str] = ()) -> CommandResult:
        """Rebuild native addons."""
        ...

    def pack(self, options: PackOptions | None = None) -> CommandResult:
        """Create a tarball. stdout of the result is the tarball path."""
        ...

    def override_dependencies(self, dependencies: Mapping[str, str]) -> CommandResult:
        """Force exact versions of (transitive) dependencies.

        Args:
            dependencies: Mapping of package name to exact version.

        Returns:
            CommandResult of the reconciling install.
        """
        ...
