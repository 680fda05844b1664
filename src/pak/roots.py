"""Package root and workspace discovery."""

from __future__ import annotations

import logging
from pathlib import Path

from pak.filesystem import RealFileSystem
from pak.manifest import MANIFEST_FILE, PackageManifest
from pak.protocols import FileSystem

logger = logging.getLogger(__name__)


class PackageRootNotFoundError(FileNotFoundError):
    """No package root exists above the starting directory."""

    pass


def find_root(
    cwd: Path | str,
    lockfile_name: str | None = None,
    filesystem: FileSystem | None = None,
) -> Path:
    """Find the nearest parent directory containing a package.json.

    A directory with a package.json but without the requested lockfile does
    not stop the search: in monorepos every workspace has a manifest while
    the lockfile only lives in the repository root.

    Args:
        cwd: Starting directory.
        lockfile_name: Lockfile that must sit next to the manifest.
        filesystem: Filesystem abstraction. Defaults to the real filesystem.

    Returns:
        Path to the package root.

    Raises:
        PackageRootNotFoundError: If the filesystem root is reached without a match.
    """
    fs = filesystem or RealFileSystem()
    path = Path(cwd).absolute()
    while True:
        if fs.exists(path / MANIFEST_FILE) and (
            lockfile_name is None or fs.exists(path / lockfile_name)
        ):
            logger.debug("Found package root %s", path)
            return path
        if path.parent == path:
            break
        path = path.parent

    wanted = MANIFEST_FILE if lockfile_name is None else f"{MANIFEST_FILE} and {lockfile_name}"
    raise PackageRootNotFoundError(f"No directory containing {wanted} found above {cwd}")


def find_workspaces(cwd: Path | str, filesystem: FileSystem | None = None) -> list[Path]:
    """Expand the workspaces declared in the package.json of a directory.

    Args:
        cwd: Directory containing the package.json.
        filesystem: Filesystem abstraction. Defaults to the real filesystem.

    Returns:
        Sorted absolute paths of matched directories that contain a package.json.
        Empty if the manifest declares no workspaces.
    """
    fs = filesystem or RealFileSystem()
    root = Path(cwd).absolute()
    manifest = PackageManifest.model_validate(fs.read_json(root / MANIFEST_FILE))

    found: set[Path] = set()
    for pattern in manifest.workspace_patterns():
        if pattern.startswith("!"):
            continue
        pattern = pattern.removeprefix("./").rstrip("/")
        if not pattern:
            continue
        for match in fs.glob(root, pattern):
            if fs.is_dir(match) and fs.exists(match / MANIFEST_FILE):
                found.add(match)
    return sorted(found)
