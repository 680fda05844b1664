"""package.json handling shared by the package manager adapters."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pak.protocols import FileSystem

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"


class WorkspacesConfig(BaseModel):
    """Object form of the workspaces field used by yarn."""

    model_config = ConfigDict(extra="allow")

    packages: list[str] = Field(default_factory=list)


class PackageManifest(BaseModel):
    """The fields of a package.json that pak reads.

    Only used for reading. Manifests are rewritten from their raw dict so
    unknown fields survive untouched.
    """

    model_config = ConfigDict(extra="allow")

    name: str = ""
    version: str = ""
    workspaces: list[str] | WorkspacesConfig | None = None

    @classmethod
    def from_file(cls, path: Path, filesystem: FileSystem) -> PackageManifest:
        """Load a manifest from a package.json file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the content is not a valid manifest.
        """
        return cls.model_validate(filesystem.read_json(path))

    def workspace_patterns(self) -> list[str]:
        """Return the workspace globs regardless of the declaration form."""
        if self.workspaces is None:
            return []
        if isinstance(self.workspaces, WorkspacesConfig):
            return list(self.workspaces.packages)
        return list(self.workspaces)


def tarball_filename(name: str, version: str) -> str:
    """Compute the file name npm gives the tarball of a package.

    Example:
        >>> tarball_filename("@scope/test", "0.0.1-beta.0+1234")
        'scope-test-0.0.1-beta.0+1234.tgz'
    """
    package_name = name.replace("/", "-", 1).removeprefix("@")
    return f"{package_name}-{version}.tgz"


def pin_dependencies(manifest: dict[str, Any], versions: Mapping[str, str]) -> bool:
    """Point existing dependency entries of a manifest to exact versions.

    Only packages the manifest already depends on are touched.

    Args:
        manifest: Raw package.json content, modified in place.
        versions: Mapping of package name to exact version.

    Returns:
        True if any entry changed.
    """
    dependencies = manifest.get("dependencies")
    if not isinstance(dependencies, dict):
        return False

    changed = False
    for name, version in versions.items():
        if name in dependencies and dependencies[name] != version:
            dependencies[name] = version
            changed = True
    return changed


def add_resolutions(
    manifest_path: Path,
    dependencies: Mapping[str, str],
    filesystem: FileSystem,
) -> None:
    """Merge forced versions into the resolutions field of a package.json.

    Existing resolutions are kept; requested versions win on conflict.

    Args:
        manifest_path: Path to the package.json.
        dependencies: Mapping of package name to version.
        filesystem: Filesystem abstraction.
    """
    manifest = filesystem.read_json(manifest_path)
    manifest["resolutions"] = {**(manifest.get("resolutions") or {}), **dependencies}
    filesystem.write_json(manifest_path, manifest)
    logger.debug("Wrote resolutions %s to %s", dict(dependencies), manifest_path)
