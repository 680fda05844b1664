"""Patching of npm lockfiles to force dependency versions.

npm lockfiles come in two shapes:

- the nested tree of lockfile v1, where every entry of ``dependencies`` may
  carry its own ``dependencies`` subtree and lists the version ranges it needs
  under ``requires``;
- the flat package map of lockfile v2 and v3, where ``packages`` maps the
  install location (``node_modules/a/node_modules/b``) to an entry that lists
  the ranges it needs directly under ``dependencies``.

Lockfile v2 contains both: the package map plus the nested tree for older npm
versions. Both must be patched or npm would see conflicting information.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pak.manifest import MANIFEST_FILE
from pak.registry import ResolvedDependency

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "package-lock.json"
SUPPORTED_LOCKFILE_VERSIONS = (1, 2, 3)

NODE_MODULES = "node_modules"
_NODE_MODULES_SEGMENT = f"{NODE_MODULES}/"

Overrides = Mapping[str, ResolvedDependency]


class UnsupportedLockfileError(ValueError):
    """The lockfile uses a format version pak cannot patch."""

    pass


@dataclass(frozen=True)
class EntryShape:
    """Field layout of a lockfile entry.

    Attributes:
        requirements_key: Field listing the version ranges an entry depends on.
        drop_unknown_integrity: Remove the integrity hash when the override has none.
    """

    requirements_key: str
    drop_unknown_integrity: bool


NESTED_TREE = EntryShape(requirements_key="requires", drop_unknown_integrity=False)
PACKAGE_MAP = EntryShape(requirements_key="dependencies", drop_unknown_integrity=True)


def lockfile_version(document: Mapping[str, Any]) -> int:
    """Get the format version of a parsed lockfile.

    Raises:
        UnsupportedLockfileError: If the version is not 1, 2 or 3.
    """
    version = document.get("lockfileVersion")
    # bool is an int subclass, but true is not a lockfile version
    if isinstance(version, bool) or version not in SUPPORTED_LOCKFILE_VERSIONS:
        raise UnsupportedLockfileError(f"Lockfile version {version} is not supported!")
    return version


def override_entry(
    entry: Mapping[str, Any],
    resolved: ResolvedDependency,
    shape: EntryShape,
) -> dict[str, Any]:
    """Return a copy of a lockfile entry pointing at another version."""
    patched = dict(entry)
    patched["version"] = resolved.version
    if "tarball" in patched:
        patched["tarball"] = resolved.tarball
    else:
        patched["resolved"] = resolved.tarball
        if resolved.integrity:
            patched["integrity"] = resolved.integrity
        elif shape.drop_unknown_integrity:
            patched.pop("integrity", None)
    patched[shape.requirements_key] = dict(resolved.dependencies)
    return patched


def rewrite_requirements(entry: Mapping[str, Any], overrides: Overrides, shape: EntryShape) -> bool:
    """Point the requirements of an entry to the overridden versions.

    Returns:
        True if the entry requires any overridden package.
    """
    requirements = entry.get(shape.requirements_key)
    if not isinstance(requirements, dict):
        return False

    affected = False
    for name, resolved in overrides.items():
        if name in requirements:
            requirements[name] = resolved.version
            affected = True
    return affected


def _walk_nested_tree(
    node: Mapping[str, Any],
    directory: Path,
    overrides: Overrides,
    affected_manifests: set[Path],
) -> None:
    dependencies = node.get("dependencies")
    if not isinstance(dependencies, dict):
        return

    for name in list(dependencies):
        if name in overrides:
            dependencies[name] = override_entry(dependencies[name], overrides[name], NESTED_TREE)
            continue

        entry = dependencies[name]
        package_dir = directory / NODE_MODULES / name
        if rewrite_requirements(entry, overrides, NESTED_TREE):
            affected_manifests.add(package_dir / MANIFEST_FILE)
        # Overrides may apply further down the tree
        _walk_nested_tree(entry, package_dir, overrides, affected_manifests)


def walk_nested_tree(
    document: Mapping[str, Any],
    root: Path,
    overrides: Overrides,
    affected_manifests: set[Path],
) -> None:
    """Patch the nested dependency tree of a lockfile.

    Args:
        document: Parsed lockfile, modified in place.
        root: Directory containing the lockfile.
        overrides: Mapping of package name to its forced version.
        affected_manifests: Receives the package.json paths that need patching.
    """
    _walk_nested_tree(document, root, overrides, affected_manifests)


def package_name_from_path(location: str, entry: Mapping[str, Any]) -> str:
    """Derive the package name of a package map entry.

    Example:
        >>> package_name_from_path("node_modules/a/node_modules/@s/b", {})
        '@s/b'
    """
    name = entry.get("name")
    if name:
        return name
    index = location.rfind(_NODE_MODULES_SEGMENT)
    if index == -1:
        return location
    return location[index + len(_NODE_MODULES_SEGMENT):]


def walk_package_map(
    document: Mapping[str, Any],
    root: Path,
    overrides: Overrides,
    affected_manifests: set[Path],
) -> None:
    """Patch the flat package map of a lockfile.

    Args:
        document: Parsed lockfile, modified in place.
        root: Directory containing the lockfile.
        overrides: Mapping of package name to its forced version.
        affected_manifests: Receives the package.json paths that need patching.
    """
    packages = document.get("packages")
    if not isinstance(packages, dict):
        return

    for location in list(packages):
        entry = packages[location]
        name = package_name_from_path(location, entry)
        if name in overrides:
            packages[location] = override_entry(entry, overrides[name], PACKAGE_MAP)
        elif rewrite_requirements(entry, overrides, PACKAGE_MAP):
            affected_manifests.add(root / location / MANIFEST_FILE)


Walk = Callable[[Mapping[str, Any], Path, Overrides, set[Path]], None]

WALKS: dict[int, tuple[Walk, ...]] = {
    1: (walk_nested_tree,),
    2: (walk_package_map, walk_nested_tree),
    3: (walk_package_map,),
}


def apply_overrides(document: dict[str, Any], overrides: Overrides, root: Path) -> set[Path]:
    """Force package versions in a parsed npm lockfile.

    Entries of overridden packages are replaced with the resolved version.
    Entries depending on an overridden package get their requirement rewritten,
    and their package.json is reported so it can be patched too.

    Args:
        document: Parsed lockfile, modified in place.
        overrides: Mapping of package name to its forced version.
        root: Directory containing the lockfile.

    Returns:
        Paths of package.json files of dependents needing a version bump.

    Raises:
        UnsupportedLockfileError: If the lockfile version is not supported.
    """
    version = lockfile_version(document)
    affected_manifests: set[Path] = set()
    for walk in WALKS[version]:
        walk(document, root, overrides, affected_manifests)

    logger.debug(
        "Patched lockfile v%d for %s, %d dependent manifests affected",
        version,
        ", ".join(sorted(overrides)),
        len(affected_manifests),
    )
    return affected_manifests
