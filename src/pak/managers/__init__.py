"""Package manager adapters and detection."""

from __future__ import annotations

import logging
from pathlib import Path

from pak.context import AppContext, create_context
from pak.protocols import PackageManager
from pak.types import ManagerConfig

from .npm import Npm
from .yarn_berry import YarnBerry
from .yarn_classic import YarnClassic

logger = logging.getLogger(__name__)

__all__ = [
    "Npm",
    "PACKAGE_MANAGERS",
    "PackageManager",
    "PackageManagerNotFoundError",
    "YarnBerry",
    "YarnClassic",
    "detect_package_manager",
    "get_package_manager",
]


class PackageManagerNotFoundError(RuntimeError):
    """No supported package manager owns the directory tree."""

    pass


# Probed in this order by detect_package_manager when a lockfile is required
PACKAGE_MANAGERS: dict[str, type[Npm] | type[YarnBerry] | type[YarnClassic]] = {
    "npm": Npm,
    "yarn": YarnBerry,
    "yarn-classic": YarnClassic,
}

# Without a lockfile npm claims any package.json, so it is probed last
LOCKFILE_FREE_ORDER = ("yarn", "yarn-classic", "npm")


def get_package_manager(
    name: str,
    config: ManagerConfig | None = None,
    context: AppContext | None = None,
) -> PackageManager:
    """Get a package manager adapter by name.

    Args:
        name: Adapter name (npm, yarn, yarn-classic).
        config: Adapter settings. Defaults to the current directory.
        context: AppContext supplying collaborators. Created if omitted.

    Returns:
        PackageManager instance.

    Raises:
        ValueError: If the package manager is not supported.
    """
    if name not in PACKAGE_MANAGERS:
        raise ValueError(
            f"Unknown package manager: {name}. Supported: {list(PACKAGE_MANAGERS.keys())}"
        )
    return PACKAGE_MANAGERS[name].create(config, context)


def detect_package_manager(
    cwd: Path | str | None = None,
    *,
    require_lockfile: bool = True,
    set_cwd_to_package_root: bool = False,
    context: AppContext | None = None,
    config: ManagerConfig | None = None,
) -> PackageManager:
    """Find the package manager in charge of a directory tree.

    Args:
        cwd: Directory to probe. Defaults to the cwd of `config`.
        require_lockfile: Only accept a manager whose lockfile exists in the root.
        set_cwd_to_package_root: Bind the returned adapter to the package root
            instead of `cwd`.
        context: AppContext supplying collaborators. Created if omitted.
        config: Adapter settings (loglevel, environment, sinks).

    Returns:
        The first adapter that detects the directory. With a lockfile npm is
        probed first. Without one yarn is, since npm claims any package.json.

    Raises:
        PackageManagerNotFoundError: If no adapter detects the directory.
    """
    ctx = context or create_context()
    config = config or ManagerConfig()
    if cwd is not None:
        config = config.with_cwd(cwd)

    order = list(PACKAGE_MANAGERS) if require_lockfile else LOCKFILE_FREE_ORDER
    for name in order:
        manager = PACKAGE_MANAGERS[name].create(config, ctx)
        root = manager.detect(require_lockfile)
        if root is None:
            continue
        logger.debug("Detected %s in %s", name, root)
        if set_cwd_to_package_root:
            return manager.relocate(root)
        return manager

    raise PackageManagerNotFoundError(
        f"No supported package manager found for {config.cwd}: "
        "this directory tree does not contain a package.json with a matching lockfile"
    )
