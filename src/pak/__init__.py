"""One interface for the npm, yarn classic and yarn berry package managers."""

__version__ = "0.1.0"

# Export the public surface for type hints and dependency injection
from pak.managers import (
    PACKAGE_MANAGERS,
    Npm,
    PackageManagerNotFoundError,
    YarnBerry,
    YarnClassic,
    detect_package_manager,
    get_package_manager,
)
from pak.protocols import CommandRunner, DependencyResolver, FileSystem, PackageManager
from pak.roots import PackageRootNotFoundError, find_root, find_workspaces
from pak.types import (
    CommandResult,
    InstallOptions,
    ManagerConfig,
    OutputSinks,
    PackOptions,
    UninstallOptions,
    UpdateOptions,
    VersionDetectionError,
)

__all__ = [
    "__version__",
    "CommandResult",
    "CommandRunner",
    "DependencyResolver",
    "FileSystem",
    "InstallOptions",
    "ManagerConfig",
    "Npm",
    "OutputSinks",
    "PACKAGE_MANAGERS",
    "PackOptions",
    "PackageManager",
    "PackageManagerNotFoundError",
    "PackageRootNotFoundError",
    "UninstallOptions",
    "UpdateOptions",
    "VersionDetectionError",
    "YarnBerry",
    "YarnClassic",
    "detect_package_manager",
    "find_root",
    "find_workspaces",
    "get_package_manager",
]
