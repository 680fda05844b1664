"""Application context for dependency injection.

This module separates object creation from object use: package manager
adapters receive their collaborators from an AppContext instead of
constructing them, so tests can hand in doubles.

Dependencies are typed using Protocols rather than concrete implementations.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from pak.protocols import CommandRunner, DependencyResolver, FileSystem

# npm reads the registry from this variable as well
REGISTRY_ENV_VAR = "npm_config_registry"


def _default_filesystem() -> FileSystem:
    """Create the default filesystem implementation."""
    from pak.filesystem import RealFileSystem
    return RealFileSystem()


@dataclass
class AppContext:
    """Container for the collaborators of package manager adapters.

    All dependencies are typed using Protocol interfaces, not concrete classes.
    This allows test doubles to be injected without inheritance.
    """

    runner: CommandRunner
    resolver: DependencyResolver
    filesystem: FileSystem = field(default_factory=_default_filesystem)


def create_context(
    registry_url: str | None = None,
    timeout: float | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Use this in production code. For tests, construct AppContext directly
    with test doubles.

    Args:
        registry_url: Override the npm registry. Falls back to the
            npm_config_registry environment variable, then the public registry.
        timeout: Seconds after which spawned commands are killed. None waits forever.

    Returns:
        Configured AppContext with all dependencies.
    """
    from pak.filesystem import RealFileSystem
    from pak.registry import NpmRegistry
    from pak.runner import SubprocessRunner

    return AppContext(
        runner=SubprocessRunner(timeout=timeout),
        resolver=NpmRegistry(registry_url or os.environ.get(REGISTRY_ENV_VAR)),
        filesystem=RealFileSystem(),
    )
