"""Shared test fixtures."""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from pak.context import AppContext
from pak.filesystem import RealFileSystem
from pak.registry import ResolvedDependency
from pak.types import ManagerConfig

from helpers import REGISTRY, ok


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock CommandRunner that succeeds with stdout 'ok'."""
    runner = MagicMock()
    runner.run.return_value = ok()
    return runner


@pytest.fixture
def mock_resolver() -> MagicMock:
    """Create a mock DependencyResolver."""
    return MagicMock()


@pytest.fixture
def fs() -> RealFileSystem:
    """Real filesystem, used against tmp_path."""
    return RealFileSystem()


@pytest.fixture
def mock_context(
    mock_runner: MagicMock, mock_resolver: MagicMock, fs: RealFileSystem
) -> AppContext:
    """Create an AppContext with a mocked runner and resolver."""
    return AppContext(runner=mock_runner, resolver=mock_resolver, filesystem=fs)


@pytest.fixture
def config(tmp_path: Path) -> ManagerConfig:
    """Adapter settings bound to the temporary directory."""
    return ManagerConfig(cwd=tmp_path)


# ============================================================================
# Project Fixtures
# ============================================================================


@pytest.fixture
def write_json() -> Callable[[Path, Any], Path]:
    """Write a JSON document, creating parent directories."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n")
        return path

    return _write


@pytest.fixture
def read_json() -> Callable[[Path], Any]:
    """Read a JSON document."""

    def _read(path: Path) -> Any:
        return json.loads(path.read_text())

    return _read


@pytest.fixture
def npm_project(tmp_path: Path, write_json) -> Path:
    """Project with a package.json and an empty package-lock.json."""
    write_json(tmp_path / "package.json", {"name": "test", "version": "0.0.1"})
    write_json(tmp_path / "package-lock.json", {"name": "test", "lockfileVersion": 3})
    return tmp_path


@pytest.fixture
def yarn_project(tmp_path: Path, write_json) -> Path:
    """Project with a package.json and a yarn.lock."""
    write_json(tmp_path / "package.json", {"name": "test", "version": "0.0.1"})
    (tmp_path / "yarn.lock").write_text("# yarn lockfile v1\n")
    return tmp_path


# ============================================================================
# Lockfile Fixtures
# ============================================================================


@pytest.fixture
def is_odd_1() -> ResolvedDependency:
    """Registry snapshot of is-odd@1.0.0."""
    return ResolvedDependency(
        version="1.0.0",
        tarball=f"{REGISTRY}/is-odd/-/is-odd-1.0.0.tgz",
        integrity="sha512-odd100",
        dependencies={"is-number": "^4.0.0"},
    )


@pytest.fixture
def lockfile_v1() -> dict[str, Any]:
    """Nested-tree lockfile where is-even@1.0.0 pulls is-odd@0.1.2."""
    return {
        "name": "test",
        "version": "0.0.1",
        "lockfileVersion": 1,
        "requires": True,
        "dependencies": {
            "is-even": {
                "version": "1.0.0",
                "resolved": f"{REGISTRY}/is-even/-/is-even-1.0.0.tgz",
                "integrity": "sha512-even100",
                "requires": {"is-odd": "^0.1.2"},
                "dependencies": {
                    "is-odd": {
                        "version": "0.1.2",
                        "resolved": f"{REGISTRY}/is-odd/-/is-odd-0.1.2.tgz",
                        "integrity": "sha512-odd012",
                        "requires": {"is-number": "^3.0.0"},
                    },
                },
            },
            "is-number": {
                "version": "3.0.0",
                "resolved": f"{REGISTRY}/is-number/-/is-number-3.0.0.tgz",
                "integrity": "sha512-number300",
                "requires": {"kind-of": "^3.0.2"},
            },
            "kind-of": {
                "version": "3.2.2",
                "resolved": f"{REGISTRY}/kind-of/-/kind-of-3.2.2.tgz",
                "integrity": "sha512-kind322",
            },
        },
    }


@pytest.fixture
def lockfile_v3() -> dict[str, Any]:
    """Package-map lockfile where is-even@1.0.0 pulls is-odd@0.1.2."""
    return {
        "name": "test",
        "version": "0.0.1",
        "lockfileVersion": 3,
        "requires": True,
        "packages": {
            "": {
                "name": "test",
                "version": "0.0.1",
                "dependencies": {"is-even": "1.0.0"},
            },
            "node_modules/is-even": {
                "version": "1.0.0",
                "resolved": f"{REGISTRY}/is-even/-/is-even-1.0.0.tgz",
                "integrity": "sha512-even100",
                "dependencies": {"is-odd": "^0.1.2"},
            },
            "node_modules/is-odd": {
                "version": "0.1.2",
                "resolved": f"{REGISTRY}/is-odd/-/is-odd-0.1.2.tgz",
                "integrity": "sha512-odd012",
                "dependencies": {"is-number": "^3.0.0"},
            },
            "node_modules/is-number": {
                "version": "3.0.0",
                "resolved": f"{REGISTRY}/is-number/-/is-number-3.0.0.tgz",
                "integrity": "sha512-number300",
            },
        },
    }


@pytest.fixture
def lockfile_v2(lockfile_v1: dict[str, Any], lockfile_v3: dict[str, Any]) -> dict[str, Any]:
    """Lockfile v2: the package map plus the nested tree for old npm versions."""
    document = copy.deepcopy(lockfile_v3)
    document["lockfileVersion"] = 2
    document["dependencies"] = copy.deepcopy(lockfile_v1["dependencies"])
    return document
