"""Helpers shared by the test modules."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from pak.types import CommandResult

REGISTRY = "https://registry.npmjs.org"


def ok(stdout: str = "ok") -> CommandResult:
    """Build a successful command result."""
    return CommandResult.from_process(0, stdout, "", stdout)


def nok(stderr: str = "error", exit_code: int = 1) -> CommandResult:
    """Build a failed command result."""
    return CommandResult.from_process(exit_code, "not ok", stderr, f"not ok\n{stderr}")


def called_args(runner: MagicMock, call: int = 0) -> list[str]:
    """Argument vector passed to the runner in a given call."""
    return list(runner.run.call_args_list[call].args[1])


def called_cwd(runner: MagicMock, call: int = 0) -> Path:
    """Working directory passed to the runner in a given call."""
    return runner.run.call_args_list[call].args[2]
