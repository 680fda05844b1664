"""Shared data types for pak."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal, TextIO

__all__ = [
    "CommandResult",
    "DependencyType",
    "Environment",
    "InstallOptions",
    "LogLevel",
    "ManagerConfig",
    "OutputSinks",
    "PackOptions",
    "UninstallOptions",
    "UpdateOptions",
    "VersionDetectionError",
]

DependencyType = Literal["prod", "dev"]
Environment = Literal["production", "development"]
LogLevel = Literal[
    "silent", "error", "warn", "notice", "http", "timing", "info", "verbose", "silly"
]


class VersionDetectionError(RuntimeError):
    """The package manager binary did not report its version."""

    pass


@dataclass(frozen=True)
class CommandResult:
    """Result of a package manager operation.

    Attributes:
        success: True if the command ran to completion with exit code 0.
        exit_code: Exit code of the process.
        stdout: Captured standard output, final newline stripped.
        stderr: Captured standard error, final newline stripped.
        combined_output: Both streams interleaved in arrival order.
    """

    success: bool
    exit_code: int
    stdout: str
    stderr: str
    combined_output: str

    @classmethod
    def from_process(
        cls,
        exit_code: int,
        stdout: str,
        stderr: str,
        combined_output: str,
        *,
        failed: bool = False,
        canceled: bool = False,
        killed: bool = False,
        timed_out: bool = False,
    ) -> CommandResult:
        """Build a result from the outcome of a finished process.

        Args:
            exit_code: Exit code of the process.
            stdout: Captured standard output.
            stderr: Captured standard error.
            combined_output: Captured interleaved output.
            failed: The process could not be run.
            canceled: The process was canceled by the caller.
            killed: The process was terminated by a signal.
            timed_out: The process exceeded its time limit.

        Returns:
            CommandResult whose success flag folds in every failure mode.
        """
        success = exit_code == 0 and not (failed or canceled or killed or timed_out)
        return cls(
            success=success,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            combined_output=combined_output,
        )

    @classmethod
    def failure(cls, message: str, exit_code: int = 1) -> CommandResult:
        """Build a failed result that carries an error message.

        Args:
            message: Human-readable reason.
            exit_code: Exit code to report. Defaults to 1.

        Returns:
            Unsuccessful CommandResult.
        """
        return cls(
            success=False,
            exit_code=exit_code,
            stdout="",
            stderr=message,
            combined_output=message,
        )

    def with_stdout(self, stdout: str) -> CommandResult:
        """Return a copy of this result with a different stdout."""
        return replace(self, stdout=stdout)


@dataclass(frozen=True)
class OutputSinks:
    """Optional streams that receive command output while it is produced."""

    stdout: TextIO | None = None
    stderr: TextIO | None = None
    combined: TextIO | None = None


@dataclass(frozen=True)
class ManagerConfig:
    """Settings shared by every operation of a package manager adapter.

    Attributes:
        cwd: Directory the package manager runs in.
        loglevel: Requested loglevel. Adapters map it onto their own flags.
        environment: "production" skips dev dependencies on plain installs.
        sinks: Streams receiving the output of spawned commands.
    """

    cwd: Path = field(default_factory=Path.cwd)
    loglevel: LogLevel | None = None
    environment: Environment = "production"
    sinks: OutputSinks = field(default_factory=OutputSinks)

    def with_cwd(self, cwd: Path | str) -> ManagerConfig:
        """Return a copy of this config bound to another directory."""
        return replace(self, cwd=Path(cwd))


@dataclass(frozen=True)
class UninstallOptions:
    """Options for removing packages."""

    dependency_type: DependencyType = "prod"
    global_: bool = False
    additional_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class InstallOptions:
    """Options for installing packages.

    Attributes:
        dependency_type: Save as a regular ("prod") or dev ("dev") dependency.
        global_: Install into the global package location.
        exact: Save the exact version instead of a range.
        force: Force fetching and linking.
        ignore_scripts: Skip lifecycle scripts on a plain install.
        additional_args: Raw flags appended to the command.
    """

    dependency_type: DependencyType = "prod"
    global_: bool = False
    exact: bool = False
    force: bool = False
    ignore_scripts: bool = False
    additional_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateOptions(InstallOptions):
    """Options for updating packages."""

    pass


@dataclass(frozen=True)
class PackOptions:
    """Options for creating a tarball.

    Attributes:
        workspace: Workspace directory relative to the adapter cwd.
        target_dir: Directory receiving the tarball. Defaults to the adapter cwd.
    """

    workspace: str = "."
    target_dir: Path | None = None
