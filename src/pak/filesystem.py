"""Filesystem abstraction for testability.

This module provides a filesystem abstraction that enables testing
without real I/O operations. The RealFileSystem implementation
wraps standard library operations.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Any


class RealFileSystem:
    """Production filesystem implementation.

    Wraps standard library Path, json and shutil operations.
    Satisfies the FileSystem protocol structurally.
    """

    def read_text(self, path: Path) -> str:
        """Read UTF-8 text content from a file."""
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        """Write UTF-8 text content to a file."""
        path.write_text(content, encoding="utf-8")

    def read_json(self, path: Path) -> Any:
        """Read and parse a JSON document.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the content is not valid JSON.
        """
        return json.loads(self.read_text(path))

    def write_json(self, path: Path, data: Any) -> None:
        """Write a JSON document the way npm does: 2 spaces, trailing newline."""
        self.write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        return path.is_dir()

    def ensure_dir(self, path: Path) -> None:
        """Create a directory and its parents if missing."""
        path.mkdir(parents=True, exist_ok=True)

    def move(self, src: Path, dst: Path) -> None:
        """Move a file, replacing the destination."""
        shutil.move(str(src), str(dst))

    def glob(self, directory: Path, pattern: str) -> Iterator[Path]:
        """Expand a glob pattern relative to a directory."""
        return directory.glob(pattern)
