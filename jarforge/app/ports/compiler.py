"""Compiler port for turning sources into class files."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol


class CompilerPort(Protocol):
    """Port interface for an external compiler.

    Side effects: Writes class files under ``class_dir`` (offline).
    """

    def compile(
        self,
        sources: Sequence[Path],
        class_dir: Path,
        *,
        classpath: Sequence[Path] = (),
        options: Sequence[str] = (),
    ) -> int:
        """Compile ``sources`` into ``class_dir``.

        Returns:
            Process exit status; zero means success.
        """
        ...
