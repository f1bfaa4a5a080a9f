"""Subprocess adapter running the JDK ``javac`` tool."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from jarforge.app.ports import CompilerPort
from jarforge.errors import CompileError

logger = logging.getLogger(__name__)


class JavacCompiler(CompilerPort):
    """Compile Java sources by invoking ``javac`` with an argument file."""

    def __init__(self, command: str = "javac", *, timeout: float | None = None) -> None:
        self._command = command
        self._timeout = timeout
        self.last_output = ""

    def compile(
        self,
        sources: Sequence[Path],
        class_dir: Path,
        *,
        classpath: Sequence[Path] = (),
        options: Sequence[str] = (),
    ) -> int:
        args: list[str] = ["-d", str(class_dir)]
        if classpath:
            args += ["-classpath", os.pathsep.join(str(entry) for entry in classpath)]
        args += list(options)
        args += [str(source) for source in sources]

        # Source lists outgrow command-line limits quickly; javac reads @argfiles.
        with tempfile.TemporaryDirectory(prefix="jarforge-javac-") as scratch:
            argfile = Path(scratch) / "args.txt"
            argfile.write_text("\n".join(_quote(arg) for arg in args), encoding="utf-8")
            try:
                result = subprocess.run(
                    [self._command, f"@{argfile}"],
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                )
            except FileNotFoundError as exc:
                raise CompileError(f"Compiler not found: {self._command}") from exc
            except subprocess.TimeoutExpired as exc:
                raise CompileError(f"{self._command} timed out after {self._timeout}s") from exc

        self.last_output = (result.stdout or "") + (result.stderr or "")
        for line in self.last_output.splitlines():
            if result.returncode != 0:
                logger.warning("%s: %s", self._command, line)
            else:
                logger.debug("%s: %s", self._command, line)
        return result.returncode


def _quote(arg: str) -> str:
    if any(ch in arg for ch in ' \t"\'#'):
        escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return arg
