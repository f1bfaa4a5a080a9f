"""Exception taxonomy for build tasks.

Core services raise these; :class:`~jarforge.app.build_pipeline.BuildPipeline`
converts them into failed :class:`~jarforge.app.build_pipeline.TaskResult`
records using :attr:`BuildError.kind`.
"""

from __future__ import annotations


class BuildError(Exception):
    """Base class for every failure the build tasks know how to report."""

    kind = "build"


class SourceNotFoundError(BuildError, FileNotFoundError):
    """A source root, library path, or input file does not exist."""

    kind = "not_found"


class BuildIOError(BuildError, OSError):
    """Reading, writing, or copying a file failed."""

    kind = "io"


class ArchiveFormatError(BuildError, ValueError):
    """An archive could not be decoded, or holds an entry that escapes its root."""

    kind = "archive_format"


class CompileError(BuildError):
    """The compiler reported a non-zero exit status."""

    kind = "compile"

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class MergeConflictError(BuildError):
    """Two merge sources wrote the same path under the ``error`` policy."""

    kind = "merge_conflict"

    def __init__(self, path: str, source: str, previous_source: str | None) -> None:
        super().__init__(
            f"Conflicting entry '{path}' from {source}"
            + (f" (already written by {previous_source})" if previous_source else "")
        )
        self.path = path
        self.source = source
        self.previous_source = previous_source


class DuplicateEntryError(BuildError, ValueError):
    """The same archive path was written twice to one archive."""

    kind = "duplicate_entry"


class InvalidArgumentError(BuildError, ValueError):
    """A task argument is unusable: a bad coordinate, policy name, or manifest value."""

    kind = "usage"
