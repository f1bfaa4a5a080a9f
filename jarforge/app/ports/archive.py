"""Archive writer port."""

from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from jarforge.archive.manifest import Manifest


class ArchiveEntry(BaseModel):
    """One entry appended to an archive."""

    path: str = Field(..., description="Forward-slash archive path; directories end in '/'")
    is_directory: bool = Field(default=False, description="True for directory entries")
    last_modified: float | None = Field(
        default=None, description="POSIX modification time to record on the entry"
    )
    source: Path | None = Field(
        default=None, description="File whose full content becomes the entry body"
    )


class ArchiveSink(Protocol):
    """An archive open for writing."""

    def put_entry(
        self,
        path: str,
        *,
        is_directory: bool = False,
        last_modified: float | None = None,
        source: Path | None = None,
    ) -> ArchiveEntry:
        """Append one entry in call order.

        Directory entries carry no content; file entries copy all bytes of
        ``source``.
        """
        ...

    @property
    def entries(self) -> list[ArchiveEntry]:
        """Entries written so far, in order."""
        ...


class ArchiveWriterPort(Protocol):
    """Port interface for producing archives.

    Side effects: Creates ``target`` and its parent directories.
    """

    def open(self, target: Path, manifest: Manifest) -> AbstractContextManager[ArchiveSink]:
        """Open ``target`` for writing with ``manifest`` as its first entry.

        The returned context manager flushes and closes the archive on exit,
        whether or not the body raised.
        """
        ...
