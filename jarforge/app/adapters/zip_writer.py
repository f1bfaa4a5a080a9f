"""ZIP-backed archive writer producing JAR-compatible containers."""

from __future__ import annotations

import logging
import time
import warnings
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from jarforge.app.ports import ArchiveEntry, ArchiveSink, ArchiveWriterPort
from jarforge.archive.manifest import MANIFEST_PATH, Manifest
from jarforge.errors import BuildIOError, DuplicateEntryError

logger = logging.getLogger(__name__)

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_ZIP_MAX = (2107, 12, 31, 23, 59, 58)

_DIR_ATTRS = (0o40755 << 16) | 0x10
_FILE_ATTRS = 0o100644 << 16


def zip_date_time(mtime: float | None) -> tuple[int, int, int, int, int, int]:
    """Convert a POSIX timestamp to a ZIP date_time tuple, clamped to the format's range.

    Entries without a timestamp get the ZIP epoch so generated entries are
    reproducible.
    """
    if mtime is None:
        return ZIP_EPOCH
    stamp = tuple(time.localtime(mtime)[:6])
    if stamp < ZIP_EPOCH:
        return ZIP_EPOCH
    if stamp > _ZIP_MAX:
        return _ZIP_MAX
    return stamp  # type: ignore[return-value]


class _ZipSink(ArchiveSink):
    def __init__(self, handle: zipfile.ZipFile, *, allow_duplicates: bool) -> None:
        self._handle = handle
        self._allow_duplicates = allow_duplicates
        self._names: set[str] = set()
        self._entries: list[ArchiveEntry] = []

    @property
    def entries(self) -> list[ArchiveEntry]:
        return list(self._entries)

    def put_entry(
        self,
        path: str,
        *,
        is_directory: bool = False,
        last_modified: float | None = None,
        source: Path | None = None,
    ) -> ArchiveEntry:
        name = path.replace("\\", "/")
        if not name or name.startswith("/"):
            raise ValueError(f"Archive path must be relative and non-empty: {path!r}")
        if is_directory and not name.endswith("/"):
            name += "/"

        if is_directory:
            data = b""
        else:
            if source is None:
                raise ValueError(f"File entry {name} requires a source file")
            try:
                data = Path(source).read_bytes()
            except OSError as exc:
                raise BuildIOError(f"Cannot read {source} for entry {name}: {exc}") from exc

        entry = ArchiveEntry(
            path=name,
            is_directory=is_directory,
            last_modified=last_modified,
            source=None if is_directory else source,
        )
        self._write(entry, data)
        return entry

    def write_bytes(self, name: str, data: bytes, last_modified: float | None = None) -> ArchiveEntry:
        """Append an entry whose body is already in memory."""
        entry = ArchiveEntry(path=name, last_modified=last_modified)
        self._write(entry, data)
        return entry

    def _write(self, entry: ArchiveEntry, data: bytes) -> None:
        name = entry.path
        duplicate = name in self._names
        if duplicate and not self._allow_duplicates:
            raise DuplicateEntryError(f"Duplicate archive entry: {name}")

        info = zipfile.ZipInfo(name, date_time=zip_date_time(entry.last_modified))
        if entry.is_directory:
            info.compress_type = zipfile.ZIP_STORED
            info.external_attr = _DIR_ATTRS
        else:
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = _FILE_ATTRS

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", UserWarning)
                self._handle.writestr(info, data)
        except OSError as exc:
            raise BuildIOError(f"Cannot write entry {name}: {exc}") from exc

        if duplicate:
            logger.warning("Wrote duplicate archive entry %s", name)
        self._names.add(name)
        self._entries.append(entry)
        logger.debug("Added %s", name)


class ZipArchiveWriter(ArchiveWriterPort):
    """Write JAR-compatible ZIP archives with the manifest as the first entry."""

    def __init__(self, *, allow_duplicates: bool = False) -> None:
        self._allow_duplicates = allow_duplicates

    @contextmanager
    def open(self, target: Path, manifest: Manifest) -> Iterator[_ZipSink]:
        target = Path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            handle = zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED)
        except OSError as exc:
            raise BuildIOError(f"Cannot create archive {target}: {exc}") from exc

        with handle:
            sink = _ZipSink(handle, allow_duplicates=self._allow_duplicates)
            sink.write_bytes(MANIFEST_PATH, manifest.to_bytes())
            yield sink
        logger.debug("Closed archive %s", target)
