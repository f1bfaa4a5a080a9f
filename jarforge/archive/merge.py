"""Flattening of library archives and directories into one staging tree.

Every file, whether it comes from an archive entry or from a plain directory,
is written through :meth:`StagingMerger.write_entry`. That method
detects an existing destination, records a :class:`ConflictNotice`
and applies the configured :class:`MergePolicy`.

A file and a directory claiming the same path cannot be merged. The node
already staged is kept and the collision is reported like any other, except
under the ``error`` policy, which aborts.
"""

from __future__ import annotations

import logging
import os
import time
import zipfile
import zlib
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from jarforge.archive.collect import collect_tree
from jarforge.archive.manifest import MANIFEST_PATH
from jarforge.errors import (
    ArchiveFormatError,
    BuildIOError,
    InvalidArgumentError,
    MergeConflictError,
    SourceNotFoundError,
)
from jarforge.utils.paths import resolve_entry_path, to_archive_path

logger = logging.getLogger(__name__)

_ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError)
_ZIP_ENCRYPTED = 0x1


class MergePolicy(str, Enum):
    """Built-in answers to "two sources wrote the same path"."""

    LAST_WINS = "last_wins"
    FIRST_WINS = "first_wins"
    ERROR = "error"


MergeResolver = Callable[[str, Path, bytes, str], bytes | None]
"""Custom conflict hook: ``(path, existing_file, incoming_bytes, source) -> bytes | None``.

Returned bytes replace the staged file; ``None`` keeps what is already there.
"""


class ConflictNotice(BaseModel):
    """A path written by more than one merge source."""

    path: str = Field(..., description="Archive path of the colliding file")
    source: str = Field(..., description="Library path that supplied the incoming copy")
    previous_source: str | None = Field(
        default=None, description="Library path that wrote the existing copy"
    )
    resolution: str = Field(..., description="overwritten, kept, or resolved")


class MergeReport(BaseModel):
    """Outcome of merging all sources into a staging directory."""

    sources: list[str] = Field(default_factory=list)
    files_written: int = 0
    conflicts: list[ConflictNotice] = Field(default_factory=list)


class StagingMerger:
    """Merge library paths into ``staging_dir`` one at a time, in call order."""

    def __init__(
        self,
        staging_dir: Path,
        policy: MergePolicy | MergeResolver = MergePolicy.LAST_WINS,
    ) -> None:
        self._root = staging_dir
        self._policy = policy
        self._origins: dict[str, str] = {}
        self.report = MergeReport()

    @property
    def staging_dir(self) -> Path:
        return self._root

    def merge_all(self, sources: Iterable[Path]) -> MergeReport:
        for source in sources:
            self.merge_source(source)
        return self.report

    def merge_source(self, source: Path) -> None:
        """Explode one library path: an archive file or a directory."""
        source = Path(source)
        if source.is_dir():
            self.explode_directory(source)
        elif source.is_file():
            self.explode_archive(source)
        else:
            raise SourceNotFoundError(f"Library path not found: {source}")
        self.report.sources.append(str(source))

    def explode_archive(self, archive: Path) -> None:
        label = str(archive)
        logger.debug("Exploding archive %s", archive)
        try:
            handle = zipfile.ZipFile(archive)
        except _ZIP_READ_ERRORS as exc:
            raise ArchiveFormatError(f"Cannot read archive {archive}: {exc}") from exc
        except OSError as exc:
            raise BuildIOError(f"Cannot open archive {archive}: {exc}") from exc

        with handle:
            for info in handle.infolist():
                if info.is_dir():
                    self._make_directory(info.filename, label)
                    continue
                if info.filename == MANIFEST_PATH:
                    # Replaced by the merged archive's own manifest.
                    logger.debug("Skipping %s from %s", MANIFEST_PATH, archive)
                    continue
                if info.flag_bits & _ZIP_ENCRYPTED:
                    raise ArchiveFormatError(
                        f"Encrypted entry '{info.filename}' in {archive} is not supported"
                    )
                try:
                    data = handle.read(info)
                except _ZIP_READ_ERRORS as exc:
                    raise ArchiveFormatError(
                        f"Corrupt entry '{info.filename}' in {archive}: {exc}"
                    ) from exc
                self.write_entry(info.filename, data, _zip_mtime(info), label)

    def explode_directory(self, directory: Path) -> None:
        label = str(directory)
        logger.debug("Copying directory %s", directory)
        for path in collect_tree(directory, include_directories=True):
            relative = path.relative_to(directory)
            if path.is_dir():
                self._make_directory(to_archive_path(relative, is_directory=True), label)
                continue
            try:
                data = path.read_bytes()
                mtime = path.stat().st_mtime
            except OSError as exc:
                raise BuildIOError(f"Cannot read {path}: {exc}") from exc
            self.write_entry(to_archive_path(relative, is_directory=False), data, mtime, label)

    def write_entry(self, name: str, data: bytes, mtime: float | None, source: str) -> Path | None:
        """Stage one file, applying the merge policy if the path is taken.

        Returns the staged path, or None when the existing copy was kept.
        """
        destination = resolve_entry_path(self._root, name)
        key = destination.relative_to(self._root).as_posix()

        blocker = self._blocking_node(destination, is_directory=False)
        if blocker is not None:
            self._keep_blocker(blocker, source)
            return None

        if destination.is_file():
            data_or_none = self._resolve_conflict(key, destination, data, source)
            if data_or_none is None:
                return None
            data = data_or_none

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
            if mtime is not None:
                os.utime(destination, (mtime, mtime))
        except OSError as exc:
            raise BuildIOError(f"Cannot stage {key} from {source}: {exc}") from exc

        self._origins[key] = source
        self.report.files_written += 1
        logger.debug("Staged %s from %s", key, source)
        return destination

    def _resolve_conflict(
        self, key: str, existing: Path, incoming: bytes, source: str
    ) -> bytes | None:
        previous = self._origins.get(key)
        policy = self._policy

        if policy is MergePolicy.ERROR:
            raise MergeConflictError(key, source, previous)

        if policy is MergePolicy.LAST_WINS:
            result: bytes | None = incoming
            resolution = "overwritten"
        elif policy is MergePolicy.FIRST_WINS:
            result = None
            resolution = "kept"
        else:
            result = policy(key, existing, incoming, source)
            resolution = "kept" if result is None else "resolved"

        self.report.conflicts.append(
            ConflictNotice(
                path=key,
                source=source,
                previous_source=previous,
                resolution=resolution,
            )
        )
        logger.warning("CONFLICT: %s from %s (%s)", key, source, resolution)
        return result

    def _make_directory(self, name: str, source: str) -> None:
        destination = resolve_entry_path(self._root, name)
        blocker = self._blocking_node(destination, is_directory=True)
        if blocker is not None:
            self._keep_blocker(blocker, source)
            return
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildIOError(f"Cannot create staging directory {destination}: {exc}") from exc

    def _blocking_node(self, destination: Path, *, is_directory: bool) -> Path | None:
        """Find an existing node whose kind prevents staging ``destination``.

        A file on the path to ``destination`` blocks anything beneath it; at
        ``destination`` itself a file blocks a directory and a directory
        blocks a file.
        """
        current = self._root
        for part in destination.relative_to(self._root).parts[:-1]:
            current = current / part
            if current.exists() and not current.is_dir():
                return current
        if is_directory:
            return destination if destination.exists() and not destination.is_dir() else None
        return destination if destination.is_dir() else None

    def _keep_blocker(self, blocker: Path, source: str) -> None:
        key = blocker.relative_to(self._root).as_posix()
        previous = self._origins.get(key)
        if self._policy is MergePolicy.ERROR:
            raise MergeConflictError(key, source, previous)

        self.report.conflicts.append(
            ConflictNotice(path=key, source=source, previous_source=previous, resolution="kept")
        )
        logger.warning("CONFLICT: %s from %s (kept; file and directory collide)", key, source)


def _zip_mtime(info: zipfile.ZipInfo) -> float | None:
    try:
        return time.mktime(info.date_time + (0, 0, -1))
    except (OverflowError, ValueError):
        return None


def coerce_policy(policy: MergePolicy | MergeResolver | str | None) -> MergePolicy | MergeResolver:
    """Accept a policy enum, its string value, a resolver callable, or None (last wins)."""
    if policy is None:
        return MergePolicy.LAST_WINS
    if isinstance(policy, MergePolicy):
        return policy
    if isinstance(policy, str):
        try:
            return MergePolicy(policy)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown merge policy '{policy}' (expected one of "
                f"{', '.join(p.value for p in MergePolicy)})"
            ) from None
    if callable(policy):
        return policy
    raise InvalidArgumentError(f"Unsupported merge policy: {policy!r}")
