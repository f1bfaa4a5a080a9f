"""Deterministic directory traversal."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from jarforge.errors import BuildIOError, SourceNotFoundError

logger = logging.getLogger(__name__)


def collect_tree(
    root: Path,
    *,
    include_directories: bool = False,
    follow_symlinks: bool = True,
) -> Iterator[Path]:
    """Yield every file (and optionally directory) strictly under ``root``.

    Siblings are visited in byte order of their names and a directory is
    yielded before its contents, so two walks over an unchanged tree produce
    the same sequence on every platform. Each call starts a fresh walk.

    Symlinks are followed by default and yielded under their own names. A
    symlinked directory that resolves to one of its own ancestors is skipped
    with a warning, as is a link whose target does not exist.

    Args:
        root: Directory to walk. ``root`` itself is never yielded.
        include_directories: Also yield directory nodes.
        follow_symlinks: Set to False to skip symlinks entirely.

    Raises:
        SourceNotFoundError: If ``root`` is missing or not a directory.
        BuildIOError: If a directory cannot be listed.
    """
    if not root.exists():
        raise SourceNotFoundError(f"Source root not found: {root}")
    if not root.is_dir():
        raise SourceNotFoundError(f"Source root is not a directory: {root}")

    return _walk(root, include_directories, follow_symlinks, frozenset({_identity(root)}))


def _identity(path: Path | os.DirEntry) -> tuple[int, int]:
    try:
        st = path.stat()
    except OSError as exc:
        raise BuildIOError(f"Cannot stat {path}: {exc}") from exc
    return st.st_dev, st.st_ino


def _walk(
    directory: Path,
    include_directories: bool,
    follow_symlinks: bool,
    ancestors: frozenset[tuple[int, int]],
) -> Iterator[Path]:
    try:
        with os.scandir(directory) as scan:
            children = sorted(scan, key=lambda child: os.fsencode(child.name))
    except OSError as exc:
        raise BuildIOError(f"Cannot list directory {directory}: {exc}") from exc

    for child in children:
        path = Path(child.path)
        is_link = child.is_symlink()
        if is_link and not follow_symlinks:
            logger.debug("Skipping symlink %s", path)
            continue

        if child.is_dir():
            identity = _identity(child)
            if identity in ancestors:
                logger.warning("Skipping symlink cycle at %s", path)
                continue
            if include_directories:
                yield path
            yield from _walk(path, include_directories, follow_symlinks, ancestors | {identity})
        elif child.is_file():
            yield path
        elif is_link:
            logger.warning("Skipping dangling symlink %s", path)
