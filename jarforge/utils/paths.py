"""Path utilities for directory handling and archive path safety."""

from __future__ import annotations

import os
import posixpath
import shutil
from pathlib import Path, PurePosixPath

from jarforge.errors import ArchiveFormatError, BuildIOError


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, creating if necessary."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildIOError(f"Cannot create directory {path}: {exc}") from exc
    return path


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def to_archive_path(relative: Path, *, is_directory: bool) -> str:
    """Render a relative filesystem path as an archive entry name.

    Separators become forward slashes and directory names gain a trailing slash.
    """
    name = PurePosixPath(*relative.parts).as_posix()
    if is_directory and not name.endswith("/"):
        name += "/"
    return name


def resolve_entry_path(root: Path, entry_name: str) -> Path:
    """Map an archive entry name onto a location under ``root``.

    Raises:
        ArchiveFormatError: If the normalized name is absolute or climbs out of
            ``root`` (zip-slip).
    """
    normalized = posixpath.normpath(entry_name.replace("\\", "/"))
    if (
        normalized in ("", ".")
        or normalized.startswith("/")
        or normalized == ".."
        or normalized.startswith("../")
        or (len(normalized) > 1 and normalized[1] == ":")
    ):
        raise ArchiveFormatError(
            f"Security: Path traversal detected. Entry '{entry_name}' resolves outside {root}"
        )
    return root.joinpath(*normalized.split("/"))


def remove_tree(path: Path) -> bool:
    """Delete ``path`` recursively; return False when there was nothing to delete."""
    if not path.exists() and not path.is_symlink():
        return False
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        raise BuildIOError(f"Cannot delete {path}: {exc}") from exc
    return True
