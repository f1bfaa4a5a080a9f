"""SHA-256 fingerprints for built archives and ledger entries."""

import hashlib
from pathlib import Path

from jarforge.errors import BuildIOError


def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def artifact_digest(path: Path) -> str:
    """Return the hex SHA-256 of a finished archive.

    Raises:
        BuildIOError: If the archive cannot be read back.
    """
    try:
        with open(path, "rb") as fh:
            return hashlib.file_digest(fh, "sha256").hexdigest()
    except OSError as exc:
        raise BuildIOError(f"Cannot fingerprint {path}: {exc}") from exc
