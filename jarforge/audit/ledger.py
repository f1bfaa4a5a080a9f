"""Append-only build ledger with a SHA-256 hash chain.

Each line of the JSONL file is one :class:`LedgerEntry`. An entry's hash
covers its content and the hash of the entry before it, so editing or
dropping a line breaks :meth:`BuildLedger.verify`.
"""

from __future__ import annotations

import hmac
import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from jarforge import __version__
from jarforge.utils.hashing import sha256_hex

GENESIS_HASH = "0" * 64


class LedgerEntry(BaseModel):
    """Single build ledger entry."""

    timestamp: str = Field(..., description="ISO 8601 timestamp in UTC")
    operation: str = Field(..., description="Task name (jar, uber, javac, ...)")
    inputs: list[str] = Field(default_factory=list, description="Source roots and library paths")
    outputs: list[str] = Field(
        default_factory=list, description="Artifact paths and their SHA-256 hashes"
    )
    args: dict[str, Any] = Field(default_factory=dict, description="Task parameters")
    versions: dict[str, str] = Field(default_factory=dict, description="Tool versions")
    previous_hash: str = Field(
        default=GENESIS_HASH,
        description="Hash of the previous entry; the first entry links to 64 zeros",
    )
    sequence: int = Field(default=1, ge=1, description="Position in the ledger, from 1")
    entry_hash: str | None = Field(default=None, description="Hash of this entry's content")

    def compute_hash(self) -> str:
        data = self.model_dump(mode="json", exclude={"entry_hash"})
        content = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return sha256_hex(content.encode("utf-8"))

    def model_post_init(self, __context: Any) -> None:
        if self.entry_hash is None:
            self.entry_hash = self.compute_hash()


class BuildLedger:
    """JSONL ledger of completed build tasks."""

    def __init__(self, ledger_path: Path) -> None:
        self.ledger_path = ledger_path
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        entries = self._read_entries()
        if entries:
            self._last_hash = entries[-1].entry_hash or GENESIS_HASH
            self._last_sequence = entries[-1].sequence
        else:
            self._last_hash = GENESIS_HASH
            self._last_sequence = 0

    def _read_entries(self) -> list[LedgerEntry]:
        if not self.ledger_path.exists():
            return []

        entries: list[LedgerEntry] = []
        with open(self.ledger_path, encoding="utf-8") as fh:
            for line_num, raw_line in enumerate(fh, 1):
                line = raw_line.strip()
                if not line:
                    continue
                try:
                    entries.append(LedgerEntry.model_validate_json(line))
                except ValueError as exc:
                    raise ValueError(
                        f"Invalid entry at line {line_num} in {self.ledger_path}: {exc}"
                    ) from exc
        return entries

    def log(
        self,
        operation: str,
        inputs: list[str] | None = None,
        outputs: list[str] | None = None,
        args: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        """Append one entry and fsync it."""
        entry = LedgerEntry(
            timestamp=datetime.now(UTC).isoformat(),
            operation=operation,
            inputs=inputs or [],
            outputs=outputs or [],
            args=args or {},
            versions={"jarforge": __version__},
            previous_hash=self._last_hash,
            sequence=self._last_sequence + 1,
        )

        with open(self.ledger_path, "a", encoding="utf-8") as fh:
            fh.write(entry.model_dump_json() + "\n")
            fh.flush()
            os.fsync(fh.fileno())

        self._last_sequence = entry.sequence
        self._last_hash = entry.entry_hash or GENESIS_HASH
        return entry

    def read_all(self) -> list[LedgerEntry]:
        return self._read_entries()

    def verify(self) -> tuple[bool, str | None]:
        """Verify the hash chain.

        Returns:
            Tuple of (is_valid, error_message). error_message is None if valid.
        """
        try:
            entries = self._read_entries()
        except ValueError as exc:
            return False, str(exc)

        previous_hash = GENESIS_HASH
        for idx, entry in enumerate(entries, 1):
            if entry.entry_hash is None:
                return False, f"Entry {idx} missing entry_hash"

            expected_hash = entry.compute_hash()
            if not hmac.compare_digest(entry.entry_hash, expected_hash):
                return False, f"Entry {idx} has invalid hash; ledger may have been edited."

            if entry.previous_hash != previous_hash:
                return False, f"Entry {idx} breaks hash chain."

            if entry.sequence != idx:
                return False, f"Entry {idx} sequence mismatch (got {entry.sequence})."

            previous_hash = entry.entry_hash

        return True, None
