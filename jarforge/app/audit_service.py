"""Build ledger read and verify operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jarforge.app.ports import LedgerPort


@dataclass(slots=True)
class AuditService:
    """Expose read/verify operations over the build ledger."""

    ledger: LedgerPort | None

    def is_enabled(self) -> bool:
        return self.ledger is not None

    def get_entries(self, operation: str | None = None) -> list[Any]:
        """Return ledger entries, optionally only those for one task (empty when disabled)."""

        if self.ledger is None:
            return []
        entries = self.ledger.read_all()
        if operation is not None:
            entries = [entry for entry in entries if entry.operation == operation]
        return entries

    def verify(self) -> tuple[bool, str | None]:
        """Verify ledger integrity, treating a disabled ledger as valid."""

        if self.ledger is None:
            return True, None
        return self.ledger.verify()
