"""Ledger port interface for the build record."""

from typing import Any, Protocol


class LedgerPort(Protocol):
    """Port interface for build ledger operations.

    Side effects: Appends to the ledger file (offline).
    """

    def log(
        self,
        operation: str,
        inputs: list[str],
        outputs: list[str],
        args: dict[str, Any],
    ) -> Any:
        """Record one completed task."""
        ...

    def verify(self) -> tuple[bool, str | None]:
        """Check the hash chain; returns (ok, error message)."""
        ...

    def read_all(self) -> list[Any]:
        """Return every entry in append order."""
        ...
