"""Append-only record of completed builds."""

from jarforge.audit.ledger import BuildLedger, LedgerEntry

__all__ = ["BuildLedger", "LedgerEntry"]
