"""Port interfaces for the jarforge application layer.

Services depend on these protocols, never on concrete adapters.
"""

__all__ = [
    "ArchiveEntry",
    "ArchiveSink",
    "ArchiveWriterPort",
    "CompilerPort",
    "LedgerPort",
]

from jarforge.app.ports.archive import ArchiveEntry, ArchiveSink, ArchiveWriterPort
from jarforge.app.ports.compiler import CompilerPort
from jarforge.app.ports.ledger import LedgerPort
