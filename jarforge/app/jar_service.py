"""Single-directory jar assembly."""

from __future__ import annotations

import logging
from pathlib import Path

from jarforge.app.ports import ArchiveEntry, ArchiveWriterPort
from jarforge.archive.collect import collect_tree
from jarforge.archive.manifest import MANIFEST_PATH, Manifest
from jarforge.errors import BuildIOError
from jarforge.utils.paths import to_archive_path

logger = logging.getLogger(__name__)


class JarService:
    """Packages one directory tree into one archive.

    The archive writer is injected so tests and alternative containers can
    replace the ZIP adapter.
    """

    def __init__(self, writer: ArchiveWriterPort) -> None:
        self._writer = writer

    def assemble(self, source_root: Path, output_file: Path, manifest: Manifest) -> list[ArchiveEntry]:
        """Write every file and directory under ``source_root`` to ``output_file``.

        Entries follow the tree collector's order and carry each node's
        modification time. A ``META-INF/MANIFEST.MF`` already present in the
        tree is left out because ``manifest`` takes its place.

        Args:
            source_root: Directory whose contents become the archive body
            output_file: Archive to create (parents are created)
            manifest: Main attributes written as the first entry

        Returns:
            The entries written, manifest first

        Raises:
            SourceNotFoundError: If ``source_root`` is missing
            BuildIOError: If the archive cannot be written or a file cannot be read
        """
        source_root = Path(source_root)
        # Resolved before the writer opens so a missing root leaves no output behind.
        nodes = collect_tree(source_root, include_directories=True)

        with self._writer.open(Path(output_file), manifest) as sink:
            for node in nodes:
                relative = node.relative_to(source_root)
                if not relative.parts:
                    continue

                is_directory = node.is_dir()
                name = to_archive_path(relative, is_directory=is_directory)
                if name == MANIFEST_PATH:
                    logger.debug("Skipping %s in %s", MANIFEST_PATH, source_root)
                    continue

                try:
                    mtime = node.stat().st_mtime
                except OSError as exc:
                    raise BuildIOError(f"Cannot stat {node}: {exc}") from exc

                sink.put_entry(
                    name,
                    is_directory=is_directory,
                    last_modified=mtime,
                    source=None if is_directory else node,
                )
            entries = sink.entries

        logger.info("Wrote %s (%d entries)", output_file, len(entries))
        return entries
