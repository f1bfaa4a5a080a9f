"""Archive domain: tree walking, manifests, and staging merges.

Nothing in this package depends on the application layer; writers and
compilers are reached through ports in :mod:`jarforge.app.ports`.
"""

from jarforge.archive.collect import collect_tree
from jarforge.archive.manifest import MANIFEST_PATH, Manifest, build_manifest
from jarforge.archive.merge import (
    ConflictNotice,
    MergePolicy,
    MergeReport,
    MergeResolver,
    StagingMerger,
)

__all__ = [
    "MANIFEST_PATH",
    "ConflictNotice",
    "Manifest",
    "MergePolicy",
    "MergeReport",
    "MergeResolver",
    "StagingMerger",
    "build_manifest",
    "collect_tree",
]
