"""Uberjar assembly: flatten libraries and class output, then package."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel, Field

from jarforge.app.jar_service import JarService
from jarforge.archive.manifest import Manifest
from jarforge.archive.merge import (
    MergePolicy,
    MergeReport,
    MergeResolver,
    StagingMerger,
    coerce_policy,
)
from jarforge.errors import BuildIOError
from jarforge.utils.paths import ensure_dir

logger = logging.getLogger(__name__)


class UberResult(BaseModel):
    """Outcome of one uberjar build."""

    output: Path
    entry_count: int
    report: MergeReport
    staging_dir: Path | None = Field(
        default=None, description="Retained staging tree, when keep_staging was requested"
    )


class UberService:
    """Builds merged archives through a scoped staging directory.

    Library paths are merged strictly in the order given and the local class
    directory always merges last, so under the default policy project classes
    shadow library copies of the same path.
    """

    def __init__(
        self,
        jar_service: JarService,
        work_dir: Path,
        *,
        default_policy: MergePolicy | MergeResolver | str = MergePolicy.LAST_WINS,
        keep_staging: bool = False,
    ) -> None:
        self._jar_service = jar_service
        self._work_dir = Path(work_dir)
        self._default_policy = coerce_policy(default_policy)
        self._keep_staging = keep_staging

    def assemble(
        self,
        library_paths: Sequence[Path],
        class_dir: Path,
        output_file: Path,
        manifest: Manifest,
        *,
        policy: MergePolicy | MergeResolver | str | None = None,
        keep_staging: bool | None = None,
    ) -> UberResult:
        """Merge ``library_paths`` then ``class_dir`` and package the result.

        Args:
            library_paths: Archives or directories, in merge order
            class_dir: Project class output, merged after every library
            output_file: Archive to create
            manifest: Main attributes for the archive
            policy: Conflict policy for this build (defaults to the service's)
            keep_staging: Retain the staging tree instead of deleting it

        Raises:
            SourceNotFoundError: A library path or ``class_dir`` is missing
            ArchiveFormatError: A library archive is corrupt or unsafe
            InvalidArgumentError: ``policy`` names no known merge policy
            MergeConflictError: A collision occurred under the ``error`` policy
            BuildIOError: Staging or archive writes failed
        """
        active_policy = self._default_policy if policy is None else coerce_policy(policy)
        keep = self._keep_staging if keep_staging is None else keep_staging
        order = [Path(path) for path in library_paths] + [Path(class_dir)]

        with self._staging(keep) as staging:
            merger = StagingMerger(staging, active_policy)
            report = merger.merge_all(order)
            if report.conflicts:
                logger.warning(
                    "%d conflicting paths while merging into %s",
                    len(report.conflicts),
                    output_file,
                )
            entries = self._jar_service.assemble(staging, Path(output_file), manifest)

        return UberResult(
            output=Path(output_file),
            entry_count=len(entries),
            report=report,
            staging_dir=staging if keep else None,
        )

    @contextmanager
    def _staging(self, keep: bool) -> Iterator[Path]:
        ensure_dir(self._work_dir)
        try:
            staging = Path(tempfile.mkdtemp(prefix="uber-", dir=self._work_dir))
        except OSError as exc:
            raise BuildIOError(f"Cannot create staging directory in {self._work_dir}: {exc}") from exc
        logger.debug("Staging uberjar contents in %s", staging)
        try:
            yield staging
        finally:
            if keep:
                logger.info("Keeping staging directory %s", staging)
            else:
                shutil.rmtree(staging, ignore_errors=True)
