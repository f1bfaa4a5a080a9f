"""Build tasks: clean, javac, resources, jar, and uber.

Each task returns a :class:`TaskResult`. Failures the core knows how to
describe (:class:`~jarforge.errors.BuildError`) become failed results; the
first failure ends the task and nothing already written is rolled back.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from jarforge.app.jar_service import JarService
from jarforge.app.ports import CompilerPort, LedgerPort
from jarforge.app.uber_service import UberService
from jarforge.archive.collect import collect_tree
from jarforge.archive.manifest import Manifest, build_manifest
from jarforge.archive.merge import ConflictNotice, MergePolicy, MergeResolver, StagingMerger
from jarforge.config import Settings
from jarforge.errors import (
    BuildError,
    CompileError,
    InvalidArgumentError,
    SourceNotFoundError,
)
from jarforge.utils.hashing import artifact_digest
from jarforge.utils.paths import ensure_dir, remove_tree

logger = logging.getLogger(__name__)

_COORDINATE_PART = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class TaskResult(BaseModel):
    """Success indicator or structured failure descriptor for one task."""

    task: str = Field(..., description="Task name")
    ok: bool = Field(..., description="True when the task completed")
    outputs: list[str] = Field(default_factory=list, description="Paths produced by the task")
    error: str | None = Field(default=None, description="Failure message")
    error_kind: str | None = Field(default=None, description="BuildError.kind of the failure")
    conflicts: list[ConflictNotice] = Field(
        default_factory=list, description="Merge collisions observed (not errors)"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(cls, task: str, exc: BuildError) -> TaskResult:
        return cls(task=task, ok=False, error=str(exc), error_kind=exc.kind)


def artifact_file_name(lib: str, version: str, classifier: str | None = None) -> str:
    """Return ``<artifact>-<version>[-<classifier>].jar`` for a ``group/artifact`` coordinate.

    A bare ``artifact`` is accepted as its own group.
    """
    artifact = lib.rsplit("/", 1)[-1]
    for label, value in (("artifact", artifact), ("version", version), ("classifier", classifier)):
        if value is None:
            continue
        if not _COORDINATE_PART.match(value):
            raise InvalidArgumentError(f"Invalid {label} for archive name: {value!r}")
    suffix = f"-{classifier}" if classifier else ""
    return f"{artifact}-{version}{suffix}.jar"


class BuildPipeline:
    """Runs build tasks against injected services, compiler, and ledger."""

    def __init__(
        self,
        *,
        settings: Settings,
        jar_service: JarService,
        uber_service: UberService,
        compiler: CompilerPort,
        ledger_port: LedgerPort,
    ) -> None:
        self.settings = settings
        self.jar_service = jar_service
        self.uber_service = uber_service
        self.compiler = compiler
        self.ledger = ledger_port

    def manifest(self, main_class: Any | None = None) -> Manifest:
        """Build the manifest for an archive produced by this pipeline."""
        return build_manifest(
            self.settings.tool_id,
            self.settings.get_platform_spec(),
            main_class,
        )

    def _run(self, task: str, action: Callable[[], TaskResult]) -> TaskResult:
        try:
            return action()
        except BuildError as exc:
            logger.error("%s failed: %s", task, exc)
            return TaskResult.failure(task, exc)

    # ------------------------------------------------------------------#
    # Tasks
    # ------------------------------------------------------------------#

    def clean(self, target_dir: Path) -> TaskResult:
        """Delete ``target_dir`` and everything in it."""

        def action() -> TaskResult:
            removed = remove_tree(Path(target_dir))
            return TaskResult(task="clean", ok=True, details={"removed": removed})

        return self._run("clean", action)

    def javac(
        self,
        java_paths: Sequence[Path],
        class_dir: Path,
        *,
        classpath: Sequence[Path] = (),
        options: Sequence[str] = (),
    ) -> TaskResult:
        """Compile every ``*.java`` file under ``java_paths`` into ``class_dir``."""

        def action() -> TaskResult:
            sources: list[Path] = []
            for root in java_paths:
                sources.extend(
                    path for path in collect_tree(Path(root)) if path.suffix == ".java"
                )

            if not sources:
                logger.info("No Java sources found; nothing to compile")
                return TaskResult(task="javac", ok=True, details={"compiled": 0})

            ensure_dir(Path(class_dir))
            exit_code = self.compiler.compile(
                sources, Path(class_dir), classpath=list(classpath), options=list(options)
            )
            if exit_code != 0:
                raise CompileError(
                    f"Java compilation failed (exit status {exit_code})", exit_code=exit_code
                )

            self.ledger.log(
                operation="javac",
                inputs=[str(path) for path in java_paths],
                outputs=[str(class_dir)],
                args={"sources": len(sources), "options": list(options)},
            )
            return TaskResult(
                task="javac",
                ok=True,
                outputs=[str(class_dir)],
                details={"compiled": len(sources)},
            )

        return self._run("javac", action)

    def include_resources(self, resource_dirs: Sequence[Path], class_dir: Path) -> TaskResult:
        """Copy the contents of each resource directory into ``class_dir``."""

        def action() -> TaskResult:
            merger = StagingMerger(ensure_dir(Path(class_dir)), MergePolicy.LAST_WINS)
            for resource_dir in resource_dirs:
                resource_dir = Path(resource_dir)
                if not resource_dir.is_dir():
                    raise SourceNotFoundError(f"Resource directory not found: {resource_dir}")
                merger.explode_directory(resource_dir)
            return TaskResult(
                task="resources",
                ok=True,
                outputs=[str(class_dir)],
                conflicts=merger.report.conflicts,
                details={"files": merger.report.files_written},
            )

        return self._run("resources", action)

    def jar(
        self,
        class_dir: Path,
        target_dir: Path,
        *,
        lib: str,
        version: str,
        main_class: Any | None = None,
        classifier: str | None = None,
    ) -> TaskResult:
        """Package ``class_dir`` as ``<target_dir>/<artifact>-<version>[-<classifier>].jar``."""

        def action() -> TaskResult:
            output = Path(target_dir) / artifact_file_name(lib, version, classifier)
            entries = self.jar_service.assemble(Path(class_dir), output, self.manifest(main_class))
            digest = artifact_digest(output)
            self.ledger.log(
                operation="jar",
                inputs=[str(class_dir)],
                outputs=[str(output), digest],
                args={"lib": lib, "version": version, "main_class": _optional_str(main_class)},
            )
            return TaskResult(
                task="jar",
                ok=True,
                outputs=[str(output)],
                details={"entries": len(entries), "sha256": digest},
            )

        return self._run("jar", action)

    def uber(
        self,
        library_paths: Sequence[Path],
        class_dir: Path,
        target_dir: Path,
        *,
        lib: str,
        version: str,
        main_class: Any | None = None,
        policy: MergePolicy | MergeResolver | str | None = None,
        keep_staging: bool | None = None,
    ) -> TaskResult:
        """Merge libraries and ``class_dir`` into ``<artifact>-<version>-standalone.jar``."""

        def action() -> TaskResult:
            output = Path(target_dir) / artifact_file_name(lib, version, "standalone")
            result = self.uber_service.assemble(
                library_paths,
                Path(class_dir),
                output,
                self.manifest(main_class),
                policy=policy,
                keep_staging=keep_staging,
            )
            digest = artifact_digest(output)
            self.ledger.log(
                operation="uber",
                inputs=[str(path) for path in library_paths] + [str(class_dir)],
                outputs=[str(output), digest],
                args={
                    "lib": lib,
                    "version": version,
                    "main_class": _optional_str(main_class),
                    "conflicts": [notice.path for notice in result.report.conflicts],
                },
            )
            details: dict[str, Any] = {"entries": result.entry_count, "sha256": digest}
            if result.staging_dir is not None:
                details["staging_dir"] = str(result.staging_dir)
            return TaskResult(
                task="uber",
                ok=True,
                outputs=[str(output)],
                conflicts=result.report.conflicts,
                details=details,
            )

        return self._run("uber", action)


def _optional_str(value: Any | None) -> str | None:
    return None if value is None else str(value)
