"""Application bootstrap wiring ports, adapters, and services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jarforge.app import AuditService, BuildPipeline, JarService, UberService
from jarforge.app.adapters import JavacCompiler, ZipArchiveWriter
from jarforge.app.ports import ArchiveWriterPort, CompilerPort, LedgerPort
from jarforge.audit.ledger import BuildLedger
from jarforge.config import Settings, get_settings


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired services and adapters for the CLI layer."""

    settings: Settings
    pipeline: BuildPipeline
    jar_service: JarService
    uber_service: UberService
    audit_service: AuditService
    ledger_port: LedgerPort
    archive_writer: ArchiveWriterPort
    compiler: CompilerPort


class NoOpLedger:
    """Ledger implementation that drops all writes."""

    def log(self, *args: Any, **kwargs: Any) -> None:
        return None

    def read_all(self) -> list[Any]:
        return []

    def verify(self) -> tuple[bool, str | None]:
        return (True, None)


def _create_ledger(settings: Settings) -> LedgerPort | None:
    if not settings.audit_enabled:
        return None
    return BuildLedger(settings.get_ledger_path())


def bootstrap_application(
    settings: Settings | None = None,
    *,
    compiler: CompilerPort | None = None,
    archive_writer: ArchiveWriterPort | None = None,
) -> ApplicationContainer:
    """Instantiate adapters and services for CLI consumption.

    ``compiler`` and ``archive_writer`` replace the default javac and ZIP
    adapters when given.
    """

    active_settings = settings or get_settings()

    writer = archive_writer or ZipArchiveWriter(
        allow_duplicates=active_settings.allow_duplicate_entries
    )
    active_compiler = compiler or JavacCompiler(active_settings.javac_command)

    ledger = _create_ledger(active_settings)
    ledger_for_services: LedgerPort = ledger or NoOpLedger()  # type: ignore[assignment]

    jar_service = JarService(writer)
    uber_service = UberService(
        jar_service,
        active_settings.get_work_dir(),
        default_policy=active_settings.merge_policy,
        keep_staging=active_settings.keep_staging,
    )
    pipeline = BuildPipeline(
        settings=active_settings,
        jar_service=jar_service,
        uber_service=uber_service,
        compiler=active_compiler,
        ledger_port=ledger_for_services,
    )

    return ApplicationContainer(
        settings=active_settings,
        pipeline=pipeline,
        jar_service=jar_service,
        uber_service=uber_service,
        audit_service=AuditService(ledger=ledger),
        ledger_port=ledger_for_services,
        archive_writer=writer,
        compiler=active_compiler,
    )
