"""Application layer for jarforge.

Services orchestrate the archive domain; writing archives, compiling, and
recording builds go through port interfaces.
"""

__all__ = [
    "AuditService",
    "BuildPipeline",
    "JarService",
    "TaskResult",
    "UberResult",
    "UberService",
]

from jarforge.app.audit_service import AuditService
from jarforge.app.build_pipeline import BuildPipeline, TaskResult
from jarforge.app.jar_service import JarService
from jarforge.app.uber_service import UberResult, UberService
