"""Schema-stamped JSON output for ``--json`` CLI modes."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from jarforge import __version__


def json_response(
    schema_id: str,
    schema_version: int,
    **data: Any,
) -> str:
    """Create schema-wrapped JSON response for CLI output.

    Example:
        >>> json_response("task_result", 1, task="jar", ok=True)
        {
          "schema_id": "task_result",
          "schema_version": 1,
          "producer": "jarforge-0.1.0",
          "produced_at": "2026-01-12T10:30:00+00:00",
          "task": "jar",
          "ok": true
        }
    """
    wrapped = {
        "schema_id": schema_id,
        "schema_version": schema_version,
        "producer": f"jarforge-{__version__}",
        "produced_at": datetime.now(UTC).isoformat(),
        **data,
    }
    return json.dumps(wrapped, indent=2, default=str)
