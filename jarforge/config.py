"""Configuration management with Pydantic and XDG base directory support."""

import logging
import re
import subprocess
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from jarforge.utils.paths import get_xdg_data_home

logger = logging.getLogger(__name__)

MergePolicyName = Literal["last_wins", "first_wins", "error"]

_SPEC_VERSION_PATTERN = re.compile(r"^\s*java\.specification\.version\s*=\s*(\S+)\s*$", re.M)


def detect_java_spec_version(java_command: str = "java", timeout: float = 10.0) -> str | None:
    """Ask the installed JVM for its ``java.specification.version`` property.

    Returns None when no JVM is available or the property cannot be parsed.
    """
    try:
        result = subprocess.run(
            [java_command, "-XshowSettings:properties", "-version"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("Unable to query %s for its specification version: %s", java_command, exc)
        return None

    # The JVM prints settings to stderr.
    match = _SPEC_VERSION_PATTERN.search(result.stderr) or _SPEC_VERSION_PATTERN.search(
        result.stdout
    )
    return match.group(1) if match else None


class Settings(BaseSettings):
    """jarforge configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="JARFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/jarforge)",
    )

    work_dir: Path | None = Field(
        default=None,
        description="Parent directory for uber staging trees (defaults to <data_dir>/staging)",
    )

    tool_id: str = Field(
        default="jarforge",
        description="Value written to the Created-By manifest attribute",
    )

    build_jdk_spec: str | None = Field(
        default=None,
        description="Build-Jdk-Spec manifest value; detected from the local JVM when unset",
    )

    java_command: str = Field(
        default="java",
        description="JVM launcher used to detect the platform specification version",
    )

    javac_command: str = Field(
        default="javac",
        description="Java compiler executable used by the javac task",
    )

    merge_policy: MergePolicyName = Field(
        default="last_wins",
        description="Conflict policy for uber merges: last_wins, first_wins, or error",
    )

    keep_staging: bool = Field(
        default=False,
        description="Retain the uber staging directory after the build for inspection",
    )

    allow_duplicate_entries: bool = Field(
        default=False,
        description="Permit the archive writer to emit the same entry path twice",
    )

    audit_enabled: bool = Field(
        default=True,
        description="Record builds in the append-only build ledger",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _resolved_jdk_spec: str | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        if self.data_dir:
            data_dir = self.data_dir
            data_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = data_dir
            return data_dir

        primary_dir = get_xdg_data_home() / "jarforge"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".jarforge-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_work_dir(self) -> Path:
        """Get the parent directory for staging trees, creating if necessary."""
        work_dir = self.work_dir if self.work_dir else self.get_data_dir() / "staging"
        work_dir.mkdir(parents=True, exist_ok=True)
        return work_dir

    def get_ledger_path(self) -> Path:
        """Get path to the build ledger file."""
        return self.get_data_dir() / "builds.jsonl"

    def get_platform_spec(self) -> str:
        """Return the Build-Jdk-Spec value, probing the JVM once if not configured."""
        if self.build_jdk_spec:
            return self.build_jdk_spec
        if self._resolved_jdk_spec is None:
            detected = detect_java_spec_version(self.java_command)
            if detected is None:
                logger.warning(
                    "Could not detect java.specification.version; set JARFORGE_BUILD_JDK_SPEC"
                )
                detected = "unknown"
            self._resolved_jdk_spec = detected
        return self._resolved_jdk_spec


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
