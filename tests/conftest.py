"""Pytest configuration and fixtures."""

import gc
import os
import shutil
import tempfile
import time
import zipfile
from collections.abc import Callable, Generator, Mapping
from pathlib import Path

import pytest

from jarforge.config import Settings

# 2020-05-17 10:30:42 local time; even seconds survive the ZIP 2-second resolution.
FIXED_MTIME = time.mktime((2020, 5, 17, 10, 30, 42, 0, 0, -1))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def class_tree(temp_dir: Path) -> Path:
    """Create a small compiled-output tree with fixed modification times."""
    root = temp_dir / "classes"
    (root / "com" / "example" / "util").mkdir(parents=True)
    (root / "com" / "example" / "Main.class").write_bytes(b"\xca\xfe\xba\xbe main")
    (root / "com" / "example" / "util" / "Strings.class").write_bytes(b"\xca\xfe\xba\xbe strings")
    (root / "app.properties").write_text("name=demo\n")

    for path in [root, *root.rglob("*")]:
        os.utime(path, (FIXED_MTIME, FIXED_MTIME))
    return root


@pytest.fixture
def make_jar() -> Callable[[Path, Mapping[str, bytes | str]], Path]:
    """Return a helper that writes a library archive from a name -> content mapping."""

    def _make(path: Path, entries: Mapping[str, bytes | str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in entries.items():
                data = content.encode("utf-8") if isinstance(content, str) else content
                archive.writestr(zipfile.ZipInfo(name, date_time=(2019, 3, 4, 5, 6, 8)), data)
        return path

    return _make


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated jarforge settings scoped to tests."""

    import jarforge.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    data_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        build_jdk_spec="17",
        audit_enabled=True,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def fixed_mtime() -> float:
    """Modification time applied to the ``class_tree`` fixture."""
    return FIXED_MTIME
