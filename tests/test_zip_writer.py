"""Tests for the ZIP archive writer adapter."""

import zipfile
from pathlib import Path

import pytest

from jarforge.app.adapters.zip_writer import ZIP_EPOCH, ZipArchiveWriter, zip_date_time
from jarforge.archive.manifest import MANIFEST_PATH, Manifest, build_manifest
from jarforge.errors import BuildIOError, DuplicateEntryError


@pytest.fixture
def manifest() -> Manifest:
    return build_manifest("jarforge", "17", "demo.Main")


def test_manifest_is_first_entry(temp_dir: Path, manifest: Manifest) -> None:
    source = temp_dir / "a.txt"
    source.write_text("alpha")
    target = temp_dir / "out" / "demo.jar"

    with ZipArchiveWriter().open(target, manifest) as sink:
        sink.put_entry("a.txt", source=source)

    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == [MANIFEST_PATH, "a.txt"]
        assert Manifest.from_bytes(archive.read(MANIFEST_PATH)) == manifest
        assert archive.getinfo(MANIFEST_PATH).date_time == ZIP_EPOCH
        assert archive.read("a.txt") == b"alpha"


def test_directory_entries_are_empty_with_trailing_slash(
    temp_dir: Path, manifest: Manifest, fixed_mtime: float
) -> None:
    target = temp_dir / "dirs.jar"

    with ZipArchiveWriter().open(target, manifest) as sink:
        entry = sink.put_entry("com/example", is_directory=True, last_modified=fixed_mtime)

    assert entry.path == "com/example/"
    with zipfile.ZipFile(target) as archive:
        info = archive.getinfo("com/example/")
        assert info.is_dir()
        assert info.file_size == 0
        assert info.date_time == (2020, 5, 17, 10, 30, 42)


def test_duplicate_entries_rejected(temp_dir: Path, manifest: Manifest) -> None:
    source = temp_dir / "a.txt"
    source.write_text("alpha")

    with pytest.raises(DuplicateEntryError, match="a.txt"):
        with ZipArchiveWriter().open(temp_dir / "dup.jar", manifest) as sink:
            sink.put_entry("a.txt", source=source)
            sink.put_entry("a.txt", source=source)


def test_duplicate_entries_allowed_when_configured(temp_dir: Path, manifest: Manifest) -> None:
    source = temp_dir / "a.txt"
    source.write_text("alpha")
    target = temp_dir / "dup.jar"

    with ZipArchiveWriter(allow_duplicates=True).open(target, manifest) as sink:
        sink.put_entry("a.txt", source=source)
        sink.put_entry("a.txt", source=source)

    with zipfile.ZipFile(target) as archive:
        assert archive.namelist().count("a.txt") == 2


def test_writing_the_manifest_path_again_is_a_duplicate(
    temp_dir: Path, manifest: Manifest
) -> None:
    source = temp_dir / "MANIFEST.MF"
    source.write_text("Manifest-Version: 1.0\n")

    with pytest.raises(DuplicateEntryError):
        with ZipArchiveWriter().open(temp_dir / "m.jar", manifest) as sink:
            sink.put_entry(MANIFEST_PATH, source=source)


def test_unwritable_target_raises_build_io_error(temp_dir: Path, manifest: Manifest) -> None:
    blocker = temp_dir / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(BuildIOError):
        with ZipArchiveWriter().open(blocker / "out.jar", manifest):
            pass


def test_vanished_source_leaves_partial_archive(temp_dir: Path, manifest: Manifest) -> None:
    target = temp_dir / "partial.jar"

    with pytest.raises(BuildIOError, match="gone.txt"):
        with ZipArchiveWriter().open(target, manifest) as sink:
            sink.put_entry("gone.txt", source=temp_dir / "gone.txt")

    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == [MANIFEST_PATH]


def test_zip_date_time_clamps_to_epoch(fixed_mtime: float) -> None:
    assert zip_date_time(None) == ZIP_EPOCH
    assert zip_date_time(0) == ZIP_EPOCH
    assert zip_date_time(fixed_mtime) == (2020, 5, 17, 10, 30, 42)
