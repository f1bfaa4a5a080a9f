"""Tests for uberjar merging through the staging directory."""

import time
import zipfile
from pathlib import Path

import pytest

from jarforge.app.adapters import ZipArchiveWriter
from jarforge.app.jar_service import JarService
from jarforge.app.uber_service import UberService
from jarforge.archive.manifest import MANIFEST_PATH, Manifest, build_manifest
from jarforge.archive.merge import MergePolicy
from jarforge.errors import (
    ArchiveFormatError,
    MergeConflictError,
    SourceNotFoundError,
)


@pytest.fixture
def work_dir(temp_dir: Path) -> Path:
    path = temp_dir / "work"
    path.mkdir()
    return path


@pytest.fixture
def service(work_dir: Path) -> UberService:
    return UberService(JarService(ZipArchiveWriter()), work_dir)


@pytest.fixture
def manifest() -> Manifest:
    return build_manifest("jarforge", "17", "com.example.Main")


@pytest.fixture
def empty_classes(temp_dir: Path) -> Path:
    path = temp_dir / "classes"
    path.mkdir()
    return path


@pytest.fixture
def libraries(temp_dir: Path, make_jar) -> tuple[Path, Path]:
    first = make_jar(temp_dir / "libs" / "l1.jar", {"a.txt": "x"})
    second = make_jar(temp_dir / "libs" / "l2.jar", {"a.txt": "y", "b.txt": "z"})
    return first, second


def _files(path: Path) -> dict[str, bytes]:
    with zipfile.ZipFile(path) as archive:
        return {
            info.filename: archive.read(info)
            for info in archive.infolist()
            if not info.is_dir() and info.filename != MANIFEST_PATH
        }


def test_later_library_wins_and_conflict_is_reported(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    first, second = libraries
    output = temp_dir / "target" / "app-standalone.jar"

    result = service.assemble([first, second], empty_classes, output, manifest)

    assert _files(output) == {"a.txt": b"y", "b.txt": b"z"}
    assert len(result.report.conflicts) == 1
    notice = result.report.conflicts[0]
    assert notice.path == "a.txt"
    assert notice.source == str(second)
    assert notice.previous_source == str(first)
    assert notice.resolution == "overwritten"
    assert result.report.sources == [str(first), str(second), str(empty_classes)]


def test_library_order_decides_the_winner(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    first, second = libraries
    output = temp_dir / "swapped.jar"

    result = service.assemble([second, first], empty_classes, output, manifest)

    assert _files(output)["a.txt"] == b"x"
    assert result.report.conflicts[0].source == str(first)


def test_project_classes_shadow_libraries(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    (empty_classes / "a.txt").write_text("local")
    output = temp_dir / "local.jar"

    result = service.assemble(list(libraries), empty_classes, output, manifest)

    assert _files(output)["a.txt"] == b"local"
    assert [notice.source for notice in result.report.conflicts] == [
        str(libraries[1]),
        str(empty_classes),
    ]


def test_directory_libraries_report_conflicts(
    service: UberService, manifest: Manifest, empty_classes: Path, temp_dir: Path
) -> None:
    lib_a = temp_dir / "dir-a"
    lib_b = temp_dir / "dir-b"
    for lib, content in ((lib_a, "from-a"), (lib_b, "from-b")):
        (lib / "conf").mkdir(parents=True)
        (lib / "conf" / "settings.edn").write_text(content)
    output = temp_dir / "dirs.jar"

    result = service.assemble([lib_a, lib_b], empty_classes, output, manifest)

    assert _files(output) == {"conf/settings.edn": b"from-b"}
    assert [(n.path, n.source) for n in result.report.conflicts] == [
        ("conf/settings.edn", str(lib_b))
    ]


def test_first_wins_policy_keeps_earliest_copy(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    output = temp_dir / "first.jar"

    result = service.assemble(
        list(libraries), empty_classes, output, manifest, policy=MergePolicy.FIRST_WINS
    )

    assert _files(output)["a.txt"] == b"x"
    assert result.report.conflicts[0].resolution == "kept"


def test_error_policy_aborts_without_output(
    service: UberService,
    manifest: Manifest,
    libraries,
    empty_classes: Path,
    temp_dir: Path,
    work_dir: Path,
) -> None:
    output = temp_dir / "error.jar"

    with pytest.raises(MergeConflictError) as excinfo:
        service.assemble(list(libraries), empty_classes, output, manifest, policy="error")

    assert excinfo.value.path == "a.txt"
    assert excinfo.value.previous_source == str(libraries[0])
    assert not output.exists()
    assert list(work_dir.iterdir()) == []


def test_custom_resolver_combines_contents(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    seen: list[tuple[str, str]] = []

    def concatenate(path: str, existing: Path, incoming: bytes, source: str) -> bytes:
        seen.append((path, source))
        return existing.read_bytes() + b"\n" + incoming

    output = temp_dir / "resolved.jar"
    result = service.assemble(list(libraries), empty_classes, output, manifest, policy=concatenate)

    assert _files(output)["a.txt"] == b"x\ny"
    assert seen == [("a.txt", str(libraries[1]))]
    assert result.report.conflicts[0].resolution == "resolved"


def test_library_manifests_are_not_merged(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    lib = make_jar(
        temp_dir / "with-manifest.jar",
        {"META-INF/": b"", MANIFEST_PATH: "Manifest-Version: 1.0\r\nMain-Class: other.Main\r\n\r\n"},
    )
    output = temp_dir / "manifest.jar"

    result = service.assemble([lib], empty_classes, output, manifest)

    assert result.report.conflicts == []
    with zipfile.ZipFile(output) as archive:
        assert archive.namelist().count(MANIFEST_PATH) == 1
        written = Manifest.from_bytes(archive.read(MANIFEST_PATH))
    assert written.main_class == "com.example.Main"


def test_archive_entry_times_survive_staging(
    work_dir: Path, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    service = UberService(JarService(ZipArchiveWriter()), work_dir, keep_staging=True)
    lib = make_jar(temp_dir / "timed.jar", {"data/file.txt": "content"})

    result = service.assemble([lib], empty_classes, temp_dir / "timed-out.jar", manifest)

    assert result.staging_dir is not None
    staged = result.staging_dir / "data" / "file.txt"
    assert staged.stat().st_mtime == time.mktime((2019, 3, 4, 5, 6, 8, 0, 0, -1))


def test_staging_is_removed_after_success(
    service: UberService,
    manifest: Manifest,
    libraries,
    empty_classes: Path,
    temp_dir: Path,
    work_dir: Path,
) -> None:
    result = service.assemble(list(libraries), empty_classes, temp_dir / "out.jar", manifest)

    assert result.staging_dir is None
    assert list(work_dir.iterdir()) == []


def test_keep_staging_retains_tree(
    service: UberService, manifest: Manifest, libraries, empty_classes: Path, temp_dir: Path
) -> None:
    result = service.assemble(
        list(libraries), empty_classes, temp_dir / "out.jar", manifest, keep_staging=True
    )

    assert result.staging_dir is not None
    assert (result.staging_dir / "a.txt").read_text() == "y"
    assert (result.staging_dir / "b.txt").read_text() == "z"


def test_missing_library_is_not_found(
    service: UberService, manifest: Manifest, empty_classes: Path, temp_dir: Path, work_dir: Path
) -> None:
    output = temp_dir / "missing.jar"

    with pytest.raises(SourceNotFoundError):
        service.assemble([temp_dir / "nope.jar"], empty_classes, output, manifest)

    assert not output.exists()
    assert list(work_dir.iterdir()) == []


def test_corrupt_library_is_archive_format_error(
    service: UberService, manifest: Manifest, empty_classes: Path, temp_dir: Path
) -> None:
    corrupt = temp_dir / "corrupt.jar"
    corrupt.write_bytes(b"this is not a zip file")
    output = temp_dir / "corrupt-out.jar"

    with pytest.raises(ArchiveFormatError):
        service.assemble([corrupt], empty_classes, output, manifest)

    assert not output.exists()


def test_entries_escaping_staging_are_rejected(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    evil = make_jar(temp_dir / "evil.jar", {"../../escaped.txt": "pwned"})

    with pytest.raises(ArchiveFormatError, match="Path traversal"):
        service.assemble([evil], empty_classes, temp_dir / "evil-out.jar", manifest)

    assert not (temp_dir / "escaped.txt").exists()


def test_directory_entry_over_staged_file_keeps_file(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    first = make_jar(temp_dir / "file-a.jar", {"a": "file"})
    second = make_jar(temp_dir / "dir-a.jar", {"a/": b"", "b.txt": "z"})
    output = temp_dir / "shape.jar"

    result = service.assemble([first, second], empty_classes, output, manifest)

    assert _files(output) == {"a": b"file", "b.txt": b"z"}
    notices = [(n.path, n.source, n.previous_source, n.resolution) for n in result.report.conflicts]
    assert notices == [("a", str(second), str(first), "kept")]


def test_file_entry_over_staged_directory_keeps_directory(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    first = make_jar(temp_dir / "nested.jar", {"a/inner.txt": "inner"})
    second = make_jar(temp_dir / "flat.jar", {"a": "file", "a/deeper/x.txt": "x"})
    output = temp_dir / "shape.jar"

    result = service.assemble([first, second], empty_classes, output, manifest)

    assert _files(output) == {"a/inner.txt": b"inner", "a/deeper/x.txt": b"x"}
    assert [(n.path, n.resolution) for n in result.report.conflicts] == [("a", "kept")]


def test_file_and_directory_collision_fails_under_error_policy(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    first = make_jar(temp_dir / "file-a.jar", {"a": "file"})
    second = make_jar(temp_dir / "dir-a.jar", {"a/b.txt": "z"})

    with pytest.raises(MergeConflictError) as excinfo:
        service.assemble(
            [first, second], empty_classes, temp_dir / "shape.jar", manifest, policy="error"
        )

    assert excinfo.value.path == "a"


def test_encrypted_entry_is_archive_format_error(
    service: UberService, manifest: Manifest, make_jar, empty_classes: Path, temp_dir: Path
) -> None:
    locked = make_jar(temp_dir / "locked.jar", {"x.txt": "secret"})
    data = bytearray(locked.read_bytes())
    # General purpose flag of the central directory record; bit 0 marks encryption.
    central = data.find(b"PK\x01\x02")
    data[central + 8] |= 0x1
    locked.write_bytes(bytes(data))
    output = temp_dir / "locked-out.jar"

    with pytest.raises(ArchiveFormatError, match="Encrypted entry 'x.txt'"):
        service.assemble([locked], empty_classes, output, manifest)

    assert not output.exists()
