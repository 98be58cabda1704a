import asyncio
import logging
import os
import stat

import pytest

from dr_get_dicom.application.domain import (
    ArchiveKind,
    DownloadedObject,
    RemoteObject,
)
from dr_get_dicom.application.exceptions import (
    ArchiveOpenError,
    ArtifactWriteError,
    EmptyArchiveError,
)
from dr_get_dicom.infrastructure.extraction import DicomExtractor

SERIES = "/ns/raw/20240101/sub-001/ses-mri01/002-t1"


def _extract(remote_name, path, extractor=None):
    downloaded = DownloadedObject(remote=RemoteObject(remote_name), path=path)
    return asyncio.run((extractor or DicomExtractor()).extract(downloaded))


@pytest.mark.parametrize(
    "name, kind",
    [
        ("a/sub-001.zip", ArchiveKind.ZIP_ARCHIVE),
        ("a/series.tar.gz", ArchiveKind.COMPRESSED_ARCHIVE),
        ("a/series.tgz", ArchiveKind.COMPRESSED_ARCHIVE),
        ("a/IM0001.IMA", ArchiveKind.PLAIN_FILE),
        ("a/image.dcm", ArchiveKind.PLAIN_FILE),
    ],
)
def test_archive_kind_from_suffix(name, kind):
    assert ArchiveKind.of(name) is kind


def test_first_regular_member_is_extracted(make_tarball, tmp_path):
    archive = make_tarball(
        tmp_path / "series.tar.gz",
        [
            ("dir/",),
            ("dir/fileA", b"first", 0o640),
            ("dir/fileB", b"second"),
        ],
    )

    artifact = _extract(f"{SERIES}/series.tar.gz", archive)

    assert artifact.path == tmp_path / "fileA"
    assert artifact.path.read_bytes() == b"first"
    assert stat.S_IMODE(artifact.path.stat().st_mode) == 0o640
    assert not archive.exists()
    assert not (tmp_path / "fileB").exists()
    assert (tmp_path / "cmd.sh").read_text() == f"irsync -r i:{SERIES} {tmp_path}\n"


def test_sync_tool_is_configurable(make_tarball, tmp_path):
    archive = make_tarball(tmp_path / "series.tar.gz", [("IM0001.IMA",)])

    _extract(f"{SERIES}/series.tar.gz", archive, DicomExtractor(sync_tool="rsync-dr"))

    assert (tmp_path / "cmd.sh").read_text().startswith("rsync-dr -r i:")


def test_directory_only_archive_is_empty(make_tarball, tmp_path):
    archive = make_tarball(tmp_path / "series.tar.gz", [("a/",), ("a/b/",)])

    with pytest.raises(EmptyArchiveError):
        _extract(f"{SERIES}/series.tar.gz", archive)

    assert sorted(p.name for p in tmp_path.iterdir()) == []


def test_bad_compression_header_fails_to_open(tmp_path):
    archive = tmp_path / "series.tar.gz"
    archive.write_bytes(b"this is not gzip data at all")

    with pytest.raises(ArchiveOpenError):
        _extract(f"{SERIES}/series.tar.gz", archive)


def test_truncated_stream_fails_without_leaving_partial_file(make_tarball, tmp_path):
    payload = os.urandom(1 << 20)
    source = make_tarball(tmp_path / "full.tar.gz", [("IM0001.IMA", payload)])
    data = source.read_bytes()
    source.unlink()
    archive = tmp_path / "series.tar.gz"
    archive.write_bytes(data[: len(data) // 2])

    with pytest.raises(ArchiveOpenError):
        _extract(f"{SERIES}/series.tar.gz", archive)

    assert not (tmp_path / "IM0001.IMA").exists()
    assert list(tmp_path.iterdir()) == []


def test_unwritable_target_is_a_write_error(make_tarball, tmp_path):
    archive = make_tarball(tmp_path / "series.tar.gz", [("IM0001.IMA",)])
    (tmp_path / "IM0001.IMA").mkdir()

    with pytest.raises(ArtifactWriteError):
        _extract(f"{SERIES}/series.tar.gz", archive)

    assert (tmp_path / "IM0001.IMA").is_dir()
    assert not archive.exists()
    assert not (tmp_path / "cmd.sh").exists()


def test_missing_download_fails_to_open(tmp_path):
    with pytest.raises(ArchiveOpenError):
        _extract(f"{SERIES}/series.tar.gz", tmp_path / "series.tar.gz")


def test_zip_bundle_is_kept_as_is(tmp_path):
    bundle = tmp_path / "sub-001.zip"
    bundle.write_bytes(b"PK")

    artifact = _extract(f"{SERIES}/sub-001.zip", bundle)

    assert artifact.path == bundle
    assert bundle.exists()
    assert not (tmp_path / "cmd.sh").exists()


def test_single_file_points_sync_at_session(tmp_path):
    dicom = tmp_path / "IM0001.IMA"
    dicom.write_bytes(b"DICM")

    artifact = _extract(f"{SERIES}/IM0001.IMA", dicom)

    assert artifact.path == dicom
    cmd = tmp_path / "cmd.sh"
    assert cmd.read_text() == (
        f"irsync -r i:/ns/raw/20240101/sub-001/ses-mri01 {tmp_path}\n"
    )
    assert stat.S_IMODE(cmd.stat().st_mode) == 0o755


def test_unwritable_instruction_only_warns(tmp_path, caplog):
    missing = tmp_path / "gone" / "IM0001.IMA"

    with caplog.at_level(logging.WARNING):
        artifact = _extract(f"{SERIES}/IM0001.IMA", missing)

    assert artifact.path == missing
    assert "cannot write command" in caplog.text
