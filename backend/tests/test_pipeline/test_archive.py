"""
Tests for ZIP assembly.
"""

import io
import zipfile

import pytest

from docmerge.contracts.artifacts import OutputArtifact, OutputKind
from docmerge.core.errors import ArchiveError
from docmerge.pipeline.archive import ZipArchiveBuilder, build_archive


def _open(data: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(data))


def test_members_are_deflated_in_append_order():
    builder = ZipArchiveBuilder()
    builder.append("02_Bob.pdf", b"b" * 1000)
    builder.append("01_Alice.pdf", b"a" * 1000)
    data = builder.finalize()

    with _open(data) as zf:
        assert zf.namelist() == ["02_Bob.pdf", "01_Alice.pdf"]
        assert zf.read("01_Alice.pdf") == b"a" * 1000
        assert all(i.compress_type == zipfile.ZIP_DEFLATED for i in zf.infolist())
        assert zf.testzip() is None


def test_finalize_is_idempotent_and_closes_for_appends():
    builder = ZipArchiveBuilder()
    builder.append("x.txt", b"x")
    first = builder.finalize()

    assert builder.finalize() == first
    with pytest.raises(ArchiveError):
        builder.append("y.txt", b"y")


def test_duplicate_name_is_rejected():
    builder = ZipArchiveBuilder()
    builder.append("01_Alice.pdf", b"1")
    with pytest.raises(ArchiveError) as exc:
        builder.append("01_Alice.pdf", b"2")
    assert "duplicate" in exc.value.message
    assert exc.value.stage == "archiving"


def test_empty_archive_is_valid():
    with _open(build_archive([])) as zf:
        assert zf.namelist() == []


def test_build_archive_from_artifacts():
    artifacts = [
        OutputArtifact("01_A.png", OutputKind.PNG, b"\x89PNG one"),
        OutputArtifact("02_B.png", OutputKind.PNG, b"\x89PNG two"),
    ]
    with _open(build_archive(artifacts)) as zf:
        assert {n: zf.read(n) for n in zf.namelist()} == {
            "01_A.png": b"\x89PNG one",
            "02_B.png": b"\x89PNG two",
        }


def test_closed_without_finalize():
    with ZipArchiveBuilder() as builder:
        builder.append("a.txt", b"a")
    with pytest.raises(ArchiveError):
        builder.finalize()
