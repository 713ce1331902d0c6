from __future__ import annotations

import io
import zipfile
import zlib
from typing import Iterable, Optional, Set

from ..core.errors import ArchiveError
from ..contracts.artifacts import OutputArtifact


class ZipArchiveBuilder:
    """
    Incremental ZIP writer: append() one member at a time, finalize() once.

    Members are deflated at level 9 as they are appended, so only the
    compressed archive is kept in memory.
    """

    def __init__(self, compresslevel: int = 9) -> None:
        self._buffer = io.BytesIO()
        self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(
            self._buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compresslevel,
        )
        self._names: Set[str] = set()
        self._result: Optional[bytes] = None

    def append(self, name: str, data: bytes) -> None:
        if self._zip is None:
            raise ArchiveError("archive already finalized")
        if not name:
            raise ArchiveError("archive member needs a name")
        if name in self._names:
            raise ArchiveError(f"duplicate archive member: {name}")
        try:
            self._zip.writestr(name, data)
        except (zipfile.BadZipFile, zlib.error, OSError, ValueError) as e:
            raise ArchiveError(f"cannot add {name} to archive: {e}") from e
        self._names.add(name)

    def append_artifact(self, artifact: OutputArtifact) -> None:
        self.append(artifact.filename, artifact.content)

    def finalize(self) -> bytes:
        if self._result is not None:
            return self._result
        if self._zip is None:
            raise ArchiveError("archive was closed without finalize()")
        try:
            self._zip.close()
        except (zlib.error, OSError, ValueError) as e:
            raise ArchiveError(f"cannot finalize archive: {e}") from e
        finally:
            self._zip = None
        self._result = self._buffer.getvalue()
        self._buffer.close()
        return self._result

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def __enter__(self) -> "ZipArchiveBuilder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def build_archive(artifacts: Iterable[OutputArtifact]) -> bytes:
    with ZipArchiveBuilder() as builder:
        for artifact in artifacts:
            builder.append_artifact(artifact)
        return builder.finalize()
