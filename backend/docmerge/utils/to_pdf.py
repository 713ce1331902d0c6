from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Protocol

from ..core.errors import ConversionError, ConversionTimeout

logger = logging.getLogger(__name__)


class ConversionEngine(Protocol):
    async def convert(self, data: bytes, source_kind: str) -> bytes:
        """Office document bytes -> PDF bytes."""
        ...


class SofficeConverter:
    """
    docx/pptx -> PDF using headless LibreOffice (soffice).

    Every call gets its own temp dir (input, output and LO profile live
    there) and the dir is removed on every exit path.
    """

    def __init__(self, soffice_path: str, *, timeout: float = 120.0) -> None:
        self.soffice_path = soffice_path
        self.timeout = timeout

    def build_command(self, input_path: Path, outdir: Path, profile_dir: Path) -> list[str]:
        return [
            self.soffice_path,
            "--headless",
            "--nologo",
            "--nofirststartwizard",
            # private LO profile; two soffice runs on one profile block each other
            f"-env:UserInstallation={profile_dir.as_uri()}",
            "--convert-to",
            "pdf",
            "--outdir",
            str(outdir),
            str(input_path),
        ]

    async def convert(self, data: bytes, source_kind: str) -> bytes:
        ext = str(getattr(source_kind, "value", source_kind)).lower().lstrip(".")

        with tempfile.TemporaryDirectory(prefix="lo-") as tmp:
            tmp_dir = Path(tmp)
            input_path = tmp_dir / f"input.{ext}"
            pdf_path = tmp_dir / "input.pdf"
            input_path.write_bytes(data)

            cmd = self.build_command(input_path, tmp_dir, tmp_dir / "profile")
            await self._run(cmd)

            try:
                return pdf_path.read_bytes()
            except OSError as e:
                raise ConversionError("PDF Output not found") from e

    async def _run(self, cmd: list[str]) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ConversionError(f"LibreOffice error: cannot start {self.soffice_path}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("soffice killed after %.1fs: %s", self.timeout, cmd[-1])
            raise ConversionTimeout(self.timeout) from e
        finally:
            # timeout or cancellation: soffice must not outlive its temp dir
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        if proc.returncode != 0:
            detail = (stderr or stdout or b"").decode("utf-8", "replace").strip()
            logger.error("soffice exited with %s: %s", proc.returncode, detail)
            raise ConversionError(f"LibreOffice error: {detail or f'exit code {proc.returncode}'}")
