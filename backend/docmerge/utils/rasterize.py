from __future__ import annotations

import io
import logging
from typing import List, Protocol

import fitz  # PyMuPDF
from PIL import Image

from ..core.errors import ImageConversionError

logger = logging.getLogger(__name__)

RASTER_SCALE = 2.0
JPEG_QUALITY = 90


class Rasterizer(Protocol):
    def rasterize(self, pdf_bytes: bytes, kind: str) -> List[bytes]:
        ...


class PdfRasterizer:
    """
    PDF -> one image per page (PNG or JPEG), page order preserved.

    All-or-nothing: any page failing discards the pages already rendered.
    """

    def __init__(self, scale: float = RASTER_SCALE, jpeg_quality: int = JPEG_QUALITY) -> None:
        self.scale = scale
        self.jpeg_quality = jpeg_quality

    def rasterize(self, pdf_bytes: bytes, kind: str) -> List[bytes]:
        fmt = str(getattr(kind, "value", kind)).lower()
        if fmt not in ("png", "jpg", "jpeg"):
            raise ImageConversionError(f"unsupported raster format: {fmt}")

        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:  # noqa: BLE001
            raise ImageConversionError(f"Cannot open PDF: {e}") from e

        images: List[bytes] = []
        try:
            if doc.page_count == 0:
                raise ImageConversionError("PDF has no pages")

            matrix = fitz.Matrix(self.scale, self.scale)
            for pno in range(doc.page_count):
                try:
                    images.append(self._render_page(doc.load_page(pno), matrix, fmt))
                except Exception as e:  # noqa: BLE001
                    raise ImageConversionError(f"page {pno + 1}: {e}") from e
        finally:
            doc.close()

        logger.debug("rasterized %d page(s) as %s", len(images), fmt)
        return images

    def _render_page(self, page: "fitz.Page", matrix: "fitz.Matrix", fmt: str) -> bytes:
        pix = page.get_pixmap(matrix=matrix, alpha=False)
        try:
            if fmt == "png":
                return pix.tobytes("png")

            img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            try:
                buf = io.BytesIO()
                img.save(buf, format="JPEG", quality=self.jpeg_quality)
                return buf.getvalue()
            finally:
                img.close()
        finally:
            # one pixmap alive at a time
            pix = None
