from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..contracts.artifacts import (
    OutputArtifact,
    OutputKind,
    PipelineResult,
    Produced,
    RowOutcome,
    Skipped,
    TemplateArtifact,
    TemplateKind,
)
from ..core.errors import (
    ERR_INVALID_TEMPLATE,
    ERR_MISSING_FILES,
    ERR_TEMPLATE_MISMATCH,
    ImageConversionError,
    RenderError,
    ValidationError,
)
from ..extract.csv_reader import read_rows
from ..extract.types import RowRecord
from ..render.template import OfficeTemplateRenderer, TemplateRenderer
from ..utils.rasterize import PdfRasterizer, Rasterizer
from ..utils.to_pdf import ConversionEngine
from .archive import build_archive
from .naming import output_filename

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = OutputKind.PDF


def template_extension(filename: str) -> str:
    """Text after the last dot, lower-cased (`report` -> `report`)."""
    return filename.rsplit(".", 1)[-1].lower()


def normalize_output_kind(value: Optional[str]) -> OutputKind:
    """Missing or unknown output type silently becomes pdf."""
    raw = (value or "").strip().lower()
    try:
        return OutputKind(raw)
    except ValueError:
        return DEFAULT_OUTPUT


def validate_request(
    template_name: Optional[str],
    template_bytes: Optional[bytes],
    data_bytes: Optional[bytes],
    output_type: Optional[str],
) -> tuple[TemplateArtifact, OutputKind]:
    if not template_name or template_bytes is None or data_bytes is None:
        raise ValidationError(ERR_MISSING_FILES)

    try:
        template_kind = TemplateKind(template_extension(template_name))
    except ValueError as e:
        raise ValidationError(ERR_INVALID_TEMPLATE) from e

    output_kind = normalize_output_kind(output_type)
    if output_kind in (OutputKind.DOCX, OutputKind.PPTX) and output_kind.value != template_kind.value:
        raise ValidationError(ERR_TEMPLATE_MISMATCH)

    return TemplateArtifact(filename=template_name, kind=template_kind, content=template_bytes), output_kind


class MergePipeline:
    """
    Template + CSV -> one output per row -> ZIP.

    Stages: validating -> parsing -> rows -> archiving -> done.

    Failure policy per row:
      - RenderError: row skipped, batch continues
      - ConversionError: propagates, batch aborted
      - ImageConversionError: propagates, batch aborted
    """

    def __init__(
        self,
        converter: ConversionEngine,
        *,
        renderer: Optional[TemplateRenderer] = None,
        rasterizer: Optional[Rasterizer] = None,
    ) -> None:
        self.converter = converter
        self.renderer = renderer or OfficeTemplateRenderer()
        self.rasterizer = rasterizer or PdfRasterizer()

    async def run(
        self,
        template_name: Optional[str],
        template_bytes: Optional[bytes],
        data_bytes: Optional[bytes],
        output_type: Optional[str] = None,
    ) -> PipelineResult:
        # validating
        template, output_kind = validate_request(
            template_name, template_bytes, data_bytes, output_type
        )

        # parsing
        rows = read_rows(data_bytes)  # type: ignore[arg-type]
        logger.info(
            "merge started: template=%s kind=%s output=%s rows=%d",
            template.filename,
            template.kind.value,
            output_kind.value,
            len(rows),
        )

        # rows
        outcomes: List[RowOutcome] = []
        for row in rows:
            outcomes.append(await self.process_row(template, row, output_kind))

        result = PipelineResult(output_kind=output_kind, outcomes=outcomes)

        # archiving
        result.archive = build_archive(result.artifacts)

        logger.info(
            "merge done: produced=%d skipped=%d",
            len(result.artifacts),
            len(result.skipped),
        )
        return result

    async def process_row(
        self, template: TemplateArtifact, row: RowRecord, output_kind: OutputKind
    ) -> RowOutcome:
        try:
            rendered = self.renderer.render(template, row)
        except RenderError as e:
            logger.warning(
                "row %d skipped: %s %s", row.index + 1, e.message, e.details or ""
            )
            return Skipped(row_index=row.index, reason=e.message)

        primary = row.primary_value

        if output_kind in (OutputKind.DOCX, OutputKind.PPTX):
            name = output_filename(row.index, primary, output_kind)
            return Produced(row.index, (OutputArtifact(name, output_kind, rendered),))

        pdf_bytes = await self.converter.convert(rendered, template.kind.value)

        if output_kind == OutputKind.PDF:
            name = output_filename(row.index, primary, output_kind)
            return Produced(row.index, (OutputArtifact(name, output_kind, pdf_bytes),))

        try:
            pages = await asyncio.to_thread(
                self.rasterizer.rasterize, pdf_bytes, output_kind.value
            )
        except ImageConversionError:
            raise
        except Exception as e:  # noqa: BLE001
            raise ImageConversionError(f"Convert Image Error: {e}") from e

        return Produced(
            row.index,
            tuple(
                OutputArtifact(
                    output_filename(
                        row.index,
                        primary,
                        output_kind,
                        page_index=i,
                        page_count=len(pages),
                    ),
                    output_kind,
                    page,
                )
                for i, page in enumerate(pages)
            ),
        )


__all__ = [
    "MergePipeline",
    "normalize_output_kind",
    "template_extension",
    "validate_request",
]
