from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..contracts.artifacts import PipelineStage

ERR_MISSING_FILES = "ERR_MISSING_FILES"
ERR_INVALID_TEMPLATE = "ERR_INVALID_TEMPLATE"
ERR_TEMPLATE_MISMATCH = "ERR_TEMPLATE_MISMATCH"
ERR_CSV_EMPTY = "ERR_CSV_EMPTY"
ERR_CSV_INVALID = "ERR_CSV_INVALID"
ERR_RENDER = "ERR_RENDER"
ERR_CONVERSION = "ERR_CONVERSION"
ERR_CONVERSION_TIMEOUT = "ERR_CONVERSION_TIMEOUT"
ERR_IMAGE_CONVERSION = "ERR_IMAGE_CONVERSION"
ERR_ARCHIVE = "ERR_ARCHIVE"
ERR_MISSING_ENGINE = "ERR_MISSING_ENGINE"


@dataclass
class UserFacingError(Exception):
    """
    An error that is safe and useful to show directly in UI.
    """
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    stage: Optional[str] = None

    # HTTP status used when the error ends the request
    status_code = 500

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.stage:
            out["stage"] = self.stage
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(UserFacingError):
    """Missing upload, bad template extension or output/template mismatch."""

    status_code = 400

    def __init__(
        self, code: str, *, stage: Optional[str] = PipelineStage.VALIDATING.value
    ) -> None:
        # fixed code doubles as the message shown to the client
        super().__init__(code=code, message=code, stage=stage)


class DataError(UserFacingError):
    """Data file could not be turned into at least one row."""

    status_code = 400

    def __init__(
        self,
        code: str,
        *,
        details: Optional[dict[str, Any]] = None,
        stage: Optional[str] = PipelineStage.PARSING.value,
    ) -> None:
        super().__init__(code=code, message=code, details=details, stage=stage)


class RenderError(UserFacingError):
    """Placeholder substitution failed for one row. Never ends the request."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(
            code=ERR_RENDER, message=message, details=details, stage=PipelineStage.ROWS.value
        )


class ConversionError(UserFacingError):
    """External converter failed or produced nothing."""

    def __init__(self, message: str, *, code: str = ERR_CONVERSION) -> None:
        super().__init__(code=code, message=message, stage=PipelineStage.ROWS.value)


class ConversionTimeout(ConversionError):
    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"LibreOffice did not finish within {timeout:g}s",
            code=ERR_CONVERSION_TIMEOUT,
        )
        self.timeout = timeout


class ImageConversionError(UserFacingError):
    """PDF -> raster failed; aborts the whole batch."""

    def __init__(self, message: str = "Convert Image Error") -> None:
        super().__init__(
            code=ERR_IMAGE_CONVERSION, message=message, stage=PipelineStage.ROWS.value
        )


class ArchiveError(UserFacingError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ERR_ARCHIVE, message=message, stage=PipelineStage.ARCHIVING.value)


class MissingEngineError(UserFacingError):
    """LibreOffice (soffice) not found; raised at startup, not per request."""

    def __init__(self, message: str = "LibreOffice (soffice) not found") -> None:
        super().__init__(code=ERR_MISSING_ENGINE, message=message, stage="startup")
