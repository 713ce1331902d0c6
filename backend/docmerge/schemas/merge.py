"""
Merge endpoint response schemas.
"""

import base64
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ..contracts.artifacts import OutputArtifact, PipelineResult


class MergedFile(BaseModel):
    """One output document, inlined."""

    filename: str = Field(..., description="Output filename, e.g. 01_Alice.pdf")
    mime: str = Field(..., description="MIME type derived from the output kind")
    base64: str = Field(..., description="File content, base64-encoded")

    @classmethod
    def from_artifact(cls, artifact: OutputArtifact) -> "MergedFile":
        return cls(
            filename=artifact.filename,
            mime=artifact.mime,
            base64=base64.b64encode(artifact.content).decode("ascii"),
        )


class SkippedRow(BaseModel):
    """A data row left out because its placeholders could not be filled."""

    row: int = Field(..., description="1-based data row number")
    reason: str = Field(..., description="Why rendering failed")


class MergeResponse(BaseModel):
    """Successful merge: inline listing plus the same files as one ZIP."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "label": "PDF",
                "files": [
                    {
                        "filename": "01_Alice.pdf",
                        "mime": "application/pdf",
                        "base64": "JVBERi0xLjcK...",
                    }
                ],
                "zipBase64": "UEsDBBQAAAAIA...",
                "skipped": [],
            }
        },
    )

    success: bool = True
    label: str = Field(..., description="Upper-cased output kind")
    files: List[MergedFile] = Field(default_factory=list)
    zip_base64: str = Field(..., alias="zipBase64")
    skipped: List[SkippedRow] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PipelineResult) -> "MergeResponse":
        return cls(
            label=result.label,
            files=[MergedFile.from_artifact(a) for a in result.artifacts],
            zipBase64=base64.b64encode(result.archive).decode("ascii"),
            skipped=[SkippedRow(row=s.row_index + 1, reason=s.reason) for s in result.skipped],
        )


class ErrorResponse(BaseModel):
    """Failed merge. `message` is a fixed code for 400s, `Error: ...` for 500s."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"success": False, "message": "ERR_TEMPLATE_MISMATCH"}}
    )

    success: bool = False
    message: str = Field(..., description="Error code or wrapped error text")
