from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union


class TemplateKind(str, Enum):
    DOCX = "docx"
    PPTX = "pptx"


class OutputKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    PPTX = "pptx"
    PNG = "png"
    JPG = "jpg"

    @property
    def mime(self) -> str:
        return _MIME_BY_KIND.get(self, "application/octet-stream")


_MIME_BY_KIND = {
    OutputKind.PDF: "application/pdf",
    OutputKind.PNG: "image/png",
    OutputKind.JPG: "image/jpeg",
}


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    PARSING = "parsing"
    ROWS = "rows"
    ARCHIVING = "archiving"


@dataclass(frozen=True)
class TemplateArtifact:
    filename: str
    kind: TemplateKind
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class OutputArtifact:
    filename: str
    kind: OutputKind
    content: bytes = field(repr=False)

    @property
    def mime(self) -> str:
        return self.kind.mime


@dataclass(frozen=True)
class Produced:
    row_index: int
    artifacts: Tuple[OutputArtifact, ...]


@dataclass(frozen=True)
class Skipped:
    row_index: int
    reason: str


RowOutcome = Union[Produced, Skipped]


@dataclass
class PipelineResult:
    output_kind: OutputKind
    outcomes: List[RowOutcome]
    archive: bytes = field(default=b"", repr=False)

    @property
    def artifacts(self) -> List[OutputArtifact]:
        out: List[OutputArtifact] = []
        for o in self.outcomes:
            if isinstance(o, Produced):
                out.extend(o.artifacts)
        return out

    @property
    def skipped(self) -> List[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def label(self) -> str:
        return self.output_kind.value.upper()
