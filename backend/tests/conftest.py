from __future__ import annotations

import hashlib
import io
import sys
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest
from docx import Document
from pptx import Presentation
from pptx.util import Inches


def pytest_sessionstart(session):
    """
    Make sure backend/ (home of the docmerge package) is on sys.path,
    even if pytest is started from the repository root.
    """
    backend_dir = Path(__file__).resolve().parents[1]  # .../backend
    p = str(backend_dir)
    if p not in sys.path:
        sys.path.insert(0, p)


Paragraphs = Sequence[Sequence[str]]


def build_docx(paragraphs: Paragraphs, *, header: Optional[Paragraphs] = None) -> bytes:
    """Each paragraph is a list of run texts, so split tags can be modelled."""
    doc = Document()
    for runs in paragraphs:
        p = doc.add_paragraph()
        for text in runs:
            p.add_run(text).bold = True

    if header is not None:
        section_header = doc.sections[0].header
        section_header.is_linked_to_previous = False
        for i, runs in enumerate(header):
            p = section_header.paragraphs[0] if i == 0 else section_header.add_paragraph()
            for text in runs:
                p.add_run(text)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def build_pptx(slides: Sequence[Paragraphs], *, notes: Optional[Sequence[str]] = None) -> bytes:
    prs = Presentation()
    blank = prs.slide_layouts[6]
    for i, paragraphs in enumerate(slides):
        slide = prs.slides.add_slide(blank)
        frame = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(6), Inches(3)).text_frame
        for j, runs in enumerate(paragraphs):
            p = frame.paragraphs[0] if j == 0 else frame.add_paragraph()
            for text in runs:
                run = p.add_run()
                run.text = text
                run.font.bold = True
        if notes is not None:
            slide.notes_slide.notes_text_frame.text = notes[i]

    buf = io.BytesIO()
    prs.save(buf)
    return buf.getvalue()


def read_part(container: bytes, name: str) -> str:
    with zipfile.ZipFile(io.BytesIO(container)) as zf:
        return zf.read(name).decode("utf-8")


def docx_paragraphs(container: bytes) -> List[str]:
    return [p.text for p in Document(io.BytesIO(container)).paragraphs]


def pptx_paragraphs(container: bytes) -> List[List[str]]:
    """Paragraph texts of every text shape, one list per slide."""
    out: List[List[str]] = []
    for slide in Presentation(io.BytesIO(container)).slides:
        texts: List[str] = []
        for shape in slide.shapes:
            if shape.has_text_frame:
                texts.extend(p.text for p in shape.text_frame.paragraphs)
        out.append(texts)
    return out


def content_digest(data: bytes) -> str:
    """sha256 over zip member names and bytes; zip timestamps are ignored."""
    h = hashlib.sha256()
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            for name in sorted(zf.namelist()):
                h.update(name.encode("utf-8"))
                h.update(zf.read(name))
    except zipfile.BadZipFile:
        h.update(data)
    return h.hexdigest()


class FakeConverter:
    """Stands in for LibreOffice: the same document always gives the same fake PDF."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: List[tuple[bytes, str]] = []
        self.error = error

    async def convert(self, data: bytes, source_kind: str) -> bytes:
        self.calls.append((data, source_kind))
        if self.error is not None:
            raise self.error
        return b"%PDF-fake " + content_digest(data).encode("ascii")


class FakeRasterizer:
    def __init__(self, pages: int = 1, error: Optional[Exception] = None) -> None:
        self.pages = pages
        self.error = error
        self.calls: List[tuple[bytes, str]] = []

    def rasterize(self, pdf_bytes: bytes, kind: str) -> List[bytes]:
        self.calls.append((pdf_bytes, kind))
        if self.error is not None:
            raise self.error
        return [f"{kind}-page-{i + 1}:".encode("ascii") + pdf_bytes[-8:] for i in range(self.pages)]


@pytest.fixture
def docx_template() -> Callable[..., bytes]:
    return build_docx


@pytest.fixture
def pptx_template() -> Callable[..., bytes]:
    return build_pptx


@pytest.fixture
def part_text() -> Callable[[bytes, str], str]:
    return read_part


@pytest.fixture
def docx_text() -> Callable[[bytes], List[str]]:
    return docx_paragraphs


@pytest.fixture
def pptx_text() -> Callable[[bytes], List[List[str]]]:
    return pptx_paragraphs


@pytest.fixture
def converter_factory() -> type[FakeConverter]:
    return FakeConverter


@pytest.fixture
def rasterizer_factory() -> type[FakeRasterizer]:
    return FakeRasterizer


@pytest.fixture
def greeting_docx() -> bytes:
    return build_docx([["Dear {{name}},"], ["Your city: {{ city }}"]])


@pytest.fixture
def people_csv() -> bytes:
    return b"name,city\nAlice,Paris\nBob,Berlin\nCarol,Rome\n"


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir(parents=True, exist_ok=True)
    return out
