"""
Per-row rendering of docx/pptx templates.

Tags are delimited by `{{` / `}}`:
- `{{ name }}`: field value; names that are not identifiers (`{{ First Name }}`) work too
- `{{#name}}...{{/name}}`: kept when the value is non-empty
- `{{^name}}...{{/name}}`: kept when the value is empty
Plain jinja2 (`{% if %}`, filters, docxtpl's `{%p %}` / `{%tr %}`) passes through.

docx goes through docxtpl, pptx through python-pptx with jinja2 per paragraph.
Both render with StrictUndefined, so a tag naming a missing field raises
RenderError and the row is skipped.
"""
from __future__ import annotations

import copy
import io
import keyword
import re
from typing import Any, Dict, Iterable, Iterator, List, Protocol

from docxtpl import DocxTemplate
from jinja2 import Environment, StrictUndefined, TemplateError, TemplateSyntaxError, UndefinedError
from pptx import Presentation
from pptx.shapes.group import GroupShape
from pptx.text.text import _Paragraph

from ..contracts.artifacts import TemplateArtifact, TemplateKind
from ..core.errors import RenderError
from ..extract.types import RowRecord

OPEN = "{{"
CLOSE = "}}"

# row values under one name, for field names jinja2 cannot parse
FIELDS_VAR = "_fields"

_TAG_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
# word characters plus the Thai block (its vowel and tone marks are not \w)
_FIELD_NAME_RE = re.compile(r"^[\w\u0E00-\u0E7F][\w\u0E00-\u0E7F \-]*$")
_JINJA_LITERALS = {"true", "false", "none", "True", "False", "None"}
_UNDEFINED_RE = re.compile(r"'([^']+)' is undefined|has no attribute '([^']+)'")


class TemplateRenderer(Protocol):
    def render(self, template: TemplateArtifact, row: RowRecord) -> bytes:
        ...


def make_environment(*, autoescape: bool) -> Environment:
    return Environment(
        # a missing field must fail the row, not print as empty
        undefined=StrictUndefined,
        autoescape=autoescape,
        keep_trailing_newline=True,
    )


def build_context(row: RowRecord) -> Dict[str, Any]:
    values = row.as_dict()
    context: Dict[str, Any] = dict(values)
    context[FIELDS_VAR] = values
    return context


def _field_expr(name: str) -> str:
    if name.isidentifier() and not keyword.iskeyword(name) and name not in _JINJA_LITERALS:
        return name
    return f'{FIELDS_VAR}["{name}"]'


def _check_plain(text: str) -> None:
    o = text.find(OPEN)
    if o != -1:
        raise RenderError("unclosed tag", details={"near": text[o:o + 40]})
    c = text.find(CLOSE)
    if c != -1:
        raise RenderError("unopened tag", details={"near": text[max(0, c - 20):c + 2]})


def _translate_tag(tag: str, inner: str, sections: List[str]) -> str:
    sigil = inner[0]
    if sigil in "#^/":
        name = inner[1:].strip()
        if not _FIELD_NAME_RE.match(name):
            raise RenderError(f"invalid section tag {tag}", details={"near": tag})
        if sigil == "/":
            if not sections or sections[-1] != name:
                raise RenderError(
                    f"section '{name}' closed without being opened", details={"field": name}
                )
            sections.pop()
            return "{% endif %}"
        sections.append(name)
        negate = "not " if sigil == "^" else ""
        return "{%% if %s%s %%}" % (negate, _field_expr(name))

    if _FIELD_NAME_RE.match(inner):
        return "{{ %s }}" % _field_expr(inner)
    # filters and expressions are left to jinja2
    return tag


def translate_tags(text: str) -> str:
    """
    Rewrite `{{...}}` tags into jinja2 source.

    Empty tags, an unclosed `{{`, a stray `}}` and unbalanced sections
    raise RenderError.
    """
    out: List[str] = []
    sections: List[str] = []
    pos = 0
    for m in _TAG_RE.finditer(text):
        _check_plain(text[pos:m.start()])
        inner = m.group(1).strip()
        if OPEN in inner:
            raise RenderError("unclosed tag", details={"near": m.group(0)[:40]})
        if not inner:
            raise RenderError("empty tag", details={"near": m.group(0)})
        out.append(text[pos:m.start()])
        out.append(_translate_tag(m.group(0), inner, sections))
        pos = m.end()

    _check_plain(text[pos:])
    if sections:
        raise RenderError(f"unclosed section '{sections[-1]}'", details={"field": sections[-1]})
    out.append(text[pos:])
    return "".join(out)


def _with_part(e: RenderError, part: str) -> RenderError:
    details = dict(e.details or {})
    details["part"] = part
    return RenderError(e.message, details=details)


def _from_jinja(e: TemplateError, part: str) -> RenderError:
    if isinstance(e, UndefinedError):
        m = _UNDEFINED_RE.search(e.message or "")
        if m:
            name = m.group(1) or m.group(2)
            return RenderError(f"unknown field '{name}'", details={"field": name, "part": part})
    if isinstance(e, TemplateSyntaxError):
        return RenderError(
            f"template syntax error: {e.message}", details={"line": e.lineno, "part": part}
        )
    return RenderError(f"template error: {e.message or e}", details={"part": part})


class _MergeDocxTemplate(DocxTemplate):
    """docxtpl template that also understands `{{#x}}` / `{{^x}}` / `{{/x}}`."""

    def patch_xml(self, src_xml: str) -> str:
        # docxtpl first glues tags split over several runs back together
        return translate_tags(super().patch_xml(src_xml))


def _render_docx(content: bytes, context: Dict[str, Any]) -> bytes:
    out = io.BytesIO()
    try:
        doc = _MergeDocxTemplate(io.BytesIO(content))
        doc.render(context, jinja_env=make_environment(autoescape=True), autoescape=True)
        doc.save(out)
    except RenderError as e:
        raise _with_part(e, "docx") from e
    except TemplateError as e:
        raise _from_jinja(e, "docx") from e
    except Exception as e:  # noqa: BLE001
        raise RenderError(f"cannot render docx template: {e}") from e
    return out.getvalue()


def _shape_paragraphs(shapes: Iterable[Any]) -> Iterator[_Paragraph]:
    for shape in shapes:
        if isinstance(shape, GroupShape):
            yield from _shape_paragraphs(shape.shapes)
        elif shape.has_text_frame:
            yield from shape.text_frame.paragraphs
        elif shape.has_table:
            for table_row in shape.table.rows:
                for cell in table_row.cells:
                    yield from cell.text_frame.paragraphs


def _render_paragraph(
    env: Environment, paragraph: _Paragraph, context: Dict[str, Any], part: str
) -> None:
    # `\v` stands for an existing <a:br/>; the setter below turns `\v` and `\n` back into one
    text = paragraph.text
    if OPEN not in text and CLOSE not in text and "{%" not in text:
        return

    try:
        rendered = env.from_string(translate_tags(text)).render(context)
    except RenderError as e:
        raise _with_part(e, part) from e
    except TemplateError as e:
        raise _from_jinja(e, part) from e

    runs = paragraph.runs
    run_props = runs[0]._r.rPr if runs else None
    if run_props is not None:
        run_props = copy.deepcopy(run_props)

    paragraph.text = rendered
    if run_props is not None:
        for run in paragraph.runs:
            run._r.insert(0, copy.deepcopy(run_props))


def _render_pptx(content: bytes, context: Dict[str, Any]) -> bytes:
    try:
        prs = Presentation(io.BytesIO(content))
    except Exception as e:  # noqa: BLE001
        raise RenderError(f"template is not a valid pptx file: {e}") from e

    env = make_environment(autoescape=False)
    for number, slide in enumerate(prs.slides, start=1):
        for paragraph in _shape_paragraphs(slide.shapes):
            _render_paragraph(env, paragraph, context, f"slide{number}")
        notes = slide.notes_slide.notes_text_frame if slide.has_notes_slide else None
        if notes is not None:
            for paragraph in notes.paragraphs:
                _render_paragraph(env, paragraph, context, f"notes{number}")

    out = io.BytesIO()
    prs.save(out)
    return out.getvalue()


class OfficeTemplateRenderer:
    """
    Renders one row into a fresh docx/pptx.

    The template bytes are only read: every call loads its own copy.
    Runs of a pptx paragraph that holds tags are merged into one run
    carrying the first run's formatting.
    """

    def render(self, template: TemplateArtifact, row: RowRecord) -> bytes:
        context = build_context(row)
        if TemplateKind(template.kind) == TemplateKind.PPTX:
            return _render_pptx(template.content, context)
        return _render_docx(template.content, context)
