from __future__ import annotations

import re
from typing import Optional

from ..contracts.artifacts import OutputKind

NO_NAME = "NoName"

# Latin letters, digits, Thai block, space and hyphen survive; everything else goes
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9ก-๙ \-]")


def safe_name(value: Optional[str]) -> str:
    cleaned = _UNSAFE_CHARS_RE.sub("", (value or "").strip())
    return cleaned or NO_NAME


def build_base_name(row_index: int, primary_value: Optional[str]) -> str:
    """`01_Alice` for row_index=0; row position stays in the name even when earlier rows were skipped."""
    return f"{row_index + 1:02d}_{safe_name(primary_value)}"


def output_filename(
    row_index: int,
    primary_value: Optional[str],
    kind: OutputKind,
    *,
    page_index: Optional[int] = None,
    page_count: int = 1,
) -> str:
    base = build_base_name(row_index, primary_value)
    if page_index is not None and page_count > 1:
        base = f"{base}_{page_index + 1}"
    return f"{base}.{OutputKind(kind).value}"
