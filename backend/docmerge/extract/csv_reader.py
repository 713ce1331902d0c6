from __future__ import annotations

import csv
import io
import logging
from typing import List

from ..core.errors import ERR_CSV_EMPTY, ERR_CSV_INVALID, DataError
from .types import RowRecord

logger = logging.getLogger(__name__)


def read_rows(data: bytes) -> List[RowRecord]:
    """
    CSV bytes -> ordered RowRecords.

    - UTF-8 (BOM tolerated), comma-delimited, first row = field names
    - every cell and header trimmed, values stay strings
    - empty / whitespace-only lines skipped; `,` is a row of blank values
    """
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DataError(ERR_CSV_INVALID, details={"reason": f"not UTF-8: {e}"}) from e

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=",")

    header: List[str] | None = None
    rows: List[RowRecord] = []
    try:
        for cells in reader:
            cells = [c.strip() for c in cells]
            # only empty lines are skipped; a row of blank cells is still a record
            if not cells or cells == [""]:
                continue

            if header is None:
                header = cells
                continue

            if len(cells) != len(header):
                raise DataError(
                    ERR_CSV_INVALID,
                    details={
                        "line": reader.line_num,
                        "expected_columns": len(header),
                        "got_columns": len(cells),
                    },
                )

            rows.append(
                RowRecord(
                    index=len(rows),
                    field_names=tuple(header),
                    values=dict(zip(header, cells)),
                )
            )
    except csv.Error as e:
        raise DataError(ERR_CSV_INVALID, details={"reason": str(e)}) from e

    if not rows:
        raise DataError(ERR_CSV_EMPTY)

    logger.debug("CSV parsed: %d rows, fields=%s", len(rows), header)
    return rows
