"""Binary spreadsheet reading.

Loads the first worksheet of an ``.xlsx`` or legacy ``.xls`` upload fully into
memory. The first row is the header; every following non-blank row is data.
Cells are kept as raw Python objects so coercion can decide what they mean.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from core.exceptions import ImportAbortedError
from schemas.importing import ImportErrorKind

logger = logging.getLogger(__name__)

# Sheet row of the first data row (row 1 holds the headers)
FIRST_DATA_ROW = 2


@dataclass
class SheetData:
    """Header names and data rows of one worksheet.

    ``rows`` holds ``(sheet_row_number, {header: raw_value})`` pairs.
    """

    headers: list[str]
    rows: list[tuple[int, dict[str, Any]]] = field(default_factory=list)


def _structural(message: str) -> ImportAbortedError:
    return ImportAbortedError(ImportErrorKind.STRUCTURAL, message)


def read_first_sheet(content: bytes) -> SheetData:
    """Parse *content* and return the first worksheet.

    Raises:
        ImportAbortedError: STRUCTURAL when the file cannot be read, has no
            sheets or has no data rows.
    """
    try:
        with pd.ExcelFile(io.BytesIO(content)) as workbook:
            if not workbook.sheet_names:
                raise _structural("Excel file is empty or has no sheets")
            df = workbook.parse(workbook.sheet_names[0], header=0, dtype=object)
    except ImportAbortedError:
        raise
    except Exception as exc:
        logger.warning("Could not read uploaded workbook: %s", exc)
        raise _structural(f"Failed to parse Excel file: {exc}") from exc

    headers = [str(c) for c in df.columns]
    df.columns = headers
    # Empty cells read as empty strings, like an untouched form field
    df = df.astype(object).where(pd.notna(df), "")

    rows: list[tuple[int, dict[str, Any]]] = []
    for position, record in enumerate(df.to_dict(orient="records")):
        if all(_is_blank(v) for v in record.values()):
            continue
        rows.append((position + FIRST_DATA_ROW, record))

    if not rows:
        raise _structural("Excel file has no data rows")

    logger.info("Read %d data rows, %d columns from workbook", len(rows), len(headers))
    return SheetData(headers=headers, rows=rows)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
