"""Turn raw spreadsheet rows into canonical directory records."""

import math
import re
from typing import Any, Iterable, List, Optional, Union

from loguru import logger

from .models import DirectoryRecord, RawRow

_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")

RowLike = Union[RawRow, DirectoryRecord, tuple, list]


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Spreadsheets hand back numeric cells as floats.
        value = int(value)
    return str(value).strip()


def parse_table(value: Any) -> int:
    """
    Read a table number the way a lenient spreadsheet consumer would.

    Integers pass through, finite floats are truncated and strings are read
    up to the first non-digit ("7a" -> 7). Everything else yields 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0
    return 0


def _as_raw_row(row: RowLike) -> RawRow:
    if isinstance(row, RawRow):
        return row
    if isinstance(row, DirectoryRecord):
        return RawRow(row.first_name, row.last_name, row.table, row.photo)
    if isinstance(row, (tuple, list)):
        return RawRow.from_cells(row)
    return RawRow()


def normalize_row(row: RowLike) -> Optional[DirectoryRecord]:
    """Normalize one row, or return None if it does not describe a seated guest."""
    raw = _as_raw_row(row)

    first_name = _clean_text(raw.first_name)
    table = parse_table(raw.table)
    if not first_name or table <= 0:
        return None

    photo = _clean_text(raw.photo) or None
    return DirectoryRecord(
        first_name=first_name,
        last_name=_clean_text(raw.last_name),
        table=table,
        photo=photo,
    )


def normalize(rows: Iterable[RowLike]) -> List[DirectoryRecord]:
    """
    Convert raw rows into directory records.

    Rows without a first name or without a positive table number are
    dropped silently. Surviving rows keep their relative order.
    """
    records = []
    dropped = 0

    for row in rows:
        record = normalize_row(row)
        if record is None:
            dropped += 1
            continue
        records.append(record)

    if dropped:
        logger.debug(f"Dropped {dropped} row(s) without a name or table")

    return records
