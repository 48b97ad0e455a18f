"""Column Profiler — derives ColumnInfo snapshots from tabular data.

Reads a header row plus data rows (directly, or from an .xlsx sheet via
openpyxl) and infers each column's storage type, nullability, a bounded
sample of string values and the number of distinct values.
"""

import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import openpyxl

from schemamapper.core.config import settings
from schemamapper.core.models import ColumnInfo

logger = logging.getLogger(__name__)

_BOOLEAN_STRINGS = {"true", "false", "yes", "no"}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _value_type(value: Any) -> str:
    """Storage type of a single non-blank cell value."""
    # bool is a subclass of int and datetime of date
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "INTEGER" if value.is_integer() else "DOUBLE"
    if isinstance(value, datetime):
        if (value.hour, value.minute, value.second, value.microsecond) == (0, 0, 0, 0):
            return "DATE"
        return "TIMESTAMP"
    if isinstance(value, date):
        return "DATE"
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in _BOOLEAN_STRINGS:
            return "BOOLEAN"
        # int() and float() also take "1_000", "nan" and "inf"
        if "_" in text:
            return "VARCHAR"
        try:
            int(text)
            return "INTEGER"
        except ValueError:
            pass
        try:
            if math.isfinite(float(text)):
                return "DOUBLE"
        except ValueError:
            pass
    return "VARCHAR"


def infer_storage_type(values: Iterable[Any]) -> str:
    """Narrowest storage type that fits every non-blank value.

    INTEGER widens to DOUBLE and DATE to TIMESTAMP; any other mix is VARCHAR.
    A column without values is VARCHAR.
    """
    kinds = {_value_type(v) for v in values if not _is_blank(v)}
    if not kinds:
        return "VARCHAR"
    if len(kinds) == 1:
        return kinds.pop()
    if kinds == {"INTEGER", "DOUBLE"}:
        return "DOUBLE"
    if kinds == {"DATE", "TIMESTAMP"}:
        return "TIMESTAMP"
    return "VARCHAR"


def _sample_text(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def profile_column(name: str, values: Sequence[Any], sample_size: Optional[int] = None) -> ColumnInfo:
    limit = settings.sample_size if sample_size is None else sample_size
    present = [v for v in values if not _is_blank(v)]

    samples: list[str] = []
    for value in present:
        text = _sample_text(value)
        if text not in samples:
            samples.append(text)
        if len(samples) >= limit:
            break

    return ColumnInfo(
        name=name,
        storage_type=infer_storage_type(present),
        nullable=len(present) < len(values),
        sample_values=tuple(samples),
        unique_count=len({_sample_text(v) for v in present}),
    )


def profile_rows(
    headers: Sequence[Any],
    rows: Iterable[Sequence[Any]],
    sample_size: Optional[int] = None,
) -> list[ColumnInfo]:
    """Profile every named column; unnamed header cells are skipped."""
    named = [(i, str(h).strip()) for i, h in enumerate(headers) if not _is_blank(h)]
    values: dict[int, list[Any]] = {i: [] for i, _ in named}
    for row in rows:
        for i, _ in named:
            values[i].append(row[i] if i < len(row) else None)
    return [profile_column(name, values[i], sample_size) for i, name in named]


def profile_workbook(
    file_path: Path,
    sheet_name: Optional[str] = None,
    header_row: int = 1,
    sample_size: Optional[int] = None,
) -> list[ColumnInfo]:
    """Profile the columns of one worksheet (the active sheet by default).

    Raises:
        ValueError: the sheet does not exist or has no header row.
    """
    wb = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
    try:
        if sheet_name is None:
            ws = wb.active
        elif sheet_name in wb.sheetnames:
            ws = wb[sheet_name]
        else:
            raise ValueError(f"Sheet '{sheet_name}' not found in {Path(file_path).name}")

        rows = list(ws.iter_rows(min_row=header_row, values_only=True))
        if not rows:
            raise ValueError(f"Sheet '{ws.title}' has no header row")
        # Trailing empty rows are common in edited sheets
        data = [r for r in rows[1:] if not all(_is_blank(v) for v in r)]
        columns = profile_rows(rows[0], data, sample_size)
    finally:
        wb.close()

    logger.info(f"Profiled {len(columns)} columns from {Path(file_path).name} ({len(data)} rows)")
    return columns
