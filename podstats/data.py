from __future__ import annotations

import io
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from podstats.config import DELIMITED_SUFFIXES, WORKBOOK_TABLES
from podstats.errors import MissingTable, SourceUnreadable


logger = logging.getLogger(__name__)

Row = Dict[str, object]

# Excel day 25569 is 1970-01-01 (1900 date system, including the phantom 1900-02-29).
EXCEL_UNIX_EPOCH_OFFSET_DAYS = 25569
MS_PER_DAY = 86400 * 1000
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def clean_cell(value: object) -> object:
    """Trim strings, unwrap numpy scalars and map blanks/NaN to None."""
    if value is None:
        return None
    if isinstance(value, str):
        s = value.strip()
        return s or None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, (datetime, date)):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def rows_from_frame(df: pd.DataFrame) -> List[Row]:
    """Cleaned row dicts; rows with no value left after cleaning are dropped."""
    if df.empty:
        return []
    columns = [str(c).strip() for c in df.columns]
    rows = (
        {col: clean_cell(val) for col, val in zip(columns, values)}
        for values in df.itertuples(index=False, name=None)
    )
    return [row for row in rows if any(v is not None for v in row.values())]


def excel_serial_to_datetime(serial: object) -> Optional[datetime]:
    if serial is None:
        return None
    if isinstance(serial, datetime):
        return serial if serial.tzinfo else serial.replace(tzinfo=timezone.utc)
    if isinstance(serial, date):
        return datetime(serial.year, serial.month, serial.day, tzinfo=timezone.utc)
    try:
        days = float(serial)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not days or not np.isfinite(days):
        return None
    try:
        ms = round_half_up((days - EXCEL_UNIX_EPOCH_OFFSET_DAYS) * MS_PER_DAY)
        return UNIX_EPOCH + timedelta(milliseconds=ms)
    except (OverflowError, InvalidOperation):
        logger.info("date serial %r is out of range; treating as undated", serial)
        return None


def _decode(payload: Union[str, bytes]) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SourceUnreadable(f"delimited payload is not UTF-8: {exc}") from exc


# ---------------- Readers ----------------
def read_delimited(payload: Union[str, bytes], *, sep: Optional[str] = None) -> List[Row]:
    text = _decode(payload)
    if not text.strip():
        return []
    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=sep or ",",
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
        raise SourceUnreadable(f"delimited payload could not be parsed: {exc}") from exc
    return rows_from_frame(df)


def _sheet_rows(book: Dict[str, pd.DataFrame], name: str) -> List[Row]:
    if name not in book:
        raise MissingTable(name)
    return rows_from_frame(book[name])


def read_workbook(payload: bytes, tables: Iterable[str] = WORKBOOK_TABLES) -> Dict[str, List[Row]]:
    try:
        book = pd.read_excel(io.BytesIO(payload), sheet_name=None, engine="openpyxl")
    except Exception as exc:
        raise SourceUnreadable(f"workbook payload could not be read: {exc}") from exc
    book = {str(name).strip(): df for name, df in book.items()}

    out: Dict[str, List[Row]] = {}
    for name in tables:
        try:
            out[name] = _sheet_rows(book, name)
        except MissingTable as exc:
            logger.info("%s; treating as empty", exc)
            out[name] = []
    return out


# ---------------- Loaders ----------------
def file_signature(path: Path) -> Tuple[str, float]:
    return str(path), path.stat().st_mtime


def read_source(path: Path) -> Union[List[Row], Dict[str, List[Row]]]:
    payload = path.read_bytes()
    if path.suffix.lower() in DELIMITED_SUFFIXES:
        return read_delimited(payload, sep="\t" if path.suffix.lower() == ".tsv" else None)
    return read_workbook(payload)

