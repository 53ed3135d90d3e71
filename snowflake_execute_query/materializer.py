"""
Result materialization for reader execution.

Turns a DB-API cursor into a RowSet of {column name: value} mappings. Values
are converted so the payload stays JSON friendly without losing precision:

- None stays None
- bytes become base64 text
- NaN and infinite floats become None
- finite floats, Decimal, int and bool are kept as they are
- datetimes keep their offset (no UTC normalization), dates and times are kept
- str is kept
- lists, tuples and dicts are converted element by element
- anything else becomes str(value)
"""

import base64
import logging
import math
import threading
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from .definitions import RowSet
from .errors import CancelledError

logger = logging.getLogger(__name__)


def convert_value(value: Any) -> Any:
    """Convert one driver value for the result payload."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (Decimal, int, datetime, date, time, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [convert_value(item) for item in value]
    if isinstance(value, dict):
        return {str(k): convert_value(v) for k, v in value.items()}
    return str(value)


def column_names(cursor: Any) -> List[str]:
    """Column names in cursor order, duplicates renamed ID, ID1, ID2..."""
    names: List[str] = []
    seen = set()
    for column in cursor.description or []:
        name = column[0]
        if name in seen:
            suffix = 1
            while f"{name}{suffix}" in seen:
                suffix += 1
            name = f"{name}{suffix}"
        seen.add(name)
        names.append(name)
    return names


def iter_rows(cursor: Any, cancel_event: Optional[threading.Event] = None) -> Iterator[Dict[str, Any]]:
    """
    Yield one converted row mapping per cursor row.

    Column names are read once before the first row. The cancel event is
    checked before every row advance.
    """
    columns = column_names(cursor)
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError("Query execution was cancelled while reading rows.")
        row = cursor.fetchone()
        if row is None:
            return
        yield {name: convert_value(value) for name, value in zip(columns, row)}


def materialize(cursor: Any, cancel_event: Optional[threading.Event] = None) -> RowSet:
    """Read every remaining row of the cursor into a RowSet."""
    columns = column_names(cursor)
    rows = list(iter_rows(cursor, cancel_event))
    logger.debug(f"Materialized {len(rows)} rows with {len(columns)} columns")
    return RowSet(columns=columns, rows=rows)
