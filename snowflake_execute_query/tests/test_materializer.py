import base64
import math
import threading
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from snowflake_execute_query.errors import CancelledError
from snowflake_execute_query.materializer import convert_value, iter_rows, materialize

from conftest import FakeCursor


class Thing:
    def __str__(self):
        return "thing"


def test_convert_bytes_to_base64():
    raw = bytes(range(256))
    encoded = convert_value(raw)
    assert isinstance(encoded, str)
    assert base64.b64decode(encoded) == raw
    assert convert_value(bytearray(b"abc")) == "YWJj"


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_convert_non_finite_float_to_none(value):
    assert convert_value(value) is None


def test_convert_keeps_scalars():
    amount = Decimal("12345678901234567890.123456789")
    assert convert_value(amount) is amount
    assert convert_value(1.5) == 1.5
    assert convert_value(42) == 42
    assert convert_value(True) is True
    assert convert_value("Jane") == "Jane"
    assert convert_value(None) is None


def test_convert_keeps_datetime_offset():
    value = datetime(2024, 3, 1, 12, 30, tzinfo=timezone(timedelta(hours=2)))
    converted = convert_value(value)
    assert converted.utcoffset() == timedelta(hours=2)
    assert converted.hour == 12
    assert convert_value(date(2024, 3, 1)) == date(2024, 3, 1)
    assert convert_value(time(8, 15)) == time(8, 15)


def test_convert_nested_and_unknown_values():
    assert convert_value([1, b"\x00", math.nan]) == [1, "AA==", None]
    assert convert_value({"a": (1, 2)}) == {"a": [1, 2]}
    assert convert_value(Thing()) == "thing"


def test_materialize_rows_in_column_order():
    cursor = FakeCursor(
        columns=["NAME", "AGE", "PHOTO"],
        rows=[("Jane", 94, b"\x01\x02"), ("Eve", 53, None)],
    )
    rows = materialize(cursor)

    assert rows.columns == ["NAME", "AGE", "PHOTO"]
    assert rows.to_payload() == [
        {"NAME": "Jane", "AGE": 94, "PHOTO": "AQI="},
        {"NAME": "Eve", "AGE": 53, "PHOTO": None},
    ]
    assert list(rows[0].keys()) == ["NAME", "AGE", "PHOTO"]


def test_materialize_keeps_duplicate_columns():
    cursor = FakeCursor(columns=["ID", "NAME", "ID", "ID"], rows=[(1, "Jane", 2, 3)])

    rows = materialize(cursor)

    assert rows.columns == ["ID", "NAME", "ID1", "ID2"]
    assert rows.to_payload() == [{"ID": 1, "NAME": "Jane", "ID1": 2, "ID2": 3}]
    assert rows.to_dataframe().shape == (1, 4)


def test_materialize_empty_result():
    rows = materialize(FakeCursor(columns=["NAME"], rows=[]))
    assert len(rows) == 0
    assert rows.columns == ["NAME"]


def test_iter_rows_is_lazy():
    cursor = FakeCursor(columns=["N"], rows=[(1,), (2,), (3,)])
    rows = iter_rows(cursor)
    assert next(rows) == {"N": 1}
    assert cursor._rows == [(2,), (3,)]


def test_cancel_before_first_row():
    event = threading.Event()
    event.set()
    with pytest.raises(CancelledError):
        materialize(FakeCursor(columns=["N"], rows=[(1,)]), event)


def test_cancel_between_rows():
    event = threading.Event()
    rows = iter_rows(FakeCursor(columns=["N"], rows=[(1,), (2,)]), event)
    assert next(rows) == {"N": 1}
    event.set()
    with pytest.raises(CancelledError):
        next(rows)


def test_to_dataframe_keeps_columns():
    rows = materialize(FakeCursor(columns=["B", "A"], rows=[(1, "x"), (2, "y")]))
    df = rows.to_dataframe()
    assert list(df.columns) == ["B", "A"]
    assert df["B"].tolist() == [1, 2]
