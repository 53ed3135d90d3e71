"""
Snowflake query task.

execute_query() opens one connection, runs the command once in the requested
mode and returns a QuerySuccess, or a QueryFailure when errors are captured
rather than raised.
"""

import logging
import threading
from typing import Any, Optional

from .connection import SnowflakeConnection
from .connection_string import build_connection_string
from .definitions import (
    CommandType,
    QueryFailure,
    QueryInput,
    QueryOptions,
    QueryResult,
    QuerySuccess,
    ScalarData,
)
from .errors import ConfigurationError, UnsupportedModeError
from .materializer import column_names, convert_value, materialize

logger = logging.getLogger(__name__)

# Column names Snowflake uses for the result set of INSERT/UPDATE/DELETE/MERGE
DML_RESULT_PREFIX = "number of "


def execute_query(
    input: QueryInput,
    options: Optional[QueryOptions] = None,
    cancel_event: Optional[threading.Event] = None,
) -> QueryResult:
    """
    Execute a Snowflake command.

    Args:
        input: Connection and command parameters.
        options: Error policy, timeout and private key style.
        cancel_event: Set it from another thread to stop reading rows.

    Returns:
        QuerySuccess with records_affected and data, or QueryFailure when
        options.throw_exception_on_error is false and the command failed.

    Raises:
        ConfigurationError: Always, when the connection string is blank.
        Exception: Any execution error when options.throw_exception_on_error is true.
    """
    options = options or QueryOptions()

    if input.connection_string is None or not input.connection_string.strip():
        raise ConfigurationError("Invalid connection string.")

    try:
        _check_command_type(input.command_type)
        connection_string = build_connection_string(
            input.connection_string,
            input.private_key_file_path,
            input.get_passphrase(),
            options.private_key_style,
        )
        with SnowflakeConnection(connection_string) as conn:
            return _execute(conn, input, options, cancel_event)
    except Exception as e:
        if options.throw_exception_on_error:
            raise
        logger.warning(f"Query failed ({type(e).__name__}): {e}")
        return QueryFailure.from_exception(e)


def _execute(
    conn: SnowflakeConnection,
    input: QueryInput,
    options: QueryOptions,
    cancel_event: Optional[threading.Event],
) -> QuerySuccess:
    command_type = input.command_type
    cursor = conn.cursor()
    try:
        logger.debug(f"Executing {command_type.value} command with timeout {options.timeout}s")
        cursor.execute(input.command_text, timeout=options.timeout or None)

        if command_type == CommandType.NON_QUERY:
            return QuerySuccess(records_affected=_rowcount(cursor))

        if command_type == CommandType.READER:
            records_affected = _rowcount(cursor) if _is_dml_result(cursor) else -1
            rows = materialize(cursor, cancel_event)
            logger.info(f"Reader returned {len(rows)} rows")
            return QuerySuccess(records_affected=records_affected, data=rows)

        row = cursor.fetchone()
        value = convert_value(row[0]) if row else None
        return QuerySuccess(records_affected=1, data=ScalarData(value=value))
    finally:
        cursor.close()


def _rowcount(cursor: Any) -> int:
    count = getattr(cursor, "rowcount", None)
    return -1 if count is None else count


def _is_dml_result(cursor: Any) -> bool:
    names = column_names(cursor)
    return bool(names) and all(str(name).lower().startswith(DML_RESULT_PREFIX) for name in names)


def _check_command_type(command_type: Any) -> None:
    if command_type not in (CommandType.NON_QUERY, CommandType.READER, CommandType.SCALAR):
        raise UnsupportedModeError(f"Invalid Command type: {command_type}")
