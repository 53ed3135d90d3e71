"""
Snowflake query task.

Run one SQL command against Snowflake in non-query, reader or scalar mode
and get back a normalized result.
"""

from .definitions import (
    CommandType,
    ErrorDetail,
    PrivateKeyStyle,
    QueryFailure,
    QueryInput,
    QueryOptions,
    QueryResult,
    QuerySuccess,
    RowSet,
    ScalarData,
)
from .errors import (
    AuthenticationError,
    CancelledError,
    ConfigurationError,
    ErrorKind,
    ExecuteQueryError,
    UnsupportedModeError,
)
from .connection_string import build_connection_string, mask_connection_string, parse_connection_string
from .executor import execute_query

__all__ = [
    'CommandType',
    'ErrorDetail',
    'PrivateKeyStyle',
    'QueryFailure',
    'QueryInput',
    'QueryOptions',
    'QueryResult',
    'QuerySuccess',
    'RowSet',
    'ScalarData',
    'AuthenticationError',
    'CancelledError',
    'ConfigurationError',
    'ErrorKind',
    'ExecuteQueryError',
    'UnsupportedModeError',
    'build_connection_string',
    'mask_connection_string',
    'parse_connection_string',
    'execute_query',
]

__version__ = '1.0.0'
