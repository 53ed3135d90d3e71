"""
Input, option and result models for the Snowflake query task.

A result is one of two variants: QuerySuccess carries the records-affected
count and a data payload, QueryFailure carries the captured error. The data
payload is itself one of None (non-query), ScalarData or RowSet.
"""

import simplejson
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .errors import ErrorKind, ExecuteQueryError, classify_error


class CommandType(str, Enum):
    """How the command text is executed."""
    NON_QUERY = "non_query"
    READER = "reader"
    SCALAR = "scalar"

    @classmethod
    def parse(cls, value: Any) -> Any:
        """Accept enum values and the ExecuteNonQuery/ExecuteReader/ExecuteScalar spellings."""
        if not isinstance(value, str):
            return value
        key = value.strip().lower().replace("_", "").replace("-", "")
        if key.startswith("execute"):
            key = key[len("execute"):]
        return _COMMAND_ALIASES.get(key, value)


_COMMAND_ALIASES = {
    "nonquery": CommandType.NON_QUERY,
    "reader": CommandType.READER,
    "scalar": CommandType.SCALAR,
}


class PrivateKeyStyle(str, Enum):
    """How a private key file is handed to the driver."""
    # Key decrypted locally, PEM text embedded as private_key=...
    INLINE = "inline"
    # Path and passphrase forwarded as private_key_file / private_key_pwd
    FILE = "file"


class QueryInput(BaseModel):
    """Connection and command parameters."""
    model_config = ConfigDict(validate_assignment=True, extra='forbid')

    connection_string: Optional[str] = Field(
        default=None,
        description="key=value; pairs, e.g. account=acme-123;user=ETL;db=SHOP;schema=PUBLIC;warehouse=WH"
    )
    command_text: Optional[str] = Field(default=None, description="SQL to run")
    command_type: CommandType = Field(default=CommandType.NON_QUERY)
    private_key_file_path: Optional[str] = Field(default=None, description="PEM (.p8) file for key-pair auth")
    private_key_passphrase: Optional[SecretStr] = Field(default=None, description="Passphrase of an encrypted key")

    @field_validator('command_type', mode='before')
    @classmethod
    def parse_command_type(cls, v):
        return CommandType.parse(v)

    def get_passphrase(self) -> Optional[str]:
        if self.private_key_passphrase is None:
            return None
        return self.private_key_passphrase.get_secret_value()


class QueryOptions(BaseModel):
    """Options controlling task behaviour."""
    model_config = ConfigDict(validate_assignment=True, extra='forbid')

    throw_exception_on_error: bool = Field(default=True)
    timeout: int = Field(default=30, ge=0, description="Command timeout in seconds, 0 for none")
    private_key_style: PrivateKeyStyle = Field(default=PrivateKeyStyle.INLINE)


class ScalarData(BaseModel):
    """Single value returned by scalar execution, serialized as {"Value": ...}."""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    value: Any = Field(default=None, alias="Value")

    def to_payload(self) -> Dict[str, Any]:
        return {"Value": self.value}


class RowSet(BaseModel):
    """Rows returned by reader execution."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def __getitem__(self, index: int) -> Dict[str, Any]:
        return self.rows[index]

    def to_payload(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Tabular view of the rows, keeping the cursor's column order."""
        return pd.DataFrame.from_records(self.rows, columns=self.columns)


QueryData = Union[ScalarData, RowSet]


class ErrorDetail(BaseModel):
    """Failure captured instead of raised."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ErrorKind
    message: str
    error_code: Optional[str] = None
    errno: Optional[int] = None
    sqlstate: Optional[str] = None
    exception_type: Optional[str] = None
    exception: Optional[BaseException] = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorDetail":
        kind = classify_error(error)
        error_code = error.error_code if isinstance(error, ExecuteQueryError) else None
        errno = getattr(error, "errno", None)
        if not isinstance(errno, int) or errno < 0:
            errno = None
        return cls(
            kind=kind,
            message=str(error),
            error_code=error_code,
            errno=errno,
            sqlstate=getattr(error, "sqlstate", None),
            exception_type=type(error).__name__,
            exception=error,
        )


class QuerySuccess(BaseModel):
    """Command ran to completion."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: Literal[True] = True
    records_affected: int
    data: Optional[QueryData] = None

    @property
    def error(self) -> None:
        return None

    @property
    def error_message(self) -> None:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "records_affected": self.records_affected,
            "error_message": None,
            "data": self.data.to_payload() if self.data is not None else None,
        }

    def to_json(self, **kwargs) -> str:
        return simplejson.dumps(self.to_dict(), default=_json_default, use_decimal=True, **kwargs)


class QueryFailure(BaseModel):
    """Command failed and the error was captured."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: Literal[False] = False
    records_affected: int = 0
    error: ErrorDetail

    @property
    def data(self) -> None:
        return None

    @property
    def error_message(self) -> str:
        return self.error.message

    @classmethod
    def from_exception(cls, error: BaseException) -> "QueryFailure":
        return cls(error=ErrorDetail.from_exception(error))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "records_affected": self.records_affected,
            "error_message": self.error.message,
            "error": self.error.model_dump(mode="json"),
            "data": None,
        }

    def to_json(self, **kwargs) -> str:
        return simplejson.dumps(self.to_dict(), default=_json_default, use_decimal=True, **kwargs)


QueryResult = Union[QuerySuccess, QueryFailure]


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
