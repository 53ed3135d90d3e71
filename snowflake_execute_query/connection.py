from __future__ import annotations
"""Snowflake connection wrapper driven by a connection string."""

import logging
from typing import Any, Dict, Optional

import snowflake.connector
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from .connection_string import mask_connection_string, parse_connection_string
from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

# Connection string keys that differ from snowflake.connector.connect() arguments
PARAMETER_ALIASES = {
    "db": "database",
    "private_key_pwd": "private_key_file_pwd",
    "connection_timeout": "login_timeout",
    "insecuremode": "insecure_mode",
    "passcodeinpassword": "passcode_in_password",
    "scheme": "protocol",
}

INTEGER_PARAMETERS = {"port", "login_timeout", "network_timeout", "socket_timeout"}
BOOLEAN_PARAMETERS = {"insecure_mode", "passcode_in_password", "client_session_keep_alive", "autocommit"}


def connection_params(connection_string: str) -> Dict[str, Any]:
    """Translate a connection string into snowflake.connector.connect() keyword arguments."""
    params: Dict[str, Any] = {}
    for key, value in parse_connection_string(connection_string).items():
        name = PARAMETER_ALIASES.get(key, key)
        if name in INTEGER_PARAMETERS:
            try:
                params[name] = int(value)
            except ValueError:
                raise ConfigurationError(f"Connection string is invalid: {key} must be an integer.")
        elif name in BOOLEAN_PARAMETERS:
            params[name] = value.strip().lower() in ("true", "1", "yes")
        else:
            params[name] = value

    if "private_key" in params:
        params["private_key"] = load_private_key_der(params["private_key"], params.pop("private_key_file_pwd", None))
    return params


def load_private_key_der(pem: str, passphrase: Optional[str] = None) -> bytes:
    """Convert inline PEM key text into the PKCS#8 DER bytes the driver accepts."""
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        key = serialization.load_pem_private_key(
            pem.encode("utf-8"),
            password=password,
            backend=default_backend(),
        )
    except (ValueError, TypeError) as e:
        raise AuthenticationError(f"Could not load private key from connection string: {e}") from e
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class SnowflakeConnection:
    """Wrapper around snowflake.connector for easy mocking."""

    def __init__(self, connection_string: str):
        self.connection_string = connection_string
        self._conn = None

    def connect(self) -> None:
        params = connection_params(self.connection_string)
        logger.info(f"Connecting to Snowflake: {mask_connection_string(self.connection_string)}")
        self._conn = snowflake.connector.connect(**params)

    def cursor(self) -> Any:
        if self._conn is None:
            self.connect()
        return self._conn.cursor()

    def close(self) -> None:
        if self._conn:
            try:
                self._conn.close()
            finally:
                self._conn = None
            logger.debug("Snowflake connection closed")

    def __enter__(self) -> "SnowflakeConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
