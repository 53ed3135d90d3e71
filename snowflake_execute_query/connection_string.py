"""
Connection string handling for the Snowflake query task.

Connection strings use the `key=value;` grammar of the Snowflake drivers,
for example::

    account=acme-123;user=ETL_USER;db=SHOP;schema=PUBLIC;warehouse=COMPUTE_WH;

build_connection_string() adds key-pair material from a private key file,
either inline (private_key=<PEM>) or as a file reference
(private_key_file=<path>;private_key_pwd=<passphrase>).
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from .definitions import PrivateKeyStyle
from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

KEY_MATERIAL_MARKERS = ("private_key=", "private_key_file=")
SECRET_KEYS = {"password", "private_key", "private_key_pwd", "token", "passcode"}

_TRAILING_PADDING = re.compile(r"(=+)$")


def build_connection_string(
    connection_string: Optional[str],
    private_key_file_path: Optional[str] = None,
    passphrase: Optional[str] = None,
    style: PrivateKeyStyle = PrivateKeyStyle.INLINE,
) -> str:
    """
    Produce the connection string handed to the driver.

    Args:
        connection_string: Base connection string.
        private_key_file_path: Optional PEM private key for key-pair authentication.
        passphrase: Passphrase of an encrypted key.
        style: INLINE decrypts the key here and embeds it; FILE forwards the
            path and passphrase to the driver.

    Raises:
        ConfigurationError: Blank connection string, or key material given twice.
        FileNotFoundError: The key file does not exist.
        AuthenticationError: The key is encrypted and the passphrase is missing or wrong.
    """
    if connection_string is None or not connection_string.strip():
        raise ConfigurationError("Invalid connection string.")

    if not private_key_file_path or not private_key_file_path.strip():
        return connection_string

    lowered = connection_string.lower()
    if any(marker in lowered for marker in KEY_MATERIAL_MARKERS):
        raise ConfigurationError(
            "ConnectionString already contains a private key. "
            "Use either ConnectionString OR PrivateKeyFilePath, not both."
        )

    key_path = Path(private_key_file_path)
    if not key_path.is_file():
        raise FileNotFoundError(f"Private key file not found: {private_key_file_path}")

    result = connection_string.rstrip()
    if not result.endswith(";"):
        result += ";"

    if style == PrivateKeyStyle.FILE:
        logger.debug(f"Using private key file reference: {key_path}")
        key_file = private_key_file_path.replace("\\", "/")
        result += f"private_key_file={_format_value(key_file)};"
        if passphrase:
            result += f"private_key_pwd={_format_value(passphrase)};"
        return result

    logger.debug(f"Embedding private key from: {key_path}")
    pem = read_private_key(key_path, passphrase)
    return result + f"private_key={pem};"


def read_private_key(path: Path, passphrase: Optional[str] = None) -> str:
    """Read a PEM key, decrypting it when needed, and return it escaped for a connection string."""
    text = path.read_text(encoding="utf-8")
    if "ENCRYPTED" in text:
        text = decrypt_private_key(text, passphrase)
    else:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return double_padding(text)


def decrypt_private_key(pem: str, passphrase: Optional[str]) -> str:
    """Decrypt an encrypted PEM key and re-encode it as unencrypted PKCS#8."""
    if not passphrase:
        raise AuthenticationError("Private key is encrypted but no passphrase was provided.")
    try:
        key = serialization.load_pem_private_key(
            pem.encode("utf-8"),
            password=passphrase.encode("utf-8"),
            backend=default_backend(),
        )
    except (ValueError, TypeError) as e:
        raise AuthenticationError(f"Could not decrypt private key: {e}") from e

    # cryptography wraps PEM bodies at 64 characters
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def double_padding(pem: str) -> str:
    """
    Double the trailing '=' run on every line ('=' -> '==', '==' -> '====').

    Workaround for Snowflake drivers that read '=' inside a connection string
    value as a separator and expect it escaped as '=='. It carries no
    cryptographic meaning; parse_connection_string() reverses it.
    """
    lines = pem.split("\n")
    return "\n".join(_TRAILING_PADDING.sub(lambda m: m.group(1) * 2, line) for line in lines)


def undouble_padding(pem: str) -> str:
    return pem.replace("==", "=")


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """
    Split a connection string into lower-cased keys and their values.

    Values may be wrapped in single or double quotes, which lets them contain
    ';'. Inside private_key values '==' stands for '='.
    """
    params: Dict[str, str] = {}
    for segment in _split_segments(connection_string):
        if not segment.strip():
            continue
        if "=" not in segment:
            raise ConfigurationError(
                f"Connection string is invalid: segment '{_preview(segment)}' is not a key=value pair."
            )
        key, value = segment.split("=", 1)
        key = key.strip().lower()
        if not key:
            raise ConfigurationError("Connection string is invalid: empty key.")
        value = _unquote(value.strip())
        if key == "private_key":
            value = undouble_padding(value)
        params[key] = value
    return params


def format_connection_string(params: Dict[str, str]) -> str:
    return "".join(f"{key}={_format_value(str(value))};" for key, value in params.items())


def mask_connection_string(connection_string: Optional[str]) -> str:
    """Return the connection string with secret values replaced, safe for logs."""
    if not connection_string:
        return ""
    try:
        params = parse_connection_string(connection_string)
    except ConfigurationError:
        return "<unparseable connection string>"
    masked = {k: ("****" if k in SECRET_KEYS else v) for k, v in params.items()}
    return format_connection_string(masked)


def _split_segments(text: str):
    segment = []
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == quote:
                # Doubled quote inside a quoted value
                if i + 1 < len(text) and text[i + 1] == quote:
                    segment.append(ch)
                    segment.append(ch)
                    i += 2
                    continue
                quote = None
            segment.append(ch)
        elif ch in ("'", '"') and "".join(segment).rstrip().endswith("="):
            quote = ch
            segment.append(ch)
        elif ch == ";":
            yield "".join(segment)
            segment = []
        else:
            segment.append(ch)
        i += 1
    if quote:
        raise ConfigurationError("Connection string is invalid: unterminated quoted value.")
    if segment:
        yield "".join(segment)


def _format_value(text: str) -> str:
    if ";" in text or text[:1] in ("'", '"'):
        return '"' + text.replace('"', '""') + '"'
    return text


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    return value


def _preview(segment: str) -> str:
    segment = segment.strip()
    return segment if len(segment) <= 20 else segment[:20] + "..."
