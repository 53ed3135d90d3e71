import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

PASSPHRASE = "MyStrongPassphrase"
CONNECTION_STRING = "account=testaccount-123;user=ETL_USER;role=SYSADMIN;db=SHOP;schema=PUBLIC;warehouse=COMPUTE_WH;"


class FakeCursor:
    """DB-API cursor double returning canned rows."""

    def __init__(self, columns=None, rows=None, rowcount=None, error=None):
        self.description = [(name, None, None, None, None, None, None) for name in columns] if columns else None
        self._rows = list(rows or [])
        self.rowcount = rowcount
        self.error = error
        self.executed = []
        self.closed = False

    def execute(self, sql, timeout=None):
        self.executed.append((sql, timeout))
        if self.error:
            raise self.error
        return self

    def fetchone(self):
        if not self._rows:
            return None
        return self._rows.pop(0)

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, snowflake, connection_string):
        self.snowflake = snowflake
        self.connection_string = connection_string
        self.closed = False

    def __enter__(self):
        if self.snowflake.connect_error:
            raise self.snowflake.connect_error
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def cursor(self):
        return self.snowflake.cursor


class FakeSnowflake:
    def __init__(self):
        self.cursor = FakeCursor()
        self.connections = []
        self.connect_error = None

    def __call__(self, connection_string):
        conn = FakeConnection(self, connection_string)
        self.connections.append(conn)
        return conn


@pytest.fixture
def fake_snowflake(monkeypatch):
    fake = FakeSnowflake()
    monkeypatch.setattr('snowflake_execute_query.executor.SnowflakeConnection', fake)
    return fake


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def plain_pem(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def unencrypted_key_file(tmp_path, plain_pem):
    path = tmp_path / "rsa_key.p8"
    path.write_bytes(plain_pem.replace("\n", "\r\n").encode("ascii"))
    return path


@pytest.fixture
def encrypted_key_file(tmp_path, rsa_key):
    path = tmp_path / "rsa_key_encrypted.p8"
    path.write_bytes(rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(PASSPHRASE.encode("utf-8")),
    ))
    return path


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores the original state, including
    # variables that load_dotenv() adds during the test
    for name in ("SNOWFLAKE_CONNECTION_STRING", "SNOWFLAKE_PRIVATE_KEY_FILE", "SNOWFLAKE_PRIVATE_KEY_PASSPHRASE"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return os.environ
