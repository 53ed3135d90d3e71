import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

from .definitions import QueryInput, QueryOptions
from .logging_config import LoggingConfig


class Config:
    """Load task configuration from YAML file and .env environment.

    Secrets (connection string, key passphrase) come from the environment;
    the YAML file holds the command and options. A connection string in the
    YAML file is used only when the environment has none.
    """

    def __init__(self, config_path: str = "config.yaml", env_path: str = ".env"):
        env_file = Path(env_path)
        if env_file.exists():
            load_dotenv(env_file)
        self._config_path = Path(config_path)
        self.config_data: Dict = {}
        if self._config_path.exists():
            with self._config_path.open() as f:
                self.config_data = yaml.safe_load(f) or {}
        self._load_env()

    def _load_env(self) -> None:
        self.connection_string = os.getenv("SNOWFLAKE_CONNECTION_STRING") or self.config_data.get("connection_string")
        self.private_key_file_path = os.getenv("SNOWFLAKE_PRIVATE_KEY_FILE") or self.config_data.get("private_key_file_path")
        self.private_key_passphrase = os.getenv("SNOWFLAKE_PRIVATE_KEY_PASSPHRASE")

    @property
    def command_text(self) -> Optional[str]:
        return self.config_data.get("command_text")

    @property
    def command_type(self) -> str:
        return self.config_data.get("command_type", "non_query")

    @property
    def throw_exception_on_error(self) -> bool:
        return bool(self.config_data.get("throw_exception_on_error", True))

    @property
    def timeout(self) -> int:
        return int(self.config_data.get("timeout", 30))

    @property
    def private_key_style(self) -> str:
        return self.config_data.get("private_key_style", "inline")

    @property
    def logging(self) -> LoggingConfig:
        return LoggingConfig(**(self.config_data.get("logging") or {}))

    def build_input(self, **overrides: Any) -> QueryInput:
        values = {
            "connection_string": self.connection_string,
            "command_text": self.command_text,
            "command_type": self.command_type,
            "private_key_file_path": self.private_key_file_path,
            "private_key_passphrase": self.private_key_passphrase,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return QueryInput(**values)

    def build_options(self, **overrides: Any) -> QueryOptions:
        values = {
            "throw_exception_on_error": self.throw_exception_on_error,
            "timeout": self.timeout,
            "private_key_style": self.private_key_style,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return QueryOptions(**values)
