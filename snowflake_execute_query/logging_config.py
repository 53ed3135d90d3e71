"""
Logging configuration for the Snowflake query task.

Console logging by default, with optional rotating file output and a JSON
formatter for log shippers.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoggingConfig(BaseModel):
    """Logging configuration model."""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="INFO", description="Root logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    date_format: str = Field(default="%Y-%m-%d %H:%M:%S")

    # File logging
    enable_file_logging: bool = Field(default=False)
    log_file_path: str = Field(default="logs/snowflake_execute_query.log")
    max_file_size_mb: int = Field(default=10, ge=1, le=1000)
    backup_count: int = Field(default=5, ge=1, le=50)

    # Structured logging
    enable_json_logging: bool = Field(default=False)

    # Component-specific logging levels
    component_levels: Dict[str, str] = Field(default_factory=dict)

    suppress_noisy_loggers: bool = Field(default=True)
    noisy_loggers: List[str] = Field(
        default_factory=lambda: [
            'snowflake.connector',
            'urllib3.connectionpool',
            'botocore',
            'boto3'
        ]
    )


class StructuredFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        config: Optional logging configuration, defaults to LoggingConfig().

    Returns:
        Root logger instance
    """
    config = config or LoggingConfig()

    root_logger = logging.getLogger()
    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    formatter = _build_formatter(config)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.enable_file_logging:
        log_path = Path(config.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for logger_name, level in config.component_levels.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))

    if config.suppress_noisy_loggers:
        for logger_name in config.noisy_loggers:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root_logger


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.enable_json_logging:
        return StructuredFormatter()
    return logging.Formatter(fmt=config.format, datefmt=config.date_format)
