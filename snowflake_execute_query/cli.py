from __future__ import annotations
"""Command line entry point: run one command and print the result as JSON."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import Config
from .errors import ConfigurationError
from .executor import execute_query
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Execute a Snowflake command")
    parser.add_argument("--config", default="config.yaml", help="YAML file with command and options")
    parser.add_argument("--env-file", default=".env", help="dotenv file with SNOWFLAKE_* variables")
    parser.add_argument("--command", dest="command_text", help="SQL to execute")
    parser.add_argument("--mode", dest="command_type", choices=["non_query", "reader", "scalar"])
    parser.add_argument("--private-key-file", dest="private_key_file_path")
    parser.add_argument("--private-key-style", choices=["inline", "file"])
    parser.add_argument("--timeout", type=int)
    parser.add_argument("--no-throw", action="store_true", help="Capture errors into the result")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config(args.config, args.env_file)

    logging_config = config.logging
    if args.log_level:
        logging_config.level = args.log_level
    setup_logging(logging_config)

    query_input = config.build_input(
        command_text=args.command_text,
        command_type=args.command_type,
        private_key_file_path=args.private_key_file_path,
    )
    options = config.build_options(
        timeout=args.timeout,
        private_key_style=args.private_key_style,
        throw_exception_on_error=False if args.no_throw else None,
    )

    try:
        result = execute_query(query_input, options)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    except Exception as e:
        logger.error(f"Query failed ({type(e).__name__}): {e}")
        return 1
    print(result.to_json(indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
