"""Shared utilities: logging, retry backoff, timestamps."""

from ._backoff import ExponentialBackoff
from ._logging import LogFormatType, create_cli_logger, create_logger, create_null_logger
from ._time import format_timestamp, parse_timestamp, utc_now

__all__ = [
    "ExponentialBackoff",
    "LogFormatType",
    "create_cli_logger",
    "create_logger",
    "create_null_logger",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]
