"""
Integration with the standard logging module.
"""

import json
import logging
import os
from typing import Iterable, Optional, Sequence

from logjson.config import LogJsonConfig
from logjson.errors import FormattingFailure
from logjson.event import EventFactory, Level, ProcessIdentity
from logjson.providers import JsonProvider
from logjson.recorder import initialize_json_logging

DEFAULT_REQUIRED_FIELDS = ('timestamp', 'level', 'loggerName', 'message')


class JsonLogFormatter(logging.Formatter):
    """
    logging.Formatter producing JSON documents (or pass-through lines).

    Output format with the default configuration:
    {"timestamp":"2026-02-08T20:30:00.123456Z","sequence":1,"loggerClassName":"logging.Logger",
     "loggerName":"my_app","level":"INFO","message":"User logged in","threadName":"MainThread",...}

    A FormattingFailure propagates to the handler, which reports it through
    Handler.handleError.
    """

    def __init__(
        self,
        config: Optional[LogJsonConfig] = None,
        extra_providers: Iterable[JsonProvider] = (),
        discover: bool = True,
        identity: Optional[ProcessIdentity] = None
    ):
        super().__init__()
        self.config = config if config is not None else LogJsonConfig()
        self.event_factory = EventFactory(identity)
        self.formatter = initialize_json_logging(self.config, extra_providers, discover)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        try:
            event = self.event_factory.create(record)
        except Exception as e:
            raise FormattingFailure("Failed to snapshot log record", e) from e
        return self.formatter.format(event)


def _has_logjson_handler(logger: logging.Logger, handler_type: type, log_file: Optional[str] = None) -> bool:
    for handler in logger.handlers:
        if not isinstance(handler.formatter, JsonLogFormatter):
            continue
        if handler_type is logging.FileHandler:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_file:
                return True
        elif isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            return True
    return False


def get_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    config: Optional[LogJsonConfig] = None
) -> logging.Logger:
    """
    Get a logger writing JSON to the console (and optionally a file).

    Args:
        name: Logger name (typically __name__)
        level: Logging level (default: INFO)
        log_file: Optional file path for file handler
        config: Formatter configuration (default: LogJsonConfig())

    Returns:
        Configured logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("User action", extra={'context': {'user_id': 123}})
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    formatter = None

    # Check if we already have handlers to avoid duplicates
    if not _has_logjson_handler(logger, logging.StreamHandler):
        formatter = JsonLogFormatter(config)
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file and not _has_logjson_handler(logger, logging.FileHandler, os.path.abspath(log_file)):
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter or JsonLogFormatter(config))
        logger.addHandler(file_handler)

    return logger


def setup_logging(
    config: Optional[LogJsonConfig] = None,
    level: int = logging.INFO,
    stream=None
) -> logging.Handler:
    """
    Install a JSON handler on the root logger.

    Handlers previously installed by this function are replaced.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonLogFormatter):
            root.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonLogFormatter(config))
    root.addHandler(handler)
    root.setLevel(level)
    return handler


def validate_log_line(log_line: str, required_fields: Sequence[str] = DEFAULT_REQUIRED_FIELDS) -> bool:
    """
    Validate that a log line is a JSON object with the required fields.

    Args:
        log_line: Log line to validate
        required_fields: Field names that must be present

    Returns:
        True if valid JSON with required fields, False otherwise
    """
    try:
        data = json.loads(log_line)
    except (json.JSONDecodeError, TypeError):
        return False

    if not isinstance(data, dict):
        return False

    if not all(field in data for field in required_fields):
        return False

    # Validate level when present
    if 'level' in data:
        try:
            Level.parse(str(data['level']))
        except ValueError:
            return False

    return True
