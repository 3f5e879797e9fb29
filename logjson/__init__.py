"""
logjson: pluggable JSON log formatting

Formats log events as JSON documents assembled from independent field
providers, with two interchangeable JSON backends and a pass-through mode for
human-readable console output.
"""

from logjson.config import LogJsonConfig, config_from_dict, load_config
from logjson.context import mdc, ndc
from logjson.errors import ConfigError, FormattingFailure
from logjson.event import Level, LogEvent, kv
from logjson.formatter import JsonFormatter, LineFormatter, PassthroughFormatter
from logjson.logger import JsonLogFormatter, get_logger, setup_logging, validate_log_line
from logjson.providers import JsonProvider
from logjson.recorder import initialize_json_logging

__all__ = [
    'ConfigError',
    'FormattingFailure',
    'JsonFormatter',
    'JsonLogFormatter',
    'JsonProvider',
    'Level',
    'LineFormatter',
    'LogEvent',
    'LogJsonConfig',
    'PassthroughFormatter',
    'config_from_dict',
    'get_logger',
    'initialize_json_logging',
    'kv',
    'load_config',
    'mdc',
    'ndc',
    'setup_logging',
    'validate_log_line',
]
__version__ = '1.0.0'
