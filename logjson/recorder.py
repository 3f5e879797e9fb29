"""
Assembly of formatters from configuration.

Builds the ordered provider list (built-ins, then providers registered under
the ``logjson.providers`` entry point group, then any passed in by the caller),
picks the JSON backend and decides between plain JSON and pass-through output.
"""

import logging
from importlib.metadata import entry_points
from typing import Iterable, List, Union

from logjson.config import LogJsonConfig
from logjson.errors import ConfigError
from logjson.formatter import JsonFormatter, LineFormatter, PassthroughFormatter
from logjson.providers import (
    AdditionalFieldsJsonProvider,
    ArgumentsJsonProvider,
    ErrorMessageJsonProvider,
    ErrorTypeJsonProvider,
    HostNameJsonProvider,
    JsonProvider,
    LogLevelJsonProvider,
    LoggerClassNameJsonProvider,
    LoggerNameJsonProvider,
    MDCJsonProvider,
    MessageJsonProvider,
    NDCJsonProvider,
    ProcessIdJsonProvider,
    ProcessNameJsonProvider,
    SequenceJsonProvider,
    StackTraceJsonProvider,
    ThreadIdJsonProvider,
    ThreadNameJsonProvider,
    TimestampJsonProvider,
)

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = 'logjson.providers'


def builtin_providers(config: LogJsonConfig) -> List[JsonProvider]:
    """Built-in providers in their fixed output order"""
    fields = config.fields
    return [
        TimestampJsonProvider(fields.timestamp),
        SequenceJsonProvider(fields.sequence),
        LoggerClassNameJsonProvider(fields.logger_class_name),
        LoggerNameJsonProvider(fields.logger_name),
        LogLevelJsonProvider(fields.level),
        MessageJsonProvider(fields.message),
        ThreadNameJsonProvider(fields.thread_name),
        ThreadIdJsonProvider(fields.thread_id),
        MDCJsonProvider(fields.mdc),
        NDCJsonProvider(fields.ndc),
        HostNameJsonProvider(fields.host_name),
        ProcessNameJsonProvider(fields.process_name),
        ProcessIdJsonProvider(fields.process_id),
        StackTraceJsonProvider(fields.stack_trace),
        ErrorTypeJsonProvider(fields.error_type),
        ErrorMessageJsonProvider(fields.error_message),
        ArgumentsJsonProvider(fields.arguments),
        AdditionalFieldsJsonProvider(config.additional_field),
    ]


def _check_provider(provider, source: str) -> JsonProvider:
    if not (callable(getattr(provider, 'write_to', None)) and callable(getattr(provider, 'is_enabled', None))):
        raise ConfigError(f"{source} did not produce a json provider: {provider!r}")
    return provider


def discover_providers(group: str = ENTRY_POINT_GROUP) -> List[JsonProvider]:
    """
    Instantiate providers registered as entry points.

    Each entry point must name a provider class or a zero-argument factory.
    """
    providers = []
    for entry_point in entry_points(group=group):
        try:
            factory = entry_point.load()
            provider = factory()
        except Exception as e:
            raise ConfigError(f"Cannot load json provider '{entry_point.name}': {e}") from e
        providers.append(_check_provider(provider, f"Entry point '{entry_point.name}'"))
    return providers


def build_providers(
    config: LogJsonConfig,
    extra_providers: Iterable[JsonProvider] = (),
    discover: bool = True
) -> List[JsonProvider]:
    providers = builtin_providers(config)
    if discover:
        providers.extend(discover_providers())
    for provider in extra_providers:
        providers.append(_check_provider(provider, "Extra provider"))

    if logger.isEnabledFor(logging.DEBUG):
        installed = ', '.join(repr(p) for p in providers if p.is_enabled())
        logger.debug("Installed json providers [%s]", installed)
    return providers


def initialize_json_logging(
    config: LogJsonConfig,
    extra_providers: Iterable[JsonProvider] = (),
    discover: bool = True
) -> Union[JsonFormatter, PassthroughFormatter]:
    """
    Build the formatter described by the configuration.

    With ``enable`` off, returns a pass-through formatter whose JSON part only
    carries arguments and MDC.
    """
    logger.debug("Using %s as the json implementation", config.backend)

    if not config.enable:
        passthrough_providers = [
            ArgumentsJsonProvider(config.fields.arguments),
            MDCJsonProvider(config.fields.mdc),
        ]
        json_formatter = JsonFormatter(
            passthrough_providers,
            backend=config.backend,
            pretty_print=config.pretty_print,
            record_delimiter=config.record_delimiter
        )
        logger.debug("Wrapped json-logger in a pass-through implementation")
        return PassthroughFormatter(
            LineFormatter(config.console_format, config.console_date_format),
            json_formatter
        )

    return JsonFormatter(
        build_providers(config, extra_providers, discover),
        backend=config.backend,
        pretty_print=config.pretty_print,
        record_delimiter=config.record_delimiter
    )
