"""
Field providers.

A provider writes the fields for one facet of a LogEvent into the object the
formatter has open. Providers are built once from their configuration and
shared by every thread, so they hold no per-call state.

Custom providers subclass JsonProvider:

    class TenantJsonProvider(JsonProvider):
        def write_to(self, writer, event):
            tenant = event.mdc.get('tenant')
            if tenant:
                writer.write_field('tenant', tenant)
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo

from logjson.config import (
    AdditionalField,
    ArgumentsField,
    FieldConfig,
    LevelField,
    MdcField,
    TimestampField,
)
from logjson.event import KeyValueArgument, LogEvent
from logjson.writers import DocumentWriter


class JsonProvider(ABC):
    """Contributes zero or more fields to a document"""

    def is_enabled(self) -> bool:
        return True

    @abstractmethod
    def write_to(self, writer: DocumentWriter, event: LogEvent) -> None:
        """Write this provider's fields for the event"""
        pass

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class FieldJsonProvider(JsonProvider):
    """Base for built-ins writing under one configurable field name"""

    default_field_name = ''
    config_type = FieldConfig

    def __init__(self, config: Optional[FieldConfig] = None):
        self.config = config if config is not None else self.config_type()
        self.field_name = self.config.field_name or self.default_field_name

    def is_enabled(self) -> bool:
        return self.config.enabled

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.field_name!r})'


def write_any_field(writer: DocumentWriter, name: str, value: Any) -> None:
    """Write a field of arbitrary type: mappings become objects, lists arrays, the rest scalars or str()"""
    if isinstance(value, Mapping):
        writer.begin_object_field(name)
        for key, item in value.items():
            write_any_field(writer, str(key), item)
        writer.end_object()
    elif isinstance(value, (list, tuple)):
        writer.begin_array_field(name)
        for item in value:
            writer.write_value(item if _is_scalar(item) else str(item))
        writer.end_array()
    else:
        writer.write_field(name, value if _is_scalar(value) else str(value))


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


class TimestampJsonProvider(FieldJsonProvider):
    default_field_name = 'timestamp'
    config_type = TimestampField

    def __init__(self, config: Optional[TimestampField] = None):
        super().__init__(config)
        zone_id = self.config.zone_id
        self.zone = timezone.utc if zone_id == 'default' else ZoneInfo(zone_id)

    def write_to(self, writer, event):
        date_format = self.config.date_format
        if date_format == 'epoch_millis':
            writer.write_field(self.field_name, event.timestamp_ns // 1_000_000)
            return

        seconds, nanos = divmod(event.timestamp_ns, 1_000_000_000)
        moment = datetime.fromtimestamp(seconds, self.zone).replace(microsecond=nanos // 1000)
        if date_format == 'default':
            text = moment.isoformat(timespec='microseconds')
            if text.endswith('+00:00'):
                text = text[:-6] + 'Z'
        else:
            text = moment.strftime(date_format)
        writer.write_field(self.field_name, text)


class SequenceJsonProvider(FieldJsonProvider):
    default_field_name = 'sequence'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.sequence)


class LoggerClassNameJsonProvider(FieldJsonProvider):
    default_field_name = 'loggerClassName'

    def write_to(self, writer, event):
        if event.logger_class_name:
            writer.write_field(self.field_name, event.logger_class_name)


class LoggerNameJsonProvider(FieldJsonProvider):
    default_field_name = 'loggerName'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.logger_name)


class LogLevelJsonProvider(FieldJsonProvider):
    default_field_name = 'level'
    config_type = LevelField

    def write_to(self, writer, event):
        name = event.level.name
        if self.config.case == 'lower':
            name = name.lower()
        elif self.config.case == 'upper':
            name = name.upper()
        writer.write_field(self.field_name, name)


class MessageJsonProvider(FieldJsonProvider):
    default_field_name = 'message'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.resolved_message)


class ThreadNameJsonProvider(FieldJsonProvider):
    default_field_name = 'threadName'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.thread_name)


class ThreadIdJsonProvider(FieldJsonProvider):
    default_field_name = 'threadId'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.thread_id)


class MDCJsonProvider(FieldJsonProvider):
    """MDC entries sorted by key, nested under one field or flattened into the document"""

    default_field_name = 'mdc'
    config_type = MdcField

    def write_to(self, writer, event):
        if not event.mdc:
            return
        entries = sorted(event.mdc.items())
        if self.config.flat_fields:
            for key, value in entries:
                writer.write_field(key, value)
            return
        writer.begin_object_field(self.field_name)
        for key, value in entries:
            writer.write_field(key, value)
        writer.end_object()


class NDCJsonProvider(FieldJsonProvider):
    default_field_name = 'ndc'

    def write_to(self, writer, event):
        if not event.ndc:
            return
        writer.begin_array_field(self.field_name)
        for entry in event.ndc:
            writer.write_value(entry)
        writer.end_array()


class HostNameJsonProvider(FieldJsonProvider):
    default_field_name = 'hostName'

    def write_to(self, writer, event):
        if event.host_name:
            writer.write_field(self.field_name, event.host_name)


class ProcessNameJsonProvider(FieldJsonProvider):
    default_field_name = 'processName'

    def write_to(self, writer, event):
        if event.process_name:
            writer.write_field(self.field_name, event.process_name)


class ProcessIdJsonProvider(FieldJsonProvider):
    default_field_name = 'processId'

    def write_to(self, writer, event):
        writer.write_field(self.field_name, event.process_id)


class StackTraceJsonProvider(FieldJsonProvider):
    default_field_name = 'stackTrace'

    def write_to(self, writer, event):
        if event.thrown is not None:
            writer.write_field(self.field_name, event.thrown.render())


class ErrorTypeJsonProvider(FieldJsonProvider):
    default_field_name = 'errorType'

    def write_to(self, writer, event):
        if event.thrown is not None:
            writer.write_field(self.field_name, event.thrown.type_name)


class ErrorMessageJsonProvider(FieldJsonProvider):
    default_field_name = 'errorMessage'

    def write_to(self, writer, event):
        if event.thrown is not None and event.thrown.message:
            writer.write_field(self.field_name, event.thrown.message)


class ArgumentsJsonProvider(FieldJsonProvider):
    """
    Log call arguments.

    kv() arguments are written as top-level fields of their own; every other
    argument is stringified into one array.
    """

    default_field_name = 'arguments'
    config_type = ArgumentsField

    def write_to(self, writer, event):
        plain = []
        for argument in event.arguments:
            if isinstance(argument, KeyValueArgument):
                if self.config.include_structured_arguments:
                    write_any_field(writer, argument.key, argument.value)
            elif self.config.include_non_structured_arguments:
                plain.append(str(argument))

        if plain or self.config.always_write:
            writer.begin_array_field(self.field_name)
            for value in plain:
                writer.write_value(value)
            writer.end_array()


class AdditionalFieldsJsonProvider(JsonProvider):
    """Static fields from configuration, followed by any attached to the event"""

    def __init__(self, additional_fields: Optional[Mapping[str, AdditionalField]] = None, enabled: bool = True):
        self.fields: Dict[str, Any] = {
            name: field.converted() for name, field in (additional_fields or {}).items()
        }
        self.enabled = enabled

    def is_enabled(self) -> bool:
        return self.enabled

    def write_to(self, writer, event):
        for name, value in self.fields.items():
            writer.write_field(name, value)
        for name, value in event.additional_fields.items():
            write_any_field(writer, name, value)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({sorted(self.fields)!r})'
