"""
Formatters turning a LogEvent into text.

JsonFormatter runs the configured providers against one document writer and
returns the document. PassthroughFormatter keeps human-readable lines and only
appends a JSON document when it carries something.
"""

import io
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Set

from logjson.config import DEFAULT_CONSOLE_FORMAT
from logjson.errors import BackendWriteError, FormattingFailure
from logjson.event import LogEvent
from logjson.providers import JsonProvider
from logjson.writers import BACKENDS, DocumentWriter, create_writer

PASSTHROUGH_MARKER = 'JSON data: '


class FieldNameGuard:
    """
    Writer proxy enforcing first-writer-wins on top-level field names.

    A field whose name was already written to the document is dropped, together
    with anything written inside it when it is an array or object.
    """

    def __init__(self, writer: DocumentWriter, written: Set[str]):
        self._writer = writer
        self._written = written
        self._skipping = 0

    @property
    def depth(self) -> int:
        return self._writer.depth

    def _claim(self, name: str) -> bool:
        if self._skipping:
            return False
        if self._writer.depth != 1:
            return True
        if name in self._written:
            return False
        self._written.add(name)
        return True

    def begin_document(self) -> None:
        self._writer.begin_document()

    def end_document(self) -> None:
        if self._skipping:
            raise BackendWriteError("Cannot end document inside an unterminated field")
        self._writer.end_document()

    def flush(self) -> None:
        self._writer.flush()

    def write_field(self, name: str, value: Any) -> None:
        if self._claim(name):
            self._writer.write_field(name, value)

    def write_value(self, value: Any) -> None:
        if not self._skipping:
            self._writer.write_value(value)

    def begin_object_field(self, name: str) -> None:
        if self._claim(name):
            self._writer.begin_object_field(name)
        else:
            self._skipping += 1

    def end_object(self) -> None:
        if self._skipping:
            self._skipping -= 1
        else:
            self._writer.end_object()

    def begin_array_field(self, name: str) -> None:
        if self._claim(name):
            self._writer.begin_array_field(name)
        else:
            self._skipping += 1

    def end_array(self) -> None:
        if self._skipping:
            self._skipping -= 1
        else:
            self._writer.end_array()


class _FormatState:
    """Reusable per-thread scratch space"""
    __slots__ = ('buffer', 'written', 'busy')

    def __init__(self):
        self.buffer = io.StringIO()
        self.written: Set[str] = set()
        self.busy = False

    def clear(self) -> None:
        self.buffer.seek(0)
        self.buffer.truncate(0)
        self.written.clear()
        self.busy = False


class JsonFormatter:
    """
    Formats log events as one JSON object each.

    Providers run in the given order; disabled providers are skipped on every
    call. Each thread formats into its own reusable buffer, so one instance can
    be shared by every handler without locking.

    Example:
        formatter = JsonFormatter([TimestampJsonProvider(), MessageJsonProvider()],
                                  record_delimiter='\\n')
        line = formatter.format(event)
    """

    def __init__(
        self,
        providers: Sequence[JsonProvider],
        backend: str = 'json',
        pretty_print: bool = False,
        record_delimiter: Optional[str] = None
    ):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown JSON backend: {backend}. Must be one of {list(BACKENDS)}")
        self.providers = tuple(providers)
        self.backend = backend
        self.pretty_print = pretty_print
        self.record_delimiter = record_delimiter
        self._local = threading.local()

    def _acquire(self) -> _FormatState:
        state = getattr(self._local, 'state', None)
        if state is None:
            state = self._local.state = _FormatState()
        if state.busy:
            # re-entrant call on this thread (a provider that logs)
            state = _FormatState()
        state.busy = True
        return state

    def format(self, event: LogEvent) -> str:
        """
        Format one event.

        Raises:
            FormattingFailure: If a provider or the JSON backend fails
        """
        state = self._acquire()
        try:
            writer = FieldNameGuard(
                create_writer(self.backend, state.buffer, self.pretty_print),
                state.written
            )
            writer.begin_document()
            for provider in self.providers:
                if provider.is_enabled():
                    provider.write_to(writer, event)
            writer.end_document()
            writer.flush()
            if self.record_delimiter is not None:
                state.buffer.write(self.record_delimiter)
            return state.buffer.getvalue()
        except Exception as e:
            raise FormattingFailure("Failed to format log event", e) from e
        finally:
            state.clear()


class LineFormatter:
    """
    Human-readable %-style line formatter for LogEvents.

    Format keys follow logging.Formatter: asctime, created, msecs, name,
    levelname, levelno, message, thread, threadName, process, processName,
    plus sequence, hostname, mdc and ndc. Exceptions are appended as a
    traceback, as logging does.
    """

    default_time_format = '%Y-%m-%d %H:%M:%S'
    default_msec_format = '%s,%03d'

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        self.fmt = fmt or DEFAULT_CONSOLE_FORMAT
        self.datefmt = datefmt

    def format_time(self, event: LogEvent) -> str:
        seconds, nanos = divmod(event.timestamp_ns, 1_000_000_000)
        moment = datetime.fromtimestamp(seconds).replace(microsecond=nanos // 1000)
        if self.datefmt:
            return moment.strftime(self.datefmt)
        return self.default_msec_format % (moment.strftime(self.default_time_format), nanos // 1_000_000)

    def _values(self, event: LogEvent) -> Dict[str, Any]:
        return {
            'asctime': self.format_time(event),
            'created': event.timestamp_ns / 1_000_000_000,
            'msecs': (event.timestamp_ns // 1_000_000) % 1000,
            'name': event.logger_name,
            'levelname': event.level.name,
            'levelno': int(event.level),
            'message': event.resolved_message,
            'thread': event.thread_id,
            'threadName': event.thread_name,
            'process': event.process_id,
            'processName': event.process_name,
            'hostname': event.host_name,
            'sequence': event.sequence,
            'mdc': ', '.join(f'{k}={v}' for k, v in sorted(event.mdc.items())),
            'ndc': ' '.join(event.ndc),
        }

    def format(self, event: LogEvent) -> str:
        line = self.fmt % self._values(event)
        if event.thrown is not None:
            line = f'{line}\n{event.thrown.render()}'
        return line


class PassthroughFormatter:
    """
    Human-readable line, with a JSON suffix only when the document is not empty.

    The JSON formatter is normally built with a small provider set (arguments
    and MDC) so plain console output still surfaces structured context.
    """

    def __init__(self, line_formatter: LineFormatter, json_formatter: JsonFormatter, marker: str = PASSTHROUGH_MARKER):
        self.line_formatter = line_formatter
        self.json_formatter = json_formatter
        self.marker = marker

    def format(self, event: LogEvent) -> str:
        try:
            line = self.line_formatter.format(event)
        except Exception as e:
            raise FormattingFailure("Failed to format log line", e) from e

        document = self.json_formatter.format(event)
        if self._is_empty(document):
            return line
        return line + self.marker + document

    def _is_empty(self, document: str) -> bool:
        delimiter = self.json_formatter.record_delimiter
        if delimiter and document.endswith(delimiter):
            document = document[:-len(delimiter)]
        return ''.join(document.split()) in ('', '{}')
