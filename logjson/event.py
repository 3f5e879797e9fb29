"""
Log event snapshot handed to the JSON formatter.

A LogEvent is built once per log call (usually by EventFactory from a
logging.LogRecord) and is never modified afterwards; providers only read it.
"""

import functools
import itertools
import logging
import os
import socket
import sys
import time
import traceback
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple

import psutil

from logjson import context

# shared by every factory so numbers are unique within the process
_SEQUENCE = itertools.count(1)
_SEQUENCE_ATTR = '_logjson_sequence'


class Level(IntEnum):
    """Ordered log levels, numbered like the logging module"""
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_levelno(cls, levelno: int) -> 'Level':
        """Map a logging level number to the closest level at or below it"""
        result = cls.TRACE
        for level in cls:
            if level <= levelno:
                result = level
        return result

    @classmethod
    def parse(cls, name: str) -> 'Level':
        aliases = {'WARN': 'WARNING', 'FATAL': 'CRITICAL'}
        key = name.strip().upper()
        key = aliases.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown log level: {name}") from None


@dataclass(frozen=True)
class StackFrame:
    filename: str
    lineno: Optional[int]
    name: str
    line: Optional[str] = None


@dataclass(frozen=True)
class ThrownInfo:
    """Structured exception attached to a log event"""
    type_name: str
    message: str
    frames: Tuple[StackFrame, ...] = ()
    cause: Optional['ThrownInfo'] = None
    explicit_cause: bool = True

    @classmethod
    def from_exception(cls, exc: BaseException, _seen: Optional[set] = None) -> 'ThrownInfo':
        seen = _seen if _seen is not None else set()
        seen.add(id(exc))

        frames = tuple(
            StackFrame(f.filename, f.lineno, f.name, f.line)
            for f in traceback.extract_tb(exc.__traceback__)
        )

        cause = None
        explicit = True
        if exc.__cause__ is not None:
            linked = exc.__cause__
        elif exc.__context__ is not None and not exc.__suppress_context__:
            linked = exc.__context__
            explicit = False
        else:
            linked = None
        if linked is not None and id(linked) not in seen:
            cause = cls.from_exception(linked, seen)

        return cls(
            type_name=_exception_type_name(type(exc)),
            message=str(exc),
            frames=frames,
            cause=cause,
            explicit_cause=explicit,
        )

    def render(self) -> str:
        """Render as a Python traceback, oldest exception in the chain first"""
        parts = []
        if self.cause is not None:
            parts.append(self.cause.render())
            if self.explicit_cause:
                parts.append('\n\nThe above exception was the direct cause of the following exception:\n\n')
            else:
                parts.append('\n\nDuring handling of the above exception, another exception occurred:\n\n')
        if self.frames:
            parts.append('Traceback (most recent call last):\n')
            for frame in self.frames:
                parts.append(f'  File "{frame.filename}", line {frame.lineno}, in {frame.name}\n')
                if frame.line:
                    parts.append(f'    {frame.line.strip()}\n')
        parts.append(f'{self.type_name}: {self.message}' if self.message else self.type_name)
        return ''.join(parts)


def _exception_type_name(exc_type: type) -> str:
    module = exc_type.__module__
    if module in ('builtins', '__main__'):
        return exc_type.__qualname__
    return f'{module}.{exc_type.__qualname__}'


@dataclass(frozen=True)
class KeyValueArgument:
    """
    A log argument that is also written as its own JSON field.

    Example:
        logger.info("Order %s placed", kv('order_id', 42))
        # message: "Order order_id=42 placed", document gets "order_id": 42
    """
    key: str
    value: Any

    def __str__(self) -> str:
        return f'{self.key}={self.value}'


def kv(key: str, value: Any) -> KeyValueArgument:
    return KeyValueArgument(key, value)


@dataclass(frozen=True)
class LogEvent:
    """Read-only snapshot of one log occurrence"""
    timestamp_ns: int = field(default_factory=time.time_ns)
    sequence: int = 0
    level: Level = Level.INFO
    logger_name: str = ''
    logger_class_name: str = ''
    message: str = ''
    resolved_message: Optional[str] = None
    arguments: Tuple[Any, ...] = ()
    thread_name: str = ''
    thread_id: int = 0
    mdc: Mapping[str, str] = field(default_factory=dict)
    ndc: Tuple[str, ...] = ()
    host_name: str = ''
    process_name: str = ''
    process_id: int = 0
    thrown: Optional[ThrownInfo] = None
    additional_fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, 'arguments', tuple(self.arguments))
        object.__setattr__(self, 'ndc', tuple(self.ndc))
        object.__setattr__(self, 'mdc', MappingProxyType(dict(self.mdc)))
        object.__setattr__(self, 'additional_fields', MappingProxyType(dict(self.additional_fields)))
        if self.resolved_message is None:
            resolved = self.message % self.arguments if self.arguments else self.message
            object.__setattr__(self, 'resolved_message', resolved)


@dataclass(frozen=True)
class ProcessIdentity:
    """Host and process facts looked up once per process"""
    host_name: str
    process_name: str
    process_id: int

    @classmethod
    def resolve(cls) -> 'ProcessIdentity':
        pid = os.getpid()
        try:
            process_name = psutil.Process(pid).name()
        except psutil.Error:
            process_name = os.path.basename(sys.executable)
        return cls(host_name=socket.gethostname(), process_name=process_name, process_id=pid)

    @classmethod
    def current(cls) -> 'ProcessIdentity':
        """The identity of the running process, resolved once per pid"""
        return _identity_for(os.getpid())


@functools.lru_cache(maxsize=None)
def _identity_for(pid: int) -> ProcessIdentity:
    return ProcessIdentity.resolve()


class EventFactory:
    """Builds LogEvent snapshots from logging.LogRecord instances"""

    def __init__(
        self,
        identity: Optional[ProcessIdentity] = None,
        additional_fields: Optional[Mapping[str, Any]] = None
    ):
        self.identity = identity or ProcessIdentity.current()
        self.additional_fields = MappingProxyType(dict(additional_fields or {}))

    def create(self, record: logging.LogRecord) -> LogEvent:
        mdc = context.mdc_snapshot()
        # logger.info(..., extra={'context': {...}})
        extra_context = getattr(record, 'context', None)
        if isinstance(extra_context, Mapping):
            for key, value in extra_context.items():
                mdc[str(key)] = str(value)

        thrown = None
        if record.exc_info and record.exc_info[1] is not None:
            thrown = ThrownInfo.from_exception(record.exc_info[1])

        return LogEvent(
            timestamp_ns=int(record.created * 1_000_000_000),
            sequence=record_sequence(record),
            level=Level.from_levelno(record.levelno),
            logger_name=record.name,
            logger_class_name=_logger_class_name(record.name),
            message=str(record.msg),
            resolved_message=record.getMessage(),
            arguments=_record_arguments(record.args),
            thread_name=record.threadName or '',
            thread_id=record.thread or 0,
            mdc=mdc,
            ndc=context.ndc_snapshot(),
            host_name=self.identity.host_name,
            process_name=self.identity.process_name,
            process_id=self.identity.process_id,
            thrown=thrown,
            additional_fields=self.additional_fields,
        )


def _record_arguments(args: Any) -> Tuple[Any, ...]:
    if not args:
        return ()
    if isinstance(args, Mapping):
        return (dict(args),)
    if isinstance(args, Sequence) and not isinstance(args, str):
        return tuple(args)
    return (args,)


def _logger_class_name(name: str) -> str:
    logger = logging.Logger.manager.loggerDict.get(name)
    logger_class = type(logger) if isinstance(logger, logging.Logger) else logging.getLoggerClass()
    return f'{logger_class.__module__}.{logger_class.__qualname__}'


def record_sequence(record: logging.LogRecord) -> int:
    """
    Sequence number of a record, assigned on first use.

    The number is stored on the record, so every handler formatting the same
    record sees the same value.
    """
    sequence = getattr(record, _SEQUENCE_ATTR, None)
    if sequence is None:
        sequence = next(_SEQUENCE)
        setattr(record, _SEQUENCE_ATTR, sequence)
    return sequence
