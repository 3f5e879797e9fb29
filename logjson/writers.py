"""
Streaming JSON document writers.

DocumentWriter tracks document structure and whitespace and renders numbers,
booleans and null itself; the two backends differ in how strings are encoded
(stdlib json vs orjson) and in their pretty-print indent. For the same call
sequence both produce identical compact output.
"""

import json
import math
from abc import ABC, abstractmethod
from typing import Any, List, TextIO

import orjson

from logjson.errors import BackendWriteError

BACKENDS = ('json', 'orjson')


class RawValue(str):
    """Pre-encoded JSON written verbatim"""


class _Frame:
    __slots__ = ('kind', 'count')

    def __init__(self, kind: str):
        self.kind = kind
        self.count = 0


class DocumentWriter(ABC):
    """Writes one JSON object document into a text sink"""

    indent = 2

    def __init__(self, out: TextIO, pretty_print: bool = False):
        self.out = out
        self.pretty_print = pretty_print
        self._stack: List[_Frame] = []
        self._started = False

    @abstractmethod
    def _encode(self, value: str) -> str:
        """Encode one string as a JSON string literal"""
        pass

    def begin_document(self) -> None:
        if self._started:
            raise BackendWriteError("Document already started")
        self._started = True
        self.out.write('{')
        self._stack.append(_Frame('object'))

    def end_document(self) -> None:
        if len(self._stack) != 1:
            raise BackendWriteError(f"Cannot end document with {len(self._stack) - 1} open container(s)")
        self._close('object', '}')

    def flush(self) -> None:
        self.out.flush()

    @property
    def depth(self) -> int:
        return len(self._stack)

    def write_field(self, name: str, value: Any) -> None:
        encoded = self._scalar(value)
        self._name(name)
        self.out.write(encoded)

    def begin_object_field(self, name: str) -> None:
        self._name(name)
        self.out.write('{')
        self._stack.append(_Frame('object'))

    def end_object(self) -> None:
        if len(self._stack) < 2:
            raise BackendWriteError("No nested object to end")
        self._close('object', '}')

    def begin_array_field(self, name: str) -> None:
        self._name(name)
        self.out.write('[')
        self._stack.append(_Frame('array'))

    def end_array(self) -> None:
        self._close('array', ']')

    def write_value(self, value: Any) -> None:
        """Write one element of the currently open array"""
        frame = self._top('array')
        encoded = self._scalar(value)
        self._separator(frame)
        self.out.write(encoded)

    def _top(self, kind: str) -> _Frame:
        if not self._stack:
            raise BackendWriteError("No open document")
        frame = self._stack[-1]
        if frame.kind != kind:
            raise BackendWriteError(f"Expected an open {kind}, found {frame.kind}")
        return frame

    def _separator(self, frame: _Frame) -> None:
        if frame.count:
            self.out.write(',')
        if self.pretty_print:
            self.out.write('\n' + ' ' * (self.indent * len(self._stack)))
        frame.count += 1

    def _name(self, name: str) -> None:
        frame = self._top('object')
        if not isinstance(name, str):
            raise BackendWriteError(f"Field name must be a string, got {type(name).__name__}")
        encoded = self._encode(name)
        self._separator(frame)
        self.out.write(encoded)
        self.out.write(': ' if self.pretty_print else ':')

    def _close(self, kind: str, token: str) -> None:
        frame = self._top(kind)
        self._stack.pop()
        if self.pretty_print and frame.count:
            self.out.write('\n' + ' ' * (self.indent * len(self._stack)))
        self.out.write(token)

    def _scalar(self, value: Any) -> str:
        # numbers are rendered here so both backends agree on their text
        if isinstance(value, RawValue):
            return str(value)
        if value is None:
            return 'null'
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, int):
            return int.__repr__(value)
        if isinstance(value, float):
            return float.__repr__(value) if math.isfinite(value) else 'null'
        if not isinstance(value, str):
            raise BackendWriteError(f"Unsupported value type: {type(value).__name__}")
        return self._encode(value)


class JsonDocumentWriter(DocumentWriter):
    """Backend A: stdlib json"""

    indent = 4

    def _encode(self, value: str) -> str:
        try:
            value.encode('utf-8')
        except UnicodeEncodeError as e:
            raise BackendWriteError("json could not encode string", e) from e
        return json.dumps(value, ensure_ascii=False)


class OrjsonDocumentWriter(DocumentWriter):
    """Backend B: orjson"""

    indent = 2

    def _encode(self, value: str) -> str:
        try:
            return orjson.dumps(value).decode('utf-8')
        except orjson.JSONEncodeError as e:
            raise BackendWriteError("orjson could not encode string", e) from e


def create_writer(backend: str, out: TextIO, pretty_print: bool = False) -> DocumentWriter:
    """Create a writer for the named backend ('json' or 'orjson')"""
    if backend == 'json':
        return JsonDocumentWriter(out, pretty_print)
    if backend == 'orjson':
        return OrjsonDocumentWriter(out, pretty_print)
    raise ValueError(f"Unknown JSON backend: {backend}. Must be one of {list(BACKENDS)}")
