"""
Mapped (MDC) and nested (NDC) diagnostic context.

Both are stored in contextvars so values follow threads and asyncio tasks.
Stored values are never mutated in place; every change installs a new copy.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional, Tuple

_mdc: ContextVar[Tuple[Tuple[str, str], ...]] = ContextVar('logjson_mdc', default=())
_ndc: ContextVar[Tuple[str, ...]] = ContextVar('logjson_ndc', default=())


def mdc_put(key: str, value) -> None:
    values = dict(_mdc.get())
    values[str(key)] = str(value)
    _mdc.set(tuple(values.items()))


def mdc_get(key: str, default: Optional[str] = None) -> Optional[str]:
    return dict(_mdc.get()).get(key, default)


def mdc_remove(key: str) -> None:
    values = dict(_mdc.get())
    if values.pop(key, None) is not None:
        _mdc.set(tuple(values.items()))


def mdc_clear() -> None:
    _mdc.set(())


def mdc_snapshot() -> Dict[str, str]:
    """Copy of the current MDC, safe to modify"""
    return dict(_mdc.get())


@contextmanager
def mdc(**values) -> Iterator[None]:
    """
    Set MDC entries for the duration of a block.

    Example:
        with mdc(request_id='abc'):
            logger.info("handled")
    """
    merged = dict(_mdc.get())
    merged.update({k: str(v) for k, v in values.items()})
    token = _mdc.set(tuple(merged.items()))
    try:
        yield
    finally:
        _mdc.reset(token)


def ndc_push(message: str) -> None:
    _ndc.set(_ndc.get() + (str(message),))


def ndc_pop() -> Optional[str]:
    stack = _ndc.get()
    if not stack:
        return None
    _ndc.set(stack[:-1])
    return stack[-1]


def ndc_clear() -> None:
    _ndc.set(())


def ndc_snapshot() -> Tuple[str, ...]:
    return _ndc.get()


@contextmanager
def ndc(message: str) -> Iterator[None]:
    token = _ndc.set(_ndc.get() + (str(message),))
    try:
        yield
    finally:
        _ndc.reset(token)
