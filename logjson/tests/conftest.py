"""
Shared fixtures for logjson tests.
"""

import pytest

from logjson.event import Level, LogEvent, ProcessIdentity

# 2023-11-14T22:13:20.123456789Z
TIMESTAMP_NS = 1_700_000_000_123_456_789


@pytest.fixture
def identity():
    return ProcessIdentity(host_name='test-host', process_name='test-proc', process_id=4242)


@pytest.fixture
def make_event():
    """Factory for LogEvents with predictable defaults"""
    def _make(**overrides):
        values = dict(
            timestamp_ns=TIMESTAMP_NS,
            sequence=7,
            level=Level.INFO,
            logger_name='test_logger',
            logger_class_name='logging.Logger',
            message='hello',
            thread_name='MainThread',
            thread_id=1,
            host_name='test-host',
            process_name='test-proc',
            process_id=4242,
        )
        values.update(overrides)
        return LogEvent(**values)
    return _make
