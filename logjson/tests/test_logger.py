"""
Unit tests for the logging module integration.
"""

import io
import json
import logging
import sys
import tempfile
import threading
import uuid
from pathlib import Path

import pytest

from logjson.config import LogJsonConfig
from logjson.context import mdc, ndc
from logjson.errors import FormattingFailure
from logjson.event import ProcessIdentity, kv
from logjson.logger import JsonLogFormatter, get_logger, setup_logging, validate_log_line
from logjson.providers import JsonProvider

IDENTITY = ProcessIdentity(host_name='test-host', process_name='test-proc', process_id=4242)


def make_record(msg='Test message', args=(), level=logging.INFO, exc_info=None, name='test_logger'):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname='test.py',
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info
    )


def capture_logger(formatter):
    logger = logging.getLogger(f'test_capture_{uuid.uuid4().hex[:8]}')
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger, stream


class TestJsonLogFormatter:
    """Test JsonLogFormatter"""

    def test_format_basic_log(self):
        """Should format log as JSON with the standard fields"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        data = json.loads(formatter.format(make_record()))

        assert 'timestamp' in data
        assert data['level'] == 'INFO'
        assert data['loggerName'] == 'test_logger'
        assert data['message'] == 'Test message'
        assert data['hostName'] == 'test-host'
        assert data['processName'] == 'test-proc'
        assert data['processId'] == 4242
        assert data['threadName'] == threading.current_thread().name

    def test_format_resolves_arguments(self):
        """Should resolve %-style arguments and list them"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        data = json.loads(formatter.format(make_record('User %s did %s', ('bob', 'login'))))

        assert data['message'] == 'User bob did login'
        assert data['arguments'] == ['bob', 'login']

    def test_format_with_context(self):
        """Should merge the context extra into the MDC"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)
        record = make_record('User action')
        record.context = {'user_id': 123, 'action': 'login'}

        data = json.loads(formatter.format(record))

        assert data['mdc'] == {'action': 'login', 'user_id': '123'}

    def test_format_with_exception(self):
        """Should include exception fields"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        try:
            raise ValueError('Test error')
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(formatter.format(make_record('Error occurred', level=logging.ERROR, exc_info=exc_info)))

        assert data['errorType'] == 'ValueError'
        assert data['errorMessage'] == 'Test error'
        assert 'raise ValueError' in data['stackTrace']

    def test_sequence_increments(self):
        """Should number events in the order they are formatted"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        first = json.loads(formatter.format(make_record()))
        second = json.loads(formatter.format(make_record()))

        assert second['sequence'] == first['sequence'] + 1

    def test_mdc_ndc_and_kv_through_logger(self):
        """Should pick up MDC, NDC and structured arguments from a logging call"""
        logger, stream = capture_logger(JsonLogFormatter(identity=IDENTITY, discover=False))

        with mdc(request_id='r-1'), ndc('checkout'):
            logger.info('Order %s placed', kv('order_id', 42))

        data = json.loads(stream.getvalue())

        assert data['message'] == 'Order order_id=42 placed'
        assert data['mdc'] == {'request_id': 'r-1'}
        assert data['ndc'] == ['checkout']
        assert data['order_id'] == 42

    def test_passthrough_mode(self):
        """Should write plain lines with a JSON suffix when JSON output is disabled"""
        config = LogJsonConfig(enable=False, console_format='%(levelname)s %(message)s')
        logger, stream = capture_logger(JsonLogFormatter(config, identity=IDENTITY, discover=False))

        logger.info('plain')
        with mdc(user='bob'):
            logger.info('with context')

        lines = stream.getvalue().splitlines()
        assert lines == ['INFO plain', 'INFO with contextJSON data: {"mdc":{"user":"bob"}}']

    def test_failure_reaches_handler(self):
        """Should raise FormattingFailure so the handler can report it"""
        class Broken(JsonProvider):
            def write_to(self, writer, event):
                raise RuntimeError('broken')

        formatter = JsonLogFormatter(identity=IDENTITY, extra_providers=[Broken()], discover=False)

        with pytest.raises(FormattingFailure):
            formatter.format(make_record())

    def test_bad_message_arguments(self):
        """Should wrap message formatting errors"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        with pytest.raises(FormattingFailure) as exc_info:
            formatter.format(make_record('%d items', ('many',)))

        assert isinstance(exc_info.value.cause, TypeError)


class TestGetLogger:
    """Test get_logger function"""

    def test_get_logger_returns_logger(self):
        """Should return configured logger instance"""
        logger = get_logger('test_app')

        assert isinstance(logger, logging.Logger)
        assert logger.name == 'test_app'
        assert logger.level == logging.INFO

    def test_get_logger_with_custom_level(self):
        """Should set custom log level"""
        logger = get_logger('test_app', level=logging.DEBUG)

        assert logger.level == logging.DEBUG

    def test_get_logger_no_duplicate_handlers(self):
        """Should not add duplicate handlers"""
        logger1 = get_logger('test_app_dup')
        handlers_count1 = len(logger1.handlers)

        logger2 = get_logger('test_app_dup')
        handlers_count2 = len(logger2.handlers)

        assert logger1 is logger2
        assert handlers_count1 == handlers_count2

    def test_sequence_shared_across_handlers_and_loggers(self):
        """Should stamp one number per record, unique across loggers"""
        loggers = [get_logger(f'test_seq_{uuid.uuid4().hex[:8]}') for _ in range(2)]
        streams = []
        try:
            for logger in loggers:
                console = logger.handlers[0]
                console_stream, extra_stream = io.StringIO(), io.StringIO()
                console.setStream(console_stream)
                extra = logging.StreamHandler(extra_stream)
                extra.setFormatter(console.formatter)
                logger.addHandler(extra)
                streams.append((console_stream, extra_stream))

            loggers[0].info('one')
            loggers[1].info('two')

            sequences = [
                [json.loads(s.getvalue())['sequence'] for s in pair]
                for pair in streams
            ]
            assert sequences[0][0] == sequences[0][1]
            assert sequences[1][0] == sequences[1][1]
            assert sequences[1][0] > sequences[0][0]
        finally:
            for logger in loggers:
                for handler in list(logger.handlers):
                    logger.removeHandler(handler)

    def test_get_logger_with_file(self):
        """Should write to log file"""
        with tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.log') as f:
            log_file = f.name

        logger = get_logger(f'test_file_{uuid.uuid4().hex[:8]}', log_file=log_file)
        try:
            logger.info('File log message')

            for handler in logger.handlers:
                handler.flush()

            content = Path(log_file).read_text()
            assert len(content) > 0, "Log file is empty"

            data = json.loads(content.strip())
            assert data['message'] == 'File log message'

            get_logger(logger.name, log_file=log_file)
            file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
            assert len(file_handlers) == 1
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
            Path(log_file).unlink()


class TestSetupLogging:
    """Test setup_logging"""

    def test_installs_root_handler_once(self):
        """Should replace its own root handler on repeated setup"""
        root = logging.getLogger()
        original_level = root.level
        stream = io.StringIO()
        try:
            setup_logging(stream=io.StringIO())
            handler = setup_logging(LogJsonConfig(record_delimiter=None), stream=stream)

            ours = [h for h in root.handlers if isinstance(h.formatter, JsonLogFormatter)]
            assert ours == [handler]

            logging.getLogger('test_root_child').warning('to root')
            assert json.loads(stream.getvalue())['message'] == 'to root'
        finally:
            for h in [h for h in root.handlers if isinstance(h.formatter, JsonLogFormatter)]:
                root.removeHandler(h)
            root.setLevel(original_level)


class TestValidateLogLine:
    """Test validate_log_line function"""

    def test_validate_valid_json_log(self):
        """Should validate correct JSON log format"""
        log_line = json.dumps({
            'timestamp': '2026-02-08T20:30:00Z',
            'level': 'INFO',
            'loggerName': 'my_app',
            'message': 'Test message'
        })

        assert validate_log_line(log_line) is True

    def test_validate_missing_required_field(self):
        """Should reject logs missing required fields"""
        log_line = json.dumps({
            'timestamp': '2026-02-08T20:30:00Z',
            'level': 'INFO',
        })

        assert validate_log_line(log_line) is False

    def test_validate_invalid_level(self):
        """Should reject logs with invalid level"""
        log_line = json.dumps({
            'timestamp': '2026-02-08T20:30:00Z',
            'level': 'INVALID',
            'loggerName': 'my_app',
            'message': 'Test message'
        })

        assert validate_log_line(log_line) is False

    def test_validate_lower_case_level(self):
        """Should accept level names in any case"""
        log_line = json.dumps({'timestamp': 't', 'level': 'warn', 'loggerName': 'a', 'message': 'm'})

        assert validate_log_line(log_line) is True

    def test_validate_not_json(self):
        """Should reject non-JSON strings"""
        assert validate_log_line('Plain text log entry') is False

    def test_validate_not_object(self):
        """Should reject JSON that is not an object"""
        assert validate_log_line('[1, 2]') is False

    def test_validate_custom_fields(self):
        """Should check the given required fields"""
        assert validate_log_line('{"msg": "x"}', required_fields=['msg']) is True
        assert validate_log_line('{"msg": "x"}', required_fields=['message']) is False

    def test_formatter_output_validates(self):
        """Should accept the formatter's own output"""
        formatter = JsonLogFormatter(identity=IDENTITY, discover=False)

        assert validate_log_line(formatter.format(make_record())) is True
