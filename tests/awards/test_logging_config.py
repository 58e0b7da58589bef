"""Tests for awards.logging_config."""
import json
import logging
import os
import sys
from unittest.mock import patch, MagicMock

import pytest

from awards.logging_config import configure_logging, JSONFormatter, TextFormatter, record_context


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    yield
    root.setLevel(level)
    root.handlers = handlers


def _record(msg='hello %s', args=('world',), **extra):
    record = logging.LogRecord(name='services.bulk_upload', level=logging.INFO, pathname='',
                               lineno=0, msg=msg, args=args, exc_info=None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestConfigureLogging:

    @pytest.mark.parametrize('env, expected', [
        ({}, logging.INFO),
        ({'LOG_LEVEL': 'debug'}, logging.DEBUG),
        ({'LOG_LEVEL': 'Warning'}, logging.WARNING),
        ({'LOG_LEVEL': 'LOUD'}, logging.INFO),
    ])
    def test_level_from_env(self, env, expected):
        with patch.dict(os.environ, env):
            if 'LOG_LEVEL' not in env:
                os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == expected

    def test_text_output_on_stderr(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        logging.getLogger('services.bulk_upload').info("batch created", extra={'batch_id': 'b-1'})
        err = capsys.readouterr().err
        assert 'INFO services.bulk_upload: batch created [batch_id=b-1]' in err

    def test_json_output(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'JSON'}):
            configure_logging()
        logging.getLogger('services.batch_writer').warning(
            "row failed", extra={'batch_id': 'b-1', 'row_number': 4},
        )
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['level'] == 'WARNING'
        assert parsed['logger'] == 'services.batch_writer'
        assert (parsed['batch_id'], parsed['row_number']) == ('b-1', 4)
        assert 'nomination_id' not in parsed

    def test_quiets_chatty_libraries(self):
        configure_logging()
        for name in ('urllib3', 'rq.worker', 'sqlalchemy.engine', 'werkzeug'):
            assert logging.getLogger(name).level == logging.WARNING

    def test_reconfigure_replaces_handler(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_flask_logger_follows_level(self):
        app = MagicMock()
        with patch.dict(os.environ, {'LOG_LEVEL': 'ERROR'}):
            configure_logging(app)
        app.logger.setLevel.assert_called_once_with(logging.ERROR)


class TestFormatters:

    def test_record_context_order_and_skips_none(self):
        record = _record(row_number=3, batch_id='b-9', nomination_id=None)
        assert list(record_context(record).items()) == [('batch_id', 'b-9'), ('row_number', 3)]

    def test_json_basic_record(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed['message'] == 'hello world'
        assert 'timestamp' in parsed

    def test_json_includes_exception(self):
        try:
            raise ValueError('boom')
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        parsed = json.loads(JSONFormatter().format(record))
        assert 'ValueError: boom' in parsed['exception']

    def test_text_without_context(self):
        line = TextFormatter().format(_record())
        assert line.endswith('services.bulk_upload: hello world')

    def test_text_context_stays_on_first_line(self):
        try:
            raise KeyError('x')
        except KeyError:
            record = _record(outbox_id=7)
            record.exc_info = sys.exc_info()
        first, _, rest = TextFormatter().format(record).partition('\n')
        assert first.endswith('hello world [outbox_id=7]')
        assert 'KeyError' in rest
