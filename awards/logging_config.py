"""
Structured logging configuration.

configure_logging() runs once from create_app(). LOG_FORMAT picks human-readable
text or one JSON object per line; LOG_LEVEL defaults to INFO.

Pipeline code passes row context through `extra=`:

    logger.warning("Row %d failed", n, extra={'batch_id': batch.id, 'row_number': n})

Both formatters render those fields, so a batch can be traced end to end.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone


CONTEXT_FIELDS = ('batch_id', 'nomination_id', 'outbox_id', 'row_number')

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty at INFO (HTTP retries, SQL echo, RQ heartbeats, dev server access log)
QUIET_LOGGERS = ('urllib3', 'rq.worker', 'sqlalchemy.engine', 'werkzeug')


def record_context(record):
    """Context fields set on the record, in CONTEXT_FIELDS order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the log drain."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain text with context fields appended as key=value."""

    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record):
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        pairs = ' '.join(f'{k}={v}' for k, v in context.items())
        head, sep, tail = line.partition('\n')
        return f'{head} [{pairs}]{sep}{tail}'


def _level(name):
    level = logging.getLevelName((name or 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level = _level(os.getenv('LOG_LEVEL'))
    use_json = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.setLevel(level)
