"""
Structured logging configuration.

configure_logging() runs once from create_app(). LOG_FORMAT picks text or
JSON output and LOG_LEVEL defaults to INFO.

Scoring code passes lead context as `extra={'lead_id': ..., 'warmth_score': ...}`.
Inside a Flask request the user id and path are stamped onto every record by
RequestContextFilter, so API log lines can be traced back to the caller.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes lifted into JSON entries when present
CONTEXT_FIELDS = ('lead_id', 'user_id', 'request_path', 'threat_level', 'warmth_score')

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s — %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

_NOISY_LOGGERS = ('urllib3', 'openai', 'httpcore', 'httpx', 'werkzeug')


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RequestContextFilter(logging.Filter):
    """Attach user_id / request_path from the active Flask request, if any."""

    def filter(self, record):
        if has_request_context():
            if getattr(record, 'request_path', None) is None:
                record.request_path = request.path
            if getattr(record, 'user_id', None) is None:
                record.user_id = g.get('user_id')
        return True


def _resolve_level(name):
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Replace root handlers with a single stderr handler.

    Environment variables:
        LOG_LEVEL  — level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level = _resolve_level(os.getenv('LOG_LEVEL', 'INFO'))
    if os.getenv('LOG_FORMAT', 'text').lower() == 'json':
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True
