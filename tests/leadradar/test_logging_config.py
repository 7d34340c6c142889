"""Tests for structured logging configuration."""
import json
import logging
import os
import sys
from unittest.mock import patch

import pytest
from flask import g

from leadradar.logging_config import configure_logging, JSONFormatter, RequestContextFilter


@pytest.fixture(autouse=True)
def _reset_root_logger():
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers


class TestConfigureLogging:

    def test_default_level_is_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_level_from_env_is_case_insensitive(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'debug'}):
            configure_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level_defaults_to_info(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'LOUD'}):
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_single_handler_after_repeated_calls(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_text_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        logging.getLogger('pipeline.warmth').info("scored lead")
        output = capsys.readouterr().err
        assert 'pipeline.warmth' in output
        assert 'scored lead' in output

    def test_json_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('pipeline.threat').info("threat score %d", 72)
        entry = json.loads(capsys.readouterr().err.strip())
        assert entry['message'] == 'threat score 72'
        assert entry['logger'] == 'pipeline.threat'
        assert entry['level'] == 'INFO'

    def test_noisy_loggers_quieted(self):
        configure_logging()
        assert logging.getLogger('urllib3').level == logging.WARNING
        assert logging.getLogger('openai').level == logging.WARNING


class TestJSONFormatter:

    def _record(self, **extra):
        record = logging.LogRecord('pipeline.seizure', logging.INFO, __file__, 1,
                                   'planned %d actions', (4,), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_context_fields_lifted(self):
        entry = json.loads(JSONFormatter().format(
            self._record(lead_id='wl_1', warmth_score=88)))
        assert entry['lead_id'] == 'wl_1'
        assert entry['warmth_score'] == 88
        assert entry['message'] == 'planned 4 actions'

    def test_absent_context_fields_omitted(self):
        entry = json.loads(JSONFormatter().format(self._record()))
        assert 'lead_id' not in entry
        assert 'user_id' not in entry

    def test_exception_included(self):
        try:
            raise ValueError('boom')
        except ValueError:
            record = logging.LogRecord('x', logging.ERROR, __file__, 1, 'failed', (), sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert 'ValueError: boom' in entry['exception']


class TestRequestContextFilter:

    def _record(self):
        return logging.LogRecord('routes', logging.INFO, __file__, 1, 'hit', (), None)

    def test_stamps_request_context(self, app):
        record = self._record()
        with app.test_request_context('/api/warm-leads/dashboard'):
            g.user_id = 'u1'
            assert RequestContextFilter().filter(record) is True
        assert record.request_path == '/api/warm-leads/dashboard'
        assert record.user_id == 'u1'

    def test_outside_request_untouched(self):
        record = self._record()
        RequestContextFilter().filter(record)
        assert not hasattr(record, 'request_path')
