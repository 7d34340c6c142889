"""Tests for leadradar.services.openai_client."""
import json
from unittest.mock import MagicMock, patch

import pytest

from leadradar.services import openai_client
from leadradar.services.circuit_breaker import CircuitOpenError, get_breaker


def _client_returning(content):
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value.choices[0].message.content = content
    return mock_client


class TestAnalyzeConversation:

    def test_unconfigured_client_raises(self):
        assert openai_client.is_available() is False
        with pytest.raises(RuntimeError, match='not configured'):
            openai_client.analyze_conversation({'content': 'hi'})

    def test_json_mode_request(self):
        mock_client = _client_returning(json.dumps({'sentiment_score': 70}))
        with patch('leadradar.services.openai_client.client', mock_client):
            result = openai_client.analyze_conversation({'id': 'c1', 'content': 'need pricing'})
        assert result == {'sentiment_score': 70}
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs['response_format'] == {'type': 'json_object'}
        assert kwargs['temperature'] == 0.3
        assert 'need pricing' in kwargs['messages'][1]['content']

    def test_non_object_payload_raises(self):
        with patch('leadradar.services.openai_client.client', _client_returning('[1, 2]')):
            with pytest.raises(ValueError):
                openai_client.analyze_conversation({'content': 'hi'})

    def test_malformed_json_raises(self):
        with patch('leadradar.services.openai_client.client', _client_returning('not json')):
            with pytest.raises(json.JSONDecodeError):
                openai_client.analyze_conversation({'content': 'hi'})

    def test_open_circuit_short_circuits(self, fake_redis):
        mock_client = _client_returning('{}')
        get_breaker('openai')
        fake_redis.set('cb:openai:state', 'open')
        with patch('leadradar.services.openai_client.client', mock_client):
            with pytest.raises(CircuitOpenError):
                openai_client.analyze_conversation({'content': 'hi'})
        mock_client.chat.completions.create.assert_not_called()
