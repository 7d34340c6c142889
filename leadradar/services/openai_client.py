"""
OpenAI helpers — sales conversation analysis in JSON mode.
"""
import json
import logging
from typing import Any, Dict

from leadradar.config import OPENAI_MODEL
from leadradar.extensions import openai_client as client

logger = logging.getLogger('services.openai')

CONVERSATION_SYSTEM_PROMPT = """You are an expert sales conversation analyst. Analyze the conversation and extract key intelligence in JSON format.

Extract:
1. sentiment_score (0-100)
2. intent_signals (buying indicators, list of strings)
3. competitor_mentions (list of competitor names or references)
4. urgency_indicators (list of strings)
5. objections_raised (list of strings)
6. buying_signals (list of strings)
7. budget_indicators (list of strings)
8. conversation_summary (string)
9. key_insights (list of strings)
10. recommended_follow_up (string)

Return a JSON object with exactly these keys."""


def is_available() -> bool:
    return client is not None


def _chat_completion(**kwargs):
    """Route chat completion through the OpenAI circuit breaker."""
    from leadradar.services.circuit_breaker import get_breaker
    cb = get_breaker('openai')
    return cb.call(client.chat.completions.create, **kwargs)


def analyze_conversation(conversation: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ask the model for structured intelligence on one conversation.

    Returns the parsed JSON dict. Raises on API errors or unparseable output;
    callers decide how to fall back.
    """
    if client is None:
        raise RuntimeError('OpenAI client is not configured')

    response = _chat_completion(
        model=OPENAI_MODEL,
        messages=[
            {"role": "system", "content": CONVERSATION_SYSTEM_PROMPT},
            {"role": "user", "content": (
                "Analyze this sales conversation:\n\n"
                f"CONVERSATION:\n{json.dumps(conversation, indent=2, default=str)}\n\n"
                "Provide comprehensive analysis focusing on sales intelligence and competitive insights."
            )},
        ],
        temperature=0.3,
        max_tokens=1500,
        response_format={"type": "json_object"},
    )
    result = json.loads(response.choices[0].message.content)
    if not isinstance(result, dict):
        raise ValueError('Conversation analysis did not return a JSON object')
    return result
