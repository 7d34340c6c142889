"""
Conversation intelligence analyzers.

Two interchangeable strategies:
  - KeywordConversationAnalyzer: deterministic substring matching against
    fixed vocabularies. Always available.
  - OpenAIConversationAnalyzer: LLM extraction in JSON mode. Any failure
    (client missing, API error, malformed payload, open circuit) returns the
    keyword result for that conversation instead.

get_analyzer() picks OpenAI when a client is configured, keywords otherwise.
"""
import logging
from typing import Any, Optional, Sequence

from leadradar.pipeline.base import ConversationAnalyzer, get_analyzer_class
from leadradar.pipeline.records import Conversation, Competitor, ConversationIntel, is_real_number
from leadradar.services import openai_client

logger = logging.getLogger('pipeline.conversation')

INTENT_KEYWORDS = ['buy', 'purchase', 'implement', 'start', 'need']
COMPETITOR_KEYWORDS = ['competitor', 'alternative', 'other', 'compare']
URGENCY_KEYWORDS = ['urgent', 'asap', 'quickly', 'soon', 'deadline']
OBJECTION_KEYWORDS = ['expensive', 'cost', 'budget', 'concern', 'worry']
BUYING_KEYWORDS = ['when', 'how', 'price', 'contract', 'agreement']

SUMMARY_LENGTH = 200


def extract_keywords(text: str, keywords: Sequence[str]) -> tuple:
    return tuple(k for k in keywords if k in text)


def keyword_sentiment(text: str) -> int:
    if 'not interested' in text:
        return 30
    if 'interested' in text:
        return 70
    return 50


class KeywordConversationAnalyzer(ConversationAnalyzer):
    name = 'keyword'

    def analyze(self, conversation: Conversation,
                competitors: Sequence[Competitor] = ()) -> ConversationIntel:
        text = conversation.content.lower()
        mentions = list(extract_keywords(text, COMPETITOR_KEYWORDS))
        for competitor in competitors:
            if competitor.name and competitor.name.lower() in text and competitor.name not in mentions:
                mentions.append(competitor.name)
        return ConversationIntel(
            sentiment_score=keyword_sentiment(text),
            intent_signals=extract_keywords(text, INTENT_KEYWORDS),
            competitor_mentions=tuple(mentions),
            urgency_indicators=extract_keywords(text, URGENCY_KEYWORDS),
            objections=extract_keywords(text, OBJECTION_KEYWORDS),
            buying_signals=extract_keywords(text, BUYING_KEYWORDS),
            budget_indicators=(),
            summary=text[:SUMMARY_LENGTH],
            key_insights=('Fallback analysis - limited insights available',),
            recommended_follow_up='Follow up within 24 hours',
        )


def _as_strings(value: Any) -> tuple:
    """LLM payloads return lists, dicts or scalars for the same key; flatten to strings."""
    if isinstance(value, dict):
        return tuple(f'{k}: {v}' for k, v in value.items() if v not in (None, '', [], {}))
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v not in (None, ''))
    if isinstance(value, str) and value.strip():
        return (value.strip(),)
    return ()


class OpenAIConversationAnalyzer(ConversationAnalyzer):
    name = 'openai'

    def __init__(self, fallback: Optional[ConversationAnalyzer] = None):
        self.fallback = fallback or KeywordConversationAnalyzer()

    def analyze(self, conversation: Conversation,
                competitors: Sequence[Competitor] = ()) -> ConversationIntel:
        payload = {
            'id': conversation.id,
            'channel': conversation.channel,
            'content': conversation.content,
            'timestamp': conversation.timestamp.isoformat() if conversation.timestamp else None,
        }
        try:
            result = openai_client.analyze_conversation(payload)
        except Exception as e:
            logger.warning("AI conversation analysis failed for %s, using keywords: %s",
                           conversation.id or '<unnamed>', e)
            return self.fallback.analyze(conversation, competitors)

        sentiment = result.get('sentiment_score')
        sentiment = min(100, max(0, sentiment)) if is_real_number(sentiment) else 50
        summary = result.get('conversation_summary') or result.get('summary') or ''
        return ConversationIntel(
            sentiment_score=sentiment,
            intent_signals=_as_strings(result.get('intent_signals')),
            competitor_mentions=_as_strings(result.get('competitor_mentions')),
            urgency_indicators=_as_strings(result.get('urgency_indicators')),
            objections=_as_strings(result.get('objections_raised') or result.get('objections')),
            buying_signals=_as_strings(result.get('buying_signals')),
            budget_indicators=_as_strings(result.get('budget_indicators')),
            summary=str(summary)[:1000],
            key_insights=_as_strings(result.get('key_insights')),
            recommended_follow_up=str(result.get('recommended_follow_up') or ''),
        )


ANALYZERS = {
    'keyword': KeywordConversationAnalyzer,
    'openai': OpenAIConversationAnalyzer,
}


def get_analyzer(name: Optional[str] = None) -> ConversationAnalyzer:
    """Instantiate the named analyzer, or the best available one."""
    if name is None:
        name = 'openai' if openai_client.is_available() else 'keyword'
    return get_analyzer_class(ANALYZERS, name)()
