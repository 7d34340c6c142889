"""
Lead threat scoring.

Combines a lead record, its conversation history and the competitor landscape
into a LeadThreatScore:

  1. Conversation intelligence — one ConversationIntel per conversation, from
     the configured ConversationAnalyzer (OpenAI or keyword fallback).
  2. Seven factors, each clamped to [0, 100].
  3. overall = round(Σ factor × weight), weights summing to 1.0.
  4. Level from fixed bands (critical ≥ 80, high ≥ 65, medium ≥ 45, else low).
  5. Recommended actions + follow-up timing looked up by level.

The calculation either returns a complete score or raises; there is no
partial result.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from leadradar.errors import ValidationError
from leadradar.pipeline.base import ConversationAnalyzer
from leadradar.pipeline.conversation import get_analyzer
from leadradar.pipeline.records import (
    ThreatLead, Conversation, Competitor, ConversationIntel,
    ScoringFactors, ThreatIndicators, RecommendedActions, DynamicFollowUp,
    CompetitiveIntelligence, LeadThreatScore, is_real_number, utcnow,
)
from leadradar.pipeline.scoring_config import get_threat_weights, get_threat_levels, get_cache_hours

logger = logging.getLogger('pipeline.threat')

TARGET_INDUSTRIES = ('technology', 'healthcare', 'finance', 'retail')
TARGET_REGIONS = ('north_america', 'europe')
TIMELINE_URGENCY = {'immediate': 30, 'this_quarter': 20, 'this_year': 10}
FOLLOW_UP_CHANNELS = ('email', 'phone', 'linkedin', 'sms')

ACTIONS_BY_LEVEL = {
    'critical': RecommendedActions(1, 2, 'aggressive', 'competitive_differentiation', True),
    'high': RecommendedActions(2, 4, 'accelerated', 'urgency_and_value', True),
    'medium': RecommendedActions(3, 12, 'enhanced', 'educational_value', False),
    'low': RecommendedActions(3, 24, 'standard', 'value_focused', False),
}

FOLLOW_UP_HOURS = {'critical': 2, 'high': 6}

COMPETITIVE_ADVANTAGES = ('Better pricing', 'Superior features', 'Better support')
DIFFERENTIATION_POINTS = ('Unique technology', 'Industry expertise', 'Customer success')


def _clamp(value: float) -> int:
    return int(round(max(0, min(100, value))))


# ── Factors ──────────────────────────────────────────────────────────────────

def intent_strength(lead: ThreatLead, intel: Sequence[ConversationIntel]) -> int:
    score = 50
    for item in intel:
        score += len(item.intent_signals) * 10
        score += len(item.buying_signals) * 15
        score += max(0, item.sentiment_score - 50) * 0.5
    if lead.website_visits > 5:
        score += 10
    if lead.email_opens > 3:
        score += 5
    if lead.content_downloads > 1:
        score += 10
    if lead.demo_requested:
        score += 20
    if lead.pricing_page_visits > 0:
        score += 15
    return _clamp(score)


def _mention_count(intel: Sequence[ConversationIntel]) -> int:
    return sum(len(item.competitor_mentions) for item in intel)


def competitive_pressure(lead: ThreatLead, intel: Sequence[ConversationIntel],
                         competitors: Sequence[Competitor]) -> int:
    pressure = _mention_count(intel) * 20
    pressure += sum(1 for c in competitors if c.active_campaigns > 0) * 10
    if len(competitors) > 5:
        pressure += 20
    if lead.pricing_page_visits > 2:
        pressure += 15
    return _clamp(pressure)


def urgency_score(lead: ThreatLead, intel: Sequence[ConversationIntel]) -> int:
    urgency = 30
    for item in intel:
        urgency += len(item.urgency_indicators) * 15
    if lead.recent_activity_spike:
        urgency += 20
    if lead.multiple_stakeholders_engaged:
        urgency += 15
    if lead.demo_scheduled:
        urgency += 25
    urgency += TIMELINE_URGENCY.get(lead.stated_timeline.lower(), 0)
    return _clamp(urgency)


def budget_authority(lead: ThreatLead, intel: Sequence[ConversationIntel]) -> int:
    score = 40
    title = lead.job_title.lower()
    if 'ceo' in title or 'founder' in title:
        score += 30
    elif 'cto' in title or 'cfo' in title:
        score += 25
    elif 'director' in title or 'vp' in title:
        score += 20
    elif 'manager' in title:
        score += 15

    if lead.company_size > 100:
        score += 15
    elif lead.company_size > 50:
        score += 10

    score += sum(20 for item in intel if item.budget_indicators)
    return _clamp(score)


def fit_score(lead: ThreatLead) -> int:
    fit = 50
    if lead.industry.lower() in TARGET_INDUSTRIES:
        fit += 20
    if 10 <= lead.company_size <= 500:
        fit += 15
    if lead.region.lower() in TARGET_REGIONS:
        fit += 10
    if 'marketing' in lead.use_case.lower():
        fit += 15
    return _clamp(fit)


def engagement_level(lead: ThreatLead, conversation_count: int) -> int:
    engagement = 20
    engagement += min(30, conversation_count * 5)
    engagement += min(20, lead.email_opens * 2)
    engagement += min(15, lead.website_visits * 1.5)
    engagement += min(10, lead.content_downloads * 5)
    if lead.response_rate > 0.8:
        engagement += 15
    elif lead.response_rate > 0.5:
        engagement += 10
    return _clamp(engagement)


def competitor_influence(intel: Sequence[ConversationIntel], competitors: Sequence[Competitor]) -> int:
    influence = min(40, _mention_count(intel) * 10)
    influence += sum(1 for c in competitors if c.market_share > 10) * 15
    return _clamp(influence)


def calculate_factors(lead: ThreatLead, intel: Sequence[ConversationIntel],
                      competitors: Sequence[Competitor], conversation_count: int) -> ScoringFactors:
    return ScoringFactors(
        intent_strength=intent_strength(lead, intel),
        competitive_pressure=competitive_pressure(lead, intel, competitors),
        urgency_indicators=urgency_score(lead, intel),
        budget_authority=budget_authority(lead, intel),
        fit_score=fit_score(lead),
        engagement_level=engagement_level(lead, conversation_count),
        competitor_influence=competitor_influence(intel, competitors),
    )


# ── Overall + level ──────────────────────────────────────────────────────────

def validate_weights(weights: Dict[str, Any]) -> Dict[str, float]:
    expected = set(ScoringFactors.__dataclass_fields__)
    if set(weights) != expected:
        raise ValidationError('Scoring weights must cover exactly the seven threat factors',
                              details={'expected': sorted(expected)})
    for name, weight in weights.items():
        if not is_real_number(weight) or weight < 0 or weight > 1:
            raise ValidationError(f'Scoring weight {name} must be between 0 and 1')
    if abs(sum(weights.values()) - 1.0) > 0.001:
        raise ValidationError('Scoring weights must sum to 1.0')
    return dict(weights)


def validate_levels(levels: Dict[str, Any]) -> Dict[str, float]:
    for name in ('critical', 'high', 'medium'):
        if not is_real_number(levels.get(name)):
            raise ValidationError(f'Threat threshold {name} must be a number')
    if not 0 < levels['medium'] < levels['high'] < levels['critical'] <= 100:
        raise ValidationError('Threat thresholds must satisfy 0 < medium < high < critical ≤ 100')
    return {k: levels[k] for k in ('critical', 'high', 'medium')}


def overall_score(factors: ScoringFactors, weights: Optional[Dict[str, float]] = None) -> int:
    weights = weights or get_threat_weights()
    total = sum(getattr(factors, name) * weight for name, weight in weights.items())
    return int(round(total))


def threat_level(score: float, levels: Optional[Dict[str, float]] = None) -> str:
    levels = levels or get_threat_levels()
    if score >= levels['critical']:
        return 'critical'
    if score >= levels['high']:
        return 'high'
    if score >= levels['medium']:
        return 'medium'
    return 'low'


# ── Derived sections ─────────────────────────────────────────────────────────

def _unique(values) -> tuple:
    return tuple(dict.fromkeys(values))


def price_sensitivity(intel: Sequence[ConversationIntel]) -> int:
    mentions = sum(
        1 for item in intel for objection in item.objections
        if 'price' in objection.lower() or 'cost' in objection.lower()
    )
    return min(100, mentions * 25)


def evaluation_stage(intel: Sequence[ConversationIntel]) -> str:
    summaries = [item.summary.lower() for item in intel]
    if any('pricing' in s for s in summaries):
        return 'negotiation'
    if any('demo' in s for s in summaries):
        return 'evaluation'
    return 'discovery'


def threat_indicators(lead: ThreatLead, intel: Sequence[ConversationIntel]) -> ThreatIndicators:
    return ThreatIndicators(
        competitor_mentions=_unique(m for item in intel for m in item.competitor_mentions),
        price_sensitivity=price_sensitivity(intel),
        decision_timeline=lead.stated_timeline or 'unknown',
        evaluation_stage=evaluation_stage(intel),
        stakeholder_count=lead.stakeholder_count,
    )


def preferred_channel(conversations: Sequence[Conversation]) -> str:
    counts = Counter(c.channel for c in conversations if c.channel in FOLLOW_UP_CHANNELS)
    if not counts:
        return 'email'
    return counts.most_common(1)[0][0]


def message_type(level: str, intel: Sequence[ConversationIntel]) -> str:
    if level == 'critical':
        return 'competitive'
    if level == 'high':
        return 'urgency'
    if any(item.competitor_mentions for item in intel):
        return 'competitive'
    return 'value'


def dynamic_follow_up(lead: ThreatLead, intel: Sequence[ConversationIntel],
                      conversations: Sequence[Conversation], level: str, now: datetime) -> DynamicFollowUp:
    hours = FOLLOW_UP_HOURS.get(level, 24)
    return DynamicFollowUp(
        next_touchpoint=now + timedelta(hours=hours),
        channel=preferred_channel(conversations),
        message_type=message_type(level, intel),
        personalization_data={
            'first_name': lead.first_name,
            'company_name': lead.company_name,
            'industry': lead.industry,
            'recent_interests': list(_unique(
                list(lead.recent_interests) + [s for item in intel for s in item.intent_signals])),
            'pain_points': list(_unique(
                list(lead.pain_points) + [o for item in intel for o in item.objections])),
        },
    )


def objection_response(objection: str) -> str:
    text = objection.lower()
    if 'price' in text or 'cost' in text or 'expensive' in text:
        return 'Emphasize ROI and long-term value'
    if 'feature' in text:
        return 'Provide detailed feature comparison'
    return 'Address concern with case studies and testimonials'


def competitive_intelligence(intel: Sequence[ConversationIntel]) -> CompetitiveIntelligence:
    objections = _unique(o for item in intel for o in item.objections)
    return CompetitiveIntelligence(
        likely_competitors=_unique(m for item in intel for m in item.competitor_mentions),
        competitive_advantages=COMPETITIVE_ADVANTAGES,
        differentiation_points=DIFFERENTIATION_POINTS,
        objection_handling={o: objection_response(o) for o in objections},
    )


# ── Entry point ──────────────────────────────────────────────────────────────

def _parse_list(items: Any, parser, label: str) -> List:
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError(f'{label} must be a list')
    return [item if isinstance(item, parser) else parser.from_dict(item) for item in items]


def calculate_lead_threat_score(lead: Any, conversations: Any = None, competitors: Any = None,
                                analyzer: Optional[ConversationAnalyzer] = None,
                                now: Optional[datetime] = None,
                                cache_hours: Optional[float] = None,
                                weights: Optional[Dict[str, float]] = None,
                                levels: Optional[Dict[str, float]] = None) -> LeadThreatScore:
    """Score one lead. Raises ValidationError on malformed input."""
    lead = lead if isinstance(lead, ThreatLead) else ThreatLead.from_dict(lead)
    conversations = _parse_list(conversations, Conversation, 'Conversation history')
    competitors = _parse_list(competitors, Competitor, 'Competitor data')
    weights = validate_weights(weights) if weights else get_threat_weights()
    levels = validate_levels(levels) if levels else get_threat_levels()
    analyzer = analyzer or get_analyzer()
    now = now or utcnow()
    cache_hours = get_cache_hours() if cache_hours is None else cache_hours

    intel = [analyzer.analyze(c, competitors) for c in conversations]

    factors = calculate_factors(lead, intel, competitors, len(conversations))
    score = overall_score(factors, weights)
    level = threat_level(score, levels)

    logger.info("Threat score %d (%s)", score, level,
                extra={'lead_id': lead.id, 'threat_level': level})

    return LeadThreatScore(
        lead_id=lead.id,
        overall_score=score,
        threat_level=level,
        scoring_factors=factors,
        threat_indicators=threat_indicators(lead, intel),
        recommended_actions=ACTIONS_BY_LEVEL[level],
        dynamic_follow_up=dynamic_follow_up(lead, intel, conversations, level, now),
        competitive_intelligence=competitive_intelligence(intel),
        calculated_at=now,
        expires_at=now + timedelta(hours=cache_hours),
    )
