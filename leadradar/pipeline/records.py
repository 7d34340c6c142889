"""
Typed records that flow through the scoring pipeline.

Untrusted JSON is parsed exactly once at the boundary (sanitizer.py for
behaviour telemetry, the `from_dict` constructors here for threat inputs).
Everything downstream receives these records and trusts their types.
"""
import math
from dataclasses import dataclass, field, replace, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from leadradar.config import SEIZURE_ACTION_STATUSES, SEIZURE_ACTION_TYPES
from leadradar.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass a datetime through). Unparseable → None."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return ensure_aware(datetime.fromisoformat(value.strip().replace('Z', '+00:00')))
    except ValueError:
        return None


def _isoformat(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def is_real_number(value: Any) -> bool:
    """True for finite int/float values. Booleans and numeric strings are not numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def coerce_count(value: Any) -> float:
    """Non-negative finite number or 0."""
    if not is_real_number(value) or value < 0:
        return 0
    return value


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and not isinstance(v, bool)]


# ── Warm lead records ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LeadBehaviorData:
    """Sanitized behaviour snapshot. Every counter is already range-checked."""
    time_on_pricing_page: int = 0
    quote_clicks_no_submit: int = 0
    emails_opened: int = 0
    calls_not_booked: int = 0
    ad_clicks_no_conversion: int = 0
    total_time_on_site: int = 0
    visits_last_14_days: int = 0
    form_completion_rate: float = 0.0
    retargeting_interactions: int = 0
    max_scroll_depth: float = 0.0
    pages_visited: Tuple[str, ...] = ()
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    source: str = 'website'
    device_type: str = 'unknown'
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    referrer: Optional[str] = None
    location: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    last_activity: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['pages_visited'] = list(self.pages_visited)
        data['last_activity'] = _isoformat(self.last_activity)
        return data


@dataclass(frozen=True)
class SeizureAction:
    """One scheduled outreach step. Status only ever moves forward."""
    id: str
    type: str
    trigger_day: int
    content: str
    status: str = 'pending'
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    response_at: Optional[datetime] = None
    conversion_value: Optional[float] = None
    error_message: Optional[str] = None

    _TIMESTAMP_FOR_STATUS = {
        'sent': 'sent_at',
        'opened': 'opened_at',
        'clicked': 'clicked_at',
        'converted': 'response_at',
    }

    def advance(self, status: str, at: Optional[datetime] = None, **changes) -> 'SeizureAction':
        """Return a copy moved to `status`. Moving backwards raises ValidationError."""
        if status not in SEIZURE_ACTION_STATUSES:
            raise ValidationError(f"Unknown seizure action status '{status}'")
        if self.status in ('converted', 'failed', 'cancelled'):
            raise ValidationError(f"Action {self.id} is already {self.status}")
        if status not in ('failed', 'cancelled'):
            if SEIZURE_ACTION_STATUSES.index(status) <= SEIZURE_ACTION_STATUSES.index(self.status):
                raise ValidationError(
                    f"Action {self.id} cannot move from {self.status} to {status}"
                )
        stamp = self._TIMESTAMP_FOR_STATUS.get(status)
        if stamp:
            changes[stamp] = at or utcnow()
        return replace(self, status=status, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'trigger_day': self.trigger_day,
            'content': self.content,
            'status': self.status,
            'created_at': _isoformat(self.created_at),
            'sent_at': _isoformat(self.sent_at),
            'opened_at': _isoformat(self.opened_at),
            'clicked_at': _isoformat(self.clicked_at),
            'response_at': _isoformat(self.response_at),
            'conversion_value': self.conversion_value,
            'error_message': self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SeizureAction':
        if data.get('type') not in SEIZURE_ACTION_TYPES:
            raise ValidationError(f"Unknown seizure action type '{data.get('type')}'")
        status = data.get('status', 'pending')
        if status not in SEIZURE_ACTION_STATUSES:
            raise ValidationError(f"Unknown seizure action status '{status}'")
        return cls(
            id=data['id'],
            type=data['type'],
            trigger_day=int(data.get('trigger_day', 0)),
            content=data.get('content', ''),
            status=status,
            created_at=parse_timestamp(data.get('created_at')),
            sent_at=parse_timestamp(data.get('sent_at')),
            opened_at=parse_timestamp(data.get('opened_at')),
            clicked_at=parse_timestamp(data.get('clicked_at')),
            response_at=parse_timestamp(data.get('response_at')),
            conversion_value=data.get('conversion_value'),
            error_message=data.get('error_message'),
        )


@dataclass
class WarmLeadProfile:
    """
    A detected warm lead.

    id, source and first_detected never change after detection; score,
    status and seizure_history are re-written as the lead moves through
    detected → qualified → seized → converted (or cold / unsubscribed).
    """
    id: str
    behavior: LeadBehaviorData
    first_detected: datetime
    warmth_score: int = 0
    status: str = 'detected'
    seizure_history: List[SeizureAction] = field(default_factory=list)
    user_id: Optional[str] = None

    @property
    def email(self):
        return self.behavior.email

    @property
    def phone(self):
        return self.behavior.phone

    @property
    def company(self):
        return self.behavior.company

    @property
    def source(self):
        return self.behavior.source

    @property
    def last_activity(self):
        return self.behavior.last_activity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'email': self.email,
            'phone': self.phone,
            'company': self.company,
            'source': self.source,
            'warmth_score': self.warmth_score,
            'status': self.status,
            'first_detected': _isoformat(self.first_detected),
            'last_activity': _isoformat(self.last_activity),
            'behavior_data': self.behavior.to_dict(),
            'seizure_history': [a.to_dict() for a in self.seizure_history],
        }


# ── Threat scoring records ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ThreatLead:
    id: str
    first_name: str = ''
    last_name: str = ''
    email: str = ''
    company_name: str = ''
    job_title: str = ''
    industry: str = ''
    region: str = ''
    use_case: str = ''
    stated_timeline: str = ''
    company_size: float = 0
    website_visits: float = 0
    email_opens: float = 0
    content_downloads: float = 0
    pricing_page_visits: float = 0
    response_rate: float = 0
    stakeholder_count: int = 1
    demo_requested: bool = False
    demo_scheduled: bool = False
    recent_activity_spike: bool = False
    multiple_stakeholders_engaged: bool = False
    recent_interests: Tuple[str, ...] = ()
    pain_points: Tuple[str, ...] = ()

    _TEXT_FIELDS = ('first_name', 'last_name', 'email', 'company_name', 'job_title',
                    'industry', 'region', 'use_case', 'stated_timeline')
    _NUMERIC_FIELDS = ('company_size', 'website_visits', 'email_opens', 'content_downloads',
                       'pricing_page_visits', 'response_rate')
    _FLAG_FIELDS = ('demo_requested', 'demo_scheduled', 'recent_activity_spike',
                    'multiple_stakeholders_engaged')

    @classmethod
    def from_dict(cls, data: Any) -> 'ThreatLead':
        if data is None:
            raise ValidationError('Lead data is required')
        if not isinstance(data, dict):
            raise ValidationError('Lead data must be an object')
        lead_id = data.get('id')
        if lead_id is None or str(lead_id).strip() == '':
            raise ValidationError('lead id is required')

        kwargs = {'id': str(lead_id)}
        for name in cls._TEXT_FIELDS:
            value = data.get(name)
            kwargs[name] = value.strip() if isinstance(value, str) else ''
        if not kwargs['job_title'] and isinstance(data.get('title'), str):
            kwargs['job_title'] = data['title'].strip()
        for name in cls._NUMERIC_FIELDS:
            kwargs[name] = coerce_count(data.get(name))
        for name in cls._FLAG_FIELDS:
            kwargs[name] = data.get(name) is True
        stakeholders = data.get('stakeholder_count')
        kwargs['stakeholder_count'] = int(stakeholders) if is_real_number(stakeholders) and stakeholders >= 1 else 1
        kwargs['recent_interests'] = tuple(_string_list(data.get('recent_interests')))
        kwargs['pain_points'] = tuple(_string_list(data.get('pain_points')))
        return cls(**kwargs)


@dataclass(frozen=True)
class Conversation:
    id: str = ''
    channel: str = ''
    content: str = ''
    timestamp: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'Conversation':
        if not isinstance(data, dict):
            raise ValidationError('Conversation must be an object')
        content = data.get('content')
        return cls(
            id=str(data.get('id') or ''),
            channel=str(data.get('channel') or data.get('type') or '').lower(),
            content=content if isinstance(content, str) else '',
            timestamp=parse_timestamp(data.get('timestamp')),
        )


@dataclass(frozen=True)
class Competitor:
    name: str
    active_campaigns: float = 0
    market_share: float = 0
    ad_spend_estimate: float = 0

    @classmethod
    def from_dict(cls, data: Any) -> 'Competitor':
        if not isinstance(data, dict):
            raise ValidationError('Competitor must be an object')
        name = data.get('name')
        return cls(
            name=name.strip() if isinstance(name, str) else '',
            active_campaigns=coerce_count(data.get('active_campaigns')),
            market_share=coerce_count(data.get('market_share')),
            ad_spend_estimate=coerce_count(data.get('ad_spend_estimate')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ConversationIntel:
    """Signals extracted from a single conversation."""
    sentiment_score: float = 50
    intent_signals: Tuple[str, ...] = ()
    competitor_mentions: Tuple[str, ...] = ()
    urgency_indicators: Tuple[str, ...] = ()
    objections: Tuple[str, ...] = ()
    buying_signals: Tuple[str, ...] = ()
    budget_indicators: Tuple[str, ...] = ()
    summary: str = ''
    key_insights: Tuple[str, ...] = ()
    recommended_follow_up: str = ''


@dataclass(frozen=True)
class ScoringFactors:
    intent_strength: int = 0
    competitive_pressure: int = 0
    urgency_indicators: int = 0
    budget_authority: int = 0
    fit_score: int = 0
    engagement_level: int = 0
    competitor_influence: int = 0


@dataclass(frozen=True)
class ThreatIndicators:
    competitor_mentions: Tuple[str, ...]
    price_sensitivity: int
    decision_timeline: str
    evaluation_stage: str
    stakeholder_count: int


@dataclass(frozen=True)
class RecommendedActions:
    priority_level: int
    response_time_hours: int
    follow_up_sequence: str
    messaging_strategy: str
    escalation_required: bool


@dataclass(frozen=True)
class DynamicFollowUp:
    next_touchpoint: datetime
    channel: str
    message_type: str
    personalization_data: Dict[str, Any]


@dataclass(frozen=True)
class CompetitiveIntelligence:
    likely_competitors: Tuple[str, ...]
    competitive_advantages: Tuple[str, ...]
    differentiation_points: Tuple[str, ...]
    objection_handling: Dict[str, str]


@dataclass(frozen=True)
class LeadThreatScore:
    lead_id: str
    overall_score: int
    threat_level: str
    scoring_factors: ScoringFactors
    threat_indicators: ThreatIndicators
    recommended_actions: RecommendedActions
    dynamic_follow_up: DynamicFollowUp
    competitive_intelligence: CompetitiveIntelligence
    calculated_at: datetime
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        follow_up = asdict(self.dynamic_follow_up)
        follow_up['next_touchpoint'] = _isoformat(self.dynamic_follow_up.next_touchpoint)
        indicators = asdict(self.threat_indicators)
        indicators['competitor_mentions'] = list(self.threat_indicators.competitor_mentions)
        intel = {k: list(v) if isinstance(v, tuple) else v
                 for k, v in asdict(self.competitive_intelligence).items()}
        return {
            'lead_id': self.lead_id,
            'overall_score': self.overall_score,
            'threat_level': self.threat_level,
            'scoring_factors': asdict(self.scoring_factors),
            'threat_indicators': indicators,
            'recommended_actions': asdict(self.recommended_actions),
            'dynamic_follow_up': follow_up,
            'competitive_intelligence': intel,
            'calculated_at': _isoformat(self.calculated_at),
            'expires_at': _isoformat(self.expires_at),
        }
