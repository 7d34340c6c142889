"""
Seizure campaign planner + closer grid.

A qualified warm lead (warmth ≥ 65) gets a fixed four-step campaign:
  day 1  personalised email   (company + up to 3 visited pages)
  day 2  retargeting ad
  day 3  social proof email   (location)
  day 5  urgency offer email
High-value leads (warmth ≥ 85) also get an immediate chat prompt and, when a
phone number is on file, an immediate SMS.

Both functions are pure: given the same lead snapshot and `now` they return
the same plan. Action ids are derived from the lead id and step name.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from leadradar.config import (
    QUALIFICATION_THRESHOLD, HIGH_VALUE_THRESHOLD, AUTO_DIALER_MIN_DAYS,
    MAX_CONTENT_LENGTH, MAX_TRIGGER_DAY,
)
from leadradar.errors import ValidationError
from leadradar.pipeline.records import SeizureAction, WarmLeadProfile, ensure_aware, utcnow
from leadradar.pipeline.sanitizer import sanitize_string

logger = logging.getLogger('pipeline.seizure')

SCARCITY_WINDOW_HOURS = 48
TEMPLATE_FIELD_LENGTH = 50


# ── Templates ────────────────────────────────────────────────────────────────

def personalized_email(lead: WarmLeadProfile) -> str:
    company = sanitize_string(lead.company or '', TEMPLATE_FIELD_LENGTH) or 'your business'
    pages = [sanitize_string(p, TEMPLATE_FIELD_LENGTH) for p in lead.behavior.pages_visited[:3]]
    pages_text = ', '.join(p for p in pages if p) or 'our website'
    return (
        f"Hi there! I noticed you were checking out {company} and visited {pages_text}. "
        "Still looking for the right solution? I'd love to help you get exactly what you need. "
        "Reply to this email and I'll personally make sure you get priority attention."
    )


def retargeting_ad(lead: WarmLeadProfile) -> str:
    return (
        "Still thinking it over? Get your personalized quote in 60 seconds - no forms, no hassle. "
        "Click to continue where you left off."
    )


def social_proof_email(lead: WarmLeadProfile) -> str:
    location = sanitize_string(lead.behavior.location or '', TEMPLATE_FIELD_LENGTH) or 'your area'
    return (
        f"Here's what other businesses in {location} are saying about working with us... "
        "[Include testimonials and before/after results]"
    )


def urgency_offer(lead: WarmLeadProfile) -> str:
    return (
        "Last chance: We have 2 priority slots left this month. Book now and save 15% on your "
        "project. This offer expires in 48 hours."
    )


def warm_sms(lead: WarmLeadProfile) -> str:
    return (
        "Hey! Still need that quote? Skip the forms - just reply YES and I'll call you in "
        "5 minutes with your personalized pricing."
    )


def chat_prompt(lead: WarmLeadProfile) -> str:
    return "Still looking for a quote? I can get you personalized pricing in 2 minutes - no forms required!"


# (step name, action type, trigger day, template)
CAMPAIGN_STEPS = [
    ('personalized_email', 'email', 1, personalized_email),
    ('retargeting_ad', 'ad', 2, retargeting_ad),
    ('social_proof_email', 'email', 3, social_proof_email),
    ('urgency_offer', 'email', 5, urgency_offer),
]

HIGH_VALUE_STEPS = [
    ('instant_chat', 'chat', 0, chat_prompt),
    ('instant_sms', 'sms', 0, warm_sms),
]


# ── Planner ──────────────────────────────────────────────────────────────────

def _validate_lead(lead: WarmLeadProfile):
    if lead is None:
        raise ValidationError('Lead is required')
    if not lead.id:
        raise ValidationError('lead id is required')
    score = lead.warmth_score
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 100:
        raise ValidationError('warmth_score must be between 0 and 100')


def action_id(lead_id: str, step: str) -> str:
    return f"sa_{uuid.uuid5(uuid.NAMESPACE_URL, f'{lead_id}/{step}').hex}"


def _build_action(lead: WarmLeadProfile, step: str, action_type: str, day: int,
                  template, now: datetime) -> SeizureAction:
    content = template(lead)
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(f'Content for {step} exceeds {MAX_CONTENT_LENGTH} characters')
    if day > MAX_TRIGGER_DAY:
        raise ValidationError(f'Trigger day for {step} exceeds {MAX_TRIGGER_DAY}')
    return SeizureAction(
        id=action_id(lead.id, step),
        type=action_type,
        trigger_day=day,
        content=content,
        status='pending',
        created_at=now,
    )


def plan_seizure_campaign(lead: WarmLeadProfile, now: Optional[datetime] = None) -> Tuple[SeizureAction, ...]:
    """Ordered campaign for a warm lead; empty below the qualification threshold."""
    _validate_lead(lead)
    if lead.warmth_score < QUALIFICATION_THRESHOLD:
        return ()

    now = now or utcnow()
    actions = [_build_action(lead, *step, now=now) for step in CAMPAIGN_STEPS]

    if lead.warmth_score >= HIGH_VALUE_THRESHOLD:
        for step, action_type, day, template in HIGH_VALUE_STEPS:
            if action_type == 'sms' and not lead.phone:
                continue
            actions.append(_build_action(lead, step, action_type, day, template, now=now))

    logger.info("Planned %d seizure actions", len(actions),
                extra={'lead_id': lead.id, 'warmth_score': lead.warmth_score})
    return tuple(actions)


# ── Closer grid ──────────────────────────────────────────────────────────────

def should_trigger_auto_dialer(lead: WarmLeadProfile, now: Optional[datetime] = None) -> bool:
    if lead.warmth_score < HIGH_VALUE_THRESHOLD:
        return False
    now = now or utcnow()
    days_since = (now - ensure_aware(lead.first_detected)).days
    return days_since >= AUTO_DIALER_MIN_DAYS and bool(lead.seizure_history) and bool(lead.phone)


def generate_closer_grid(lead: WarmLeadProfile, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Conversion-assisting artifacts for a seized lead."""
    _validate_lead(lead)
    now = now or utcnow()
    return {
        'landing_page_url': f'/warm-lead-lp/{lead.id}?utm_source=seizure&warmth={lead.warmth_score}',
        'testimonials': [],
        'scarcity_countdown': {
            'message': 'Only 2 slots left this month',
            'expires_at': (now + timedelta(hours=SCARCITY_WINDOW_HOURS)).isoformat(),
        },
        'calendar_booking': {
            'calendar_url': f'/book-call?lead_id={lead.id}',
            'priority_booking': lead.warmth_score >= HIGH_VALUE_THRESHOLD,
        },
        'case_studies': [],
        'auto_dialer_trigger': should_trigger_auto_dialer(lead, now),
        'generated_at': now.isoformat(),
    }
