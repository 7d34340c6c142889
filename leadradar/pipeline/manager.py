"""
Pipeline Manager — orchestrates the scoring engines against persistence.

Warm leads:
  DETECT → QUALIFY → PLAN SEIZURE → EXECUTE → (CONVERTED | COLD | UNSUBSCRIBED)

Threat scoring:
  cached score? → CONVERSATION INTEL → FACTORS → LEVEL → ACTIONS → history

The engines in warmth.py / seizure.py / threat.py are pure; everything that
reads or writes state goes through here.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from leadradar.config import (
    TERMINAL_STATUSES, WARM_LEAD_STATUSES, HIGH_VALUE_THRESHOLD, MAX_LEADS_PER_REQUEST,
    MAX_CONVERSION_VALUE, MAX_ERROR_MESSAGE_LENGTH,
)
from leadradar.errors import LeadRadarError, ValidationError
from leadradar.pipeline.base import BatchResult
from leadradar.pipeline.records import WarmLeadProfile, is_real_number, utcnow
from leadradar.pipeline.scoring_config import merge_org_config
from leadradar.pipeline.seizure import plan_seizure_campaign, generate_closer_grid
from leadradar.pipeline.threat import calculate_lead_threat_score, validate_weights, validate_levels
from leadradar.pipeline.warmth import WarmthScorer, detect_warm_leads, warm_signals
from leadradar.services import store
from leadradar.services.ad_intel import enrich_competitors
from leadradar.services.analytics import summarize_scores

logger = logging.getLogger('pipeline.manager')

MAX_HISTORY_LIMIT = 200
MAX_ANALYTICS_DAYS = 365


def _ensure_active(lead: WarmLeadProfile):
    if lead.status in TERMINAL_STATUSES:
        raise ValidationError(f'Warm lead {lead.id} is {lead.status}')


# ── Warm leads ───────────────────────────────────────────────────────────────

def detect(records: Any, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Sanitize a telemetry batch and store every warm lead found.

    Each lead is written on its own; a failed write is logged and reported
    in `errors` while the rest of the batch is still stored.
    """
    now = now or utcnow()
    profiles = detect_warm_leads(records, now=now, user_id=user_id)
    stored = []
    errors = []
    for profile in profiles:
        try:
            stored.append(store.upsert_detected_lead(profile))
        except LeadRadarError as e:
            errors.append({'lead_id': profile.id, 'email': profile.email, 'error': e.message})
        except Exception:
            logger.error("Storing detected lead failed", exc_info=True,
                         extra={'lead_id': profile.id, 'user_id': user_id})
            errors.append({'lead_id': profile.id, 'email': profile.email, 'error': 'Internal error'})
    if errors:
        logger.warning("Stored %d/%d detected leads", len(stored), len(profiles),
                       extra={'user_id': user_id})
    return {
        'processed_count': len(records),
        'detected_count': len(profiles),
        'stored_count': len(stored),
        'failed_count': len(errors),
        'warm_leads': [p.to_dict() for p in stored],
        'errors': errors,
    }


def qualify(lead_id: str, user_id: str) -> Dict[str, Any]:
    """Re-score a lead and promote it to qualified when above the user's threshold."""
    lead = store.get_warm_lead(lead_id, user_id)
    _ensure_active(lead)
    settings = store.get_settings(user_id)

    scorer = WarmthScorer()
    score = scorer.calculate_warmth_score(lead.behavior)
    qualified = score >= settings['warmth_threshold']
    status = lead.status
    if qualified and status == 'detected':
        status = 'qualified'

    lead = store.save_warm_lead(replace(lead, warmth_score=score, status=status))
    logger.info("Qualification: score=%d qualified=%s", score, qualified,
                extra={'lead_id': lead.id, 'user_id': user_id})
    return {
        'warm_lead': lead.to_dict(),
        'qualified': qualified,
        'high_value': score >= HIGH_VALUE_THRESHOLD,
        'warmth_threshold': settings['warmth_threshold'],
        'score_breakdown': {k: round(v, 2) for k, v in scorer.score_breakdown(lead.behavior).items()},
        'signals': warm_signals(lead.behavior),
    }


def plan_seizure(lead_id: str, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Plan the campaign, append it to the lead's history and mark the lead seized."""
    now = now or utcnow()
    lead = store.get_warm_lead(lead_id, user_id)
    _ensure_active(lead)

    actions = plan_seizure_campaign(lead, now=now)
    if not actions:
        return {
            'warm_lead': lead.to_dict(),
            'actions': [],
            'closer_grid': None,
            'message': 'Lead is below the qualification threshold',
        }

    known = {a.id for a in lead.seizure_history}
    new_actions = [a for a in actions if a.id not in known]
    lead = replace(lead, status='seized', seizure_history=lead.seizure_history + new_actions)
    lead = store.save_warm_lead(lead)
    store.append_seizure_log(lead.id, user_id, 'seizure_planned', {
        'action_count': len(new_actions),
        'warmth_score': lead.warmth_score,
    })
    return {
        'warm_lead': lead.to_dict(),
        'actions': [a.to_dict() for a in actions],
        'closer_grid': generate_closer_grid(lead, now=now),
    }


def execute_seizure(lead_id: str, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Send every planned action whose trigger day has arrived; schedule the rest.

    An action is due once `created_at + trigger_day` days have passed, so
    day-0 actions go out on the first execution.
    """
    now = now or utcnow()
    lead = store.get_warm_lead(lead_id, user_id)
    _ensure_active(lead)
    if lead.status != 'seized' or not lead.seizure_history:
        raise ValidationError('Plan a seizure campaign before executing it')

    history, executed, scheduled = [], [], []
    for action in lead.seizure_history:
        if action.status in ('pending', 'scheduled'):
            due_at = (action.created_at or now) + timedelta(days=action.trigger_day)
            if due_at <= now:
                action = action.advance('sent', at=now)
                executed.append(action)
            elif action.status == 'pending':
                action = action.advance('scheduled')
                scheduled.append(action)
            else:
                scheduled.append(action)
        history.append(action)

    lead = store.save_warm_lead(replace(lead, seizure_history=history))
    store.append_seizure_log(lead.id, user_id, 'seizure_executed', {
        'executed': [a.id for a in executed],
        'scheduled': len(scheduled),
    })
    upcoming = [a.trigger_day for a in scheduled]
    return {
        'warm_lead_id': lead.id,
        'executed_actions': [a.to_dict() for a in executed],
        'scheduled_actions': [a.to_dict() for a in scheduled],
        'next_action_day': min(upcoming) if upcoming else None,
    }


def update_status(lead_id: str, user_id: str, status: str,
                  conversion_value: Any = None, reason: Any = None) -> Dict[str, Any]:
    """Move a lead to a terminal status. Open actions are cancelled."""
    if status not in TERMINAL_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(TERMINAL_STATUSES)}")
    if conversion_value is not None:
        if not is_real_number(conversion_value) or not 0 <= conversion_value <= MAX_CONVERSION_VALUE:
            raise ValidationError(f'conversion_value must be between 0 and {MAX_CONVERSION_VALUE}')
        if status != 'converted':
            raise ValidationError('conversion_value only applies to converted leads')

    lead = store.get_warm_lead(lead_id, user_id)
    _ensure_active(lead)

    history = []
    for action in lead.seizure_history:
        if action.status in ('pending', 'scheduled'):
            message = str(reason)[:MAX_ERROR_MESSAGE_LENGTH] if reason else None
            action = action.advance('cancelled', error_message=message)
        history.append(action)

    lead = store.save_warm_lead(replace(lead, status=status, seizure_history=history))
    store.append_seizure_log(lead.id, user_id, 'status_changed', {
        'status': status,
        'conversion_value': conversion_value,
    })
    return {'warm_lead': lead.to_dict()}


def dashboard(user_id: str) -> Dict[str, Any]:
    leads = store.list_warm_leads(user_id)
    threshold = store.get_settings(user_id)['warmth_threshold']
    total = len(leads)
    converted = sum(1 for lead in leads if lead.status == 'converted')
    return {
        'summary': {
            'total_warm_leads': total,
            'qualified_leads': sum(1 for lead in leads if lead.warmth_score >= threshold),
            'high_value_leads': sum(1 for lead in leads if lead.warmth_score >= HIGH_VALUE_THRESHOLD),
            'converted_leads': converted,
            'active_seizures': sum(1 for lead in leads if lead.status == 'seized'),
            'conversion_rate': round(converted / total * 100, 2) if total else 0,
            'by_status': {status: sum(1 for lead in leads if lead.status == status)
                          for status in WARM_LEAD_STATUSES},
        },
        'top_leads': [lead.to_dict() for lead in leads[:10]],
        'recent_activity': store.recent_seizure_logs(user_id, limit=50),
    }


def update_settings(user_id: str, payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError('Settings must be an object')

    updates = {}
    if 'warmth_threshold' in payload:
        threshold = payload['warmth_threshold']
        if not is_real_number(threshold) or not 0 <= threshold <= 100:
            raise ValidationError('warmth_threshold must be between 0 and 100')
        updates['warmth_threshold'] = int(threshold)
    if 'ad_channels' in payload:
        channels = payload['ad_channels']
        if not isinstance(channels, list) or not all(isinstance(c, str) and c.strip() for c in channels):
            raise ValidationError('ad_channels must be a list of channel names')
        updates['ad_channels'] = [c.strip().lower() for c in channels][:10]
    for flag in ('ab_testing_mode', 'auto_dialer_enabled'):
        if flag in payload:
            if not isinstance(payload[flag], bool):
                raise ValidationError(f'{flag} must be a boolean')
            updates[flag] = payload[flag]

    if not updates:
        raise ValidationError('No valid settings provided')
    return store.save_settings(user_id, updates)


# ── Threat scoring ───────────────────────────────────────────────────────────

def get_scoring_config(user_id: str) -> Dict[str, Any]:
    return merge_org_config(store.get_org_config(user_id) or {})


def update_scoring_config(user_id: str, payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError('Scoring config must be an object')
    current = get_scoring_config(user_id)
    if 'scoring_weights' in payload:
        weights = payload['scoring_weights']
        if not isinstance(weights, dict):
            raise ValidationError('scoring_weights must be an object')
        current['scoring_weights'] = validate_weights(weights)
    if 'threat_thresholds' in payload:
        levels = payload['threat_thresholds']
        if not isinstance(levels, dict):
            raise ValidationError('threat_thresholds must be an object')
        current['threat_thresholds'] = validate_levels(levels)
    if 'cache_duration_hours' in payload:
        hours = payload['cache_duration_hours']
        if not is_real_number(hours) or not 0 <= hours <= 168:
            raise ValidationError('cache_duration_hours must be between 0 and 168')
        current['cache_duration_hours'] = int(hours)
    return store.save_org_config(user_id, current)


def score_lead(payload: Any, user_id: str, now: Optional[datetime] = None,
               config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Score one lead, reusing a cached score inside the cache window unless
    `force_recalculate` is set.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be an object')
    lead = payload.get('lead')
    if lead is None:
        raise ValidationError('Lead data is required')
    now = now or utcnow()
    config = config or get_scoring_config(user_id)

    lead_id = lead.get('id') if isinstance(lead, dict) else None
    if lead_id and not payload.get('force_recalculate'):
        cached = store.get_cached_score(str(lead_id), user_id, now)
        if cached:
            logger.info("Serving cached threat score", extra={'lead_id': lead_id, 'user_id': user_id})
            return {'threat_score': cached, 'cached': True}

    competitors = payload.get('competitors') or []
    if payload.get('enrich_competitors') and isinstance(competitors, list):
        competitors = enrich_competitors(competitors)

    score = calculate_lead_threat_score(
        lead,
        payload.get('conversations') or [],
        competitors,
        now=now,
        cache_hours=config['cache_duration_hours'],
        weights=config['scoring_weights'],
        levels=config['threat_thresholds'],
    )
    store.save_threat_score(score, user_id)
    return {'threat_score': score.to_dict(), 'cached': False}


def score_batch(items: Any, user_id: str, now: Optional[datetime] = None) -> BatchResult:
    """Score up to MAX_LEADS_PER_REQUEST leads; one lead's failure never fails the batch."""
    if not isinstance(items, list) or not items:
        raise ValidationError('leads must be a non-empty list')
    if len(items) > MAX_LEADS_PER_REQUEST:
        raise ValidationError(f'Batch size cannot exceed {MAX_LEADS_PER_REQUEST} leads')

    now = now or utcnow()
    config = get_scoring_config(user_id)
    result = BatchResult()
    for i, item in enumerate(items):
        result.processed += 1
        lead_id = item.get('lead', {}).get('id') if isinstance(item, dict) and isinstance(item.get('lead'), dict) else None
        try:
            scored = score_lead(item, user_id, now=now, config=config)
            result.results.append({'lead_id': lead_id, 'success': True, **scored})
        except LeadRadarError as e:
            result.failed += 1
            result.errors.append(f'Item {i}: {e.message}')
            result.results.append({'lead_id': lead_id, 'success': False, 'error': e.message})
        except Exception as e:
            logger.error("Batch item %d failed", i, exc_info=True, extra={'lead_id': lead_id})
            result.failed += 1
            result.errors.append(f'Item {i}: {e}')
            result.results.append({'lead_id': lead_id, 'success': False, 'error': 'Internal error'})
    logger.info("Batch scored %d/%d leads", result.succeeded, result.processed, extra={'user_id': user_id})
    return result


def score_history(user_id: str, lead_id: Optional[str] = None,
                  limit: Any = 50, offset: Any = 0) -> Dict[str, Any]:
    try:
        limit = int(limit)
        offset = int(offset)
    except (TypeError, ValueError):
        raise ValidationError('limit and offset must be integers')
    if not 1 <= limit <= MAX_HISTORY_LIMIT or offset < 0:
        raise ValidationError(f'limit must be 1-{MAX_HISTORY_LIMIT} and offset non-negative')
    scores, total = store.get_score_history(user_id, lead_id=lead_id, limit=limit, offset=offset)
    return {
        'scores': scores,
        'pagination': {'total': total, 'limit': limit, 'offset': offset,
                       'has_more': offset + len(scores) < total},
    }


def score_analytics(user_id: str, days: Any = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
    try:
        days = int(days)
    except (TypeError, ValueError):
        raise ValidationError('days must be an integer')
    if not 1 <= days <= MAX_ANALYTICS_DAYS:
        raise ValidationError(f'days must be between 1 and {MAX_ANALYTICS_DAYS}')
    now = now or utcnow()
    scores = store.get_scores_since(user_id, now - timedelta(days=days))
    return summarize_scores(scores, days)
