"""
Persistence helpers — warm leads, seizure logs, settings, threat score history.

Primary writes (lead upserts, settings, config) roll back and re-raise so the
API reports the failure. History and activity-log appends are best effort:
a failed append is logged and never blocks the caller.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from leadradar.database import get_session
from leadradar.errors import AuthorizationError, NotFoundError
from leadradar.models.org_scoring_config import OrgScoringConfig
from leadradar.models.seizure_log import SeizureLog
from leadradar.models.seizure_settings import SeizureSettings
from leadradar.models.threat_score import ThreatScoreRecord
from leadradar.models.warm_lead import WarmLead
from leadradar.pipeline.records import (
    LeadThreatScore, SeizureAction, WarmLeadProfile, ensure_aware,
)
from leadradar.pipeline.sanitizer import sanitize_behavior_data

logger = logging.getLogger('services.store')

DEFAULT_SETTINGS = {
    'warmth_threshold': 65,
    'ad_channels': ['facebook', 'google'],
    'ab_testing_mode': False,
    'auto_dialer_enabled': False,
}


# ── Warm leads ───────────────────────────────────────────────────────────────

def profile_from_row(row: WarmLead) -> WarmLeadProfile:
    behavior = sanitize_behavior_data(dict(row.behavior_data or {}))
    behavior = replace(behavior, last_activity=ensure_aware(row.last_activity) or behavior.last_activity)
    return WarmLeadProfile(
        id=row.id,
        behavior=behavior,
        first_detected=ensure_aware(row.first_detected),
        warmth_score=row.warmth_score,
        status=row.status,
        seizure_history=[SeizureAction.from_dict(a) for a in (row.seizure_history or [])],
        user_id=row.user_id,
    )


def _apply_profile(row: WarmLead, profile: WarmLeadProfile):
    row.email = profile.email
    row.phone = profile.phone
    row.company = profile.company
    row.source = profile.source
    row.warmth_score = profile.warmth_score
    row.status = profile.status
    row.behavior_data = profile.behavior.to_dict()
    row.seizure_history = [a.to_dict() for a in profile.seizure_history]
    row.last_activity = profile.last_activity


def upsert_detected_lead(profile: WarmLeadProfile) -> WarmLeadProfile:
    """
    Store a freshly detected lead.

    A lead already on file for the same user + email keeps its id, status,
    first-detected time and seizure history; only behaviour and score refresh.
    """
    session = get_session()
    try:
        row = None
        if profile.email:
            row = session.query(WarmLead).filter_by(
                user_id=profile.user_id, email=profile.email,
            ).first()

        if row is None:
            row = WarmLead(id=profile.id, user_id=profile.user_id, first_detected=profile.first_detected)
            _apply_profile(row, profile)
            session.add(row)
        else:
            existing = profile_from_row(row)
            profile = replace(
                profile,
                id=existing.id,
                first_detected=existing.first_detected,
                status=existing.status,
                seizure_history=existing.seizure_history,
            )
            _apply_profile(row, profile)

        session.commit()
        return profile
    except Exception:
        session.rollback()
        logger.error("Failed to upsert warm lead %s", profile.id, exc_info=True)
        raise
    finally:
        session.close()


def save_warm_lead(profile: WarmLeadProfile) -> WarmLeadProfile:
    """Persist score/status/history changes on an existing lead."""
    session = get_session()
    try:
        row = session.get(WarmLead, profile.id)
        if row is None:
            raise NotFoundError(f'Warm lead {profile.id} not found')
        _apply_profile(row, profile)
        session.commit()
        return profile
    except NotFoundError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.error("Failed to save warm lead %s", profile.id, exc_info=True)
        raise
    finally:
        session.close()


def get_warm_lead(lead_id: str, user_id: str) -> WarmLeadProfile:
    """Load a lead owned by `user_id`. Missing → NotFoundError, foreign → AuthorizationError."""
    session = get_session()
    try:
        row = session.get(WarmLead, lead_id)
        if row is None:
            raise NotFoundError(f'Warm lead {lead_id} not found')
        if row.user_id != user_id:
            raise AuthorizationError('Warm lead belongs to another user')
        return profile_from_row(row)
    finally:
        session.close()


def list_warm_leads(user_id: str) -> List[WarmLeadProfile]:
    session = get_session()
    try:
        rows = (
            session.query(WarmLead)
            .filter_by(user_id=user_id)
            .order_by(WarmLead.warmth_score.desc(), WarmLead.first_detected.desc())
            .all()
        )
        return [profile_from_row(r) for r in rows]
    finally:
        session.close()


# ── Seizure activity log ─────────────────────────────────────────────────────

def append_seizure_log(warm_lead_id: str, user_id: str, action_type: str, data: Dict[str, Any]):
    session = get_session()
    try:
        session.add(SeizureLog(
            warm_lead_id=warm_lead_id,
            user_id=user_id,
            action_type=action_type,
            action_data=data,
        ))
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to log %s for warm lead %s", action_type, warm_lead_id, exc_info=True)
    finally:
        session.close()


def recent_seizure_logs(user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    session = get_session()
    try:
        rows = (
            session.query(SeizureLog)
            .filter_by(user_id=user_id)
            .order_by(SeizureLog.id.desc())
            .limit(limit)
            .all()
        )
        return [{
            'warm_lead_id': r.warm_lead_id,
            'action_type': r.action_type,
            'action_data': r.action_data or {},
            'created_at': ensure_aware(r.created_at).isoformat() if r.created_at else None,
        } for r in rows]
    finally:
        session.close()


# ── Settings ─────────────────────────────────────────────────────────────────

def get_settings(user_id: str) -> Dict[str, Any]:
    session = get_session()
    try:
        row = session.get(SeizureSettings, user_id)
        return row.to_dict() if row else dict(DEFAULT_SETTINGS)
    finally:
        session.close()


def save_settings(user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    session = get_session()
    try:
        row = session.get(SeizureSettings, user_id)
        if row is None:
            row = SeizureSettings(user_id=user_id, **DEFAULT_SETTINGS)
            session.add(row)
        for key, value in updates.items():
            setattr(row, key, value)
        session.commit()
        return row.to_dict()
    except Exception:
        session.rollback()
        logger.error("Failed to save settings for %s", user_id, exc_info=True)
        raise
    finally:
        session.close()


# ── Threat score history ─────────────────────────────────────────────────────

def score_row_to_dict(row: ThreatScoreRecord) -> Dict[str, Any]:
    return {
        'lead_id': row.lead_id,
        'overall_score': row.overall_score,
        'threat_level': row.threat_level,
        'scoring_factors': row.scoring_factors or {},
        'threat_indicators': row.threat_indicators or {},
        'recommended_actions': row.recommended_actions or {},
        'dynamic_follow_up': row.dynamic_follow_up or {},
        'competitive_intelligence': row.competitive_intelligence or {},
        'calculated_at': ensure_aware(row.calculated_at).isoformat(),
        'expires_at': ensure_aware(row.expires_at).isoformat(),
    }


def save_threat_score(score: LeadThreatScore, user_id: str):
    """Append a calculation to history. Best effort."""
    data = score.to_dict()
    session = get_session()
    try:
        session.add(ThreatScoreRecord(
            lead_id=score.lead_id,
            user_id=user_id,
            overall_score=score.overall_score,
            threat_level=score.threat_level,
            scoring_factors=data['scoring_factors'],
            threat_indicators=data['threat_indicators'],
            recommended_actions=data['recommended_actions'],
            dynamic_follow_up=data['dynamic_follow_up'],
            competitive_intelligence=data['competitive_intelligence'],
            calculated_at=score.calculated_at,
            expires_at=score.expires_at,
        ))
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to store threat score", exc_info=True, extra={'lead_id': score.lead_id})
    finally:
        session.close()


def get_cached_score(lead_id: str, user_id: str, now: datetime) -> Optional[Dict[str, Any]]:
    """Freshest unexpired score for a lead, or None."""
    session = get_session()
    try:
        row = (
            session.query(ThreatScoreRecord)
            .filter_by(lead_id=lead_id, user_id=user_id)
            .order_by(ThreatScoreRecord.calculated_at.desc(), ThreatScoreRecord.id.desc())
            .first()
        )
        if row is None or ensure_aware(row.expires_at) <= now:
            return None
        return score_row_to_dict(row)
    finally:
        session.close()


def get_score_history(user_id: str, lead_id: Optional[str] = None,
                      limit: int = 50, offset: int = 0) -> Tuple[List[Dict[str, Any]], int]:
    session = get_session()
    try:
        query = session.query(ThreatScoreRecord).filter_by(user_id=user_id)
        if lead_id:
            query = query.filter_by(lead_id=lead_id)
        total = query.count()
        rows = (
            query.order_by(ThreatScoreRecord.calculated_at.desc(), ThreatScoreRecord.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [score_row_to_dict(r) for r in rows], total
    finally:
        session.close()


def get_scores_since(user_id: str, since: datetime) -> List[Dict[str, Any]]:
    session = get_session()
    try:
        rows = (
            session.query(ThreatScoreRecord)
            .filter(ThreatScoreRecord.user_id == user_id, ThreatScoreRecord.calculated_at >= since)
            .order_by(ThreatScoreRecord.calculated_at.asc())
            .all()
        )
        return [score_row_to_dict(r) for r in rows]
    finally:
        session.close()


# ── Organization scoring config ──────────────────────────────────────────────

def get_org_config(organization_id: str) -> Optional[Dict[str, Any]]:
    session = get_session()
    try:
        row = session.get(OrgScoringConfig, organization_id)
        if row is None:
            return None
        return {
            'scoring_weights': row.scoring_weights,
            'threat_thresholds': row.threat_thresholds,
            'cache_duration_hours': row.cache_duration_hours,
        }
    finally:
        session.close()


def save_org_config(organization_id: str, config: Dict[str, Any]) -> Dict[str, Any]:
    session = get_session()
    try:
        row = session.get(OrgScoringConfig, organization_id)
        if row is None:
            row = OrgScoringConfig(organization_id=organization_id)
            session.add(row)
        row.scoring_weights = config.get('scoring_weights')
        row.threat_thresholds = config.get('threat_thresholds')
        row.cache_duration_hours = config.get('cache_duration_hours')
        session.commit()
        return config
    except Exception:
        session.rollback()
        logger.error("Failed to save scoring config for %s", organization_id, exc_info=True)
        raise
    finally:
        session.close()
