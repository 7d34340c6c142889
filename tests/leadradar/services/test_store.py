"""Tests for leadradar.services.store — persistence against in-memory SQLite."""
from dataclasses import replace
from datetime import timedelta
from unittest.mock import patch

import pytest

from leadradar.errors import AuthorizationError, NotFoundError
from leadradar.models.threat_score import ThreatScoreRecord
from leadradar.models.warm_lead import WarmLead
from leadradar.pipeline.sanitizer import sanitize_behavior_data
from leadradar.pipeline.seizure import plan_seizure_campaign
from leadradar.pipeline.threat import calculate_lead_threat_score
from leadradar.pipeline.warmth import WarmthScorer, build_profile
from leadradar.services import store


@pytest.fixture
def profile(hot_behavior, now):
    return build_profile(sanitize_behavior_data(hot_behavior), WarmthScorer(), now=now, user_id='u1')


class TestWarmLeads:

    def test_upsert_and_load(self, profile, db_session):
        store.upsert_detected_lead(profile)
        row = db_session.get(WarmLead, profile.id)
        assert row.email == 'jane@acme.io'
        assert row.behavior_data['time_on_pricing_page'] == 180

        loaded = store.get_warm_lead(profile.id, 'u1')
        assert loaded.behavior == replace(profile.behavior, last_activity=loaded.behavior.last_activity)
        assert loaded.first_detected == profile.first_detected
        assert loaded.warmth_score == 100

    def test_same_email_reuses_row(self, profile, hot_behavior, now):
        store.upsert_detected_lead(profile)
        second = build_profile(sanitize_behavior_data(hot_behavior), WarmthScorer(),
                               now=now + timedelta(days=2), user_id='u1')
        merged = store.upsert_detected_lead(second)
        assert merged.id == profile.id
        assert merged.first_detected == profile.first_detected
        assert len(store.list_warm_leads('u1')) == 1

    def test_same_email_other_user_is_separate(self, profile, hot_behavior, now):
        store.upsert_detected_lead(profile)
        other = build_profile(sanitize_behavior_data(hot_behavior), WarmthScorer(), now=now, user_id='u2')
        assert store.upsert_detected_lead(other).id != profile.id

    def test_history_round_trips(self, profile, now):
        store.upsert_detected_lead(profile)
        planned = replace(profile, status='seized', seizure_history=list(plan_seizure_campaign(profile, now=now)))
        store.save_warm_lead(planned)
        loaded = store.get_warm_lead(profile.id, 'u1')
        assert loaded.status == 'seized'
        assert loaded.seizure_history == planned.seizure_history

    def test_missing_and_foreign(self, profile):
        store.upsert_detected_lead(profile)
        with pytest.raises(NotFoundError):
            store.get_warm_lead('wl_nope', 'u1')
        with pytest.raises(AuthorizationError):
            store.get_warm_lead(profile.id, 'u2')
        with pytest.raises(NotFoundError):
            store.save_warm_lead(replace(profile, id='wl_nope'))

    def test_list_orders_by_score(self, profile, now):
        store.upsert_detected_lead(profile)
        cooler = build_profile(sanitize_behavior_data({'email': 'b@acme.io', 'emails_opened': 3}),
                               WarmthScorer(), now=now, user_id='u1')
        store.upsert_detected_lead(cooler)
        assert [p.id for p in store.list_warm_leads('u1')] == [profile.id, cooler.id]


class TestSeizureLogs:

    def test_append_and_read(self):
        store.append_seizure_log('wl_1', 'u1', 'seizure_planned', {'action_count': 4})
        store.append_seizure_log('wl_1', 'u1', 'seizure_executed', {'executed': []})
        logs = store.recent_seizure_logs('u1')
        assert [log['action_type'] for log in logs] == ['seizure_executed', 'seizure_planned']
        assert logs[1]['action_data'] == {'action_count': 4}

    def test_append_failure_is_swallowed(self, db_session):
        with patch.object(db_session, 'commit', side_effect=RuntimeError('db down')):
            store.append_seizure_log('wl_1', 'u1', 'seizure_planned', {})


class TestSettings:

    def test_defaults(self):
        assert store.get_settings('fresh') == store.DEFAULT_SETTINGS

    def test_save_merges(self):
        store.save_settings('u1', {'warmth_threshold': 70})
        settings = store.save_settings('u1', {'ab_testing_mode': True})
        assert settings['warmth_threshold'] == 70
        assert settings['ab_testing_mode'] is True


class TestThreatScores:

    def test_save_and_cache(self, rich_lead, now):
        score = calculate_lead_threat_score(rich_lead, now=now)
        store.save_threat_score(score, 'u1')
        cached = store.get_cached_score('lead-001', 'u1', now + timedelta(hours=1))
        assert cached == score.to_dict()
        assert store.get_cached_score('lead-001', 'u1', now + timedelta(hours=24)) is None
        assert store.get_cached_score('lead-001', 'u2', now) is None

    def test_save_failure_is_swallowed(self, rich_lead, now, db_session):
        score = calculate_lead_threat_score(rich_lead, now=now)
        with patch.object(db_session, 'commit', side_effect=RuntimeError('db down')):
            store.save_threat_score(score, 'u1')
        assert db_session.query(ThreatScoreRecord).count() == 0

    def test_history_filters(self, rich_lead, now):
        for lead_id in ('lead-001', 'lead-002', 'lead-001'):
            store.save_threat_score(calculate_lead_threat_score(dict(rich_lead, id=lead_id), now=now), 'u1')
        rows, total = store.get_score_history('u1', lead_id='lead-001')
        assert total == 2
        assert {r['lead_id'] for r in rows} == {'lead-001'}

    def test_scores_since(self, rich_lead, now):
        store.save_threat_score(calculate_lead_threat_score(rich_lead, now=now - timedelta(days=10)), 'u1')
        store.save_threat_score(calculate_lead_threat_score(rich_lead, now=now), 'u1')
        assert len(store.get_scores_since('u1', now - timedelta(days=5))) == 1


class TestOrgConfig:

    def test_missing(self):
        assert store.get_org_config('org') is None

    def test_save_and_load(self):
        config = {'scoring_weights': {'intent_strength': 1.0},
                  'threat_thresholds': {'critical': 80, 'high': 65, 'medium': 45},
                  'cache_duration_hours': 6}
        store.save_org_config('org', config)
        assert store.get_org_config('org') == config
