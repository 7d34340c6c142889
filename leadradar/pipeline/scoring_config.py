"""
Scoring configuration loader — threat factor weights, level bands, warmth weights.

YAML file with in-memory cache and hardcoded fallback if the file is missing.
Per-organization overrides live in the lead_scoring_config table and are
merged on top by the threat scoring routes.
"""
import copy
import logging
import os

import yaml

logger = logging.getLogger('pipeline.scoring_config')


_scoring_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'threat_weights': {
            'intent_strength': 0.25,
            'competitive_pressure': 0.20,
            'urgency_indicators': 0.20,
            'budget_authority': 0.15,
            'fit_score': 0.10,
            'engagement_level': 0.05,
            'competitor_influence': 0.05,
        },
        'threat_levels': {
            'critical': 80,
            'high': 65,
            'medium': 45,
        },
        'warmth_weights': {
            'time_on_site': 15,
            'repeat_visits': 20,
            'form_completion': 25,
            'retargeting': 10,
            'scroll_depth': 8,
            'email_engagement': 12,
            'pricing_time': 20,
            'quote_intent': 30,
        },
        'cache_duration_hours': 24,
    }


def load_scoring_config() -> dict:
    """Load scoring config from YAML, with in-memory cache and hardcoded fallback."""
    global _scoring_config
    if _scoring_config is not None:
        return _scoring_config

    config_path = os.path.join(os.path.dirname(__file__), 'scoring_config.yaml')
    try:
        with open(config_path, 'r') as f:
            _scoring_config = yaml.safe_load(f)
        logger.info("Config loaded from YAML (version=%s)", _scoring_config.get('version', '?'))
    except Exception as e:
        logger.warning("YAML config not found (%s), using defaults", e)
        _scoring_config = _default_config()

    return _scoring_config


def get_threat_weights() -> dict:
    return dict(load_scoring_config().get('threat_weights') or _default_config()['threat_weights'])


def get_threat_levels() -> dict:
    return dict(load_scoring_config().get('threat_levels') or _default_config()['threat_levels'])


def get_warmth_weights() -> dict:
    return dict(load_scoring_config().get('warmth_weights') or _default_config()['warmth_weights'])


def get_cache_hours() -> int:
    return int(load_scoring_config().get('cache_duration_hours', 24))


def default_org_config() -> dict:
    """Defaults returned by the config endpoint when an organization has no overrides."""
    return {
        'scoring_weights': get_threat_weights(),
        'threat_thresholds': get_threat_levels(),
        'cache_duration_hours': get_cache_hours(),
    }


def merge_org_config(overrides: dict) -> dict:
    """Layer an organization's stored overrides on top of the defaults."""
    merged = copy.deepcopy(default_org_config())
    for key in ('scoring_weights', 'threat_thresholds'):
        if isinstance((overrides or {}).get(key), dict):
            merged[key].update(overrides[key])
    if (overrides or {}).get('cache_duration_hours') is not None:
        merged['cache_duration_hours'] = overrides['cache_duration_hours']
    return merged
