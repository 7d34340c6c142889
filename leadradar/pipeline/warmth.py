"""
Warm lead detection + warmth scoring.

Detection is a deliberately low bar: any two of seven behavioural signals make
a lead "warm". The warmth score then decides whether the lead is worth a
seizure campaign.

Warmth score = sum of eight sub-scores, each normalized against a fixed
baseline and capped at its weight, rounded and clamped to [0, 100]. The
default weights sum to 140, so several strong factors saturate the score.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from leadradar.config import MIN_WARM_SIGNALS
from leadradar.errors import ValidationError
from leadradar.pipeline.records import LeadBehaviorData, WarmLeadProfile, utcnow
from leadradar.pipeline.sanitizer import sanitize_batch
from leadradar.pipeline.scoring_config import get_warmth_weights

logger = logging.getLogger('pipeline.warmth')

MAX_FACTOR_WEIGHT = 50
MAX_TOTAL_WEIGHT = 200

# Baselines a sub-score is normalized against
TIME_ON_SITE_BASELINE = 300      # seconds
REPEAT_VISITS_BASELINE = 5
RETARGETING_BASELINE = 10
EMAIL_OPENS_BASELINE = 5
PRICING_TIME_BASELINE = 45       # seconds
QUOTE_CLICKS_BASELINE = 3


# ── Signals ──────────────────────────────────────────────────────────────────

def warm_signals(behavior: LeadBehaviorData) -> Dict[str, bool]:
    return {
        'pricing_page_time': behavior.time_on_pricing_page > 45,
        'quote_clicks': behavior.quote_clicks_no_submit > 0,
        'email_engagement': behavior.emails_opened > 2,
        'ad_clicks': behavior.ad_clicks_no_conversion > 0,
        'repeat_visits': behavior.visits_last_14_days > 1,
        'form_progress': behavior.form_completion_rate > 0.5,
        'deep_scroll': behavior.max_scroll_depth > 80,
    }


def is_warm_lead(behavior: LeadBehaviorData) -> bool:
    return sum(warm_signals(behavior).values()) >= MIN_WARM_SIGNALS


# ── Scorer ───────────────────────────────────────────────────────────────────

def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


class WarmthScorer:
    """
    Weighted warmth scorer.

    Weights are validated at construction: each in [0, 50], total ≤ 200.
    Missing weights fall back to the configured defaults.
    """

    def __init__(self, factors: Optional[Dict[str, float]] = None):
        weights = get_warmth_weights()
        if factors:
            unknown = set(factors) - set(weights)
            if unknown:
                raise ValidationError(f"Unknown warmth factors: {', '.join(sorted(unknown))}")
            weights.update(factors)
        self._validate(weights)
        self.weights = weights

    @staticmethod
    def _validate(weights: Dict[str, float]):
        for name, weight in weights.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise ValidationError(f'Warmth weight {name} must be a number')
            if weight < 0 or weight > MAX_FACTOR_WEIGHT:
                raise ValidationError(
                    f'Warmth weight {name} must be between 0 and {MAX_FACTOR_WEIGHT}'
                )
        total = sum(weights.values())
        if total > MAX_TOTAL_WEIGHT:
            raise ValidationError(f'Total warmth weight {total} exceeds {MAX_TOTAL_WEIGHT}')

    def score_breakdown(self, behavior: LeadBehaviorData) -> Dict[str, float]:
        w = self.weights
        return {
            'time_on_site': min(w['time_on_site'],
                                behavior.total_time_on_site / TIME_ON_SITE_BASELINE * w['time_on_site']),
            'repeat_visits': min(w['repeat_visits'],
                                 behavior.visits_last_14_days / REPEAT_VISITS_BASELINE * w['repeat_visits']),
            'form_completion': _clamp(behavior.form_completion_rate, 0, 1) * w['form_completion'],
            'retargeting': min(w['retargeting'],
                               behavior.retargeting_interactions * w['retargeting'] / RETARGETING_BASELINE),
            'scroll_depth': _clamp(behavior.max_scroll_depth, 0, 100) / 100 * w['scroll_depth'],
            'email_engagement': min(w['email_engagement'],
                                    behavior.emails_opened / EMAIL_OPENS_BASELINE * w['email_engagement']),
            'pricing_time': min(w['pricing_time'],
                                behavior.time_on_pricing_page / PRICING_TIME_BASELINE * w['pricing_time']),
            'quote_intent': min(w['quote_intent'],
                                behavior.quote_clicks_no_submit * w['quote_intent'] / QUOTE_CLICKS_BASELINE),
        }

    def calculate_warmth_score(self, behavior: LeadBehaviorData) -> int:
        total = sum(self.score_breakdown(behavior).values())
        return int(_clamp(round(total), 0, 100))


# ── Detection ────────────────────────────────────────────────────────────────

def new_warm_lead_id() -> str:
    return f'wl_{uuid.uuid4().hex}'


def build_profile(behavior: LeadBehaviorData, scorer: WarmthScorer,
                  now: Optional[datetime] = None, user_id: Optional[str] = None) -> WarmLeadProfile:
    return WarmLeadProfile(
        id=new_warm_lead_id(),
        behavior=behavior,
        first_detected=now or utcnow(),
        warmth_score=scorer.calculate_warmth_score(behavior),
        status='detected',
        user_id=user_id,
    )


def detect_warm_leads(records: list, scorer: Optional[WarmthScorer] = None,
                      now: Optional[datetime] = None, user_id: Optional[str] = None) -> List[WarmLeadProfile]:
    """Sanitize a batch and return a scored profile for every warm record."""
    scorer = scorer or WarmthScorer()
    behaviors = sanitize_batch(records)
    profiles = [build_profile(b, scorer, now=now, user_id=user_id)
                for b in behaviors if is_warm_lead(b)]
    logger.info("Detected %d warm leads out of %d records", len(profiles), len(records))
    return profiles
