"""
Facebook Ads Library — competitor ad activity.

Used only to fill `active_campaigns` / `ad_spend_estimate` on competitor
records before threat scoring. Any failure leaves the competitor untouched.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from leadradar.config import FACEBOOK_ADS_ACCESS_TOKEN, FACEBOOK_GRAPH_URL

logger = logging.getLogger('services.ad_intel')

AD_FIELDS = [
    'id',
    'ad_creation_time',
    'ad_creative_bodies',
    'ad_delivery_start_time',
    'ad_delivery_stop_time',
    'impressions',
    'page_name',
    'publisher_platforms',
    'spend',
]


def search_ads(search_term: str, limit: int = 50, access_token: Optional[str] = None,
               country: str = 'US') -> List[Dict[str, Any]]:
    """Raw ads_archive results for an advertiser search term."""
    token = access_token or FACEBOOK_ADS_ACCESS_TOKEN
    if not token:
        raise RuntimeError('FACEBOOK_ADS_ACCESS_TOKEN is not configured')

    from leadradar.services.circuit_breaker import get_breaker
    cb = get_breaker('facebook_ads')
    resp = cb.call(
        requests.get,
        f'{FACEBOOK_GRAPH_URL}/ads_archive',
        params={
            'access_token': token,
            'search_terms': search_term,
            'ad_reached_countries': country,
            'ad_active_status': 'ALL',
            'limit': limit,
            'fields': ','.join(AD_FIELDS),
        },
        timeout=20,
    )
    if resp.status_code != 200:
        try:
            message = resp.json().get('error', {}).get('message', resp.reason)
        except ValueError:
            message = resp.reason
        raise RuntimeError(f'Facebook Ads API error: {resp.status_code} - {message}')
    return resp.json().get('data', []) or []


def _midpoint(bounds: Any) -> float:
    if not isinstance(bounds, dict):
        return 0
    try:
        return (float(bounds.get('lower_bound', 0)) + float(bounds.get('upper_bound', 0))) / 2
    except (TypeError, ValueError):
        return 0


def summarize_ads(ads: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Active ad count, monthly spend estimate and platforms for a list of ads."""
    now = now or datetime.now(timezone.utc)
    active = [ad for ad in ads if not ad.get('ad_delivery_stop_time')]

    daily_spend = 0.0
    for ad in active:
        start = ad.get('ad_delivery_start_time')
        try:
            started = datetime.fromisoformat(str(start).replace('Z', '+00:00'))
        except ValueError:
            continue
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        days = max(1, (now - started).days)
        daily_spend += _midpoint(ad.get('spend')) / days

    platforms = []
    for ad in ads:
        for platform in ad.get('publisher_platforms') or []:
            if platform not in platforms:
                platforms.append(platform)

    return {
        'total_ads_found': len(ads),
        'active_ads': len(active),
        'estimated_monthly_spend': round(daily_spend * 30),
        'active_platforms': platforms,
    }


def enrich_competitors(competitors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Fill active_campaigns / ad_spend_estimate from the Ads Library.

    Competitors that already carry active_campaigns are left alone.
    """
    if not FACEBOOK_ADS_ACCESS_TOKEN:
        return competitors

    enriched = []
    for competitor in competitors:
        if not isinstance(competitor, dict) or not competitor.get('name') \
                or competitor.get('active_campaigns') is not None:
            enriched.append(competitor)
            continue
        try:
            summary = summarize_ads(search_ads(competitor['name'], limit=100))
        except Exception as e:
            logger.warning("Ad intel lookup failed for %s: %s", competitor['name'], e)
            enriched.append(competitor)
            continue
        enriched.append({
            **competitor,
            'active_campaigns': summary['active_ads'],
            'ad_spend_estimate': summary['estimated_monthly_spend'],
        })
    return enriched
