"""
Threat score analytics — aggregates over a window of score history rows.
"""
from collections import Counter, OrderedDict
from typing import Any, Dict, List

from leadradar.config import THREAT_LEVELS

HIGH_THREAT_LEVELS = ('high', 'critical')


def _trend(first: float, last: float) -> Dict[str, Any]:
    delta = round(last - first, 2)
    if delta > 0:
        direction = 'up'
    elif delta < 0:
        direction = 'down'
    else:
        direction = 'flat'
    return {'direction': direction, 'delta': delta}


def group_by_day(scores: List[Dict[str, Any]]) -> 'OrderedDict[str, List[Dict[str, Any]]]':
    """Bucket score rows by calculated_at date (rows must be oldest first)."""
    days = OrderedDict()
    for row in scores:
        day = row['calculated_at'][:10]
        days.setdefault(day, []).append(row)
    return days


def summarize_scores(scores: List[Dict[str, Any]], days: int) -> Dict[str, Any]:
    """
    Totals, level distribution, per-day counts and first-vs-last-day trends.

    Trends compare the first and last day in the window: the average score
    and the share of high/critical scores.
    """
    total = len(scores)
    distribution = {level: 0 for level in THREAT_LEVELS}
    distribution.update(Counter(row['threat_level'] for row in scores))

    by_day = group_by_day(scores)
    daily = []
    for day, rows in by_day.items():
        high = sum(1 for r in rows if r['threat_level'] in HIGH_THREAT_LEVELS)
        daily.append({
            'date': day,
            'count': len(rows),
            'average_score': round(sum(r['overall_score'] for r in rows) / len(rows), 2),
            'high_threat_ratio': round(high / len(rows), 4),
        })

    if len(daily) >= 2:
        score_trend = _trend(daily[0]['average_score'], daily[-1]['average_score'])
        high_threat_trend = _trend(daily[0]['high_threat_ratio'], daily[-1]['high_threat_ratio'])
    else:
        score_trend = _trend(0, 0)
        high_threat_trend = _trend(0, 0)

    return {
        'period_days': days,
        'total_scores': total,
        'average_score': round(sum(r['overall_score'] for r in scores) / total, 2) if total else 0,
        'threat_level_distribution': distribution,
        'daily_scores': daily,
        'score_trend': score_trend,
        'high_threat_trend': high_threat_trend,
    }
