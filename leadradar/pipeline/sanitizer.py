"""
Behaviour telemetry sanitizer — the ingestion boundary for warm lead data.

Raw dicts from the tracking pixel / API are parsed into LeadBehaviorData.
A malformed field never fails the record: counters fall back to 0, rates and
percentages are clamped to their nearest bound, strings are stripped of HTML
metacharacters and capped, and invalid emails/phones/URLs are dropped.
Only non-object input, oversized batches and batches where more than half of
the records fail raise ValidationError.
"""
import ipaddress
import logging
import math
import re
from typing import Any, List, Optional

from leadradar.config import (
    COUNTER_LIMITS, STRING_LIMITS, LEAD_SOURCES, DEVICE_TYPES,
    MAX_URL_LENGTH, MAX_PAGES_VISITED, MAX_BEHAVIOR_DATA_ITEMS, MAX_BATCH_ERROR_RATIO,
    PHONE_MIN_LENGTH, PHONE_MAX_LENGTH,
)
from leadradar.errors import ValidationError
from leadradar.pipeline.records import LeadBehaviorData, is_real_number, parse_timestamp, utcnow

logger = logging.getLogger('pipeline.sanitizer')

_HTML_CHARS = re.compile(r'[<>"\'&]')
_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_PHONE_DISALLOWED = re.compile(r'[^\d+\-() ]')


# ── Field sanitizers ─────────────────────────────────────────────────────────

def sanitize_string(value: Any, max_length: int) -> Optional[str]:
    """Strip HTML metacharacters, trim, cap length. Empty → None."""
    if not isinstance(value, str):
        return None
    cleaned = _HTML_CHARS.sub('', value).strip()[:max_length]
    return cleaned or None


def sanitize_email(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    if len(email) > STRING_LIMITS['email'] or not _EMAIL_RE.match(email):
        return None
    return email


def sanitize_phone(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    phone = _PHONE_DISALLOWED.sub('', value).strip()
    if len(phone) < PHONE_MIN_LENGTH or len(phone) > PHONE_MAX_LENGTH:
        return None
    return phone


def sanitize_url(value: Any) -> Optional[str]:
    """Accept http(s) URLs and root-relative paths only."""
    if not isinstance(value, str):
        return None
    url = value.strip()
    if not url or len(url) > MAX_URL_LENGTH:
        return None
    if url.startswith(('http://', 'https://')) or (url.startswith('/') and not url.startswith('//')):
        return url
    return None


def sanitize_counter(value: Any, upper: int) -> int:
    """Finite number in [0, upper], floored. Anything else → 0."""
    if not is_real_number(value) or value < 0 or value > upper:
        return 0
    return int(math.floor(value))


def clamp_number(value: Any, lower: float, upper: float) -> float:
    """Finite number clamped to [lower, upper]. Non-numbers → lower."""
    if not is_real_number(value):
        return lower
    return float(min(upper, max(lower, value)))


def sanitize_ip(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def _enum(value: Any, allowed: List[str], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _pages(value: Any) -> tuple:
    if not isinstance(value, (list, tuple)):
        return ()
    pages = []
    for item in value[:MAX_PAGES_VISITED]:
        url = sanitize_url(item)
        if url:
            pages.append(url)
    return tuple(pages)


# ── Record + batch ───────────────────────────────────────────────────────────

def sanitize_behavior_data(raw: Any) -> LeadBehaviorData:
    """Parse one untrusted behaviour record into LeadBehaviorData."""
    if not isinstance(raw, dict):
        raise ValidationError('Behavior data must be an object')

    counters = {name: sanitize_counter(raw.get(name), upper) for name, upper in COUNTER_LIMITS.items()}

    return LeadBehaviorData(
        **counters,
        form_completion_rate=clamp_number(raw.get('form_completion_rate'), 0.0, 1.0),
        max_scroll_depth=clamp_number(raw.get('max_scroll_depth'), 0.0, 100.0),
        pages_visited=_pages(raw.get('pages_visited')),
        email=sanitize_email(raw.get('email')),
        phone=sanitize_phone(raw.get('phone')),
        company=sanitize_string(raw.get('company'), STRING_LIMITS['company']),
        source=_enum(raw.get('source'), LEAD_SOURCES, 'website'),
        device_type=_enum(raw.get('device_type'), DEVICE_TYPES, 'unknown'),
        utm_source=sanitize_string(raw.get('utm_source'), STRING_LIMITS['utm_source']),
        utm_campaign=sanitize_string(raw.get('utm_campaign'), STRING_LIMITS['utm_campaign']),
        referrer=sanitize_url(raw.get('referrer')),
        location=sanitize_string(raw.get('location'), STRING_LIMITS['location']),
        ip_address=sanitize_ip(raw.get('ip_address')),
        user_agent=sanitize_string(raw.get('user_agent'), STRING_LIMITS['user_agent']),
        last_activity=parse_timestamp(raw.get('last_activity')) or utcnow(),
    )


def sanitize_batch(records: Any) -> List[LeadBehaviorData]:
    """
    Sanitize a batch of behaviour records.

    Bad records are logged and dropped. If more than half of the batch is
    bad the whole batch is rejected, with the first few errors attached.
    """
    if not isinstance(records, list):
        raise ValidationError('Behavior data must be a list')
    if len(records) > MAX_BEHAVIOR_DATA_ITEMS:
        raise ValidationError(
            f'Too many behavior records (max {MAX_BEHAVIOR_DATA_ITEMS})',
            details={'received': len(records)},
        )

    sanitized, errors = [], []
    for i, raw in enumerate(records):
        try:
            sanitized.append(sanitize_behavior_data(raw))
        except ValidationError as e:
            errors.append(f'Item {i}: {e.message}')
            logger.warning("Dropping behavior record %d: %s", i, e.message)

    if records and len(errors) / len(records) > MAX_BATCH_ERROR_RATIO:
        raise ValidationError(
            f'Too many invalid behavior records ({len(errors)}/{len(records)})',
            details={'errors': errors[:5]},
        )
    return sanitized
