"""
Centralized configuration — env vars, lead lifecycle constants, ingestion limits.
"""
import os


# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

# ── Facebook Ads Library ──────────────────────────────────────────────────────
FACEBOOK_ADS_ACCESS_TOKEN = os.getenv('FACEBOOK_ADS_ACCESS_TOKEN')
FACEBOOK_GRAPH_URL = 'https://graph.facebook.com/v18.0'

# ── Auth ─────────────────────────────────────────────────────────────────────
# Comma-separated "key:user_id" pairs. Unset → open access (local dev).
API_KEYS = os.getenv('API_KEYS', '')
LOCAL_DEV_USER = 'local-dev'

# ── Rate limiting ────────────────────────────────────────────────────────────
RATE_LIMIT_PER_MINUTE = int(os.getenv('RATE_LIMIT_PER_MINUTE', '60'))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', '60'))
# Number of reverse proxies whose X-Forwarded-For entries are trusted (0 = none).
TRUSTED_PROXY_COUNT = int(os.getenv('TRUSTED_PROXY_COUNT', '0'))

# ── Warm lead thresholds ─────────────────────────────────────────────────────
QUALIFICATION_THRESHOLD = 65
HIGH_VALUE_THRESHOLD = 85
MIN_WARM_SIGNALS = 2
AUTO_DIALER_MIN_DAYS = 3

# ── Threat scoring ───────────────────────────────────────────────────────────
SCORE_CACHE_HOURS = 24
MAX_LEADS_PER_REQUEST = 100

# ── Ingestion limits ─────────────────────────────────────────────────────────
MAX_BEHAVIOR_DATA_ITEMS = 1000
MAX_BATCH_ERROR_RATIO = 0.5
MAX_CONTENT_LENGTH = 5000
MAX_ERROR_MESSAGE_LENGTH = 1000
MAX_URL_LENGTH = 2048
MAX_PAGES_VISITED = 50
MAX_TRIGGER_DAY = 30
MAX_CONVERSION_VALUE = 1_000_000

STRING_LIMITS = {
    'email': 254,
    'company': 100,
    'location': 200,
    'utm_source': 100,
    'utm_campaign': 200,
    'user_agent': 500,
}

PHONE_MIN_LENGTH = 7
PHONE_MAX_LENGTH = 20

# Upper bound per behaviour counter; values outside [0, bound] are reset to 0.
COUNTER_LIMITS = {
    'time_on_pricing_page': 3600,
    'quote_clicks_no_submit': 100,
    'emails_opened': 1000,
    'calls_not_booked': 100,
    'ad_clicks_no_conversion': 1000,
    'total_time_on_site': 86400,
    'visits_last_14_days': 100,
    'retargeting_interactions': 1000,
}

# ── Enumerations ─────────────────────────────────────────────────────────────
LEAD_SOURCES = [
    'website',
    'google_ads',
    'facebook_ads',
    'linkedin',
    'organic',
    'referral',
    'direct',
    'email',
    'social',
]

DEVICE_TYPES = ['desktop', 'mobile', 'tablet', 'unknown']

WARM_LEAD_STATUSES = [
    'detected',
    'qualified',
    'seized',
    'converted',
    'cold',
    'unsubscribed',
]

TERMINAL_STATUSES = ('converted', 'cold', 'unsubscribed')

SEIZURE_ACTION_TYPES = ['email', 'ad', 'sms', 'chat', 'call', 'push_notification']

# Forward-only lifecycle; failed/cancelled are reachable from any non-terminal step.
SEIZURE_ACTION_STATUSES = [
    'pending',
    'scheduled',
    'sent',
    'delivered',
    'opened',
    'clicked',
    'converted',
    'failed',
    'cancelled',
]

THREAT_LEVELS = ['low', 'medium', 'high', 'critical']
