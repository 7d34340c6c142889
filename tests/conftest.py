"""Shared test fixtures."""
from datetime import datetime, timezone

import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadradar.database import Base


class FakeRedis:
    """Minimal in-memory Redis fake: strings, counters, hashes, pipelines."""

    def __init__(self):
        self.store = {}
        self.hashes = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = str(value)
        return True

    def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
            self.hashes.pop(k, None)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hashes.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)
        return int(h[field])

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def ping(self):
        return True

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and runs them against the FakeRedis on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def queue(*args):
            self._ops.append((name, args))
            return self
        return queue

    def execute(self):
        results = [getattr(self._redis, name)(*args) for name, args in self._ops]
        self._ops = []
        return results


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import leadradar.models.warm_lead
    import leadradar.models.seizure_log
    import leadradar.models.seizure_settings
    import leadradar.models.threat_score
    import leadradar.models.org_scoring_config
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    close() is disabled so store helpers calling session.close() in their
    finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('leadradar.database.get_session', return_value=db_session), \
            patch('leadradar.services.store.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture(autouse=True)
def no_openai():
    """Conversation analysis uses keywords unless a test installs a mock client."""
    with patch('leadradar.services.openai_client.client', None):
        yield


@pytest.fixture(autouse=True)
def isolated_breakers(fake_redis):
    """Circuit breakers created during a test use the in-memory Redis."""
    from leadradar.services import circuit_breaker
    with patch('leadradar.extensions.redis_client', fake_redis), \
            patch.dict(circuit_breaker._registry, clear=True):
        yield


@pytest.fixture(autouse=True)
def reset_scoring_config():
    import leadradar.pipeline.scoring_config as mod
    mod._scoring_config = None
    yield
    mod._scoring_config = None


@pytest.fixture
def app(fake_redis):
    """Flask test app with open (no API key) access and an in-memory Redis."""
    with patch('leadradar.extensions.redis_client', fake_redis), \
            patch('leadradar.config.API_KEYS', ''):
        from leadradar import create_app
        app = create_app()
        app.config['TESTING'] = True
        yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def hot_behavior():
    """Raw telemetry for a lead that saturates the warmth score."""
    return {
        'email': 'Jane@Acme.io',
        'phone': '+1 (555) 010-2030',
        'company': 'Acme Roofing',
        'source': 'google_ads',
        'time_on_pricing_page': 180,
        'quote_clicks_no_submit': 3,
        'emails_opened': 5,
        'visits_last_14_days': 7,
        'form_completion_rate': 0.8,
        'max_scroll_depth': 95,
        'retargeting_interactions': 0,
        'pages_visited': ['/pricing', '/services/roof-repair', '/contact', '/about'],
        'location': 'Austin, TX',
    }


@pytest.fixture
def rich_lead():
    """Threat scoring lead record with strong engagement."""
    return {
        'id': 'lead-001',
        'first_name': 'Dana',
        'company_name': 'Northwind',
        'job_title': 'VP Marketing',
        'industry': 'Technology',
        'company_size': 250,
        'region': 'north_america',
        'use_case': 'marketing automation',
        'website_visits': 8,
        'email_opens': 6,
        'content_downloads': 2,
        'pricing_page_visits': 1,
        'demo_requested': True,
        'stated_timeline': 'this_quarter',
        'response_rate': 0.9,
    }
