"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
import logging
import os

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger('leadradar')

OPEN_PATHS = {'/health'}


def parse_api_keys(raw):
    """'key1:user1,key2:user2' → {'key1': 'user1', 'key2': 'user2'}"""
    keys = {}
    for pair in (raw or '').split(','):
        key, _, user_id = pair.strip().partition(':')
        if key and user_id:
            keys[key] = user_id
    return keys


def create_app():
    """Create and configure the Flask application."""
    from leadradar import config
    from leadradar.errors import LeadRadarError, AuthenticationError
    from leadradar.logging_config import configure_logging
    from leadradar.services.rate_limit import FixedWindowRateLimiter, client_identity

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-change-me')

    # ── Proxy headers ────────────────────────────────────────────────────
    # X-Forwarded-For is honoured only for the configured number of proxy hops.
    if config.TRUSTED_PROXY_COUNT > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=config.TRUSTED_PROXY_COUNT,
                                x_proto=config.TRUSTED_PROXY_COUNT)

    # ── API key auth ─────────────────────────────────────────────────────
    @app.before_request
    def require_api_key():
        if request.path in OPEN_PATHS:
            return
        keys = parse_api_keys(config.API_KEYS)
        if not keys:
            g.user_id = config.LOCAL_DEV_USER  # no keys configured: open access
            g.authenticated = False
            return
        header = request.headers.get('Authorization', '')
        token = header[7:].strip() if header.startswith('Bearer ') else ''
        if not token:
            raise AuthenticationError('Missing bearer token')
        user_id = keys.get(token)
        if user_id is None:
            raise AuthenticationError('Invalid API key')
        g.user_id = user_id
        g.authenticated = True

    # ── Rate limiting ────────────────────────────────────────────────────
    from leadradar.extensions import redis_client
    limiter = FixedWindowRateLimiter(
        redis_client,
        limit=config.RATE_LIMIT_PER_MINUTE,
        window=config.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.extensions['rate_limiter'] = limiter

    # Registered after require_api_key; authenticated callers are counted per user.
    @app.before_request
    def enforce_rate_limit():
        if not request.path.startswith('/api/'):
            return
        user_id = g.user_id if g.get('authenticated') else None
        limiter.hit(client_identity(request, user_id=user_id))

    # ── Error rendering ──────────────────────────────────────────────────
    @app.errorhandler(LeadRadarError)
    def handle_leadradar_error(e):
        resp = jsonify(e.to_dict())
        resp.status_code = e.status_code
        retry_after = getattr(e, 'retry_after', None)
        if retry_after is not None:
            resp.headers['Retry-After'] = str(int(retry_after))
        return resp

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.description, 'code': e.name.upper().replace(' ', '_')}), e.code
        logger.error("Unhandled error on %s", request.path, exc_info=True,
                     extra={'request_path': request.path})
        return jsonify({'success': False, 'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}), 500

    # Register blueprints
    from leadradar.routes.health import bp as health_bp
    from leadradar.routes.warm_leads import bp as warm_leads_bp
    from leadradar.routes.threat_scoring import bp as threat_scoring_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(warm_leads_bp)
    app.register_blueprint(threat_scoring_bp)

    # Initialize circuit breakers for external API services
    from leadradar.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic; no create_all().
    import importlib
    importlib.import_module('leadradar.models.warm_lead')
    importlib.import_module('leadradar.models.seizure_log')
    importlib.import_module('leadradar.models.seizure_settings')
    importlib.import_module('leadradar.models.threat_score')
    importlib.import_module('leadradar.models.org_scoring_config')

    return app
