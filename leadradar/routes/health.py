"""
Health routes — liveness, Redis reachability and collaborator circuit states.
"""
from flask import Blueprint, jsonify

from leadradar import extensions
from leadradar.errors import NotFoundError
from leadradar.services.circuit_breaker import get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Redis reachability plus circuit breaker state for every external collaborator."""
    return jsonify({
        'redis': 'ok' if extensions.redis_available() else 'unavailable',
        'services': {name: cb.get_health() for name, cb in get_all_breakers().items()},
    })


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_all_breakers().get(service)
    if breaker is None:
        raise NotFoundError(f'Unknown service: {service}')
    breaker.reset()
    return jsonify({'ok': True, 'service': service})
