"""
Threat scoring routes — single + batch scoring, history, analytics, config.
"""
from flask import Blueprint, g, jsonify, request

from leadradar.errors import ValidationError
from leadradar.pipeline import manager

bp = Blueprint('threat_scoring', __name__, url_prefix='/api/threat-scores')


def _json_object():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@bp.route('/calculate', methods=['POST'])
def calculate():
    result = manager.score_lead(_json_object(), g.user_id)
    return jsonify({'success': True, **result})


@bp.route('/batch', methods=['POST'])
def batch():
    data = _json_object()
    result = manager.score_batch(data.get('leads'), g.user_id)
    return jsonify({
        'success': True,
        'results': result.results,
        'summary': result.summary(),
        'errors': result.errors,
    })


@bp.route('/history')
def history():
    result = manager.score_history(
        g.user_id,
        lead_id=request.args.get('lead_id'),
        limit=request.args.get('limit', 50),
        offset=request.args.get('offset', 0),
    )
    return jsonify({'success': True, **result})


@bp.route('/analytics')
def analytics():
    result = manager.score_analytics(g.user_id, days=request.args.get('days', 30))
    return jsonify({'success': True, 'analytics': result})


@bp.route('/config', methods=['GET'])
def get_config():
    return jsonify({'success': True, 'config': manager.get_scoring_config(g.user_id)})


@bp.route('/config', methods=['PUT'])
def update_config():
    config = manager.update_scoring_config(g.user_id, _json_object())
    return jsonify({'success': True, 'config': config})
