"""
Warm lead routes — detection, qualification, seizure planning/execution, dashboard.
"""
from flask import Blueprint, g, jsonify, request

from leadradar.errors import ValidationError
from leadradar.pipeline import manager
from leadradar.services import store

bp = Blueprint('warm_leads', __name__, url_prefix='/api/warm-leads')


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError('Request body must be valid JSON')
    return data


@bp.route('/detect', methods=['POST'])
def detect():
    data = _json_body()
    records = data.get('behavior_data') if isinstance(data, dict) else data
    result = manager.detect(records, g.user_id)
    return jsonify({'success': True, **result})


@bp.route('/<lead_id>/qualify', methods=['POST'])
def qualify(lead_id):
    return jsonify({'success': True, **manager.qualify(lead_id, g.user_id)})


@bp.route('/<lead_id>/seizure', methods=['POST'])
def plan_seizure(lead_id):
    return jsonify({'success': True, **manager.plan_seizure(lead_id, g.user_id)})


@bp.route('/<lead_id>/execute', methods=['POST'])
def execute_seizure(lead_id):
    return jsonify({'success': True, **manager.execute_seizure(lead_id, g.user_id)})


@bp.route('/<lead_id>/status', methods=['POST'])
def update_status(lead_id):
    data = _json_body()
    if not isinstance(data, dict):
        raise ValidationError('Request body must be an object')
    result = manager.update_status(
        lead_id, g.user_id,
        data.get('status'),
        conversion_value=data.get('conversion_value'),
        reason=data.get('reason'),
    )
    return jsonify({'success': True, **result})


@bp.route('/dashboard')
def dashboard():
    return jsonify({'success': True, **manager.dashboard(g.user_id)})


@bp.route('/settings', methods=['GET'])
def get_settings():
    return jsonify({'success': True, 'settings': store.get_settings(g.user_id)})


@bp.route('/settings', methods=['PUT'])
def update_settings():
    settings = manager.update_settings(g.user_id, _json_body())
    return jsonify({'success': True, 'settings': settings})
