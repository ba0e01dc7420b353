from flask import Blueprint, current_app, jsonify
from matchday.responses import success_response
from matchday.time_utils import utcnow_naive

meta_bp = Blueprint('meta', __name__)

_ENDPOINTS = {
    'auth': '/api/auth',
    'teams': '/api/teams',
    'challenges': '/api/challenges',
    'matches': '/api/matches',
    'notifications': '/api/notifications',
    'profile': '/api/profile',
    'posts': '/api/posts',
}


@meta_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'success': True,
        'message': 'Server is running',
        'timestamp': utcnow_naive().isoformat() + 'Z',
        'environment': current_app.config.get('ENV_NAME', 'development'),
    })


@meta_bp.route('/api', methods=['GET'])
def api_index():
    return success_response({'version': '1.0.0', 'endpoints': _ENDPOINTS}, message='Matchday API')
