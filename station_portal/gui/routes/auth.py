"""
Authentication routes for Station Portal

Provides:
- POST /api/auth/login - Sign in with email, password and secure word
- POST /api/auth/logout - End the session
- GET /api/auth/session - Current user
"""

import logging
from flask import Blueprint, request, jsonify, current_app

from station_portal.auth import (
    authenticate,
    current_user,
    is_ip_locked,
    issue_token,
    login_user,
    logout_user,
    requires_auth,
    LOCKOUT_DURATION_MINUTES
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    """Sign in

    Expects JSON:
        {
            "email": "dj@example.com",
            "password": "...",
            "secure_word": "..."   (or "secureWord")
        }

    Returns JSON:
        {
            "success": true,
            "user": {...},
            "token": "..."
        }
    """
    ip_address = request.remote_addr
    try:
        if is_ip_locked(ip_address):
            return jsonify({
                'success': False,
                'error': f'Too many failed attempts. Try again in {LOCKOUT_DURATION_MINUTES} minutes.'
            }), 429

        data = request.get_json(silent=True) or {}
        email = str(data.get('email') or '').strip()
        password = str(data.get('password') or '')
        secure_word = str(data.get('secure_word') or data.get('secureWord') or '')

        user = authenticate(get_db(), email, password, secure_word, ip_address)
        if not user:
            return jsonify({
                'success': False,
                'error': 'Invalid credentials or secure word.'
            }), 401

        login_user(user)
        return jsonify({
            'success': True,
            'user': user,
            'token': issue_token(user)
        })

    except Exception as e:
        logger.error(f"Error during login: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@auth_bp.route('/api/auth/logout', methods=['POST'])
def api_logout():
    """Sign out"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/api/auth/session')
@requires_auth
def api_session():
    """Current signed-in user"""
    return jsonify({'user': current_user()})
