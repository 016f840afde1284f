"""
Admin routes for Station Portal

Provides:
- GET /api/admin/users - List staff accounts
- POST /api/admin/users - Create a staff account
- DELETE /api/admin/users/<user_id> - Delete a staff account
- GET /api/admin/activity - Recent activity log
"""

import logging
import sqlite3
from flask import Blueprint, request, jsonify, current_app

from station_portal.auth import (
    current_user,
    hash_secret,
    is_valid_email,
    requires_admin,
    ROLES
)
from station_portal.timezones import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

MIN_PASSWORD_LENGTH = 6
MIN_SECURE_WORD_LENGTH = 4
DEFAULT_JOB_TITLE = 'Staff'


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


def validate_new_user(data):
    """Normalise and validate a create-user payload

    Returns:
        (fields, None) on success, (None, message) on failure
    """
    fields = {
        'name': str(data.get('name') or '').strip(),
        'email': str(data.get('email') or '').strip(),
        'password': str(data.get('password') or ''),
        'secure_word': str(data.get('secure_word') or data.get('secureWord') or ''),
        'role': str(data.get('role') or '').strip().upper(),
        'timezone': str(data.get('timezone') or '').strip() or DEFAULT_TIMEZONE,
        'job_title': str(data.get('job_title') or data.get('jobTitle') or '').strip() or DEFAULT_JOB_TITLE,
    }

    if (not fields['name']
            or not is_valid_email(fields['email'])
            or len(fields['password']) < MIN_PASSWORD_LENGTH
            or len(fields['secure_word']) < MIN_SECURE_WORD_LENGTH
            or fields['role'] not in ROLES):
        return None, 'Invalid data. Please check inputs.'

    return fields, None


@admin_bp.route('/api/admin/users')
@requires_admin
def api_list_users():
    """List all users, newest first"""
    try:
        return jsonify({'users': get_db().get_all_users()})
    except Exception as e:
        logger.error(f"Error listing users: {e}")
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/admin/users', methods=['POST'])
@requires_admin
def api_create_user():
    """Create a staff user

    Expects JSON:
        {
            "name": "...", "email": "...", "password": "...", "secure_word": "...",
            "role": "ADMIN" | "STAFF", "timezone": "...", "job_title": "..."
        }

    Returns JSON:
        {"message": "User created successfully!", "success": true}
    """
    db = get_db()
    data = request.get_json(silent=True) or {}

    fields, error = validate_new_user(data)
    if error:
        return jsonify({'message': error, 'success': False}), 400

    try:
        user_id = db.create_user(
            fields['name'],
            fields['email'],
            hash_secret(fields['password']),
            hash_secret(fields['secure_word']),
            role=fields['role'],
            timezone_name=fields['timezone'],
            job_title=fields['job_title']
        )
    except sqlite3.IntegrityError:
        return jsonify({
            'message': 'Failed to create user. Email might be in use.',
            'success': False
        }), 400
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        return jsonify({
            'message': 'Failed to create user. Email might be in use.',
            'success': False
        }), 500

    try:
        db.log_activity('USER_CREATED', user_id=current_user()['id'],
                        details=f"{fields['email']} ({fields['role']})")
    except Exception as e:
        logger.error(f"Failed to log activity: {e}")

    return jsonify({'message': 'User created successfully!', 'success': True, 'user_id': user_id})


@admin_bp.route('/api/admin/users/<user_id>', methods=['DELETE'])
@requires_admin
def api_delete_user(user_id):
    """Delete a user (never yourself)"""
    db = get_db()
    me = current_user()

    if me['id'] == user_id:
        return jsonify({'message': 'Cannot delete yourself.', 'success': False}), 400

    try:
        if not db.delete_user(user_id):
            return jsonify({'message': 'Failed to delete user.', 'success': False}), 404
    except Exception as e:
        logger.error(f"Delete user error: {e}")
        return jsonify({'message': 'Failed to delete user.', 'success': False}), 500

    try:
        db.log_activity('USER_DELETED', user_id=me['id'], details=user_id)
    except Exception as e:
        logger.error(f"Failed to log activity: {e}")

    return jsonify({'message': 'User deleted.', 'success': True})


@admin_bp.route('/api/admin/activity')
@requires_admin
def api_recent_activity():
    """Last 10 activity log entries with user name and email"""
    try:
        return jsonify({'activity': get_db().get_recent_activity(limit=10)})
    except Exception as e:
        logger.error(f"Error getting recent activity: {e}")
        return jsonify({'error': str(e)}), 500
