"""
Dashboard Routes for Station Portal

Main dashboard: team clocks, shared resources, and unread notifications.
"""

import logging
from flask import Blueprint, jsonify, current_app

from station_portal.auth import current_user, requires_auth
from station_portal.gui.routes.polls import get_unread_notification_count
from station_portal.timezones import TIMEZONES, team_clock

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


@dashboard_bp.route('/api/dashboard')
@requires_auth
def api_dashboard():
    """Dashboard payload

    Returns JSON:
        {
            "user": {...},
            "team": [{"name", "role", "job_title", "timezone", "time", "label", "offset"}],
            "info_items": [...],
            "notification_count": 3
        }
    """
    db = get_db()
    user = current_user()
    try:
        return jsonify({
            'user': user,
            'team': team_clock(db.get_team_members()),
            'info_items': db.get_all_info_items(),
            'notification_count': get_unread_notification_count(db, user['id']),
        })
    except Exception as e:
        logger.error(f"Error building dashboard: {e}")
        return jsonify({'error': str(e)}), 500


@dashboard_bp.route('/api/team/timezones')
@requires_auth
def api_team_timezones():
    """Every user's local time, label and UTC offset"""
    try:
        return jsonify({'team': team_clock(get_db().get_team_members())})
    except Exception as e:
        logger.error(f"Error getting team time zones: {e}")
        return jsonify({'error': str(e)}), 500


@dashboard_bp.route('/api/timezones')
@requires_auth
def api_timezones():
    """Time zones offered in the profile picker"""
    return jsonify({'timezones': TIMEZONES})
