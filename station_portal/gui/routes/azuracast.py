"""
AzuraCast proxy routes for Station Portal

Provides:
- GET /api/azuracast/nowplaying - Now playing summary
- GET /api/azuracast/listeners - Live listeners
- GET /api/azuracast/history - Pre-computed listener analytics
- GET /api/azuracast/station-schedule - Station schedule
- GET/POST /api/azuracast/streamers - Streamers (with schedules) / create streamer
- GET/PUT/DELETE /api/azuracast/streamers/<streamer_id> - Single streamer
- GET/POST/DELETE /api/azuracast/schedule - Streamer schedule items
- GET /api/azuracast/broadcasts - Recent broadcasts across all streamers
"""

import logging
from flask import Blueprint, request, jsonify

from station_portal.auth import requires_auth
from station_portal.analytics import AnalyticsUnavailable, DEFAULT_ANALYTICS_FILE, load_analytics
from station_portal.azuracast import (
    AzuraCastError,
    AzuraCastNotConfigured,
    from_settings,
    reshape_now_playing
)
from station_portal.gui import get_settings

logger = logging.getLogger(__name__)

azuracast_bp = Blueprint('azuracast', __name__)


def get_client(require_key=True):
    return from_settings(get_settings(), require_key=require_key)


def azuracast_error(e, action):
    """JSON error response for a failed AzuraCast call"""
    if not isinstance(e, AzuraCastNotConfigured):
        logger.error(f"Failed to {action}: {e}")
    return jsonify({'error': str(e)}), 500


@azuracast_bp.route('/api/azuracast/nowplaying')
@requires_auth
def api_now_playing():
    """Now playing, live DJ and listener counts"""
    try:
        return jsonify(reshape_now_playing(get_client(require_key=False).now_playing()))
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch now playing data')


@azuracast_bp.route('/api/azuracast/listeners')
@requires_auth
def api_listeners():
    """Currently connected listeners"""
    try:
        listeners = get_client().listeners()
        return jsonify({'total_listeners': len(listeners), 'listeners': listeners})
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch listener data')


@azuracast_bp.route('/api/azuracast/history')
@requires_auth
def api_history():
    """Pre-computed listener analytics"""
    path = get_settings().get('portal', {}).get('analytics_file', DEFAULT_ANALYTICS_FILE)
    try:
        return jsonify(load_analytics(path))
    except AnalyticsUnavailable as e:
        logger.error(f"Failed to fetch historical data: {e}")
        return jsonify({'error': str(e)}), 500


@azuracast_bp.route('/api/azuracast/station-schedule')
@requires_auth
def api_station_schedule():
    """Station schedule"""
    try:
        return jsonify(get_client().station_schedule())
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch station schedule')


# ==================== STREAMERS ====================

@azuracast_bp.route('/api/azuracast/streamers')
@requires_auth
def api_list_streamers():
    """All streamers with their recurring schedules"""
    try:
        return jsonify(get_client().streamers_with_schedules())
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch streamers')


@azuracast_bp.route('/api/azuracast/streamers', methods=['POST'])
@requires_auth
def api_create_streamer():
    """Create a streamer

    Expects JSON:
        {
            "streamer_username": "...",
            "streamer_password": "...",
            "display_name": "optional",
            "is_active": true
        }
    """
    try:
        client = get_client()
    except AzuraCastError as e:
        return azuracast_error(e, 'create streamer')

    data = request.get_json(silent=True) or {}
    username = data.get('streamer_username')
    password = data.get('streamer_password')
    if not username or not password:
        return jsonify({'error': 'Username and password are required'}), 400

    try:
        return jsonify(client.create_streamer(username, password,
                                              display_name=data.get('display_name'),
                                              is_active=data.get('is_active')))
    except AzuraCastError as e:
        return azuracast_error(e, 'create streamer')


@azuracast_bp.route('/api/azuracast/streamers/<streamer_id>')
@requires_auth
def api_get_streamer(streamer_id):
    """Single streamer"""
    try:
        return jsonify(get_client().streamer(streamer_id))
    except AzuraCastError as e:
        return azuracast_error(e, f'fetch streamer {streamer_id}')


@azuracast_bp.route('/api/azuracast/streamers/<streamer_id>', methods=['PUT'])
@requires_auth
def api_update_streamer(streamer_id):
    """Update a streamer (body passed through)"""
    try:
        return jsonify(get_client().update_streamer(streamer_id, request.get_json(silent=True) or {}))
    except AzuraCastError as e:
        return azuracast_error(e, f'update streamer {streamer_id}')


@azuracast_bp.route('/api/azuracast/streamers/<streamer_id>', methods=['DELETE'])
@requires_auth
def api_delete_streamer(streamer_id):
    """Delete a streamer"""
    try:
        get_client().delete_streamer(streamer_id)
        return jsonify({'success': True})
    except AzuraCastError as e:
        return azuracast_error(e, f'delete streamer {streamer_id}')


# ==================== SCHEDULE ====================

@azuracast_bp.route('/api/azuracast/schedule')
@requires_auth
def api_get_schedule():
    """Schedule items for one streamer (?streamerId=)"""
    try:
        client = get_client()
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch schedule')

    streamer_id = request.args.get('streamerId')
    if not streamer_id:
        return jsonify({'error': 'streamerId is required'}), 400

    try:
        return jsonify(client.streamer_schedule(streamer_id))
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch schedule')


@azuracast_bp.route('/api/azuracast/schedule', methods=['POST'])
@requires_auth
def api_create_schedule():
    """Add a schedule item

    Expects JSON:
        {"streamerId": 3, "start_time": 1900, "end_time": 2100, "days": [1, 3]}
    """
    try:
        client = get_client()
    except AzuraCastError as e:
        return azuracast_error(e, 'create schedule')

    data = request.get_json(silent=True) or {}
    streamer_id = data.get('streamerId')
    start_time = data.get('start_time')
    end_time = data.get('end_time')
    days = data.get('days')

    if not streamer_id or start_time is None or end_time is None or not days:
        return jsonify({'error': 'Missing required fields'}), 400

    try:
        return jsonify(client.create_schedule_item(streamer_id, start_time, end_time, days))
    except AzuraCastError as e:
        return azuracast_error(e, 'create schedule')


@azuracast_bp.route('/api/azuracast/schedule', methods=['DELETE'])
@requires_auth
def api_delete_schedule():
    """Delete a schedule item (?streamerId=&scheduleId=)"""
    try:
        client = get_client()
    except AzuraCastError as e:
        return azuracast_error(e, 'delete schedule')

    streamer_id = request.args.get('streamerId')
    schedule_id = request.args.get('scheduleId')
    if not streamer_id or not schedule_id:
        return jsonify({'error': 'streamerId and scheduleId are required'}), 400

    try:
        client.delete_schedule_item(streamer_id, schedule_id)
        return jsonify({'success': True})
    except AzuraCastError as e:
        return azuracast_error(e, 'delete schedule')


# ==================== BROADCASTS ====================

@azuracast_bp.route('/api/azuracast/broadcasts')
@requires_auth
def api_broadcasts():
    """Latest 50 broadcasts across all streamers, newest first"""
    try:
        return jsonify(get_client().recent_broadcasts())
    except AzuraCastError as e:
        return azuracast_error(e, 'fetch broadcasts')
