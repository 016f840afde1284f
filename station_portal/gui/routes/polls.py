"""
Poll and notification routes for Station Portal

Provides:
- GET /api/polls - All polls as seen by the current user
- POST /api/polls - Create a poll (notifies everyone else)
- PUT /api/polls/<poll_id> - Edit question/description
- DELETE /api/polls/<poll_id> - Delete a poll
- POST /api/polls/<poll_id>/vote - Vote
- POST /api/polls/<poll_id>/close - Stop accepting votes
- POST /api/polls/<poll_id>/comments - Comment or reply
- PUT /api/polls/comments/<comment_id> - Edit own comment
- DELETE /api/polls/comments/<comment_id> - Delete own comment (admins: any)
- GET /api/notifications - Unread notifications
- GET /api/notifications/count - Unread notification count
- POST /api/notifications/read - Mark notifications read
"""

import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, jsonify, current_app

from station_portal.auth import current_user, requires_auth, ROLE_ADMIN
from station_portal.database.queries import is_expired

logger = logging.getLogger(__name__)

polls_bp = Blueprint('polls', __name__)

MIN_POLL_OPTIONS = 2
OPTION_SEPARATORS = re.compile(r'[,\n]')


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


def parse_options(raw):
    """Split poll options on commas or newlines, dropping blanks

    A list is accepted as-is (each entry trimmed).
    """
    if isinstance(raw, (list, tuple)):
        parts = [str(option) for option in raw]
    else:
        parts = OPTION_SEPARATORS.split(str(raw or ''))
    return [part.strip() for part in parts if part.strip()]


def expires_at_from_hours(expires_in, now=None):
    """ISO expiry for a positive whole number of hours, else None"""
    try:
        hours = int(str(expires_in).strip())
    except (TypeError, ValueError):
        return None
    if hours <= 0:
        return None
    now = now or datetime.now(timezone.utc)
    return (now + timedelta(hours=hours)).isoformat()


def can_manage(poll_or_comment_owner_id, user):
    """Owner or ADMIN"""
    return poll_or_comment_owner_id == user['id'] or user.get('role') == ROLE_ADMIN


def get_unread_notification_count(db, user_id):
    """Unread notification count, 0 on database error"""
    try:
        return db.count_unread_notifications(user_id)
    except Exception as e:
        logger.error(f"Error getting notification count: {e}")
        return 0


# ==================== POLLS ====================

@polls_bp.route('/api/polls')
@requires_auth
def api_list_polls():
    """List polls, newest first, with votes and threaded comments"""
    try:
        return jsonify({'polls': get_db().get_polls_for_user(current_user()['id'])})
    except Exception as e:
        logger.error(f"Error listing polls: {e}")
        return jsonify({'error': str(e)}), 500


@polls_bp.route('/api/polls', methods=['POST'])
@requires_auth
def api_create_poll():
    """Create a poll

    Expects JSON:
        {
            "question": "Which jingle?",
            "description": "optional",
            "options": "A, B, C" or ["A", "B", "C"],
            "expires_in": 24   (hours, optional)
        }

    Returns JSON:
        {"success": true, "poll_id": "..."}
    """
    data = request.get_json(silent=True) or {}
    question = str(data.get('question') or '').strip()
    description = str(data.get('description') or '').strip() or None
    raw_options = data.get('options')

    if not question or not raw_options:
        return jsonify({'error': 'Question and options are required'}), 400

    options = parse_options(raw_options)
    if len(options) < MIN_POLL_OPTIONS:
        return jsonify({'error': 'At least 2 options are required'}), 400

    expires_at = expires_at_from_hours(data.get('expires_in', data.get('expiresIn')))

    try:
        poll_id = get_db().create_poll(question, description, current_user()['id'],
                                       options, expires_at)
        logger.info(f"Poll {poll_id} created by {current_user()['email']}")
        return jsonify({'success': True, 'poll_id': poll_id})
    except Exception as e:
        logger.error(f"Error creating poll: {e}")
        return jsonify({'error': 'Failed to create poll'}), 500


@polls_bp.route('/api/polls/<poll_id>/vote', methods=['POST'])
@requires_auth
def api_vote(poll_id):
    """Vote on a poll

    Expects JSON:
        {"option_id": "..."}
    """
    db = get_db()
    user = current_user()
    data = request.get_json(silent=True) or {}
    option_id = data.get('option_id') or data.get('optionId')

    try:
        poll = db.get_poll(poll_id)
        if not poll:
            return jsonify({'error': 'Poll not found'}), 404
        if not poll['is_active']:
            return jsonify({'error': 'Poll is closed'}), 400
        if is_expired(poll['expires_at']):
            return jsonify({'error': 'Poll has expired'}), 400
        if not isinstance(option_id, str) or \
                option_id not in {option['id'] for option in poll['options']}:
            return jsonify({'error': 'Invalid option'}), 400
        if db.get_vote(user['id'], poll_id):
            return jsonify({'error': 'You have already voted on this poll'}), 400

        db.add_vote(user['id'], poll_id, option_id)
        return jsonify({'success': True})

    except sqlite3.IntegrityError:
        # Concurrent double vote caught by UNIQUE(user_id, poll_id)
        return jsonify({'error': 'You have already voted on this poll'}), 400
    except Exception as e:
        logger.error(f"Error voting: {e}")
        return jsonify({'error': 'Failed to submit vote'}), 500


def _load_managed_poll(poll_id):
    """Fetch a poll the current user may manage

    Returns:
        (poll, None) or (None, error response)
    """
    poll = get_db().get_poll(poll_id)
    if not poll:
        return None, (jsonify({'error': 'Poll not found'}), 404)
    if not can_manage(poll['created_by_id'], current_user()):
        return None, (jsonify({'error': 'Not authorized'}), 403)
    return poll, None


@polls_bp.route('/api/polls/<poll_id>/close', methods=['POST'])
@requires_auth
def api_close_poll(poll_id):
    """Close a poll (creator or admin)"""
    try:
        _, error = _load_managed_poll(poll_id)
        if error:
            return error
        get_db().close_poll(poll_id)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error closing poll: {e}")
        return jsonify({'error': 'Failed to close poll'}), 500


@polls_bp.route('/api/polls/<poll_id>', methods=['DELETE'])
@requires_auth
def api_delete_poll(poll_id):
    """Delete a poll (creator or admin)"""
    try:
        _, error = _load_managed_poll(poll_id)
        if error:
            return error
        get_db().delete_poll(poll_id)
        logger.info(f"Poll {poll_id} deleted by {current_user()['email']}")
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting poll: {e}")
        return jsonify({'error': 'Failed to delete poll'}), 500


@polls_bp.route('/api/polls/<poll_id>', methods=['PUT'])
@requires_auth
def api_edit_poll(poll_id):
    """Edit a poll's question and description (creator or admin)"""
    data = request.get_json(silent=True) or {}
    question = str(data.get('question') or '').strip()
    description = str(data.get('description') or '').strip() or None

    if not question:
        return jsonify({'error': 'Question is required'}), 400

    try:
        _, error = _load_managed_poll(poll_id)
        if error:
            return error
        get_db().update_poll(poll_id, question, description)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error editing poll: {e}")
        return jsonify({'error': 'Failed to edit poll'}), 500


# ==================== COMMENTS ====================

@polls_bp.route('/api/polls/<poll_id>/comments', methods=['POST'])
@requires_auth
def api_add_comment(poll_id):
    """Comment on a poll, or reply to a comment

    Expects JSON:
        {"content": "...", "parent_id": "optional comment id"}
    """
    db = get_db()
    data = request.get_json(silent=True) or {}
    content = str(data.get('content') or '').strip()
    parent_id = data.get('parent_id') or data.get('parentId')

    if not content:
        return jsonify({'error': 'Comment cannot be empty'}), 400

    try:
        if not db.get_poll(poll_id):
            return jsonify({'error': 'Poll not found'}), 404

        if parent_id:
            parent = db.get_comment(parent_id)
            if not parent or parent['poll_id'] != poll_id:
                return jsonify({'error': 'Parent comment not found'}), 400

        comment_id = db.add_comment(poll_id, current_user()['id'], content, parent_id)
        return jsonify({'success': True, 'comment_id': comment_id})
    except Exception as e:
        logger.error(f"Error adding comment: {e}")
        return jsonify({'error': 'Failed to add comment'}), 500


@polls_bp.route('/api/polls/comments/<comment_id>', methods=['PUT'])
@requires_auth
def api_edit_comment(comment_id):
    """Edit your own comment"""
    db = get_db()
    data = request.get_json(silent=True) or {}
    content = str(data.get('content') or '').strip()

    if not content:
        return jsonify({'error': 'Comment cannot be empty'}), 400

    try:
        comment = db.get_comment(comment_id)
        if not comment:
            return jsonify({'error': 'Comment not found'}), 404
        if comment['user_id'] != current_user()['id']:
            return jsonify({'error': 'Not authorized'}), 403

        db.update_comment(comment_id, content)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error editing comment: {e}")
        return jsonify({'error': 'Failed to edit comment'}), 500


@polls_bp.route('/api/polls/comments/<comment_id>', methods=['DELETE'])
@requires_auth
def api_delete_comment(comment_id):
    """Delete a comment (author or admin)"""
    db = get_db()
    try:
        comment = db.get_comment(comment_id)
        if not comment:
            return jsonify({'error': 'Comment not found'}), 404
        if not can_manage(comment['user_id'], current_user()):
            return jsonify({'error': 'Not authorized'}), 403

        db.delete_comment(comment_id)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting comment: {e}")
        return jsonify({'error': 'Failed to delete comment'}), 500


# ==================== NOTIFICATIONS ====================

@polls_bp.route('/api/notifications')
@requires_auth
def api_list_notifications():
    """Unread notifications, newest first"""
    try:
        limit = request.args.get('limit', 10, type=int)
        notifications = get_db().get_unread_notifications(current_user()['id'], limit=limit)
        return jsonify({'notifications': notifications})
    except Exception as e:
        logger.error(f"Error listing notifications: {e}")
        return jsonify({'error': str(e)}), 500


@polls_bp.route('/api/notifications/count')
@requires_auth
def api_notification_count():
    """Unread notification count"""
    return jsonify({'count': get_unread_notification_count(get_db(), current_user()['id'])})


@polls_bp.route('/api/notifications/read', methods=['POST'])
@requires_auth
def api_mark_notifications_read():
    """Mark notifications read

    Expects JSON:
        {"ids": ["...", "..."]}   (omit to mark all unread)
    """
    data = request.get_json(silent=True) or {}
    ids = data.get('ids') or data.get('notificationIds') or None

    try:
        updated = get_db().mark_notifications_read(current_user()['id'], ids)
        return jsonify({'success': True, 'updated': updated})
    except Exception as e:
        logger.error(f"Error marking notifications as read: {e}")
        return jsonify({'error': 'Failed to mark notifications as read'}), 500
