"""
Resource vault routes for Station Portal

Provides:
- GET /api/resources - All info items, newest first
- POST /api/resources - Add an info item
- PUT /api/resources/<item_id> - Update an info item
- DELETE /api/resources/<item_id> - Delete an info item
"""

import logging
from flask import Blueprint, request, jsonify, current_app

from station_portal.auth import requires_auth

logger = logging.getLogger(__name__)

resources_bp = Blueprint('resources', __name__)

ITEM_TYPES = ('LINK', 'SECRET', 'FILE')
VISIBLE_TO_ALL = 'ALL'


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


def validate_info_item(data):
    """Normalise and validate an info item payload

    Returns:
        (fields, None) on success, (None, message) on failure
    """
    fields = {
        'title': str(data.get('title') or '').strip(),
        'description': str(data.get('description') or '').strip(),
        'content': str(data.get('content') or '').strip(),
        'item_type': str(data.get('type') or '').strip().upper(),
    }
    if not fields['title'] or not fields['content'] or fields['item_type'] not in ITEM_TYPES:
        return None, 'Invalid data.'
    return fields, None


@resources_bp.route('/api/resources')
@requires_auth
def api_list_resources():
    """List info items"""
    try:
        return jsonify({'items': get_db().get_all_info_items()})
    except Exception as e:
        logger.error(f"Error listing info items: {e}")
        return jsonify({'error': str(e)}), 500


@resources_bp.route('/api/resources', methods=['POST'])
@requires_auth
def api_create_resource():
    """Add an info item

    Expects JSON:
        {"title": "...", "description": "...", "content": "...", "type": "LINK|SECRET|FILE"}
    """
    fields, error = validate_info_item(request.get_json(silent=True) or {})
    if error:
        return jsonify({'message': error, 'success': False}), 400

    try:
        item_id = get_db().create_info_item(visible_to=VISIBLE_TO_ALL, **fields)
        return jsonify({'message': 'Info item added!', 'success': True, 'item_id': item_id})
    except Exception as e:
        logger.error(f"Error creating info item: {e}")
        return jsonify({'message': 'Failed to add info item.', 'success': False}), 500


@resources_bp.route('/api/resources', methods=['PUT'])
@resources_bp.route('/api/resources/<item_id>', methods=['PUT'])
@requires_auth
def api_update_resource(item_id=None):
    """Update an info item (ID in the path or as "item_id" in the body)"""
    data = request.get_json(silent=True) or {}
    item_id = item_id or data.get('item_id') or data.get('itemId')
    if not item_id:
        return jsonify({'message': 'Item ID missing.', 'success': False}), 400

    fields, error = validate_info_item(data)
    if error:
        return jsonify({'message': error, 'success': False}), 400

    try:
        if not get_db().update_info_item(item_id, visible_to=VISIBLE_TO_ALL, **fields):
            return jsonify({'message': 'Failed to update info item.', 'success': False}), 404
        return jsonify({'message': 'Item updated!', 'success': True})
    except Exception as e:
        logger.error(f"Error updating info item {item_id}: {e}")
        return jsonify({'message': 'Failed to update info item.', 'success': False}), 500


@resources_bp.route('/api/resources/<item_id>', methods=['DELETE'])
@requires_auth
def api_delete_resource(item_id):
    """Delete an info item"""
    try:
        if not get_db().delete_info_item(item_id):
            return jsonify({'message': 'Failed to delete item.', 'success': False}), 404
        return jsonify({'message': 'Item deleted.', 'success': True})
    except Exception as e:
        logger.error(f"Error deleting info item {item_id}: {e}")
        return jsonify({'message': 'Failed to delete item.', 'success': False}), 500
