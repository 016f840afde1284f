"""
Profile settings routes for Station Portal

Provides:
- GET /api/settings/profile - Current user's profile
- POST /api/settings/profile - Update name, timezone, job title, Discord avatar, secure word
"""

import logging
import requests
from flask import Blueprint, request, jsonify, current_app

from station_portal.auth import (
    current_user,
    hash_secret,
    refresh_session_user,
    requires_auth,
    verify_secret
)

logger = logging.getLogger(__name__)

settings_bp = Blueprint('settings', __name__)

DISCORD_LOOKUP_URL = 'https://discordlookup.mesavirep.xyz/v1/user/{discord_id}'
DISCORD_AVATAR_URL = 'https://cdn.discordapp.com/avatars/{discord_id}/{avatar}.png'
DISCORD_DEFAULT_AVATAR_URL = 'https://cdn.discordapp.com/embed/avatars/{index}.png'


class ProfileError(Exception):
    """User-facing profile update failure"""


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


def default_avatar_index(discord_id):
    """Discord's default avatar for a snowflake ID: (id >> 22) % 6"""
    return (int(discord_id) >> 22) % 6


def lookup_discord_avatar(discord_id, timeout=10):
    """Resolve a Discord user's avatar URL

    Args:
        discord_id: Discord user ID (snowflake)

    Returns:
        Avatar URL, or None if the lookup returned neither an avatar nor a user

    Raises:
        ProfileError: If the user cannot be found or the lookup fails
    """
    try:
        response = requests.get(DISCORD_LOOKUP_URL.format(discord_id=discord_id), timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Discord fetch error: {e}")
        raise ProfileError('Failed to fetch Discord profile.') from e

    if not response.ok:
        raise ProfileError('Could not find Discord user. Check ID.')

    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"Discord lookup returned invalid JSON: {e}")
        raise ProfileError('Failed to fetch Discord profile.') from e

    if data.get('avatar'):
        return DISCORD_AVATAR_URL.format(discord_id=discord_id, avatar=data['avatar'])
    if data.get('id'):
        try:
            index = default_avatar_index(discord_id)
        except ValueError:
            raise ProfileError('Could not find Discord user. Check ID.')
        return DISCORD_DEFAULT_AVATAR_URL.format(index=index)
    return None


@settings_bp.route('/api/settings/profile')
@requires_auth
def api_get_profile():
    """Current user's profile (no hashes)"""
    try:
        user = get_db().get_user(current_user()['id'])
        if not user:
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'user': user})
    except Exception as e:
        logger.error(f"Error getting profile: {e}")
        return jsonify({'error': str(e)}), 500


@settings_bp.route('/api/settings/profile', methods=['POST'])
@requires_auth
def api_update_profile():
    """Update the current user's profile

    Expects JSON (all optional):
        {
            "name": "...", "timezone": "...", "job_title": "...",
            "discord_id": "...", "new_secure_word": "...", "current_password": "..."
        }

    Returns JSON:
        {"message": "Profile updated!", "success": true}
    """
    db = get_db()
    me = current_user()
    data = request.get_json(silent=True) or {}

    name = str(data.get('name') or '').strip()
    tz_name = str(data.get('timezone') or '').strip()
    job_title = str(data.get('job_title') or data.get('jobTitle') or '').strip()
    discord_id = str(data.get('discord_id') or data.get('discordId') or '').strip()
    new_secure_word = str(data.get('new_secure_word') or data.get('newSecureWord') or '')
    current_password = str(data.get('current_password') or data.get('currentPassword') or '')

    updates = {}
    if name:
        updates['name'] = name
    if tz_name:
        updates['timezone'] = tz_name
    if job_title:
        updates['job_title'] = job_title

    if discord_id:
        try:
            image = lookup_discord_avatar(discord_id)
        except ProfileError as e:
            return jsonify({'message': str(e), 'success': False}), 400
        if image:
            updates['image'] = image
            updates['discord_id'] = discord_id

    if new_secure_word:
        if not current_password:
            return jsonify({
                'message': 'Current password required to change Secure Word',
                'success': False
            }), 400

        user = db.get_user(me['id'], include_secrets=True)
        if not user:
            return jsonify({'message': 'User not found', 'success': False}), 404
        if not verify_secret(current_password, user['password_hash']):
            return jsonify({'message': 'Incorrect password', 'success': False}), 400

        updates['secure_word_hash'] = hash_secret(new_secure_word)

    try:
        if updates:
            db.update_user(me['id'], **updates)
    except Exception as e:
        logger.error(f"Profile update error: {e}")
        return jsonify({'message': 'Update failed. Please try again.', 'success': False}), 500

    refresh_session_user(**{k: v for k, v in updates.items() if k in ('name', 'timezone')})
    logger.info(f"Profile updated for {me['email']}: {sorted(updates)}")
    return jsonify({'message': 'Profile updated!', 'success': True})
