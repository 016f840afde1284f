"""
AI assistant routes for Station Portal

Provides:
- POST /api/ai/chat - Ask the staff assistant
"""

import logging
from flask import Blueprint, jsonify, request, current_app

from station_portal.assistant import ChatRateLimiter, run_chat
from station_portal.auth import current_user, requires_auth
from station_portal.gui import get_settings

logger = logging.getLogger(__name__)

assistant_bp = Blueprint('assistant', __name__)

# Rate limiting tracking (in-memory, per process)
rate_limiter = ChatRateLimiter()


@assistant_bp.route('/api/ai/chat', methods=['POST'])
@requires_auth
def api_chat():
    """Chat with the assistant

    Expects JSON:
        {"messages": [{"role": "user", "content": "Who is on air?"}, ...]}

    Returns JSON:
        {"message": "..."}
    """
    user = current_user()
    if not rate_limiter.allow(user['id']):
        logger.warning(f"Assistant rate limit hit for {user['email']}")
        return jsonify({'error': 'Too many requests. Please wait a moment.'}), 429

    settings = get_settings()
    groq_config = settings.get('groq', {})
    api_key = groq_config.get('api_key')
    if not api_key:
        return jsonify({'error': 'AI not configured'}), 500

    data = request.get_json(silent=True) or {}
    messages = data.get('messages')
    if not messages or not isinstance(messages, list):
        return jsonify({'error': 'Messages required'}), 400

    try:
        reply = run_chat(messages, api_key, current_app.config.get('db'), settings,
                         model=groq_config.get('model'))
        return jsonify({'message': reply})
    except Exception as e:
        logger.error(f"AI chat error: {e}")
        return jsonify({'error': str(e) or 'Failed to process request'}), 500
