"""
Staff AI assistant

Runs the Groq tool-calling loop: the model may ask for internal data
(resources, polls, analytics, live status, DJ schedules, broadcast history,
team directory); each requested tool runs locally and its JSON result is fed
back until the model answers in plain text.

Categories:
- Tool definitions: TOOL_DEFINITIONS
- Tool execution: execute_tool
- Chat loop: build_messages, run_chat
- Rate limiting: ChatRateLimiter
"""

import json
import logging
import threading
import time
from datetime import datetime, timezone

from .analytics import AnalyticsUnavailable, DEFAULT_ANALYTICS_FILE, load_analytics
from .azuracast import AzuraCastError, AzuraCastNotConfigured, from_settings
from .integrations.groq import call_groq

logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 5
RATE_LIMIT_REQUESTS = 20
RATE_LIMIT_WINDOW_SECONDS = 60
FALLBACK_REPLY = 'Sorry, I could not process that request.'
SECRET_NOTE = 'This is a credential/secret - content hidden for security.'
DAY_NAMES = {1: 'Mon', 2: 'Tue', 3: 'Wed', 4: 'Thu', 5: 'Fri', 6: 'Sat', 7: 'Sun'}

SYSTEM_PROMPT = """You are Station Assistant, an AI helper for the radio station staff portal.

Your job is to help staff find information quickly. You can:
- Search shared resources (guidelines, links, files)
- Look up poll results and team decisions
- Show listener analytics and trends
- Check who's live right now and what's playing
- Show DJ schedules and upcoming broadcasts
- Look up broadcast history
- Find team member info (names, roles, job titles)

Rules:
- Be concise and friendly. Use short, clear answers.
- Always use your tools to fetch real data before answering - never make up information.
- If you don't find what the user is looking for, say so and suggest what they could try.
- Never reveal passwords, secure words, or secret content - only mention that the resource exists.
- Only answer questions about the radio station, the staff portal, or its features. If someone asks something unrelated (general knowledge, coding help, math, trivia, etc.), politely decline and say: "I can only help with station-related questions! Ask me about schedules, analytics, resources, polls, or anything about the station."
- Format your responses with markdown when helpful (bold, lists, etc).
- When discussing analytics, mention specific numbers and comparisons.
- When listing schedules, format times clearly (e.g. 7:00 AM - 9:00 AM)."""


def _function(name, description, properties=None, required=None):
    parameters = {'type': 'object', 'properties': properties or {}}
    if required:
        parameters['required'] = required
    return {
        'type': 'function',
        'function': {'name': name, 'description': description, 'parameters': parameters},
    }


TOOL_DEFINITIONS = [
    _function(
        'search_resources',
        'Search shared resources, links, files, and info items in the staff knowledge base. '
        'Use this when the user asks about guidelines, documents, links, shared files, or any '
        'reference material.',
        {'query': {'type': 'string', 'description': 'Search keyword or topic to find resources'}},
        ['query'],
    ),
    _function(
        'search_polls',
        'Search polls and voting results. Use this when the user asks about team decisions, '
        'votes, polls, or discussions.',
        {'query': {'type': 'string', 'description': 'Search keyword or topic to find polls'}},
        ['query'],
    ),
    _function(
        'get_analytics',
        'Get listener analytics and statistics: daily listener counts, peak hours, top '
        'countries, platform split, total sessions. Use this when the user asks about listener '
        'stats, analytics, trends, which day was best, peak times, etc.',
    ),
    _function(
        'get_live_status',
        'Get current live status: who is on air, what song is playing, how many listeners right '
        'now. Use this for questions about what is currently happening on the station.',
    ),
    _function(
        'get_dj_schedule',
        'Get all DJ/streamer schedules: recurring weekly schedules and upcoming shows. Use this '
        'when the user asks about who streams when, DJ schedules, upcoming broadcasts, or who is '
        'scheduled for a specific day.',
    ),
    _function(
        'get_broadcast_history',
        'Get recent broadcast history: past live DJ sessions with timestamps and durations. Use '
        'this when the user asks about past streams, who went live recently, broadcast logs.',
    ),
    _function(
        'get_team_info',
        'Get information about the staff team: names, roles (Admin/Staff), job titles. Use this '
        'when the user asks about team members, who is the director, who works here, staff roles.',
    ),
]


def format_hhmm(value):
    """Format an AzuraCast HHMM integer (e.g. 730) as 'H:MM' ('7:30')"""
    value = int(value or 0)
    return f"{value // 100}:{value % 100:02d}"


def _iso(timestamp):
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def _matches(query, *values):
    return any(value and query in value.lower() for value in values)


# ==================== TOOLS ====================

def _search_resources(args, db, settings):
    query = str(args.get('query') or '').lower()
    items = [item for item in db.get_all_info_items()
             if _matches(query, item['title'], item['description'], item['type'])]
    if not items:
        return 'No resources found matching that query.'

    results = []
    for item in items[:15]:
        result = {'title': item['title'], 'description': item['description'], 'type': item['type']}
        if item['type'] == 'SECRET':
            result['note'] = SECRET_NOTE
        else:
            result['content'] = item['content']
        results.append(result)
    return json.dumps(results)


def _search_polls(args, db, settings):
    query = str(args.get('query') or '').lower()
    polls = [poll for poll in db.get_all_polls_with_counts()
             if _matches(query, poll['question'], poll['description'])
             or any(_matches(query, option['text']) for option in poll['options'])]
    if not polls:
        return 'No polls found matching that query.'

    return json.dumps([{
        'question': poll['question'],
        'description': poll['description'],
        'createdBy': poll['created_by'],
        'isActive': poll['is_active'],
        'totalVotes': poll['total_votes'],
        'totalComments': poll['total_comments'],
        'options': [{'text': o['text'], 'votes': o['votes']} for o in poll['options']],
        'createdAt': poll['created_at'],
        'expiresAt': poll['expires_at'],
    } for poll in polls[:10]])


def _get_analytics(args, db, settings):
    path = settings.get('portal', {}).get('analytics_file', DEFAULT_ANALYTICS_FILE)
    try:
        data = load_analytics(path)
    except AnalyticsUnavailable:
        return 'No analytics data available yet.'

    return json.dumps({
        'totalSessions': data.get('totalSessions'),
        'totalHours': data.get('totalHours'),
        'avgSessionSeconds': data.get('avgSessionSeconds'),
        'platformSplit': data.get('platformSplit'),
        'dailyHits': data.get('dailyHits'),
        'peakHours': (data.get('peakHours') or [])[:10],
        'topCountries': (data.get('topCountries') or [])[:10],
        'topDevices': (data.get('topDevices') or [])[:5],
    })


def _get_live_status(args, db, settings):
    client = from_settings(settings)
    try:
        np = client.now_playing() or {}
    except AzuraCastError as e:
        logger.warning(f"Live status lookup failed: {e}")
        return 'Failed to fetch live status.'

    live = np.get('live') or {}
    song = (np.get('now_playing') or {}).get('song') or {}
    listeners = np.get('listeners') or {}
    return json.dumps({
        'is_live': live.get('is_live') or False,
        'streamer_name': live.get('streamer_name') or None,
        'now_playing': {'title': song.get('title'), 'artist': song.get('artist')},
        'listeners': {'current': listeners.get('current'), 'unique': listeners.get('unique')},
    })


def _get_dj_schedule(args, db, settings):
    client = from_settings(settings)
    try:
        streamers = client.streamers()
    except AzuraCastError as e:
        logger.warning(f"Streamer lookup failed: {e}")
        streamers = []
    try:
        upcoming = client.station_schedule()
    except AzuraCastError as e:
        logger.warning(f"Station schedule lookup failed: {e}")
        upcoming = []

    djs = []
    for streamer in streamers:
        if not streamer.get('is_active'):
            continue
        djs.append({
            'name': streamer.get('display_name') or streamer.get('streamer_username'),
            'schedule': [{
                'days': [DAY_NAMES.get(day, f"Day {day}") for day in item.get('days') or []],
                'start': format_hhmm(item.get('start_time')),
                'end': format_hhmm(item.get('end_time')),
            } for item in streamer.get('schedule_items') or []],
        })

    return json.dumps({
        'djs': djs,
        'upcoming': [{
            'name': slot.get('name'),
            'start': slot.get('start'),
            'end': slot.get('end'),
            'is_now': slot.get('is_now'),
        } for slot in upcoming],
    })


def _get_broadcast_history(args, db, settings):
    client = from_settings(settings)
    try:
        broadcasts = client.recent_broadcasts(limit=30)
    except AzuraCastError as e:
        logger.warning(f"Broadcast history lookup failed: {e}")
        return 'Failed to fetch streamers.'

    history = []
    for broadcast in broadcasts:
        start = broadcast['timestamp_start']
        end = broadcast['timestamp_end']
        history.append({
            'dj': broadcast['streamer_name'],
            'start': _iso(start),
            'end': _iso(end),
            'duration_minutes': round((end - start) / 60) if start and end else None,
        })
    return json.dumps(history)


def _get_team_info(args, db, settings):
    return json.dumps(db.get_team_members())


TOOLS = {
    'search_resources': _search_resources,
    'search_polls': _search_polls,
    'get_analytics': _get_analytics,
    'get_live_status': _get_live_status,
    'get_dj_schedule': _get_dj_schedule,
    'get_broadcast_history': _get_broadcast_history,
    'get_team_info': _get_team_info,
}


def execute_tool(name, args, db, settings):
    """Run one tool and return its result as text for the model

    Never raises: failures come back as text the model can relay.
    """
    tool = TOOLS.get(name)
    if tool is None:
        return f"Unknown tool: {name}"

    try:
        return tool(args or {}, db, settings or {})
    except AzuraCastNotConfigured:
        return 'AzuraCast not configured.'
    except Exception as e:
        logger.error(f"Tool {name} error: {e}")
        return f"Error executing {name}: {e}"


# ==================== CHAT LOOP ====================

def build_messages(messages):
    """Prepend the system prompt; anything not from the user is the assistant"""
    history = [{'role': 'system', 'content': SYSTEM_PROMPT}]
    for msg in messages:
        history.append({
            'role': 'user' if msg.get('role') == 'user' else 'assistant',
            'content': msg.get('content'),
        })
    return history


def _parse_arguments(raw):
    try:
        args = json.loads(raw or '{}')
    except (TypeError, ValueError):
        return {}
    return args if isinstance(args, dict) else {}


def run_chat(messages, api_key, db, settings, model=None):
    """Answer a chat conversation, letting the model call tools

    Args:
        messages: Client conversation [{role, content}, ...]
        api_key: Groq API key
        db: PortalDatabase instance
        settings: Resolved settings dict
        model: Override model name (optional)

    Returns:
        Assistant reply text

    Raises:
        GroqError: If the Groq API fails
        ValueError: If Groq returns no choices
    """
    history = build_messages(messages)

    for iteration in range(MAX_TOOL_ITERATIONS):
        data = call_groq(history, api_key, tools=TOOL_DEFINITIONS, model=model)
        choices = data.get('choices') or []
        if not choices:
            raise ValueError('No response from AI')

        message = choices[0].get('message') or {}
        tool_calls = message.get('tool_calls') or []
        if not tool_calls:
            return message.get('content') or ''

        history.append({
            'role': 'assistant',
            'content': message.get('content') or None,
            'tool_calls': tool_calls,
        })

        for tool_call in tool_calls:
            function = tool_call.get('function') or {}
            name = function.get('name')
            logger.info(f"Assistant tool call {iteration + 1}/{MAX_TOOL_ITERATIONS}: {name}")
            result = execute_tool(name, _parse_arguments(function.get('arguments')), db, settings)
            history.append({
                'role': 'tool',
                'tool_call_id': tool_call.get('id'),
                'content': result,
            })

    logger.info("Tool iteration limit reached, requesting final answer without tools")
    data = call_groq(history, api_key, model=model)
    choices = data.get('choices') or [{}]
    return (choices[0].get('message') or {}).get('content') or FALLBACK_REPLY


class ChatRateLimiter:
    """Fixed-window request counter per user (in-process only)"""

    def __init__(self, limit=RATE_LIMIT_REQUESTS, window_seconds=RATE_LIMIT_WINDOW_SECONDS,
                 clock=time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows = {}  # user_id -> {'count': int, 'reset_at': float}
        self._lock = threading.Lock()

    def allow(self, user_id):
        """Count a request; False once the user is over the limit for this window"""
        now = self.clock()
        with self._lock:
            entry = self._windows.get(user_id)
            if entry is None or now > entry['reset_at']:
                self._windows[user_id] = {'count': 1, 'reset_at': now + self.window_seconds}
                return True
            if entry['count'] >= self.limit:
                return False
            entry['count'] += 1
            return True

    def reset(self):
        with self._lock:
            self._windows.clear()
