"""
Team time zone helpers for the dashboard

Every staff member picks an IANA zone in their profile; the dashboard shows
each person's local time, a friendly place label, and the current UTC offset.
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'America/New_York'

# Offsets are standard-time values for the picker; utc_offset() gives the live one
TIMEZONES = [
    {'value': 'UTC', 'label': 'UTC', 'offset': '+0'},
    {'value': 'Pacific/Honolulu', 'label': 'Hawaii', 'offset': '-10'},
    {'value': 'America/Anchorage', 'label': 'Alaska', 'offset': '-9'},
    {'value': 'America/Los_Angeles', 'label': 'Los Angeles', 'offset': '-8'},
    {'value': 'America/Denver', 'label': 'Denver', 'offset': '-7'},
    {'value': 'America/Chicago', 'label': 'Chicago', 'offset': '-6'},
    {'value': 'America/New_York', 'label': 'New York', 'offset': '-5'},
    {'value': 'America/Sao_Paulo', 'label': 'São Paulo', 'offset': '-3'},
    {'value': 'Europe/London', 'label': 'London', 'offset': '+0'},
    {'value': 'Europe/Paris', 'label': 'Paris', 'offset': '+1'},
    {'value': 'Europe/Berlin', 'label': 'Berlin', 'offset': '+1'},
    {'value': 'Europe/Kiev', 'label': 'Kyiv', 'offset': '+2'},
    {'value': 'Asia/Jerusalem', 'label': 'Tel Aviv', 'offset': '+2'},
    {'value': 'Europe/Moscow', 'label': 'Moscow', 'offset': '+3'},
    {'value': 'Asia/Dubai', 'label': 'Dubai', 'offset': '+4'},
    {'value': 'Asia/Kolkata', 'label': 'Mumbai', 'offset': '+5:30'},
    {'value': 'Asia/Bangkok', 'label': 'Bangkok', 'offset': '+7'},
    {'value': 'Asia/Singapore', 'label': 'Singapore', 'offset': '+8'},
    {'value': 'Asia/Shanghai', 'label': 'Shanghai', 'offset': '+8'},
    {'value': 'Asia/Tokyo', 'label': 'Tokyo', 'offset': '+9'},
    {'value': 'Asia/Seoul', 'label': 'Seoul', 'offset': '+9'},
    {'value': 'Australia/Sydney', 'label': 'Sydney', 'offset': '+11'},
    {'value': 'Pacific/Auckland', 'label': 'Auckland', 'offset': '+13'},
]

TIMEZONE_LABELS = {
    'UTC': 'Universal Time, UTC',
    'America/New_York': 'USA, New York',
    'America/Chicago': 'USA, Chicago',
    'America/Denver': 'USA, Denver',
    'America/Los_Angeles': 'USA, Los Angeles',
    'America/Anchorage': 'USA, Anchorage',
    'Pacific/Honolulu': 'USA, Honolulu',
    'Europe/London': 'UK, London',
    'Europe/Paris': 'France, Paris',
    'Europe/Berlin': 'Germany, Berlin',
    'Europe/Kiev': 'Ukraine, Kyiv',
    'Asia/Dubai': 'UAE, Dubai',
    'Asia/Tokyo': 'Japan, Tokyo',
    'Asia/Seoul': 'South Korea, Seoul',
    'Asia/Shanghai': 'China, Shanghai',
    'Asia/Singapore': 'Singapore, Singapore',
    'Asia/Jerusalem': 'Israel, Tel Aviv',
    'Australia/Sydney': 'Australia, Sydney',
    'Pacific/Auckland': 'New Zealand, Auckland',
}


def _zone(tz_name):
    """Resolve a zone name, or None if it is unknown"""
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug(f"Unknown timezone: {tz_name}")
        return None


def current_time(tz_name, now=None):
    """Local wall-clock time in a zone, e.g. '09:05 PM' ('N/A' on unknown zone)"""
    zone = _zone(tz_name)
    if zone is None:
        return 'N/A'
    now = now or datetime.now(timezone.utc)
    return now.astimezone(zone).strftime('%I:%M %p')


def timezone_label(tz_name):
    """Friendly 'Country, City' label, falling back to the zone ID"""
    return TIMEZONE_LABELS.get(tz_name, tz_name)


def utc_offset(tz_name, now=None):
    """Current UTC offset in '+05:30' form ('?' on unknown zone)"""
    zone = _zone(tz_name)
    if zone is None:
        return '?'
    now = now or datetime.now(timezone.utc)
    offset = now.astimezone(zone).utcoffset()
    total_minutes = int(offset.total_seconds() // 60)
    sign = '+' if total_minutes >= 0 else '-'
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def team_clock(users, now=None):
    """Build the dashboard's team time zone cards

    Args:
        users: User dicts with name, role, job_title, timezone
        now: Reference time (default: current UTC time)

    Returns:
        List of dicts with the user fields plus time, label and offset
    """
    now = now or datetime.now(timezone.utc)
    cards = []
    for user in users:
        tz_name = user.get('timezone') or DEFAULT_TIMEZONE
        cards.append({
            'name': user.get('name'),
            'role': user.get('role'),
            'job_title': user.get('job_title'),
            'timezone': tz_name,
            'time': current_time(tz_name, now),
            'label': timezone_label(tz_name),
            'offset': utc_offset(tz_name, now),
        })
    return cards
