"""
AzuraCast API client for Station Portal

Thin wrapper around the AzuraCast REST API used by the dashboard, the
broadcasting page and the assistant:
- Now playing (public, no API key)
- Live listeners and station schedule
- Streamer (DJ) accounts and their recurring schedules
- Broadcast history with timestamp normalisation

Every call except now-playing sends the station API key as a bearer token.
"""

import logging
import math
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
MAX_BROADCASTS = 50
MILLISECONDS_THRESHOLD = 10_000_000_000

BROADCAST_START_FIELDS = (
    'timestamp_start', 'timestampStart', 'start', 'started_at', 'startedAt',
    'start_time', 'startTime', 'time_start',
)
BROADCAST_END_FIELDS = (
    'timestamp_end', 'timestampEnd', 'end', 'ended_at', 'endedAt',
    'end_time', 'endTime', 'time_end',
)


class AzuraCastError(Exception):
    """Raised when an AzuraCast request fails"""


class AzuraCastNotConfigured(AzuraCastError):
    """Raised when URL, station ID or API key is missing"""

    def __init__(self, message="AzuraCast environment variables are missing"):
        super().__init__(message)


def parse_timestamp(value):
    """Normalise a timestamp to Unix seconds

    Accepts Unix seconds, Unix milliseconds (anything above 10^10), numeric
    strings, and ISO-8601 strings.

    Returns:
        int seconds, or None if the value cannot be parsed
    """
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        if value > MILLISECONDS_THRESHOLD:
            return int(value // 1000)
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            number = None
        if number is not None:
            return parse_timestamp(number)

        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())

    return None


def extract_timestamp(record, *field_names):
    """Return the first positive timestamp found under any of the field names"""
    for field_name in field_names:
        value = record.get(field_name)
        if value is None or value == 0:
            continue
        parsed = parse_timestamp(value)
        if parsed is not None and parsed > 0:
            return parsed
    return None


def reshape_now_playing(data):
    """Reduce the now-playing payload to what the dashboard shows"""
    data = data or {}
    station = data.get('station') or {}
    live = data.get('live') or {}
    now_playing = data.get('now_playing') or {}
    song = now_playing.get('song') or {}
    listeners = data.get('listeners') or {}

    return {
        'station': {
            'name': station.get('name'),
            'listen_url': station.get('listen_url'),
        },
        'live': {
            'is_live': live.get('is_live') or False,
            'streamer_name': live.get('streamer_name') or None,
        },
        'now_playing': {
            'song': {
                'title': song.get('title'),
                'artist': song.get('artist'),
                'art': song.get('art'),
            },
            'elapsed': now_playing.get('elapsed'),
            'duration': now_playing.get('duration'),
            'is_request': now_playing.get('is_request'),
        },
        'listeners': {
            'current': listeners.get('current') or 0,
            'unique': listeners.get('unique') or 0,
        },
        'song_history': (data.get('song_history') or [])[:5],
    }


def streamer_display_name(streamer):
    return (streamer.get('display_name') or streamer.get('streamer_username')
            or streamer.get('username') or 'Unknown DJ')


class AzuraCastClient:
    """Client for one AzuraCast station"""

    def __init__(self, api_url, station_id, api_key=None, timeout=DEFAULT_TIMEOUT):
        self.api_url = api_url.rstrip('/')
        self.station_id = station_id
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self, authenticated=True):
        headers = {'Accept': 'application/json'}
        if authenticated:
            if not self.api_key:
                raise AzuraCastNotConfigured()
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    def _request(self, method, path, authenticated=True, payload=None):
        """Send a request and return the decoded JSON body

        Raises:
            AzuraCastError: On network failure or a non-2xx response
        """
        url = f"{self.api_url}{path}"
        headers = self._headers(authenticated)

        try:
            response = requests.request(method, url, headers=headers, json=payload,
                                        timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"AzuraCast {method} {path} failed: {e}")
            raise AzuraCastError(f"AzuraCast API Error: {e}") from e

        if not response.ok:
            message = f"AzuraCast API Error: {response.reason}"
            if method in ('POST', 'PUT') and response.text:
                message = f"{message} - {response.text}"
            logger.warning(f"AzuraCast {method} {path} returned HTTP {response.status_code}")
            raise AzuraCastError(message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"AzuraCast {method} {path} returned a non-JSON body")
            raise AzuraCastError(f"AzuraCast API Error: invalid JSON ({e})") from e

    def _request_list(self, path):
        """GET a collection endpoint

        Raises:
            AzuraCastError: If the body is not a JSON list
        """
        body = self._request('GET', path)
        if body is None:
            return []
        if not isinstance(body, list):
            logger.warning(f"AzuraCast GET {path} returned {type(body).__name__}, expected a list")
            raise AzuraCastError("AzuraCast API Error: unexpected response format")
        return body

    # ==================== STATION ====================

    def now_playing(self):
        """Raw now-playing payload (public endpoint)"""
        body = self._request('GET', f"/nowplaying/{self.station_id}", authenticated=False)
        if body is not None and not isinstance(body, dict):
            raise AzuraCastError("AzuraCast API Error: unexpected response format")
        return body

    def listeners(self):
        """Currently connected listeners"""
        return self._request_list(f"/station/{self.station_id}/listeners")

    def station_schedule(self):
        """Upcoming scheduled playlists and streamer slots"""
        return self._request_list(f"/station/{self.station_id}/schedule")

    # ==================== STREAMERS ====================

    def streamers(self):
        return self._request_list(f"/station/{self.station_id}/streamers")

    def streamer(self, streamer_id):
        return self._request('GET', f"/station/{self.station_id}/streamer/{streamer_id}")

    def create_streamer(self, username, password, display_name=None, is_active=True):
        """Create a streamer account

        Display name falls back to the username; schedules are not enforced.
        """
        payload = {
            'streamer_username': username,
            'streamer_password': password,
            'display_name': display_name or username,
            'is_active': True if is_active is None else is_active,
            'enforce_schedule': False,
        }
        logger.info(f"Creating AzuraCast streamer {username}")
        return self._request('POST', f"/station/{self.station_id}/streamers", payload=payload)

    def update_streamer(self, streamer_id, fields):
        logger.info(f"Updating AzuraCast streamer {streamer_id}")
        return self._request('PUT', f"/station/{self.station_id}/streamer/{streamer_id}",
                             payload=fields)

    def delete_streamer(self, streamer_id):
        logger.info(f"Deleting AzuraCast streamer {streamer_id}")
        self._request('DELETE', f"/station/{self.station_id}/streamer/{streamer_id}")

    # ==================== SCHEDULES ====================

    def streamer_schedule(self, streamer_id):
        return self._request_list(f"/station/{self.station_id}/streamer/{streamer_id}/schedule")

    def create_schedule_item(self, streamer_id, start_time, end_time, days):
        """Add a recurring slot (times are HHMM integers, days 1=Mon..7=Sun)"""
        payload = {'start_time': start_time, 'end_time': end_time, 'days': days}
        return self._request(
            'POST', f"/station/{self.station_id}/streamer/{streamer_id}/schedule",
            payload=payload)

    def delete_schedule_item(self, streamer_id, schedule_id):
        self._request(
            'DELETE', f"/station/{self.station_id}/streamer/{streamer_id}/schedule/{schedule_id}")

    def streamers_with_schedules(self):
        """Every streamer with its recurring schedule

        A streamer whose schedule cannot be fetched gets an empty schedule.
        """
        result = []
        for streamer in self.streamers():
            try:
                schedule = self.streamer_schedule(streamer['id'])
            except AzuraCastError as e:
                logger.warning(f"Could not fetch schedule for streamer {streamer.get('id')}: {e}")
                schedule = []

            result.append({
                'id': streamer.get('id'),
                'streamer_username': streamer.get('streamer_username'),
                'display_name': streamer.get('display_name'),
                'is_active': streamer.get('is_active'),
                'enforce_schedule': streamer.get('enforce_schedule'),
                'schedule': schedule,
            })
        return result

    # ==================== BROADCASTS ====================

    def streamer_broadcasts(self, streamer_id):
        return self._request_list(f"/station/{self.station_id}/streamer/{streamer_id}/broadcasts")

    def recent_broadcasts(self, limit=MAX_BROADCASTS):
        """All streamers' broadcasts merged, newest first

        Streamers whose history cannot be fetched are skipped.

        Returns:
            List of dicts with id, streamer_id, streamer_name,
            timestamp_start, timestamp_end (Unix seconds or None), recording
        """
        broadcasts = []
        for streamer in self.streamers():
            try:
                raw = self.streamer_broadcasts(streamer['id'])
            except AzuraCastError as e:
                logger.error(f"Failed to fetch broadcasts for streamer {streamer.get('id')}: {e}")
                continue

            for broadcast in raw:
                if not isinstance(broadcast, dict):
                    continue
                broadcasts.append({
                    'id': broadcast.get('id'),
                    'streamer_id': streamer.get('id'),
                    'streamer_name': streamer_display_name(streamer),
                    'timestamp_start': extract_timestamp(broadcast, *BROADCAST_START_FIELDS),
                    'timestamp_end': extract_timestamp(broadcast, *BROADCAST_END_FIELDS),
                    'recording': broadcast.get('recording') or None,
                })

        broadcasts.sort(key=lambda b: b['timestamp_start'] or 0, reverse=True)
        return broadcasts[:limit]


def from_settings(settings, require_key=True):
    """Build a client from the resolved 'azuracast' settings section

    Args:
        settings: Full settings dict
        require_key: Whether the API key must be present (now-playing does not need it)

    Raises:
        AzuraCastNotConfigured: If required values are missing
    """
    config = (settings or {}).get('azuracast', {})
    api_url = config.get('url')
    station_id = config.get('station_id')
    api_key = config.get('api_key')

    if not api_url or not station_id or (require_key and not api_key):
        raise AzuraCastNotConfigured()

    return AzuraCastClient(api_url, station_id, api_key,
                           timeout=config.get('timeout', DEFAULT_TIMEOUT))
