"""
Listener analytics batch job

Turns an AzuraCast listener CSV export into the pre-computed analytics JSON
served by /api/azuracast/history and summarised by the assistant.

Run offline:
    python -m station_portal.cli --process-analytics listeners.csv
"""

import calendar
import csv
import json
import logging
import math
import os
from collections import Counter
from datetime import date, datetime, timedelta, timezone

logger = logging.getLogger(__name__)

DEFAULT_ANALYTICS_FILE = 'data/analytics.json'

COL_START_TIME = 'Start Time'
COL_COUNTRY = 'Location: Country'
COL_OS_FAMILY = 'Device: OS Family'
COL_IS_MOBILE = 'Device: Is Mobile'
COL_SECONDS = 'Seconds Connected'

WEEKS_PER_MONTH = 5
TOP_COUNTRIES = 10
TOP_DEVICES = 5


class AnalyticsUnavailable(Exception):
    """Raised when the analytics JSON has not been generated yet"""


def _to_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _default_range(dates):
    """Whole calendar month of the earliest record"""
    first = min(dates)
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first.replace(day=1), first.replace(day=last_day)


def round_half_up(value):
    """Round to the nearest integer, halves away from zero for positives"""
    return math.floor(value + 0.5)


def process_listener_csv(csv_path, output_path=DEFAULT_ANALYTICS_FILE, start=None, end=None):
    """Aggregate a listener CSV export into analytics JSON

    Start times look like 2026-01-03T22:20:24-08:00; the date and hour are
    taken as written, in the station's local time.

    Args:
        csv_path: Path to the AzuraCast listener CSV
        output_path: Where to write the JSON
        start: First day of the daily series (date or 'YYYY-MM-DD', optional)
        end: Last day of the daily series (date or 'YYYY-MM-DD', optional)

    Returns:
        The analytics dict that was written
    """
    logger.info(f"Reading listener CSV {csv_path}")
    with open(csv_path, newline='', encoding='utf-8') as f:
        records = [row for row in csv.DictReader(f) if any(row.values())]

    logger.info(f"Total records found: {len(records)}")

    daily_hits = Counter()
    weekly_hits = {week: 0 for week in range(1, WEEKS_PER_MONTH + 1)}
    country_stats = Counter()
    device_stats = Counter()
    hour_stats = [0] * 24
    total_seconds = 0
    mobile_count = 0
    desktop_count = 0

    for record in records:
        start_time = (record.get(COL_START_TIME) or '').strip()
        if start_time:
            day_str = start_time.split('T')[0]
            daily_hits[day_str] += 1

            try:
                week = math.ceil(int(day_str.split('-')[2]) / 7)
                if week <= WEEKS_PER_MONTH:
                    weekly_hits[week] += 1
            except (IndexError, ValueError):
                logger.debug(f"Unparseable start date: {start_time}")

            try:
                hour = int(start_time.split('T')[1].split(':')[0])
                if 0 <= hour < 24:
                    hour_stats[hour] += 1
            except (IndexError, ValueError):
                pass

        country = record.get(COL_COUNTRY)
        if country:
            country_stats[country] += 1

        device = record.get(COL_OS_FAMILY)
        if device:
            device_stats[device] += 1

        if record.get(COL_IS_MOBILE) == 'True':
            mobile_count += 1
        else:
            desktop_count += 1

        try:
            total_seconds += int(record.get(COL_SECONDS) or '')
        except ValueError:
            pass

    start = _to_date(start)
    end = _to_date(end)
    if start is None or end is None:
        known_dates = []
        for day_str in daily_hits:
            try:
                known_dates.append(date.fromisoformat(day_str))
            except ValueError:
                continue
        if known_dates:
            default_start, default_end = _default_range(known_dates)
        else:
            today = datetime.now(timezone.utc).date()
            default_start, default_end = _default_range([today])
        start = start or default_start
        end = end or default_end

    daily_series = []
    day = start
    while day <= end:
        day_str = day.isoformat()
        daily_series.append({'date': day_str, 'hits': daily_hits.get(day_str, 0)})
        day += timedelta(days=1)

    # Counter.most_common keeps first-seen order on ties
    analytics = {
        'generatedAt': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        'totalSessions': len(records),
        'totalHours': round_half_up(total_seconds / 3600),
        'avgSessionSeconds': round_half_up(total_seconds / len(records)) if records else 0,
        'platformSplit': {'mobile': mobile_count, 'desktop': desktop_count},
        'dailyHits': daily_series,
        'weeklyHits': [{'name': f"Week {week}", 'count': count} for week, count in weekly_hits.items()],
        'peakHours': [{'hour': f"{hour}:00", 'count': count} for hour, count in enumerate(hour_stats)],
        'topCountries': [{'code': code, 'count': count}
                         for code, count in country_stats.most_common(TOP_COUNTRIES)],
        'topDevices': [{'name': name, 'count': count}
                       for name, count in device_stats.most_common(TOP_DEVICES)],
    }

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(analytics, f, indent=2)

    top_country = analytics['topCountries'][0] if analytics['topCountries'] else None
    logger.info(f"Analytics saved to {output_path}: {len(daily_series)} days, "
                f"{len(records)} sessions, top country "
                f"{top_country['code'] if top_country else 'n/a'}")
    return analytics


def load_analytics(path=DEFAULT_ANALYTICS_FILE):
    """Load the pre-computed analytics JSON

    Raises:
        AnalyticsUnavailable: If the file is missing or unreadable
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        raise AnalyticsUnavailable(f"Analytics file not found: {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise AnalyticsUnavailable(f"Failed to read analytics file {path}: {e}")
