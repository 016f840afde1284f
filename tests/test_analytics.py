"""
Listener analytics batch job tests
"""

import json
import pytest
from datetime import date

from station_portal.analytics import AnalyticsUnavailable, load_analytics, process_listener_csv

HEADER = 'Start Time,End Time,Seconds Connected,Location: Country,Device: OS Family,Device: Is Mobile\n'

ROWS = [
    '2026-01-03T22:20:24-08:00,2026-01-03T22:30:24-08:00,600,US,Android,True',
    '2026-01-03T08:05:00-08:00,2026-01-03T08:25:00-08:00,1200,US,Windows,False',
    '2026-01-15T08:30:00-08:00,2026-01-15T08:35:00-08:00,300,DE,iOS,True',
]


@pytest.fixture
def listener_csv(tmp_path):
    path = tmp_path / 'listeners.csv'
    path.write_text(HEADER + '\n'.join(ROWS) + '\n', encoding='utf-8')
    return path


@pytest.mark.unit
class TestProcessListenerCsv:
    """Test CSV aggregation"""

    def test_totals(self, listener_csv, tmp_path):
        result = process_listener_csv(listener_csv, tmp_path / 'out.json')

        assert result['totalSessions'] == 3
        assert result['totalHours'] == 1
        assert result['avgSessionSeconds'] == 700
        assert result['platformSplit'] == {'mobile': 2, 'desktop': 1}
        assert result['generatedAt'].endswith('Z')

    def test_daily_series_covers_first_month(self, listener_csv, tmp_path):
        daily = process_listener_csv(listener_csv, tmp_path / 'out.json')['dailyHits']

        assert len(daily) == 31
        assert daily[0] == {'date': '2026-01-01', 'hits': 0}
        assert daily[2] == {'date': '2026-01-03', 'hits': 2}
        assert daily[14] == {'date': '2026-01-15', 'hits': 1}
        assert daily[-1]['date'] == '2026-01-31'

    def test_explicit_range(self, listener_csv, tmp_path):
        daily = process_listener_csv(listener_csv, tmp_path / 'out.json',
                                     start='2026-01-02', end=date(2026, 1, 4))['dailyHits']
        assert [d['date'] for d in daily] == ['2026-01-02', '2026-01-03', '2026-01-04']
        assert [d['hits'] for d in daily] == [0, 2, 0]

    def test_weeks_and_hours(self, listener_csv, tmp_path):
        result = process_listener_csv(listener_csv, tmp_path / 'out.json')

        assert result['weeklyHits'] == [
            {'name': 'Week 1', 'count': 2},
            {'name': 'Week 2', 'count': 0},
            {'name': 'Week 3', 'count': 1},
            {'name': 'Week 4', 'count': 0},
            {'name': 'Week 5', 'count': 0},
        ]
        assert len(result['peakHours']) == 24
        assert result['peakHours'][8] == {'hour': '8:00', 'count': 2}
        assert result['peakHours'][22] == {'hour': '22:00', 'count': 1}

    def test_top_lists(self, listener_csv, tmp_path):
        result = process_listener_csv(listener_csv, tmp_path / 'out.json')

        assert result['topCountries'] == [{'code': 'US', 'count': 2}, {'code': 'DE', 'count': 1}]
        assert [d['name'] for d in result['topDevices']] == ['Android', 'Windows', 'iOS']

    def test_writes_json(self, listener_csv, tmp_path):
        output = tmp_path / 'nested' / 'analytics.json'
        result = process_listener_csv(listener_csv, str(output))

        assert json.loads(output.read_text(encoding='utf-8')) == result
        assert load_analytics(str(output)) == result

    def test_header_only(self, tmp_path):
        path = tmp_path / 'empty.csv'
        path.write_text(HEADER, encoding='utf-8')
        result = process_listener_csv(path, tmp_path / 'out.json')

        assert result['totalSessions'] == 0
        assert result['avgSessionSeconds'] == 0
        assert result['topCountries'] == []
        assert 28 <= len(result['dailyHits']) <= 31

    def test_bad_values_are_skipped(self, tmp_path):
        path = tmp_path / 'messy.csv'
        path.write_text(HEADER + 'not-a-date,,abc,,,False\n', encoding='utf-8')
        result = process_listener_csv(path, tmp_path / 'out.json', start='2026-02-01', end='2026-02-01')

        assert result['totalSessions'] == 1
        assert result['totalHours'] == 0
        assert result['platformSplit'] == {'mobile': 0, 'desktop': 1}
        assert sum(h['count'] for h in result['peakHours']) == 0

    def test_halves_round_up(self, tmp_path):
        def session_row(seconds):
            return f'2026-01-05T10:00:00Z,,{seconds},US,Linux,False'

        path = tmp_path / 'halves.csv'
        path.write_text(HEADER + '\n'.join(session_row(s) for s in (9000, 1, 4, 5)) + '\n',
                        encoding='utf-8')
        assert process_listener_csv(path, tmp_path / 'out.json')['avgSessionSeconds'] == 2253

        path.write_text(HEADER + '\n'.join(session_row(s) for s in (4500, 4500)) + '\n',
                        encoding='utf-8')
        assert process_listener_csv(path, tmp_path / 'out.json')['totalHours'] == 3

    def test_missing_csv(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            process_listener_csv(tmp_path / 'missing.csv', tmp_path / 'out.json')


@pytest.mark.unit
class TestLoadAnalytics:
    """Test reading the generated file"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnalyticsUnavailable):
            load_analytics(str(tmp_path / 'missing.json'))

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{not json', encoding='utf-8')
        with pytest.raises(AnalyticsUnavailable):
            load_analytics(str(path))
