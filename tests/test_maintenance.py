"""
Maintenance and plumbing tests

Tests team time zone helpers, retention cleanup, the APScheduler wrapper,
settings resolution, and the command-line interface.
"""

import json
import logging
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from station_portal import cli
from station_portal.cleanup import (
    cleanup_activity_logs,
    cleanup_read_notifications,
    regenerate_analytics,
    run_all_cleanup
)
from station_portal.database import PortalDatabase
from station_portal.gui import DEFAULT_SETTINGS, resolve_settings
from station_portal.scheduler import (
    ACTIVITY_CLEANUP_JOB,
    ANALYTICS_JOB,
    NOTIFICATION_CLEANUP_JOB,
    PortalScheduler
)
from station_portal.timezones import current_time, team_clock, timezone_label, utc_offset
from tests.test_analytics import HEADER, ROWS

WINTER = datetime(2026, 1, 15, 21, 5, tzinfo=timezone.utc)
SUMMER = datetime(2026, 7, 15, 21, 5, tzinfo=timezone.utc)


@pytest.mark.unit
class TestTimezones:
    """Test team clock helpers"""

    def test_current_time(self):
        assert current_time('UTC', now=WINTER) == '09:05 PM'
        assert current_time('Asia/Tokyo', now=WINTER) == '06:05 AM'
        assert current_time('Not/AZone', now=WINTER) == 'N/A'

    def test_utc_offset(self):
        assert utc_offset('Asia/Kolkata', now=WINTER) == '+05:30'
        assert utc_offset('America/New_York', now=WINTER) == '-05:00'
        assert utc_offset('America/New_York', now=SUMMER) == '-04:00'
        assert utc_offset('UTC', now=WINTER) == '+00:00'
        assert utc_offset('Not/AZone') == '?'
        assert utc_offset('') == '?'

    def test_labels(self):
        assert timezone_label('Europe/Kiev') == 'Ukraine, Kyiv'
        assert timezone_label('America/Halifax') == 'America/Halifax'

    def test_team_clock(self):
        cards = team_clock([
            {'name': 'Ana', 'role': 'ADMIN', 'job_title': 'Director', 'timezone': 'Europe/Paris'},
            {'name': 'Bo', 'role': 'STAFF', 'job_title': None, 'timezone': 'Mars/Olympus'},
            {'name': 'Cy', 'role': 'STAFF', 'job_title': 'DJ', 'timezone': None},
        ], now=WINTER)

        assert cards[0] == {'name': 'Ana', 'role': 'ADMIN', 'job_title': 'Director',
                            'timezone': 'Europe/Paris', 'time': '10:05 PM',
                            'label': 'France, Paris', 'offset': '+01:00'}
        assert cards[1]['time'] == 'N/A'
        assert cards[1]['label'] == 'Mars/Olympus'
        assert cards[1]['offset'] == '?'
        assert cards[2]['timezone'] == 'America/New_York'
        assert cards[2]['time'] == '04:05 PM'


@pytest.mark.unit
class TestCleanup:
    """Test retention cleanup jobs"""

    def test_no_database(self):
        assert cleanup_activity_logs(None) == 0
        assert cleanup_read_notifications(None) == 0

    def test_errors_are_swallowed(self):
        db = Mock()
        db.cleanup_old_activity.side_effect = RuntimeError('locked')
        db.delete_read_notifications_older_than.side_effect = RuntimeError('locked')
        assert cleanup_activity_logs(db) == 0
        assert cleanup_read_notifications(db) == 0

    def test_retention_passed_through(self):
        db = Mock()
        db.cleanup_old_activity.return_value = 4
        db.delete_read_notifications_older_than.return_value = 2

        results = run_all_cleanup(db, {'maintenance': {'activity_retention_days': 10,
                                                       'notification_retention_days': 5}})
        assert results['activity_deleted'] == 4
        assert results['notifications_deleted'] == 2
        db.cleanup_old_activity.assert_called_once_with(days=10)
        db.delete_read_notifications_older_than.assert_called_once_with(days=5)

    def test_run_all_cleanup_on_database(self, test_db, admin_user, staff_user):
        old = (datetime.now(timezone.utc) - timedelta(days=200)).isoformat()
        test_db.log_activity('LOGIN', user_id=admin_user['id'])
        test_db.create_poll('Q?', None, admin_user['id'], ['A', 'B'])
        test_db.mark_notifications_read(staff_user['id'])

        cursor = test_db.get_cursor()
        cursor.execute("UPDATE activity_log SET timestamp = ?", (old,))
        cursor.execute("UPDATE notifications SET created_at = ?", (old,))
        test_db.conn.commit()

        results = run_all_cleanup(test_db, resolve_settings(environ={}))
        assert results['activity_deleted'] == 1
        assert results['notifications_deleted'] == 1

    def test_regenerate_analytics(self, tmp_path):
        csv_path = tmp_path / 'listeners.csv'
        csv_path.write_text(HEADER + '\n'.join(ROWS) + '\n', encoding='utf-8')
        output = tmp_path / 'analytics.json'

        settings = {'maintenance': {'analytics_csv': str(csv_path)},
                    'portal': {'analytics_file': str(output)}}
        assert regenerate_analytics(settings) is True
        assert json.loads(output.read_text())['totalSessions'] == 3

    def test_regenerate_analytics_not_configured(self, tmp_path):
        assert regenerate_analytics({'maintenance': {'analytics_csv': ''}}) is False
        assert regenerate_analytics({'maintenance': {
            'analytics_csv': str(tmp_path / 'missing.csv')}}) is False


@pytest.mark.unit
class TestScheduler:
    """Test the APScheduler wrapper (never started)"""

    def test_cleanup_jobs(self):
        scheduler = PortalScheduler()
        assert scheduler.add_cleanup_jobs(lambda: None, lambda: None, hour=3) is True
        assert set(scheduler.job_ids()) == {ACTIVITY_CLEANUP_JOB, NOTIFICATION_CLEANUP_JOB}

        # Adding twice keeps one job per ID
        scheduler.add_cleanup_jobs(lambda: None, lambda: None)
        assert len(scheduler.job_ids()) == 2

    def test_analytics_job(self):
        scheduler = PortalScheduler()
        assert scheduler.add_analytics_job(lambda: None) is True
        assert scheduler.add_analytics_job(lambda: None) is False
        assert scheduler.job_ids() == [ANALYTICS_JOB]

    def test_shutdown_when_not_running(self):
        PortalScheduler().shutdown()

    def test_start_logs_job_ids(self, caplog):
        scheduler = PortalScheduler()
        scheduler.add_analytics_job(lambda: None)
        with caplog.at_level(logging.INFO, logger='station_portal.scheduler'):
            assert scheduler.start() is True
        try:
            assert 'Scheduler started with jobs: analytics_job' in caplog.text
            assert scheduler.start() is False
        finally:
            scheduler.shutdown(wait=False)


@pytest.mark.unit
class TestSettings:
    """Test settings resolution"""

    def test_defaults(self):
        settings = resolve_settings(environ={})
        assert settings == DEFAULT_SETTINGS
        assert settings is not DEFAULT_SETTINGS

    def test_file_values_merge_per_section(self):
        settings = resolve_settings({'portal': {'port': 8080}, 'groq': {'model': 'small'}},
                                    environ={})
        assert settings['portal']['port'] == 8080
        assert settings['portal']['database_file'] == 'station_portal.db'
        assert settings['groq'] == {'api_key': '', 'model': 'small'}

    def test_environment_overrides(self):
        settings = resolve_settings(
            {'azuracast': {'url': 'https://file.example.com/api'}},
            environ={'AZURACAST_API_URL': 'https://env.example.com/api',
                     'GROQ_API_KEY': 'gsk_test', 'AZURACAST_API_KEY': ''})
        assert settings['azuracast']['url'] == 'https://env.example.com/api'
        assert settings['groq']['api_key'] == 'gsk_test'
        assert settings['azuracast']['api_key'] == ''

    def test_defaults_not_mutated(self):
        settings = resolve_settings(environ={})
        settings['portal']['port'] = 1
        assert DEFAULT_SETTINGS['portal']['port'] == 5000


@pytest.mark.unit
class TestCli:
    """Test command-line entry points"""

    @pytest.fixture(autouse=True)
    def workdir(self, tmp_path, monkeypatch):
        """Run each CLI test in an empty directory without touching logging"""
        monkeypatch.chdir(tmp_path)
        for name in ('AZURACAST_API_URL', 'AZURACAST_STATION_ID', 'AZURACAST_API_KEY',
                     'GROQ_API_KEY', 'PORTAL_SECRET_KEY'):
            monkeypatch.delenv(name, raising=False)
        with patch('station_portal.cli.setup_logging'):
            yield tmp_path

    def _open_db(self, workdir):
        db = PortalDatabase(str(workdir / 'station_portal.db'))
        db.connect()
        return db

    def test_seed_admin(self, workdir, capsys):
        assert cli.main(['--seed-admin', '--password', 'secret1', '--secure-word', 'studio']) == 0
        assert '[OK] Admin created: admin@example.com' in capsys.readouterr().out

        db = self._open_db(workdir)
        try:
            admin = db.get_user_by_email('admin@example.com')
            assert admin['role'] == 'ADMIN'
            assert admin['name'] == 'Admin User'
            assert admin['timezone'] == 'America/New_York'
        finally:
            db.close()

    def test_seed_admin_keeps_existing(self, workdir, capsys):
        cli.main(['--seed-admin', '--password', 'secret1', '--secure-word', 'studio'])
        assert cli.main(['--seed-admin', '--password', 'other12', '--secure-word', 'other']) == 0
        assert 'Admin already exists' in capsys.readouterr().out

    def test_seed_admin_prompts_for_secrets(self, workdir):
        with patch('station_portal.cli.getpass.getpass', side_effect=['secret1', 'studio']) as prompt:
            assert cli.main(['--seed-admin', '--email', 'boss@example.com']) == 0
        assert prompt.call_count == 2

    def test_seed_admin_rejects_short_secrets(self, workdir):
        assert cli.main(['--seed-admin', '--password', 'abc', '--secure-word', 'studio']) == 1

    def test_create_user(self, workdir):
        assert cli.main(['--create-user', '--email', 'dj@example.com', '--name', 'Night DJ',
                         '--password', 'secret1', '--secure-word', 'studio',
                         '--timezone', 'Europe/London', '--job-title', 'DJ']) == 0

        db = self._open_db(workdir)
        try:
            user = db.get_user_by_email('dj@example.com')
            assert user['role'] == 'STAFF'
            assert user['job_title'] == 'DJ'
            assert db.get_recent_activity()[0]['action'] == 'USER_CREATED'
        finally:
            db.close()

    def test_create_user_duplicate(self, workdir):
        args = ['--create-user', '--email', 'dj@example.com', '--name', 'Night DJ',
                '--password', 'secret1', '--secure-word', 'studio']
        assert cli.main(args) == 0
        assert cli.main(args) == 1

    def test_create_user_validation(self, workdir):
        assert cli.main(['--create-user', '--email', 'dj@example.com']) == 1
        assert cli.main(['--create-user', '--email', 'dj@example.com', '--name', 'DJ',
                         '--role', 'owner', '--password', 'secret1', '--secure-word', 'studio']) == 1
        assert cli.main(['--create-user', '--email', 'nope', '--name', 'DJ',
                         '--password', 'secret1', '--secure-word', 'studio']) == 1

    def test_process_analytics(self, workdir, capsys):
        csv_path = workdir / 'listeners.csv'
        csv_path.write_text(HEADER + '\n'.join(ROWS) + '\n', encoding='utf-8')

        assert cli.main(['--process-analytics', str(csv_path)]) == 0
        data = json.loads((workdir / 'data' / 'analytics.json').read_text())
        assert data['totalSessions'] == 3
        assert 'Top country: US (2)' in capsys.readouterr().out

    def test_process_analytics_custom_output(self, workdir):
        csv_path = workdir / 'listeners.csv'
        csv_path.write_text(HEADER + '\n'.join(ROWS) + '\n', encoding='utf-8')

        assert cli.main(['--process-analytics', str(csv_path), '--output', 'out.json',
                         '--start', '2026-01-01', '--end', '2026-01-07']) == 0
        assert len(json.loads((workdir / 'out.json').read_text())['dailyHits']) == 7

    def test_process_analytics_errors(self, workdir):
        assert cli.main(['--process-analytics', 'missing.csv']) == 1

        csv_path = workdir / 'listeners.csv'
        csv_path.write_text(HEADER, encoding='utf-8')
        assert cli.main(['--process-analytics', str(csv_path), '--start', 'someday']) == 1

    def test_cleanup(self, workdir, capsys):
        assert cli.main(['--cleanup']) == 0
        assert '[OK] Deleted 0 activity entries, 0 read notifications' in capsys.readouterr().out

    def test_settings_file_is_used(self, workdir):
        (workdir / 'station_portal_settings.json').write_text(json.dumps({
            'portal': {'database_file': 'custom.db'}}))
        cli.main(['--seed-admin', '--password', 'secret1', '--secure-word', 'studio'])
        assert (workdir / 'custom.db').exists()

    def test_default_runs_web_app(self, workdir):
        with patch('station_portal.cli.cmd_gui', return_value=0) as mock_gui:
            assert cli.main(['--port', '8080']) == 0
        args, settings = mock_gui.call_args[0]
        assert args.port == 8080
        assert settings['portal']['database_file'] == 'station_portal.db'

    def test_init_settings(self, workdir, capsys):
        assert cli.main(['--init-settings']) == 0
        written = json.loads((workdir / 'station_portal_settings.json').read_text())
        assert len(written['portal']['secret_key']) == 64
        assert written['portal']['database_file'] == 'station_portal.db'
        assert DEFAULT_SETTINGS['portal']['secret_key'] == ''
        assert '[OK] Settings written' in capsys.readouterr().out

        assert cli.main(['--init-settings']) == 1
