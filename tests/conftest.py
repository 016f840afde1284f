"""
Pytest configuration and fixtures for Station Portal tests

Provides test database, seeded users, Flask app, and HTTP client fixtures
(anonymous, staff and admin) for testing all components of the application.
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from station_portal import auth
from station_portal.auth import hash_secret
from station_portal.database import PortalDatabase
from station_portal.gui import app as gui_app, resolve_settings
from station_portal.gui.routes.assistant import rate_limiter

TEST_PASSWORD = 'password1'
TEST_SECURE_WORD = 'studio'


@pytest.fixture(autouse=True)
def reset_auth_state():
    """Clear login lockouts and chat rate limits between tests"""
    auth.failed_attempts.clear()
    rate_limiter.reset()
    yield
    auth.failed_attempts.clear()
    rate_limiter.reset()


@pytest.fixture
def test_db_path():
    """Provide a temporary database file path"""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    os.unlink(path)
    yield path
    # Cleanup
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


@pytest.fixture
def test_db(test_db_path):
    """Provide a fresh test database with schema initialized"""
    db = PortalDatabase(test_db_path)
    db.connect()  # This initializes the schema

    yield db

    # Cleanup
    db.close()


def create_test_user(db, email, role='STAFF', name=None, timezone_name='America/New_York',
                     job_title='Staff'):
    """Create a user with the shared test password and secure word

    Returns:
        Dict with id, email, role, password and secure_word
    """
    user_id = db.create_user(
        name or email.split('@')[0].title(),
        email,
        hash_secret(TEST_PASSWORD),
        hash_secret(TEST_SECURE_WORD),
        role=role,
        timezone_name=timezone_name,
        job_title=job_title
    )
    return {
        'id': user_id,
        'email': email,
        'role': role,
        'password': TEST_PASSWORD,
        'secure_word': TEST_SECURE_WORD,
    }


@pytest.fixture
def admin_user(test_db):
    """Seeded ADMIN account"""
    return create_test_user(test_db, 'admin@example.com', role='ADMIN', name='Admin User',
                            job_title='Station Director')


@pytest.fixture
def staff_user(test_db):
    """Seeded STAFF account"""
    return create_test_user(test_db, 'dj@example.com', role='STAFF', name='Night DJ',
                            timezone_name='Europe/London', job_title='DJ')


@pytest.fixture
def test_app(test_db, tmp_path):
    """Provide the Flask app wired to the test database

    Settings come from defaults only (no settings file, no environment), with
    the analytics file pointed at the test's temp directory.
    """
    gui_app.config['TESTING'] = True
    gui_app.config['db'] = test_db
    gui_app.config['settings'] = resolve_settings(
        {'portal': {'analytics_file': str(tmp_path / 'analytics.json')}},
        environ={}
    )
    gui_app.secret_key = 'test-secret-key'

    yield gui_app


@pytest.fixture
def test_client(test_app):
    """Provide an anonymous Flask test client"""
    return test_app.test_client()


def login(client, user):
    """Sign a test client in; returns the login response"""
    return client.post('/api/auth/login', json={
        'email': user['email'],
        'password': user['password'],
        'secure_word': user['secure_word'],
    })


@pytest.fixture
def admin_client(test_app, admin_user):
    """Test client signed in as the admin"""
    client = test_app.test_client()
    response = login(client, admin_user)
    assert response.status_code == 200
    return client


@pytest.fixture
def staff_client(test_app, staff_user):
    """Test client signed in as the staff user"""
    client = test_app.test_client()
    response = login(client, staff_user)
    assert response.status_code == 200
    return client


@pytest.fixture
def azuracast_settings(test_app):
    """Configure AzuraCast for the running test app"""
    settings = test_app.config['settings']
    settings['azuracast'].update({
        'url': 'https://radio.example.com/api',
        'station_id': '1',
        'api_key': 'test-azuracast-key',
    })
    return settings


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, json_data=None, status_code=200, reason='OK', text='', headers=None):
        self._json = json_data
        self.status_code = status_code
        self.reason = reason
        self.ok = 200 <= status_code < 400
        self.headers = headers or {}
        if text:
            self.text = text
        elif json_data is not None:
            self.text = 'json'
        else:
            self.text = ''
        self.content = self.text.encode('utf-8')

    def json(self):
        if self._json is None:
            raise ValueError('No JSON body')
        return self._json


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
