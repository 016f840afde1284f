"""
Resource vault, admin, profile settings and dashboard API tests
"""

import pytest
import requests
from unittest.mock import patch

from station_portal.gui.routes.settings import (
    ProfileError,
    default_avatar_index,
    lookup_discord_avatar
)
from tests.conftest import FakeResponse, TEST_PASSWORD, login


@pytest.mark.unit
class TestResourcesAPI:
    """Test /api/resources endpoints"""

    def _create(self, client, **overrides):
        payload = {'title': 'Style Guide', 'description': 'On-air rules',
                   'content': 'https://docs.example.com/style', 'type': 'link'}
        payload.update(overrides)
        return client.post('/api/resources', json=payload)

    def test_create_and_list(self, staff_client):
        response = self._create(staff_client)
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Info item added!'

        items = staff_client.get('/api/resources').get_json()['items']
        assert len(items) == 1
        assert items[0]['type'] == 'LINK'
        assert items[0]['visible_to'] == 'ALL'

    def test_create_invalid(self, staff_client):
        response = self._create(staff_client, type='VIDEO')
        assert response.status_code == 400
        assert response.get_json() == {'message': 'Invalid data.', 'success': False}

        assert self._create(staff_client, title='').status_code == 400
        assert self._create(staff_client, content='  ').status_code == 400

    def test_update_with_id_in_body(self, staff_client):
        item_id = self._create(staff_client).get_json()['item_id']
        response = staff_client.put('/api/resources', json={
            'item_id': item_id, 'title': 'Studio WiFi', 'content': 'hunter2', 'type': 'SECRET'})
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Item updated!'

        item = staff_client.get('/api/resources').get_json()['items'][0]
        assert item['title'] == 'Studio WiFi'
        assert item['type'] == 'SECRET'
        assert item['description'] == ''

    def test_update_with_id_in_path(self, staff_client):
        item_id = self._create(staff_client).get_json()['item_id']
        response = staff_client.put(f'/api/resources/{item_id}', json={
            'title': 'Renamed', 'content': 'x', 'type': 'FILE'})
        assert response.status_code == 200

    def test_update_without_id(self, staff_client):
        response = staff_client.put('/api/resources', json={
            'title': 'T', 'content': 'C', 'type': 'LINK'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Item ID missing.'

    def test_update_missing_item(self, staff_client):
        response = staff_client.put('/api/resources/missing', json={
            'title': 'T', 'content': 'C', 'type': 'LINK'})
        assert response.status_code == 404

    def test_delete(self, staff_client):
        item_id = self._create(staff_client).get_json()['item_id']
        response = staff_client.delete(f'/api/resources/{item_id}')
        assert response.get_json() == {'message': 'Item deleted.', 'success': True}
        assert staff_client.delete(f'/api/resources/{item_id}').status_code == 404


@pytest.mark.unit
class TestAdminAPI:
    """Test /api/admin/* endpoints"""

    def _new_user(self, **overrides):
        payload = {
            'name': 'Morning Host', 'email': 'host@example.com', 'password': 'secret1',
            'secure_word': 'coffee', 'role': 'staff', 'timezone': 'Europe/Berlin',
            'job_title': 'Host',
        }
        payload.update(overrides)
        return payload

    def test_list_users(self, admin_client, staff_user):
        users = admin_client.get('/api/admin/users').get_json()['users']
        assert {u['email'] for u in users} == {'admin@example.com', 'dj@example.com'}
        assert all('password_hash' not in u for u in users)

    def test_create_user_and_login(self, test_app, admin_client):
        response = admin_client.post('/api/admin/users', json=self._new_user())
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'User created successfully!'
        assert data['user_id']

        client = test_app.test_client()
        response = login(client, {'email': 'host@example.com', 'password': 'secret1',
                                  'secure_word': 'coffee'})
        assert response.status_code == 200
        assert response.get_json()['user']['role'] == 'STAFF'
        assert response.get_json()['user']['timezone'] == 'Europe/Berlin'

    def test_create_user_defaults(self, test_db, admin_client):
        payload = self._new_user(timezone='', job_title='')
        admin_client.post('/api/admin/users', json=payload)

        user = test_db.get_user_by_email('host@example.com')
        assert user['timezone'] == 'America/New_York'
        assert user['job_title'] == 'Staff'

    @pytest.mark.parametrize('field,value', [
        ('email', 'not-an-email'),
        ('password', 'short'),
        ('secure_word', 'abc'),
        ('role', 'OWNER'),
        ('name', ''),
    ])
    def test_create_user_invalid(self, admin_client, field, value):
        response = admin_client.post('/api/admin/users', json=self._new_user(**{field: value}))
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid data. Please check inputs.'

    def test_create_user_duplicate_email(self, admin_client, staff_user):
        response = admin_client.post('/api/admin/users',
                                     json=self._new_user(email=staff_user['email']))
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Failed to create user. Email might be in use.'

    def test_create_user_logged(self, admin_client):
        admin_client.post('/api/admin/users', json=self._new_user())
        activity = admin_client.get('/api/admin/activity').get_json()['activity']
        assert activity[0]['action'] == 'USER_CREATED'
        assert activity[0]['details'] == 'host@example.com (STAFF)'
        assert activity[0]['user']['email'] == 'admin@example.com'

    def test_delete_user(self, admin_client, staff_user):
        response = admin_client.delete(f"/api/admin/users/{staff_user['id']}")
        assert response.get_json() == {'message': 'User deleted.', 'success': True}
        assert admin_client.delete(f"/api/admin/users/{staff_user['id']}").status_code == 404

    def test_cannot_delete_self(self, admin_client, admin_user):
        response = admin_client.delete(f"/api/admin/users/{admin_user['id']}")
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Cannot delete yourself.'

    def test_staff_cannot_manage_users(self, staff_client, admin_user):
        assert staff_client.post('/api/admin/users', json=self._new_user()).status_code == 403
        assert staff_client.delete(f"/api/admin/users/{admin_user['id']}").status_code == 403
        assert staff_client.get('/api/admin/activity').status_code == 403


@pytest.mark.unit
class TestDiscordLookup:
    """Test Discord avatar resolution"""

    def test_default_avatar_index(self):
        assert default_avatar_index(str(3 << 22)) == 3
        assert default_avatar_index(str(7 << 22)) == 1

    def test_custom_avatar(self):
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse({'id': '123', 'avatar': 'abc123'})
            url = lookup_discord_avatar('123')
        assert url == 'https://cdn.discordapp.com/avatars/123/abc123.png'

    def test_default_avatar(self):
        discord_id = str(3 << 22)
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse({'id': discord_id, 'avatar': None})
            url = lookup_discord_avatar(discord_id)
        assert url == 'https://cdn.discordapp.com/embed/avatars/3.png'

    def test_unknown_user(self):
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse({'error': 'nope'}, status_code=404,
                                                 reason='Not Found')
            with pytest.raises(ProfileError, match='Could not find Discord user'):
                lookup_discord_avatar('123')

    def test_network_error(self):
        with patch('station_portal.gui.routes.settings.requests.get',
                   side_effect=requests.ConnectionError('down')):
            with pytest.raises(ProfileError, match='Failed to fetch Discord profile'):
                lookup_discord_avatar('123')

    def test_no_avatar_and_no_user(self):
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse({})
            assert lookup_discord_avatar('123') is None


@pytest.mark.unit
class TestProfileAPI:
    """Test /api/settings/profile"""

    def test_get_profile(self, staff_client):
        user = staff_client.get('/api/settings/profile').get_json()['user']
        assert user['email'] == 'dj@example.com'
        assert user['timezone'] == 'Europe/London'
        assert 'secure_word_hash' not in user

    def test_update_basic_fields(self, staff_client):
        response = staff_client.post('/api/settings/profile', json={
            'name': 'Late Night DJ', 'timezone': 'Asia/Tokyo', 'jobTitle': 'Host'})
        assert response.get_json() == {'message': 'Profile updated!', 'success': True}

        user = staff_client.get('/api/settings/profile').get_json()['user']
        assert user['name'] == 'Late Night DJ'
        assert user['timezone'] == 'Asia/Tokyo'
        assert user['job_title'] == 'Host'

        session_user = staff_client.get('/api/auth/session').get_json()['user']
        assert session_user['name'] == 'Late Night DJ'
        assert session_user['timezone'] == 'Asia/Tokyo'

    def test_blank_fields_are_ignored(self, staff_client):
        staff_client.post('/api/settings/profile', json={'name': '  ', 'timezone': ''})
        user = staff_client.get('/api/settings/profile').get_json()['user']
        assert user['name'] == 'Night DJ'
        assert user['timezone'] == 'Europe/London'

    def test_discord_avatar_saved(self, staff_client):
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse({'id': '42', 'avatar': 'face'})
            response = staff_client.post('/api/settings/profile', json={'discord_id': '42'})
        assert response.status_code == 200

        user = staff_client.get('/api/settings/profile').get_json()['user']
        assert user['discord_id'] == '42'
        assert user['image'] == 'https://cdn.discordapp.com/avatars/42/face.png'

    def test_discord_lookup_failure(self, staff_client):
        with patch('station_portal.gui.routes.settings.requests.get') as mock_get:
            mock_get.return_value = FakeResponse(status_code=404, reason='Not Found')
            response = staff_client.post('/api/settings/profile', json={'discord_id': '42'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Could not find Discord user. Check ID.'

    def test_secure_word_needs_current_password(self, staff_client):
        response = staff_client.post('/api/settings/profile', json={'new_secure_word': 'vinyl'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Current password required to change Secure Word'

    def test_secure_word_wrong_password(self, staff_client):
        response = staff_client.post('/api/settings/profile', json={
            'new_secure_word': 'vinyl', 'current_password': 'wrong'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Incorrect password'

    def test_secure_word_change(self, test_app, staff_client, staff_user):
        response = staff_client.post('/api/settings/profile', json={
            'newSecureWord': 'vinyl', 'currentPassword': TEST_PASSWORD})
        assert response.status_code == 200

        client = test_app.test_client()
        assert login(client, staff_user).status_code == 401
        assert login(client, dict(staff_user, secure_word='vinyl')).status_code == 200


@pytest.mark.unit
class TestDashboardAPI:
    """Test dashboard and time zone endpoints"""

    def test_dashboard(self, test_db, admin_user, staff_client):
        test_db.create_poll('Q?', None, admin_user['id'], ['A', 'B'])
        test_db.create_info_item('Wiki', '', 'https://wiki.example.com', 'LINK')

        data = staff_client.get('/api/dashboard').get_json()
        assert data['user']['email'] == 'dj@example.com'
        assert data['notification_count'] == 1
        assert [i['title'] for i in data['info_items']] == ['Wiki']

        team = {member['name']: member for member in data['team']}
        assert set(team) == {'Admin User', 'Night DJ'}
        assert team['Night DJ']['label'] == 'UK, London'
        assert team['Admin User']['job_title'] == 'Station Director'
        assert team['Admin User']['offset'] in ('-05:00', '-04:00')

    def test_team_timezones(self, staff_client):
        team = staff_client.get('/api/team/timezones').get_json()['team']
        assert len(team) == 1
        assert team[0]['timezone'] == 'Europe/London'

    def test_timezone_picker(self, staff_client):
        zones = staff_client.get('/api/timezones').get_json()['timezones']
        assert {'value': 'Asia/Kolkata', 'label': 'Mumbai', 'offset': '+5:30'} in zones

    def test_dashboard_requires_login(self, test_client):
        assert test_client.get('/api/dashboard').status_code == 401
