"""Tests for the per-user settings endpoints."""

import pytest

from models import InvalidSettings, UserSettings


def test_settings_defaults(client, auth_headers):
    response = client.get('/settings', headers=auth_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body['username'] == 'alice'
    assert body['week_start'] == 0
    assert body['default_view'] == 'dayGridMonth'
    assert body['timezone'] == 'UTC'
    assert body['last_login'] is not None


def test_update_settings(client, auth_headers):
    response = client.put('/settings', headers=auth_headers, json={
        'week_start': 1,
        'default_view': 'timeGridWeek',
        'timezone': 'Europe/Berlin',
    })

    assert response.status_code == 200
    body = client.get('/settings', headers=auth_headers).get_json()
    assert body['week_start'] == 1
    assert body['default_view'] == 'timeGridWeek'
    assert body['timezone'] == 'Europe/Berlin'


def test_settings_are_per_user(client, auth_headers):
    client.put('/settings', headers=auth_headers, json={'week_start': 1})

    login = client.post('/auth/login', json={'username': 'bob', 'password': 'pw'})
    bob_headers = {'Authorization': f"Bearer {login.get_json()['token']}"}

    assert client.get('/settings', headers=bob_headers).get_json()['week_start'] == 0


@pytest.mark.parametrize('payload', [
    {'week_start': 7},
    {'week_start': 'monday'},
    {'default_view': 'yearGrid'},
    {'timezone': 'Atlantis/Capital'},
])
def test_invalid_settings_are_rejected(client, auth_headers, payload):
    response = client.put('/settings', headers=auth_headers, json=payload)
    assert response.status_code == 400


def test_invalid_update_changes_nothing(app, client, auth_headers):
    client.put('/settings', headers=auth_headers, json={'week_start': 3, 'default_view': 'nope'})

    with app.app_context():
        settings = UserSettings.query.filter_by(username='alice').one()
        assert settings.week_start == 0


def test_settings_require_token(client):
    assert client.get('/settings').status_code == 401


def test_update_validates_before_writing(app):
    with app.app_context():
        settings = UserSettings(username='carol', week_start=2,
                                default_view='listWeek', timezone='UTC')
        with pytest.raises(InvalidSettings):
            settings.update({'week_start': 5, 'timezone': 'Bad/Zone'})
        assert settings.week_start == 2
