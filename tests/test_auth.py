"""Tests for login and bearer-token checks."""

import importlib
from datetime import datetime, timedelta

import jwt
import pytz

import config
from caldav_client import CalDAVClient
from models import UserSettings


def test_login_returns_token(app, client):
    response = client.post('/auth/login', json={'username': 'alice', 'password': 'secret'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['username'] == 'alice'

    payload = jwt.decode(body['token'], 'test-secret-for-signing-tokens-0001', algorithms=['HS256'])
    assert payload['username'] == 'alice'
    assert payload['exp'] - payload['iat'] == int(timedelta(days=7).total_seconds())


def test_login_records_last_login(app, client):
    client.post('/auth/login', json={'username': 'alice', 'password': 'secret'})

    with app.app_context():
        settings = UserSettings.query.filter_by(username='alice').one()
        assert settings.last_login is not None


def test_login_requires_credentials(client):
    response = client.post('/auth/login', json={'username': 'alice'})

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Missing credentials'}


def test_login_with_non_object_body(client):
    response = client.post('/auth/login', json=['alice', 'secret'])
    assert response.status_code == 400


def test_login_checks_credentials_against_caldav(app, client, monkeypatch):
    app.config['AUTH_VERIFY_CREDENTIALS'] = True
    checked = []

    def check_credentials(url, username, password):
        checked.append((url, username, password))
        return password == 'right'

    monkeypatch.setattr(CalDAVClient, 'check_credentials', staticmethod(check_credentials))

    denied = client.post('/auth/login', json={'username': 'alice', 'password': 'wrong'})
    granted = client.post('/auth/login', json={'username': 'alice', 'password': 'right'})

    assert denied.status_code == 401
    assert granted.status_code == 200
    assert checked[0] == (app.config['RADICALE_URL'], 'alice', 'wrong')


def test_protected_route_without_token(client):
    response = client.get('/events?from=2026-03-01&to=2026-03-31')

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}


def test_protected_route_with_wrong_scheme(client, auth_headers):
    token = auth_headers['Authorization'].split(' ', 1)[1]
    response = client.get('/calendars', headers={'Authorization': f"Token {token}"})
    assert response.status_code == 401


def test_protected_route_with_forged_token(client):
    token = jwt.encode({'username': 'mallory'}, 'another-secret-for-signing-tokens-01', algorithm='HS256')
    response = client.get('/calendars', headers={'Authorization': f"Bearer {token}"})
    assert response.status_code == 401


def test_protected_route_with_expired_token(client):
    issued = datetime.now(pytz.UTC) - timedelta(days=8)
    token = jwt.encode(
        {'username': 'alice', 'iat': issued, 'exp': issued + timedelta(days=7)},
        'test-secret-for-signing-tokens-0001',
        algorithm='HS256',
    )
    response = client.get('/calendars', headers={'Authorization': f"Bearer {token}"})
    assert response.status_code == 401


def test_token_without_username_is_rejected(client):
    token = jwt.encode({'sub': 'alice'}, 'test-secret-for-signing-tokens-0001', algorithm='HS256')
    response = client.get('/calendars', headers={'Authorization': f"Bearer {token}"})
    assert response.status_code == 401


def test_valid_token_is_accepted(client, auth_headers):
    assert client.get('/calendars', headers=auth_headers).status_code == 200


def test_default_jwt_secret_is_long_enough(monkeypatch):
    monkeypatch.delenv('JWT_SECRET', raising=False)

    reloaded = importlib.reload(config)

    assert len(reloaded.Config.JWT_SECRET) >= 32
