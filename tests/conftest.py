"""Shared fixtures: a Flask app wired to an in-memory calendar store."""

import pytest

from app import create_app
from caldav_client import CalDAVError, EventNotFound
from ical_codec import event_from_ical, event_to_ical


class FakeCalDAVClient:
    """In-memory stand-in for CalDAVClient.

    Writes go through the ICS codec, so reads return what a server would.
    """

    def __init__(self):
        self.events = {}
        self.failure = None
        self.calendars = [
            {'name': 'Personal', 'url': 'http://radicale:5232/admin/personal/'},
        ]

    def _check(self, operation):
        if self.failure:
            raise CalDAVError(f"Failed to {operation}: {self.failure}")

    def _stored(self, event):
        return event_from_ical(event_to_ical(event))

    def list_calendars(self):
        self._check('list calendars')
        return list(self.calendars)

    def get_events(self, start, end):
        self._check('fetch events')
        return [
            event for event in self.events.values()
            if event.start < end and (event.end > start or event.start >= start)
        ]

    def get_event_by_uid(self, uid):
        self._check('fetch event')
        return self.events.get(uid)

    def create_event(self, event):
        self._check('create event')
        self.events[event.uid] = self._stored(event)

    def update_event(self, event):
        self._check('update event')
        if event.uid not in self.events:
            raise EventNotFound(event.uid)
        self.events[event.uid] = self._stored(event)

    def delete_event(self, uid):
        self._check('delete event')
        if uid not in self.events:
            raise EventNotFound(uid)
        del self.events[uid]


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'JWT_SECRET': 'test-secret-for-signing-tokens-0001',
        'JWT_EXPIRES_DAYS': 7,
        'AUTH_VERIFY_CREDENTIALS': False,
        'API_PREFIX': '',
        'CORS_ORIGINS': '*',
    })
    app.extensions['caldav_client'] = FakeCalDAVClient()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['caldav_client']


@pytest.fixture
def auth_headers(client):
    response = client.post('/auth/login', json={'username': 'alice', 'password': 'secret'})
    return {'Authorization': f"Bearer {response.get_json()['token']}"}
