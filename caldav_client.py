#!/usr/bin/env python3
"""
CalDAV client for the Radicale calendar store
Discovers the calendar collection and reads/writes events through the caldav library
"""

import logging

import caldav
from caldav.lib import error

from ical_codec import InvalidCalendarData, event_from_ical, event_to_ical

logger = logging.getLogger(__name__)


class CalDAVError(Exception):
    """Base class for failures talking to the calendar store"""


class CalDAVConnectionError(CalDAVError):
    pass


class EventNotFound(CalDAVError):
    def __init__(self, uid):
        super().__init__(f"Event not found: {uid}")
        self.uid = uid


class CalDAVClient:
    def __init__(self, base_url, username, password, calendar_url=None, calendar_name=None):
        self.base_url = base_url
        self.username = username
        self.password = password
        self.calendar_url = calendar_url
        self.calendar_name = calendar_name
        self.client = None
        self.principal = None
        self.calendar = None

    @classmethod
    def from_config(cls, config):
        return cls(
            config['RADICALE_URL'],
            config['RADICALE_USERNAME'],
            config['RADICALE_PASSWORD'],
            calendar_url=config.get('CALDAV_CALENDAR_URL'),
            calendar_name=config.get('CALDAV_CALENDAR_NAME'),
        )

    @staticmethod
    def check_credentials(base_url, username, password):
        """Return True when the credentials authenticate against the server"""
        try:
            client = caldav.DAVClient(url=base_url, username=username, password=password)
            client.principal()
        except Exception as e:
            logger.warning(f"CalDAV credential check failed for {username}: {e}")
            return False
        return True

    def connect(self):
        """Connect to the CalDAV server and resolve the calendar collection"""
        try:
            self.client = caldav.DAVClient(
                url=self.base_url,
                username=self.username,
                password=self.password
            )
            self.principal = self.client.principal()
            self.calendar = self._discover_calendar()
        except CalDAVError:
            self.calendar = None
            raise
        except Exception as e:
            self.calendar = None
            raise CalDAVConnectionError(f"CalDAV initialization failed: {e}") from e

        logger.info(f"Successfully connected to CalDAV server: {self.base_url}")
        logger.info(f"Using calendar: {self.calendar.url}")
        return self.calendar

    def _discover_calendar(self):
        if self.calendar_url:
            return self.client.calendar(url=self.calendar_url)

        calendars = self.principal.calendars()
        if not calendars:
            raise CalDAVConnectionError(f"No calendars found for {self.username}")

        if self.calendar_name:
            for cal in calendars:
                if self._display_name(cal) == self.calendar_name:
                    return cal
            raise CalDAVConnectionError(f"Calendar not found: {self.calendar_name}")

        return calendars[0]

    def _ensure_calendar(self):
        if self.calendar is None:
            self.connect()
        return self.calendar

    @staticmethod
    def _display_name(cal):
        display_name = cal.name
        if not display_name or display_name == 'None':
            display_name = cal.get_display_name()
        return display_name or 'Unnamed Calendar'

    @staticmethod
    def _object_data(obj):
        data = obj.data
        if not data:
            obj.load()
            data = obj.data
        return data

    def list_calendars(self):
        """Get list of available calendars"""
        self._ensure_calendar()
        try:
            calendars = [
                {'name': self._display_name(cal), 'url': str(cal.url)}
                for cal in self.principal.calendars()
            ]
        except Exception as e:
            raise CalDAVError(f"Failed to list calendars: {e}") from e

        for cal in calendars:
            logger.debug(f"Found calendar: {cal['name']} at {cal['url']}")
        return calendars

    def get_events(self, start, end):
        """Events overlapping [start, end); recurring events come back unexpanded"""
        calendar = self._ensure_calendar()
        logger.info(f"Getting events from {start} to {end}")

        try:
            objects = calendar.search(start=start, end=end, event=True, expand=False)
        except Exception as e:
            raise CalDAVError(f"Failed to fetch events: {e}") from e

        events = []
        for obj in objects:
            try:
                events.append(event_from_ical(self._object_data(obj)))
            except InvalidCalendarData as e:
                logger.warning(f"Skipping calendar object {obj.url}: {e}")

        logger.info(f"Returning {len(events)} events")
        return events

    def _find_object(self, uid):
        calendar = self._ensure_calendar()
        try:
            return calendar.event_by_uid(uid)
        except error.NotFoundError:
            raise EventNotFound(uid)
        except Exception as e:
            raise CalDAVError(f"Failed to fetch event: {e}") from e

    def get_event_by_uid(self, uid):
        """Find an event by its UID, None when the store has no such event"""
        try:
            obj = self._find_object(uid)
        except EventNotFound:
            return None

        try:
            return event_from_ical(self._object_data(obj))
        except InvalidCalendarData as e:
            raise CalDAVError(f"Failed to fetch event: {e}") from e

    def create_event(self, event):
        calendar = self._ensure_calendar()
        try:
            calendar.save_event(event_to_ical(event))
        except Exception as e:
            raise CalDAVError(f"Failed to create event: {e}") from e
        logger.info(f"Created event {event.uid}")

    def update_event(self, event):
        """Replace the stored event, keeping the resource's existing href"""
        obj = self._find_object(event.uid)
        try:
            obj.data = event_to_ical(event)
            obj.save()
        except Exception as e:
            raise CalDAVError(f"Failed to update event: {e}") from e
        logger.info(f"Updated event {event.uid}")

    def delete_event(self, uid):
        obj = self._find_object(uid)
        try:
            obj.delete()
        except Exception as e:
            raise CalDAVError(f"Failed to delete event: {e}") from e
        logger.info(f"Deleted event {uid}")
