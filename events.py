#!/usr/bin/env python3
"""
Calendar event record shared by the CalDAV client and the REST API
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz
from icalendar import vRecur

logger = logging.getLogger(__name__)

ISO_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


class InvalidEventData(ValueError):
    """Raised when a request body cannot be turned into an event"""


@dataclass
class CalendarEvent:
    """A single VEVENT, with start and end held as aware UTC datetimes."""
    uid: str
    title: str
    start: datetime
    end: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    all_day: bool = False
    timezone: str = 'UTC'
    rrule: Optional[str] = None

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            'uid': self.uid,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'start': format_datetime(self.start),
            'end': format_datetime(self.end),
            'allDay': self.all_day,
            'timezone': self.timezone,
            'rrule': self.rrule,
        }


def new_uid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(pytz.UTC).replace(microsecond=0)


def format_datetime(value):
    return value.astimezone(pytz.UTC).strftime(ISO_FORMAT)


def parse_datetime(value):
    """Parse an ISO date or datetime into an aware UTC datetime.

    Date-only strings mean midnight UTC and values without an offset are
    taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text[-1] in 'Zz':
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidEventData(f"Invalid date format: {value!r}")
    else:
        raise InvalidEventData(f"Invalid date format: {value!r}")

    if parsed.tzinfo is None:
        parsed = pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def parse_target_date(value):
    """Parse a copy target (YYYY-MM-DD or a full ISO datetime); None if invalid"""
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def validate_timezone(name):
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise InvalidEventData(f"Unknown timezone: {name}")
    return name


def zone_for(name):
    """pytz zone for a TZID, UTC when the name is not in the database"""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.debug(f"Unknown timezone {name!r}, using UTC")
        return pytz.UTC


def normalize_rrule(value):
    """Return the RRULE value in icalendar's canonical form, checking that it parses"""
    if not value:
        return None
    text = str(value).strip()
    if text.upper().startswith('RRULE:'):
        text = text[len('RRULE:'):]
    try:
        recur = vRecur.from_ical(text)
    except ValueError:
        raise InvalidEventData(f"Invalid recurrence rule: {value!r}")
    if 'FREQ' not in recur:
        raise InvalidEventData(f"Invalid recurrence rule: {value!r}")
    return recur.to_ical().decode('utf-8')


def _midnight(value):
    return pytz.UTC.localize(datetime.combine(value.astimezone(pytz.UTC).date(), time.min))


def event_from_payload(data, uid):
    """Build an event from a create/update request body"""
    if not isinstance(data, dict):
        raise InvalidEventData('Request body must be a JSON object')

    all_day = data.get('allDay')
    if all_day is None:
        all_day = False
    elif not isinstance(all_day, bool):
        raise InvalidEventData(f"allDay must be true or false, got {all_day!r}")

    start = parse_datetime(data['start']) if data.get('start') else utcnow()
    if data.get('end'):
        end = parse_datetime(data['end'])
    else:
        end = start + (timedelta(days=1) if all_day else timedelta(hours=1))

    if end < start:
        raise InvalidEventData('Event end must not be before its start')

    if all_day:
        start = _midnight(start)
        end = _midnight(end)
        if end <= start:
            end = start + timedelta(days=1)

    return CalendarEvent(
        uid=uid,
        title=str(data.get('title') or ''),
        description=data.get('description') or None,
        location=data.get('location') or None,
        start=start.replace(microsecond=0),
        end=end.replace(microsecond=0),
        all_day=all_day,
        timezone=validate_timezone(data.get('timezone') or 'UTC'),
        rrule=normalize_rrule(data.get('rrule')),
    )


def copy_event_to_date(source, target_date):
    """Copy an event to another day, keeping its duration and local start time.

    The copy gets a new UID and never carries the recurrence rule.
    """
    duration = source.end - source.start

    if source.all_day:
        new_start = pytz.UTC.localize(datetime.combine(target_date, time.min))
    else:
        tz = zone_for(source.timezone)
        local_start = source.start.astimezone(tz)
        new_start = tz.localize(datetime.combine(target_date, local_start.time()))
        new_start = new_start.astimezone(pytz.UTC)

    return replace(
        source,
        uid=new_uid(),
        start=new_start,
        end=new_start + duration,
        rrule=None,
    )
