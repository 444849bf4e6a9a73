#!/usr/bin/env python3
"""
iCalendar (ICS) conversion for calendar events
Serializes CalendarEvent records to VCALENDAR text and parses VEVENTs back
"""

from datetime import datetime, time, timedelta

import pytz
from icalendar import Calendar, Event as ICalEvent, vRecur

from events import CalendarEvent, zone_for

PRODID = '-//Dockal//Dockal//EN'

# DATE values carry no TZID, so all-day events keep their zone here
TZID_PROPERTY = 'X-DOCKAL-TZID'


class InvalidCalendarData(ValueError):
    """Raised when iCalendar text holds no usable VEVENT"""


def _to_utc(value):
    if isinstance(value, datetime):
        # Floating times carry no zone; read them as UTC
        if value.tzinfo is None:
            return pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)
    return pytz.UTC.localize(datetime.combine(value, time.min))


def _text(component, name):
    value = component.get(name)
    if value is None:
        return None
    return str(value)


def event_to_ical(event):
    """Render an event as a complete VCALENDAR document"""
    cal = Calendar()
    cal.add('prodid', PRODID)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')

    vevent = ICalEvent()
    vevent.add('uid', event.uid)
    vevent.add('summary', event.title)
    if event.description:
        vevent.add('description', event.description)
    if event.location:
        vevent.add('location', event.location)

    if event.all_day:
        start = event.start.astimezone(pytz.UTC).date()
        end = event.end.astimezone(pytz.UTC).date()
        if end <= start:
            end = start + timedelta(days=1)
        if event.timezone and event.timezone != 'UTC':
            vevent.add(TZID_PROPERTY, event.timezone)
    else:
        tz = zone_for(event.timezone)
        start = event.start.astimezone(tz)
        end = event.end.astimezone(tz)

    vevent.add('dtstart', start)
    vevent.add('dtend', end)
    vevent.add('dtstamp', datetime.now(pytz.UTC).replace(microsecond=0))

    if event.rrule:
        vevent.add('rrule', vRecur.from_ical(event.rrule))

    cal.add_component(vevent)
    return cal.to_ical().decode('utf-8')


def _value(prop, uid):
    """The decoded value of a date property, InvalidCalendarData when it is malformed"""
    try:
        return prop.dt
    except (AttributeError, ValueError) as e:
        # icalendar keeps unparseable values around instead of failing the whole calendar
        raise InvalidCalendarData(f"VEVENT {uid} has a malformed date value: {e}") from e


def _parse_vevent(component):
    uid = _text(component, 'uid')
    if not uid:
        raise InvalidCalendarData('VEVENT without UID')

    dtstart = component.get('dtstart')
    if dtstart is None:
        raise InvalidCalendarData(f"VEVENT {uid} has no DTSTART")

    start_value = _value(dtstart, uid)
    all_day = not isinstance(start_value, datetime)
    start = _to_utc(start_value)

    dtend = component.get('dtend')
    duration = component.get('duration')
    if dtend is not None:
        end = _to_utc(_value(dtend, uid))
    elif duration is not None:
        end = start + _value(duration, uid)
    elif all_day:
        end = start + timedelta(days=1)
    else:
        end = start

    rrule = component.get('rrule')
    if isinstance(rrule, list):
        rrule = rrule[0] if rrule else None

    timezone = dtstart.params.get('TZID') or component.get(TZID_PROPERTY) or 'UTC'

    return CalendarEvent(
        uid=uid,
        title=_text(component, 'summary') or '',
        description=_text(component, 'description'),
        location=_text(component, 'location'),
        start=start,
        end=end,
        all_day=all_day,
        timezone=str(timezone),
        rrule=rrule.to_ical().decode('utf-8') if rrule else None,
    )


def events_from_ical(ical_text):
    """Parse every VEVENT in a calendar object"""
    if isinstance(ical_text, bytes):
        ical_text = ical_text.decode('utf-8', errors='ignore')

    if not isinstance(ical_text, str) or 'BEGIN:VEVENT' not in ical_text:
        raise InvalidCalendarData('No VEVENT found in calendar data')

    try:
        cal = Calendar.from_ical(ical_text)
    except ValueError as e:
        raise InvalidCalendarData(f"Unparseable calendar data: {e}") from e

    events = [_parse_vevent(component) for component in cal.walk('VEVENT')]
    if not events:
        raise InvalidCalendarData('No VEVENT found in calendar data')
    return events


def event_from_ical(ical_text):
    return events_from_ical(ical_text)[0]
