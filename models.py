#!/usr/bin/env python3
"""
Database models for Dockal
Handles persistent storage of per-user calendar UI settings
"""

from datetime import datetime

import pytz
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# FullCalendar view names the frontend understands
CALENDAR_VIEWS = ('dayGridMonth', 'timeGridWeek', 'timeGridDay', 'listWeek')


def _utcnow():
    return datetime.now(pytz.UTC).replace(tzinfo=None)


class InvalidSettings(ValueError):
    pass


class UserSettings(db.Model):
    """Store user settings for the calendar UI"""
    __tablename__ = 'user_settings'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), nullable=False, unique=True)

    week_start = db.Column(db.Integer, nullable=False, default=0)  # 0=Sunday, 1=Monday
    default_view = db.Column(db.String(50), nullable=False, default='dayGridMonth')
    timezone = db.Column(db.String(100), nullable=False, default='UTC')

    # Metadata
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
    last_login = db.Column(db.DateTime)

    @classmethod
    def for_user(cls, username):
        """Fetch a user's settings row, creating it with defaults if needed"""
        settings = cls.query.filter_by(username=username).first()
        if settings is None:
            settings = cls(username=username, week_start=0,
                           default_view='dayGridMonth', timezone='UTC')
            db.session.add(settings)
        return settings

    def record_login(self):
        self.last_login = _utcnow()

    def update(self, data):
        """Apply a partial update, validating every field before writing any"""
        changes = {}

        if 'week_start' in data:
            try:
                week_start = int(data['week_start'])
            except (TypeError, ValueError):
                raise InvalidSettings('week_start must be an integer')
            if not 0 <= week_start <= 6:
                raise InvalidSettings('week_start must be between 0 and 6')
            changes['week_start'] = week_start

        if 'default_view' in data:
            if data['default_view'] not in CALENDAR_VIEWS:
                raise InvalidSettings(f"Unknown view: {data['default_view']}")
            changes['default_view'] = data['default_view']

        if 'timezone' in data:
            try:
                pytz.timezone(str(data['timezone']))
            except pytz.UnknownTimeZoneError:
                raise InvalidSettings(f"Unknown timezone: {data['timezone']}")
            changes['timezone'] = str(data['timezone'])

        for key, value in changes.items():
            setattr(self, key, value)

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            'username': self.username,
            'week_start': self.week_start,
            'default_view': self.default_view,
            'timezone': self.timezone,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'last_login': self.last_login.isoformat() if self.last_login else None
        }
