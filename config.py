#!/usr/bin/env python3
"""
Configuration for the Dockal backend
Values are read from the environment (and a .env file when present)
"""

import os
import secrets

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_hex(32))
    API_PREFIX = os.environ.get('API_PREFIX', '')
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # JWT
    # Unset means a fresh secret per process start, so issued tokens do not survive restarts
    JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_hex(32))
    JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', 7))
    AUTH_VERIFY_CREDENTIALS = env_bool('AUTH_VERIFY_CREDENTIALS')

    # CalDAV (Radicale) service account
    RADICALE_URL = os.environ.get('RADICALE_URL', 'http://radicale:5232')
    RADICALE_USERNAME = os.environ.get('RADICALE_USERNAME', 'admin')
    RADICALE_PASSWORD = os.environ.get('RADICALE_PASSWORD', 'password')
    CALDAV_CALENDAR_URL = os.environ.get('CALDAV_CALENDAR_URL') or None
    CALDAV_CALENDAR_NAME = os.environ.get('CALDAV_CALENDAR_NAME') or None

    # Settings storage
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///dockal.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    PORT = int(os.environ.get('PORT', 3000))
