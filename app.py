#!/usr/bin/env python3
"""
Dockal backend
A Flask REST API for calendar events stored on a CalDAV (Radicale) server
"""

import logging
import sys
from datetime import timedelta

from flask import Blueprint, Flask, current_app, g, jsonify, render_template, request
from flask_cors import CORS

from auth import create_token, jwt_required
from caldav_client import CalDAVClient, CalDAVError, EventNotFound
from config import Config
from events import (
    InvalidEventData,
    copy_event_to_date,
    event_from_payload,
    new_uid,
    parse_datetime,
    parse_target_date,
)
from models import InvalidSettings, UserSettings, db

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

api = Blueprint('api', __name__)


def get_caldav_client():
    return current_app.extensions['caldav_client']


def caldav_failure(route, message, err):
    current_app.logger.error(f"[{route}] Error: {err}")
    return jsonify({'error': message, 'details': str(err)}), 500


def parse_range(from_arg, to_arg):
    """Query range for GET /events; a date-only `to` includes that whole day"""
    start = parse_datetime(from_arg)
    end = parse_datetime(to_arg)
    if len(to_arg.strip()) == 10:
        end += timedelta(days=1)
    return start, end


@api.route('/health')
def health_check():
    """Health check endpoint"""
    return jsonify({'status': 'ok'})


@api.route('/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    username = data.get('username')
    password = data.get('password')

    if not username or not password:
        return jsonify({'error': 'Missing credentials'}), 400

    if current_app.config['AUTH_VERIFY_CREDENTIALS']:
        if not CalDAVClient.check_credentials(current_app.config['RADICALE_URL'], username, password):
            current_app.logger.warning(f"[POST /auth/login] Invalid credentials for {username}")
            return jsonify({'error': 'Invalid credentials'}), 401

    settings = UserSettings.for_user(username)
    settings.record_login()
    db.session.commit()

    current_app.logger.info(f"[POST /auth/login] Issued token for {username}")
    return jsonify({'token': create_token(username), 'username': username})


@api.route('/calendars', methods=['GET'])
@jwt_required
def list_calendars():
    current_app.logger.info('[GET /calendars] Listing calendars')
    try:
        calendars = get_caldav_client().list_calendars()
    except CalDAVError as e:
        return caldav_failure('GET /calendars', 'Failed to list calendars', e)

    current_app.logger.info(f"[GET /calendars] Found {len(calendars)} calendars")
    return jsonify({'calendars': calendars})


@api.route('/events', methods=['GET'])
@jwt_required
def list_events():
    from_arg = request.args.get('from')
    to_arg = request.args.get('to')
    current_app.logger.info(f"[GET /events] from={from_arg} to={to_arg}")

    if not from_arg or not to_arg:
        return jsonify({'error': 'Missing date parameters'}), 400

    try:
        start, end = parse_range(from_arg, to_arg)
    except InvalidEventData:
        return jsonify({'error': 'Invalid date format'}), 400

    if end < start:
        return jsonify({'error': 'Invalid date range'}), 400

    try:
        events = get_caldav_client().get_events(start, end)
    except CalDAVError as e:
        return caldav_failure('GET /events', 'Failed to fetch events', e)

    current_app.logger.info(f"[GET /events] Found {len(events)} events")
    return jsonify({'events': [event.to_dict() for event in events]})


@api.route('/events/<uid>', methods=['GET'])
@jwt_required
def get_event(uid):
    try:
        event = get_caldav_client().get_event_by_uid(uid)
    except CalDAVError as e:
        return caldav_failure('GET /events/:id', 'Failed to fetch event', e)

    if event is None:
        return jsonify({'error': 'Event not found'}), 404
    return jsonify(event.to_dict())


@api.route('/events', methods=['POST'])
@jwt_required
def create_event():
    data = request.get_json(silent=True)
    current_app.logger.info(f"[POST /events] Creating event: {data}")
    if data is None:
        return jsonify({'error': 'No data provided'}), 400

    try:
        event = event_from_payload(data, new_uid())
    except InvalidEventData as e:
        return jsonify({'error': str(e)}), 400

    try:
        get_caldav_client().create_event(event)
    except CalDAVError as e:
        return caldav_failure('POST /events', 'Failed to create event', e)

    current_app.logger.info(f"[POST /events] Event {event.uid} created successfully")
    return jsonify(event.to_dict()), 201


@api.route('/events/<uid>', methods=['PUT'])
@jwt_required
def update_event(uid):
    data = request.get_json(silent=True)
    current_app.logger.info(f"[PUT /events/:id] Updating event {uid}: {data}")
    if data is None:
        return jsonify({'error': 'No data provided'}), 400

    try:
        event = event_from_payload(data, uid)
    except InvalidEventData as e:
        return jsonify({'error': str(e)}), 400

    try:
        get_caldav_client().update_event(event)
    except EventNotFound:
        return jsonify({'error': 'Event not found'}), 404
    except CalDAVError as e:
        return caldav_failure('PUT /events/:id', 'Failed to update event', e)

    current_app.logger.info(f"[PUT /events/:id] Event {uid} updated successfully")
    return jsonify(event.to_dict())


@api.route('/events/<uid>', methods=['DELETE'])
@jwt_required
def delete_event(uid):
    current_app.logger.info(f"[DELETE /events/:id] Deleting event {uid}")
    try:
        get_caldav_client().delete_event(uid)
    except EventNotFound:
        return jsonify({'error': 'Event not found'}), 404
    except CalDAVError as e:
        return caldav_failure('DELETE /events/:id', 'Failed to delete event', e)

    current_app.logger.info(f"[DELETE /events/:id] Event {uid} deleted successfully")
    return jsonify({'success': True})


@api.route('/events/<uid>/copy', methods=['POST'])
@jwt_required
def copy_event(uid):
    """Copy an event onto each of the requested dates"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    current_app.logger.info(f"[POST /events/:uid/copy] Copying event {uid}: {data}")
    client = get_caldav_client()

    try:
        source = client.get_event_by_uid(uid)
    except CalDAVError as e:
        return caldav_failure('POST /events/:uid/copy', 'Failed to copy event', e)

    if source is None:
        return jsonify({'error': 'Source event not found'}), 404

    dates = data.get('dates')
    if not dates or not isinstance(dates, list):
        return jsonify({'error': 'No dates provided'}), 400

    copied = []
    try:
        for value in dates:
            target_date = parse_target_date(value)
            if target_date is None:
                current_app.logger.warning(f"[POST /events/:uid/copy] Invalid date: {value}")
                continue

            new_event = copy_event_to_date(source, target_date)
            client.create_event(new_event)
            copied.append(new_event)
    except CalDAVError as e:
        return caldav_failure('POST /events/:uid/copy', 'Failed to copy event', e)

    current_app.logger.info(f"[POST /events/:uid/copy] Event copied to {len(copied)} dates")
    return jsonify({
        'copiedEvents': [event.to_dict() for event in copied],
        'sourceUid': source.uid
    }), 201


@api.route('/settings', methods=['GET'])
@jwt_required
def get_settings():
    """API endpoint to get user settings"""
    settings = UserSettings.for_user(g.username)
    db.session.commit()
    return jsonify(settings.to_dict())


@api.route('/settings', methods=['PUT'])
@jwt_required
def update_settings():
    """API endpoint to update user settings"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'No data provided'}), 400

    settings = UserSettings.for_user(g.username)
    try:
        settings.update(data)
    except InvalidSettings as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    db.session.commit()
    return jsonify(settings.to_dict())


def index():
    """Main calendar view"""
    return render_template('calendar.html', api_base=current_app.config['API_PREFIX'])


def not_found(error):
    return jsonify({'error': 'Not found'}), 404


def internal_error(error):
    current_app.logger.error(f"Internal error: {error}")
    return jsonify({'error': 'Internal server error'}), 500


def create_app(config=None):
    """Application factory; `config` overrides values read from the environment"""
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    origins = app.config['CORS_ORIGINS']
    if origins != '*':
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]
    CORS(app, origins=origins)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.extensions['caldav_client'] = CalDAVClient.from_config(app.config)

    app.register_blueprint(api, url_prefix=app.config['API_PREFIX'] or None)
    app.add_url_rule('/', 'index', index)
    app.register_error_handler(404, not_found)
    app.register_error_handler(500, internal_error)

    return app


if __name__ == '__main__':
    app = create_app()

    try:
        app.extensions['caldav_client'].connect()
        app.logger.info('CalDAV client initialized')
    except CalDAVError as e:
        app.logger.error(f"Startup error: {e}")
        sys.exit(1)

    debug = app.config.get('DEBUG', False)
    app.logger.info(f"Starting Dockal backend on 0.0.0.0:{app.config['PORT']}")
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=debug)
