#!/usr/bin/env python3
"""
JWT issuance and verification for the REST API
"""

from datetime import datetime, timedelta
from functools import wraps

import jwt
import pytz
from flask import current_app, g, jsonify, request

JWT_ALGORITHM = 'HS256'


def create_token(username):
    """Mint a signed token for a user"""
    now = datetime.now(pytz.UTC)
    payload = {
        'username': username,
        'iat': now,
        'exp': now + timedelta(days=current_app.config['JWT_EXPIRES_DAYS']),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=JWT_ALGORITHM)


def decode_token(token):
    return jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=[JWT_ALGORITHM])


def _unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401


def jwt_required(view):
    """Reject requests without a valid bearer token; sets g.username"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        scheme, _, token = request.headers.get('Authorization', '').partition(' ')
        if scheme.lower() != 'bearer' or not token.strip():
            return _unauthorized()

        try:
            payload = decode_token(token.strip())
        except jwt.InvalidTokenError as e:
            current_app.logger.warning(f"Rejected token: {e}")
            return _unauthorized()

        username = payload.get('username')
        if not username:
            return _unauthorized()

        g.username = username
        return view(*args, **kwargs)

    return wrapper
