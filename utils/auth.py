"""Bearer-token authentication helpers.

Tokens are HS256 JWTs carrying the user id; the decorators below resolve the
token to an approved ``User`` and expose it through ``flask.g``.
"""
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from models import User, db


def issue_token(user):
    """Create a signed bearer token for the given user"""
    expires = datetime.now(timezone.utc) + timedelta(hours=current_app.config['JWT_EXPIRES_HOURS'])
    payload = {'user_id': user.id, 'exp': expires}
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm='HS256')


def decode_token(token):
    """Return the user id stored in a token; raises jwt.InvalidTokenError"""
    payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
    return payload['user_id']


def current_user_id():
    return g.user.id


def is_admin():
    return g.user.is_admin


def _error(message, status):
    return jsonify({'status': 'error', 'message': message}), status


def _authenticate():
    """Resolve the Authorization header to a user, or return an error response"""
    header = request.headers.get('Authorization', '')
    token = header.replace('Bearer ', '', 1).strip()
    if not token:
        return None, _error('No token, authorization denied', 401)

    try:
        user_id = decode_token(token)
    except (jwt.InvalidTokenError, KeyError) as e:
        logging.warning(f"Rejected bearer token: {str(e)}")
        return None, _error('Token is not valid', 401)

    user = db.session.get(User, user_id)
    if not user:
        return None, _error('User not found', 401)

    return user, None


def login_required(view):
    """Require a valid bearer token for an approved user"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        user, error = _authenticate()
        if error:
            return error
        if user.status != 'approved':
            return _error('Account pending approval. Please wait for admin approval.', 403)
        g.user = user
        return view(*args, **kwargs)
    return wrapper


def admin_required(view):
    """Require a valid bearer token for an admin user"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        user, error = _authenticate()
        if error:
            return error
        if not user.is_admin:
            return _error('Access denied. Admin only.', 403)
        g.user = user
        return view(*args, **kwargs)
    return wrapper
