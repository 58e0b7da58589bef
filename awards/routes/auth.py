"""
Admin password + cron secret checks.

No ADMIN_PASSWORD set means open access (local dev), same for CRON_SECRET.
"""
import hmac
import logging

from flask import request, session, jsonify

from awards import config

logger = logging.getLogger('routes.auth')

OPEN_ADMIN_PATHS = {'/api/admin/login', '/api/admin/logout'}


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip()
    return None


def _matches(supplied, expected):
    return bool(supplied) and hmac.compare_digest(str(supplied), str(expected))


def is_admin():
    if not config.ADMIN_PASSWORD:
        return True
    if session.get('authenticated'):
        return True
    return _matches(_bearer_token(), config.ADMIN_PASSWORD)


def require_admin():
    """before_request hook guarding /api/admin/*."""
    if not request.path.startswith('/api/admin'):
        return None
    if request.path in OPEN_ADMIN_PATHS:
        return None
    if is_admin():
        return None
    return jsonify({'error': 'Unauthorized'}), 401


def current_admin():
    return session.get('admin_user') or 'admin'


def login(password, username=None):
    if not config.ADMIN_PASSWORD or _matches(password, config.ADMIN_PASSWORD):
        session['authenticated'] = True
        session['admin_user'] = username or 'admin'
        return True
    logger.warning("Failed admin login from %s", request.remote_addr)
    return False


def cron_authorized():
    if not config.CRON_SECRET:
        return True
    supplied = _bearer_token() or request.headers.get('X-Cron-Secret')
    return _matches(supplied, config.CRON_SECRET)
