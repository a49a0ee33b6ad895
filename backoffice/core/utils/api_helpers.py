"""Shared API utilities: decorators, error helpers, rate limiter, request validation."""
import re
import time
import uuid
import logging
from datetime import date
from functools import wraps

from flask import jsonify, request
from flask_login import current_user

logger = logging.getLogger('backoffice.api')

ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


# ============== Decorators ==============

def api_login_required(f):
    """Like @login_required but returns JSON 401 instead of redirect."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated


def permission_required(flag):
    """Decorator requiring authentication plus a role flag on the current user.

    Usage:
        @permission_required('can_access_signing')
        def api_list_envelopes(): ...

    Users with can_access_settings (admins) pass every check.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            if not (getattr(current_user, flag, False) or getattr(current_user, 'can_access_settings', False)):
                return jsonify({'success': False, 'error': 'Permission denied'}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def admin_required(f):
    """Shorthand for @permission_required('can_access_settings')."""
    return permission_required('can_access_settings')(f)


# ============== Request Validation ==============

def get_json_or_error():
    """Get JSON from request body with null check.

    Returns (data, error_response) tuple. Caller pattern:
        data, error = get_json_or_error()
        if error:
            return error
    """
    data = request.get_json(silent=True)
    if data is None:
        return None, (jsonify({
            'success': False,
            'error': 'Invalid or missing JSON body',
        }), 400)
    return data, None


def parse_iso_date(value, field_name='date'):
    """Parse a strict YYYY-MM-DD string into a date.

    Raises:
        ValueError: with a user-facing message when the value is missing or
            not a real calendar date.
    """
    if not value:
        raise ValueError(f'{field_name} is required')
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        raise ValueError(f'{field_name} must be in YYYY-MM-DD format')
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f'{field_name} is not a valid date')


def is_uuid(value):
    """True when value is a UUID or a string that parses as one."""
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


# ============== Error Handling ==============

def error_response(message, status_code=400):
    """Standard JSON error envelope."""
    return jsonify({'success': False, 'error': message}), status_code


def safe_error_response(e, status_code=500):
    """Return error response without leaking DB internals.

    - ValueError/KeyError: returns str(e) as 400 (business validation, safe to expose)
    - Everything else: logs full exception, returns generic message
    """
    if isinstance(e, (ValueError, KeyError)):
        return jsonify({'success': False, 'error': str(e)}), 400

    logger.exception('Unhandled error in API route')
    return jsonify({'success': False, 'error': 'An internal error occurred'}), status_code


def client_ip():
    """Client address as seen by the WSGI server.

    X-Forwarded-For is never read here. Behind a reverse proxy, app.py wraps
    the app in ProxyFix (TRUSTED_PROXY_COUNT) so remote_addr is the real client.
    """
    return request.remote_addr or 'unknown'


# ============== Rate Limiter ==============

class RateLimiter:
    """Simple in-memory sliding-window rate limiter.

    State is per worker process, which is fine for a kiosk tablet and a few
    public signing links.
    """

    def __init__(self):
        self._requests = {}
        self._last_sweep = 0.0

    def is_allowed(self, key, max_requests=10, window_seconds=60):
        """Check if request is allowed.

        Args:
            key: String identifier (user_id, IP address, etc.)
            max_requests: Max requests per window
            window_seconds: Window duration in seconds

        Returns:
            (is_allowed: bool, retry_after: int) tuple
        """
        now = time.time()
        window_start = now - window_seconds

        if now - self._last_sweep >= window_seconds:
            self._sweep(window_start)
            self._last_sweep = now

        recent = [ts for ts in self._requests.get(key, ()) if ts > window_start]

        if len(recent) >= max_requests:
            self._requests[key] = recent
            retry_after = int(min(recent) + window_seconds - now) + 1
            return False, max(1, retry_after)

        recent.append(now)
        self._requests[key] = recent
        return True, 0

    def _sweep(self, window_start):
        """Drop keys with no request inside the current window."""
        for key in [k for k, stamps in self._requests.items() if not stamps or stamps[-1] <= window_start]:
            del self._requests[key]
