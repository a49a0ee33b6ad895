"""Auth module routes.

Login, logout and the current-user endpoint the front-ends use to decide
which apps to show.
"""
import logging

from flask import jsonify, request
from flask_login import login_required, login_user, logout_user, current_user

from . import auth_bp
from .models import User
from .repositories import UserRepository
from core.utils.api_helpers import error_response, client_ip, RateLimiter

logger = logging.getLogger('backoffice.auth.routes')

_user_repo = UserRepository()
_auth_limiter = RateLimiter()

MIN_PASSWORD_LENGTH = 10


@auth_bp.route('/login', methods=['POST'])
def login():
    """Accepts JSON `{email, password, remember}` or a classic form post."""
    allowed, retry_after = _auth_limiter.is_allowed(
        f'login:{client_ip()}', max_requests=10, window_seconds=300)
    if not allowed:
        resp = error_response(f'Too many login attempts. Try again in {retry_after} seconds.', 429)
        resp[0].headers['Retry-After'] = str(retry_after)
        return resp

    payload = request.get_json(silent=True) or request.form
    email = (payload.get('email') or '').strip()
    password = payload.get('password') or ''
    remember = payload.get('remember') in (True, 'on', 'true', '1')

    if not email or not password:
        return error_response('Please enter both email and password.')

    user_data = _user_repo.authenticate(email, password)
    if not user_data:
        logger.warning(f'Failed login attempt for {email} from {client_ip()}')
        return error_response('Invalid email or password.', 401)

    user = User(user_data)
    login_user(user, remember=remember)
    _user_repo.update_last_login(user.id)
    logger.info(f'User {user.email} logged in')
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/logout')
@login_required
def logout():
    """Logout current user."""
    logger.info(f'User {current_user.email} logged out')
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/api/auth/current-user')
def api_current_user():
    """Get current user info for UI."""
    if current_user.is_authenticated:
        return jsonify({'authenticated': True, 'user': current_user.to_dict()})
    return jsonify({'authenticated': False})


@auth_bp.route('/api/auth/change-password', methods=['POST'])
@login_required
def api_change_password():
    """Change current user's password."""
    data = request.get_json(silent=True) or {}
    current_password = data.get('current_password', '')
    new_password = data.get('new_password', '')

    if not current_password or not new_password:
        return error_response('Both current and new passwords are required')

    if len(new_password) < MIN_PASSWORD_LENGTH:
        return error_response(f'New password must be at least {MIN_PASSWORD_LENGTH} characters')

    if not _user_repo.authenticate(current_user.email, current_password):
        return error_response('Current password is incorrect')

    _user_repo.update_password(current_user.id, new_password)
    logger.info(f'User {current_user.email} changed their password')
    return jsonify({'success': True, 'message': 'Password changed successfully'})
