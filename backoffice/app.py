import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from datetime import timedelta

from flask import Flask, request, jsonify

# Structured logging
from core.utils.logging_config import setup_logging, get_logger
logger = setup_logging(level=os.environ.get('LOG_LEVEL', 'INFO'))
app_logger = get_logger('backoffice.app')
app_logger.info('Back-office app module loading...')
from flask_compress import Compress
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix
from core.auth.models import User
from core.auth.repositories import UserRepository
from database import ping_db
from signing.config import MAX_UPLOAD_MB

_user_repo = UserRepository()


app = Flask(__name__)

# Number of reverse proxies in front of the app; 0 means remote_addr is the client
TRUSTED_PROXY_COUNT = int(os.environ.get('TRUSTED_PROXY_COUNT', '0'))
if TRUSTED_PROXY_COUNT > 0:
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=TRUSTED_PROXY_COUNT, x_proto=TRUSTED_PROXY_COUNT)

# Secret key: required in production, dev fallback only when FLASK_DEBUG=true
_secret_key = os.environ.get('FLASK_SECRET_KEY', os.environ.get('SECRET_KEY'))
if not _secret_key:
    if os.environ.get('FLASK_DEBUG', 'false').lower() == 'true':
        _secret_key = 'dev-secret-key-for-local-only'
        app_logger.warning('Using development secret key, set FLASK_SECRET_KEY for production')
    else:
        raise RuntimeError('FLASK_SECRET_KEY environment variable is required')
app.secret_key = _secret_key

compress = Compress()
compress.init_app(app)

login_manager = LoginManager()
login_manager.init_app(app)

app.config['REMEMBER_COOKIE_DURATION'] = timedelta(days=30)
app.config['REMEMBER_COOKIE_HTTPONLY'] = True
app.config['REMEMBER_COOKIE_SAMESITE'] = 'Lax'
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
if os.environ.get('PRODUCTION', 'false').lower() == 'true':
    app.config['REMEMBER_COOKIE_SECURE'] = True
    app.config['SESSION_COOKIE_SECURE'] = True

# One extra MB for multipart overhead; the signing service enforces the exact limit
app.config['MAX_CONTENT_LENGTH'] = (MAX_UPLOAD_MB + 1) * 1024 * 1024

# ============== Blueprint Registrations ==============

from core.auth import auth_bp
app.register_blueprint(auth_bp)

from commissions import commissions_bp
app.register_blueprint(commissions_bp, url_prefix='/commissions')

from timeclock import timeclock_bp
app.register_blueprint(timeclock_bp, url_prefix='/timeclock')

from signing import signing_bp
app.register_blueprint(signing_bp, url_prefix='/signing')


# ============== Error Handlers ==============

def _is_api_request():
    return '/api/' in request.path


@app.errorhandler(404)
def handle_404(e):
    if _is_api_request():
        return jsonify({'success': False, 'error': 'Not found'}), 404
    return e


@app.errorhandler(405)
def handle_405(e):
    return jsonify({'success': False, 'error': 'Method not allowed'}), 405


@app.errorhandler(413)
def handle_413(e):
    return jsonify({'success': False, 'error': f'File too large. Max: {MAX_UPLOAD_MB}MB'}), 413


@app.errorhandler(500)
def handle_500(e):
    app_logger.exception('Unhandled 500 error')
    if _is_api_request():
        return jsonify({'success': False, 'error': 'An internal error occurred'}), 500
    return e


# ============== Start-up ==============

if not os.environ.get('TESTING'):
    try:
        from database import init_db
        init_db()
    except Exception as e:
        app_logger.error(f'Database initialization failed: {e}')
        raise

    try:
        from tasks.cleanup import start_scheduler
        start_scheduler()
    except Exception as e:
        app_logger.warning(f'Failed to start background scheduler: {e}')


# ============== Flask-Login ==============

@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login."""
    user_data = _user_repo.get_by_id(int(user_id))
    if user_data and user_data.get('is_active', True):
        return User(user_data)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'Authentication required'}), 401


@app.route('/health')
def health_check():
    """Health check for orchestrator probes. Only checks DB connectivity."""
    checks = {}

    try:
        checks['database'] = ping_db()
    except Exception as e:
        checks['database'] = False
        app_logger.error(f'Health check - database failed: {e}')

    status = 'healthy' if checks.get('database') else 'unhealthy'
    http_code = 200 if status == 'healthy' else 503

    return jsonify({
        'status': status,
        'checks': checks,
        'service': 'backoffice',
    }), http_code


if __name__ == '__main__':
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=debug, host='0.0.0.0', port=port)
