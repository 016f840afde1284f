"""
Authentication module for Station Portal

Provides:
- Password and secure word hashing/verification with bcrypt
- Two-factor credential check (email + password + secure word)
- Login attempt tracking (brute force protection)
- Signed session tokens (Flask session cookie for browsers, bearer token for API clients)
- requires_auth / requires_admin route decorators
"""

import logging
import re
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
from flask import current_app, g, jsonify, session
from flask_httpauth import HTTPTokenAuth
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

# Constants
BCRYPT_ROUNDS = 10
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 5
TOKEN_MAX_AGE_SECONDS = 7 * 24 * 3600
TOKEN_SALT = 'station-portal-session'
SESSION_KEY = 'user'

ROLE_ADMIN = 'ADMIN'
ROLE_STAFF = 'STAFF'
ROLES = (ROLE_ADMIN, ROLE_STAFF)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

# Global variables
token_auth = HTTPTokenAuth(scheme='Bearer')
failed_attempts = {}  # IP address -> {'attempts': int, 'locked_until': datetime}


def is_valid_email(email):
    """Check that a string looks like an email address"""
    return bool(email) and bool(EMAIL_PATTERN.match(email))


def hash_secret(value):
    """Hash a password or secure word using bcrypt

    Args:
        value: Plain text secret

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(value.encode('utf-8'), salt).decode('utf-8')


def verify_secret(value, hashed):
    """Verify a password or secure word against a bcrypt hash

    Args:
        value: Plain text secret to verify
        hashed: Bcrypt hash to verify against

    Returns:
        True if it matches, False otherwise
    """
    if not value or not hashed:
        return False
    try:
        return bcrypt.checkpw(value.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Error verifying secret: {e}")
        return False


# ==================== BRUTE FORCE PROTECTION ====================

def is_ip_locked(ip_address):
    """Check if IP address is locked due to too many failed attempts

    Args:
        ip_address: Client IP address

    Returns:
        True if locked, False otherwise
    """
    attempt_data = failed_attempts.get(ip_address)
    if not attempt_data or not attempt_data.get('locked_until'):
        return False

    if datetime.now() < attempt_data['locked_until']:
        return True  # Still locked

    # Lockout expired, clear attempts
    del failed_attempts[ip_address]
    return False


def record_failed_attempt(ip_address):
    """Record a failed login attempt and lock out if necessary

    Args:
        ip_address: Client IP address

    Returns:
        True if IP is now locked, False otherwise
    """
    attempt_data = failed_attempts.setdefault(ip_address, {'attempts': 0})
    attempt_data['attempts'] += 1

    if attempt_data['attempts'] >= MAX_LOGIN_ATTEMPTS:
        locked_until = datetime.now() + timedelta(minutes=LOCKOUT_DURATION_MINUTES)
        attempt_data['locked_until'] = locked_until
        logger.warning(f"IP {ip_address} locked out until {locked_until} "
                       f"({attempt_data['attempts']} failed attempts)")
        return True

    logger.warning(f"Failed login attempt from {ip_address} "
                   f"({attempt_data['attempts']}/{MAX_LOGIN_ATTEMPTS})")
    return False


def clear_failed_attempts(ip_address):
    """Clear failed login attempts for IP address (successful login)"""
    failed_attempts.pop(ip_address, None)


# ==================== CREDENTIAL CHECK ====================

def session_user(user):
    """Build the session payload for a user row"""
    return {
        'id': user['id'],
        'name': user['name'],
        'email': user['email'],
        'role': user['role'],
        'timezone': user['timezone'],
    }


def authenticate(db, email, password, secure_word, ip_address=None):
    """Check email, password and secure word

    Both the password and the secure word must match. A successful login is
    written to the activity log; failure to log does not block the login.

    Args:
        db: PortalDatabase instance
        email: Login email
        password: Plain text password
        secure_word: Plain text secure word
        ip_address: Client IP for lockout tracking (optional)

    Returns:
        Session user dict, or None if the credentials are invalid
    """
    if ip_address and is_ip_locked(ip_address):
        logger.warning(f"Locked out IP attempted login: {ip_address}")
        return None

    if not is_valid_email(email) or not password or not secure_word:
        logger.info("Invalid credentials")
        if ip_address:
            record_failed_attempt(ip_address)
        return None

    user = db.get_user_by_email(email)
    if (not user
            or not verify_secret(password, user['password_hash'])
            or not verify_secret(secure_word, user['secure_word_hash'])):
        logger.info(f"Invalid credentials for {email}")
        if ip_address:
            record_failed_attempt(ip_address)
        return None

    if ip_address:
        clear_failed_attempts(ip_address)

    try:
        db.log_activity('LOGIN', user_id=user['id'])
    except Exception as e:
        logger.error(f"Failed to log activity: {e}")

    logger.info(f"Successful login for {email} from {ip_address}")
    return session_user(user)


# ==================== SESSION TOKENS ====================

def _serializer():
    return URLSafeTimedSerializer(current_app.secret_key, salt=TOKEN_SALT)


def issue_token(user):
    """Issue a signed session token for a user

    Args:
        user: Session user dict

    Returns:
        URL-safe signed token string
    """
    return _serializer().dumps({'id': user['id']})


def load_token(token, max_age=TOKEN_MAX_AGE_SECONDS):
    """Verify a signed session token

    Returns:
        User ID, or None if the token is invalid or expired
    """
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Expired session token presented")
        return None
    except BadSignature:
        logger.warning("Invalid session token presented")
        return None
    return data.get('id') if isinstance(data, dict) else None


@token_auth.verify_token
def verify_token(token):
    """Flask-HTTPAuth bearer token verifier

    Returns:
        Session user dict if the token is valid, None otherwise
    """
    if not token:
        return None

    user_id = load_token(token)
    if not user_id:
        return None

    db = current_app.config.get('db')
    user = db.get_user(user_id) if db else None
    if not user:
        return None
    return session_user(user)


@token_auth.error_handler
def token_auth_error(status):
    """Handle authentication errors with a JSON body"""
    return jsonify({'error': 'Unauthorized'}), status


def login_user(user):
    """Store the user in the signed session cookie"""
    session.clear()
    session[SESSION_KEY] = user
    session.permanent = True


def refresh_session_user(**fields):
    """Update fields of the user stored in the session cookie, if any"""
    user = session.get(SESSION_KEY)
    if not user:
        return
    user.update({k: v for k, v in fields.items() if k in user})
    session[SESSION_KEY] = user
    g.pop('session_user', None)


def logout_user():
    """Forget the current session"""
    session.pop(SESSION_KEY, None)
    g.pop('session_user', None)


def _load_session_user():
    """Re-read the cookie session user from the database

    A session whose user no longer exists is cleared. Role and name changes
    are copied into the cookie.
    """
    user = session.get(SESSION_KEY)
    if not user:
        return None
    if 'session_user' in g:
        return g.session_user

    db = current_app.config.get('db')
    row = db.get_user(user.get('id')) if db else None
    if not row:
        logger.info(f"Session for {user.get('email')} refers to a missing user; clearing it")
        logout_user()
        g.session_user = None
        return None

    fresh = session_user(row)
    if fresh != user:
        session[SESSION_KEY] = fresh
    g.session_user = fresh
    return fresh


def current_user():
    """Get the signed-in user for this request

    Returns:
        Session user dict, or None when anonymous
    """
    user = _load_session_user()
    if user:
        return user
    return token_auth.current_user()


def requires_auth(f):
    """Decorator to require a signed-in user for a route

    Browser sessions are checked first; otherwise a bearer token is verified.

    Usage:
        @app.route('/api/example')
        @requires_auth
        def example():
            return jsonify({'data': 'protected'})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if _load_session_user():
            return f(*args, **kwargs)
        return token_auth.login_required(f)(*args, **kwargs)

    return decorated


def requires_admin(f):
    """Decorator to require an ADMIN user for a route"""
    @wraps(f)
    def admin_only(*args, **kwargs):
        user = current_user()
        if not user or user.get('role') != ROLE_ADMIN:
            return jsonify({'success': False, 'message': 'Unauthorized'}), 403
        return f(*args, **kwargs)

    return requires_auth(admin_only)
