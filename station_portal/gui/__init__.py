"""
Flask GUI Package for Station Portal

This package provides the portal's JSON API:
- Login / session
- Dashboard (team clocks, resources, notifications)
- Polls, comments and notifications
- Resource vault
- Admin user management and profile settings
- AzuraCast proxy endpoints
- AI assistant chat

Key Principle: Single integrated app - Flask + APScheduler + Database in one process.
"""

import os
import copy
import json
import logging
import secrets
from datetime import timedelta
from flask import Flask, current_app

logger = logging.getLogger(__name__)

SETTINGS_FILE = 'station_portal_settings.json'

DEFAULT_SETTINGS = {
    'portal': {
        'database_file': 'station_portal.db',
        'secret_key': '',
        'analytics_file': 'data/analytics.json',
        'host': '0.0.0.0',
        'port': 5000,
    },
    'azuracast': {
        'url': '',
        'station_id': '',
        'api_key': '',
        'timeout': 30,
    },
    'groq': {
        'api_key': '',
        'model': 'llama-3.3-70b-versatile',
    },
    'logging': {
        'file': 'station_portal.log',
        'console_level': 'INFO',
        'file_level': 'ERROR',
        'max_bytes': 10485760,
        'backup_count': 5,
    },
    'maintenance': {
        'activity_retention_days': 90,
        'notification_retention_days': 30,
        'analytics_csv': '',
        'cleanup_hour': 4,
    },
}

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'AZURACAST_API_URL': ('azuracast', 'url'),
    'AZURACAST_STATION_ID': ('azuracast', 'station_id'),
    'AZURACAST_API_KEY': ('azuracast', 'api_key'),
    'GROQ_API_KEY': ('groq', 'api_key'),
    'PORTAL_SECRET_KEY': ('portal', 'secret_key'),
}

app = Flask(__name__)
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)
app.config['JSON_SORT_KEYS'] = False

# Global variables
db = None
settings = None
scheduler = None


def load_settings():
    """Load settings from station_portal_settings.json

    Returns:
        Settings dict or None if file doesn't exist
    """
    if not os.path.exists(SETTINGS_FILE):
        return None

    try:
        with open(SETTINGS_FILE, 'r') as f:
            return json.load(f)
    except Exception as e:
        logger.error(f"Error loading settings: {e}")
        return None


def save_settings_to_file(settings_dict):
    """Save settings to station_portal_settings.json

    Args:
        settings_dict: Settings to save

    Returns:
        True if saved successfully, False otherwise
    """
    try:
        with open(SETTINGS_FILE, 'w') as f:
            json.dump(settings_dict, f, indent=2)
        logger.info(f"Settings saved to {SETTINGS_FILE}")
        return True
    except Exception as e:
        logger.error(f"Error saving settings: {e}")
        return False


def resolve_settings(file_settings=None, environ=None):
    """Merge defaults, the settings file and environment overrides

    Args:
        file_settings: Settings loaded from disk (or None)
        environ: Environment mapping (default: os.environ)

    Returns:
        Complete settings dict
    """
    environ = os.environ if environ is None else environ
    resolved = copy.deepcopy(DEFAULT_SETTINGS)

    for section, values in (file_settings or {}).items():
        if isinstance(values, dict):
            resolved.setdefault(section, {}).update(values)
        else:
            resolved[section] = values

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            resolved[section][key] = value

    return resolved


def get_settings():
    """Resolved settings for the running app"""
    return current_app.config.get('settings') or resolve_settings()


def init_gui(database=None, background_scheduler=None, portal_settings=None):
    """Initialize GUI with database and scheduler

    Args:
        database: PortalDatabase instance (connected here)
        background_scheduler: PortalScheduler instance (optional)
        portal_settings: Resolved settings (default: load from file + environment)
    """
    global db, scheduler, settings

    db = database
    scheduler = background_scheduler
    settings = portal_settings or resolve_settings(load_settings())

    from station_portal.logging_setup import setup_logging
    setup_logging(settings)

    secret_key = settings['portal'].get('secret_key')
    if not secret_key:
        secret_key = secrets.token_hex(32)
        logger.warning("No secret key configured; sessions will not survive a restart")
    app.secret_key = secret_key

    # Store in Flask app config for access across requests
    app.config['db'] = database
    app.config['scheduler'] = background_scheduler
    app.config['settings'] = settings

    if database:
        database.connect()
        logger.info(f"Database connected: {database.db_path}")

    if scheduler and database:
        from station_portal import cleanup

        maintenance = settings.get('maintenance', {})

        def activity_cleanup_job_func():
            logger.info("Starting scheduled activity log cleanup")
            deleted = cleanup.cleanup_activity_logs(
                database, days=maintenance.get('activity_retention_days', 90))
            logger.info(f"Scheduled activity cleanup complete: {deleted} entries deleted")

        def notification_cleanup_job_func():
            logger.info("Starting scheduled notification cleanup")
            deleted = cleanup.cleanup_read_notifications(
                database, days=maintenance.get('notification_retention_days', 30))
            logger.info(f"Scheduled notification cleanup complete: {deleted} entries deleted")

        scheduler.add_cleanup_jobs(activity_cleanup_job_func, notification_cleanup_job_func,
                                   hour=maintenance.get('cleanup_hour', 4))

        if maintenance.get('analytics_csv'):
            scheduler.add_analytics_job(lambda: cleanup.regenerate_analytics(settings))

        scheduler.start()

    logger.info(f"GUI initialized - db: {db is not None}, scheduler: {scheduler is not None}")


def run_app(host='0.0.0.0', port=5000, debug=False):
    """Run Flask application

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 5000)
        debug: Enable debug mode (default: False)
    """
    logger.info(f"Starting Station Portal on {host}:{port}")

    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False)
    finally:
        logger.info("Flask app shutting down...")
        cleanup()


def cleanup():
    """Cleanup resources before shutdown"""
    try:
        if scheduler:
            scheduler.shutdown(wait=True)
    except Exception as e:
        logger.error(f"Error shutting down scheduler: {e}")

    try:
        if db:
            logger.info("Closing database...")
            db.close()
            logger.info("Database closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")


# Import and register blueprints
from station_portal.gui.routes import auth as auth_routes
from station_portal.gui.routes import admin, assistant, azuracast, dashboard, polls, resources
from station_portal.gui.routes import settings as settings_routes

app.register_blueprint(auth_routes.auth_bp)
app.register_blueprint(dashboard.dashboard_bp)
app.register_blueprint(polls.polls_bp)
app.register_blueprint(resources.resources_bp)
app.register_blueprint(admin.admin_bp)
app.register_blueprint(settings_routes.settings_bp)
app.register_blueprint(azuracast.azuracast_bp)
app.register_blueprint(assistant.assistant_bp)

logger.info("All GUI blueprints registered successfully")
