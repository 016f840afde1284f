"""
Command-line interface for Station Portal

This module provides the CLI entry point for all operations:
- Run the web portal (default)
- Seed the first admin / create staff accounts
- Rebuild listener analytics from an AzuraCast CSV export
- Run maintenance cleanup once
- Write a starter settings file

Usage:
    python -m station_portal.cli --help
"""

import argparse
import copy
import getpass
import os
import secrets
import sqlite3
import sys
import signal

from station_portal.logging_setup import setup_logging, get_logger
from station_portal.database import PortalDatabase
from station_portal.auth import hash_secret, is_valid_email, ROLES, ROLE_ADMIN, ROLE_STAFF
from station_portal.analytics import process_listener_csv, DEFAULT_ANALYTICS_FILE
from station_portal.gui import (
    DEFAULT_SETTINGS,
    SETTINGS_FILE,
    load_settings,
    resolve_settings,
    save_settings_to_file
)
from station_portal.timezones import DEFAULT_TIMEZONE

logger = get_logger(__name__)

DEFAULT_ADMIN_EMAIL = 'admin@example.com'
DEFAULT_ADMIN_NAME = 'Admin User'


def load_database(settings):
    """Load database from settings

    Args:
        settings: Settings dict

    Returns:
        PortalDatabase instance (connected)
    """
    db_file = settings.get('portal', {}).get('database_file', 'station_portal.db')
    db = PortalDatabase(db_file)
    db.connect()
    return db


def _prompt_secret(value, label):
    """Use the given secret or ask for it without echo"""
    return value if value else getpass.getpass(f"{label}: ")


def _create_account(db, args, role, job_title):
    email = (args.email or '').strip()
    if not is_valid_email(email):
        print(f"[FAIL] Invalid email: {email!r}")
        return None

    password = _prompt_secret(args.password, 'Password')
    secure_word = _prompt_secret(args.secure_word, 'Secure word')
    if len(password) < 6 or len(secure_word) < 4:
        print("[FAIL] Password must be at least 6 characters and secure word at least 4")
        return None

    try:
        return db.create_user(
            args.name or DEFAULT_ADMIN_NAME,
            email,
            hash_secret(password),
            hash_secret(secure_word),
            role=role,
            timezone_name=args.timezone or DEFAULT_TIMEZONE,
            job_title=job_title
        )
    except sqlite3.IntegrityError:
        print(f"[FAIL] Email already in use: {email}")
        return None


def cmd_seed_admin(args, settings):
    """Create the initial admin account if it does not exist

    Usage: --seed-admin [--email EMAIL] [--name NAME] [--password PW] [--secure-word WORD]
    """
    args.email = args.email or DEFAULT_ADMIN_EMAIL
    db = load_database(settings)
    try:
        existing = db.get_user_by_email(args.email)
        if existing:
            print(f"[OK] Admin already exists: {existing['email']} ({existing['role']})")
            return 0

        user_id = _create_account(db, args, ROLE_ADMIN, args.job_title)
        if not user_id:
            return 1

        print(f"[OK] Admin created: {args.email}")
        return 0
    finally:
        db.close()


def cmd_create_user(args, settings):
    """Create a staff account

    Usage: --create-user --email EMAIL --name NAME [--role ADMIN|STAFF] [--job-title TITLE]
    """
    if not args.email or not args.name:
        print("[FAIL] --create-user requires --email and --name")
        return 1

    role = (args.role or ROLE_STAFF).upper()
    if role not in ROLES:
        print(f"[FAIL] Role must be one of {', '.join(ROLES)}")
        return 1

    db = load_database(settings)
    try:
        user_id = _create_account(db, args, role, args.job_title or 'Staff')
        if not user_id:
            return 1
        db.log_activity('USER_CREATED', details=f"{args.email} ({role}) via CLI")
        print(f"[OK] User created: {args.email} ({role})")
        return 0
    finally:
        db.close()


def cmd_process_analytics(args, settings):
    """Rebuild the analytics JSON from a listener CSV export

    Usage: --process-analytics FILE [--output FILE] [--start YYYY-MM-DD] [--end YYYY-MM-DD]
    """
    output = args.output or settings.get('portal', {}).get('analytics_file', DEFAULT_ANALYTICS_FILE)
    try:
        analytics = process_listener_csv(args.process_analytics, output, args.start, args.end)
    except FileNotFoundError:
        print(f"[FAIL] CSV file not found: {args.process_analytics}")
        return 1
    except ValueError as e:
        print(f"[FAIL] Invalid date range: {e}")
        return 1

    top = analytics['topCountries'][0] if analytics['topCountries'] else None
    print(f"[OK] Analytics saved to {output}")
    print(f"  Days tracked: {len(analytics['dailyHits'])}")
    print(f"  Total sessions: {analytics['totalSessions']}")
    if top:
        print(f"  Top country: {top['code']} ({top['count']})")
    return 0


def cmd_cleanup(args, settings):
    """Run activity and notification retention cleanup once

    Usage: --cleanup
    """
    from station_portal.cleanup import run_all_cleanup

    db = load_database(settings)
    try:
        results = run_all_cleanup(db, settings)
        print(f"[OK] Deleted {results['activity_deleted']} activity entries, "
              f"{results['notifications_deleted']} read notifications")
        return 0
    finally:
        db.close()


def cmd_init_settings(args, settings):
    """Write a starter settings file with a generated secret key

    Usage: --init-settings
    """
    if os.path.exists(SETTINGS_FILE):
        print(f"[FAIL] {SETTINGS_FILE} already exists")
        return 1

    starter = copy.deepcopy(DEFAULT_SETTINGS)
    starter['portal']['secret_key'] = secrets.token_hex(32)
    if not save_settings_to_file(starter):
        print(f"[FAIL] Could not write {SETTINGS_FILE}")
        return 1

    print(f"[OK] Settings written to {SETTINGS_FILE}")
    print("  Fill in the azuracast and groq sections, or set the environment variables")
    return 0


def cmd_gui(args, settings):
    """Start the portal web server

    Usage: [--host HOST] [--port PORT]
    """
    from station_portal.scheduler import PortalScheduler
    from station_portal.gui import init_gui, run_app, cleanup

    host = args.host or settings.get('portal', {}).get('host', '0.0.0.0')
    port = args.port or settings.get('portal', {}).get('port', 5000)

    db = PortalDatabase(settings.get('portal', {}).get('database_file', 'station_portal.db'))
    scheduler = PortalScheduler()
    init_gui(database=db, background_scheduler=scheduler, portal_settings=settings)

    def signal_handler(sig, frame):
        logger.info("Shutdown signal received. Stopping gracefully...")
        cleanup()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    run_app(host=host, port=port)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description='Station Portal - staff portal for a radio station',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Commands
    parser.add_argument('--seed-admin', action='store_true',
                        help='Create the initial admin account if missing')
    parser.add_argument('--create-user', action='store_true',
                        help='Create a staff account')
    parser.add_argument('--process-analytics', metavar='CSV',
                        help='Rebuild listener analytics from an AzuraCast CSV export')
    parser.add_argument('--cleanup', action='store_true',
                        help='Run retention cleanup once and exit')
    parser.add_argument('--init-settings', action='store_true',
                        help=f'Write a starter {SETTINGS_FILE}')

    # Account options
    parser.add_argument('--email', help='Account email')
    parser.add_argument('--name', help='Display name')
    parser.add_argument('--password', help='Password (prompted if omitted)')
    parser.add_argument('--secure-word', dest='secure_word', help='Secure word (prompted if omitted)')
    parser.add_argument('--role', help='ADMIN or STAFF (default: STAFF)')
    parser.add_argument('--timezone', help=f'IANA time zone (default: {DEFAULT_TIMEZONE})')
    parser.add_argument('--job-title', dest='job_title', help='Job title (default: Staff)')

    # Analytics options
    parser.add_argument('--output', metavar='FILE', help='Analytics JSON output path')
    parser.add_argument('--start', metavar='DATE', help='First day of the daily series (YYYY-MM-DD)')
    parser.add_argument('--end', metavar='DATE', help='Last day of the daily series (YYYY-MM-DD)')

    # Server options
    parser.add_argument('--host', metavar='HOST',
                        help='Bind host (default: from settings or 0.0.0.0)')
    parser.add_argument('--port', type=int, metavar='PORT',
                        help='Bind port (default: from settings or 5000)')
    return parser


def main(argv=None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    settings = resolve_settings(load_settings())
    setup_logging(settings)

    # Route to appropriate command
    if args.init_settings:
        return cmd_init_settings(args, settings)
    elif args.seed_admin:
        return cmd_seed_admin(args, settings)
    elif args.create_user:
        return cmd_create_user(args, settings)
    elif args.process_analytics:
        return cmd_process_analytics(args, settings)
    elif args.cleanup:
        return cmd_cleanup(args, settings)
    else:
        return cmd_gui(args, settings)


if __name__ == '__main__':
    sys.exit(main())
