"""
Station Portal - Package Architecture

Internal staff portal for a radio station: sign-in with a password and a
secure word, team polls, a shared resource vault, listener analytics, DJ
scheduling against AzuraCast, and an AI assistant that looks things up for
staff.

Package Structure:
------------------
station_portal/
├── __init__.py           # Package initialization (this file)
├── auth.py               # bcrypt hashing, login, lockout, signed session tokens
├── azuracast.py          # AzuraCast REST client
├── analytics.py          # Listener CSV -> analytics JSON batch job
├── assistant.py          # Tool-calling loop for the AI assistant
├── timezones.py          # Team time zone helpers
├── cleanup.py            # Retention cleanup jobs
├── scheduler.py          # APScheduler wrapper
├── logging_setup.py      # Console + rotating file logging
├── cli.py                # Command-line interface
├── integrations/groq.py  # Groq chat-completions client
├── database/             # Schema, migrations, CRUD, queries, activity log
└── gui/                  # Flask app and route blueprints

Architecture Principles:
-----------------------
1. Database is shared state - Flask handlers read and write, scheduler cleans up
2. Single integrated app - Flask + APScheduler in one process
3. External services are proxied - browsers never see AzuraCast or Groq keys
4. Error handling - log everything, return JSON errors with a status code

Usage:
------
# Run the portal (default)
python -m station_portal.cli

# Create the first admin account
python -m station_portal.cli --seed-admin --email admin@example.com

# Rebuild listener analytics from an AzuraCast CSV export
python -m station_portal.cli --process-analytics listeners.csv

Version: 1.2.0
"""

__version__ = "1.2.0"
__author__ = "Station Portal Team"

# Import key classes for convenient access
from .database import PortalDatabase
from . import auth

__all__ = [
    "PortalDatabase",
    "auth",
    "__version__",
]
