"""
Database schema migration functions for Station Portal

This module handles all database migrations:
- fresh database → current schema
- v1 → v2 (add poll_comments table, discord_id/image columns on users)

Migrations are applied automatically when the database is opened.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Import schema functions
from .schema import create_tables


def _initialize_schema(cursor, conn, SCHEMA_VERSION):
    """Initialize schema (create new or migrate an older one)

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        SCHEMA_VERSION: Current schema version (from database module)
    """
    cursor.execute("""
        SELECT name FROM sqlite_master
        WHERE type='table' AND name='schema_version'
    """)

    if not cursor.fetchone():
        _create_new_schema(cursor, conn, SCHEMA_VERSION)
        return

    cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    result = cursor.fetchone()
    current_version = result[0] if result else 0

    if current_version < SCHEMA_VERSION:
        logger.info(f"Database schema is v{current_version}, upgrading to v{SCHEMA_VERSION}")

        # Migrate to version 2 (poll comments + Discord profile columns)
        if current_version < 2:
            _migrate_to_v2(cursor, conn)


def _create_new_schema(cursor, conn, SCHEMA_VERSION):
    """Create new schema

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        SCHEMA_VERSION: Current schema version
    """
    create_tables(cursor)

    cursor.execute("""
        INSERT INTO schema_version (version, description)
        VALUES (?, ?)
    """, (SCHEMA_VERSION, 'Initial schema (users, polls, votes, comments, notifications, info items, activity)'))

    conn.commit()
    logger.info(f"Created new database schema (v{SCHEMA_VERSION})")


def _migrate_to_v2(cursor, conn):
    """Migrate database from version 1 to version 2

    Adds the poll_comments table and the discord_id/image columns that back
    Discord avatar lookups on the settings page.

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
    """
    logger.info("Migrating database to version 2 (poll comments, Discord profile)")

    for column in ('discord_id', 'image'):
        try:
            cursor.execute(f"ALTER TABLE users ADD COLUMN {column} TEXT")
        except Exception as e:
            # Column might already exist if migration was partially run
            if "duplicate column name" not in str(e).lower():
                raise

    # create_tables is idempotent; it only adds what is missing (poll_comments)
    create_tables(cursor)

    cursor.execute("""
        INSERT INTO activity_log (user_id, action, details, timestamp)
        VALUES (NULL, 'MIGRATION', ?, ?)
    """, ('Migrated schema v1 to v2: poll comments and Discord profile columns',
          datetime.now(timezone.utc).isoformat()))

    cursor.execute("""
        INSERT INTO schema_version (version, description)
        VALUES (?, ?)
    """, (2, 'Add poll_comments table and Discord profile columns'))

    conn.commit()
    logger.info("Migration to version 2 complete")
