"""
Database schema definitions for Station Portal

This module contains all CREATE TABLE statements and indexes for the
SQLite schema.

Tables:
- users: Staff accounts (password + secure word hashes)
- polls: Team polls
- poll_options: Options belonging to a poll
- votes: One vote per user per poll
- poll_comments: Threaded poll discussion (one level of replies)
- notifications: Per-user notifications (new polls, etc.)
- info_items: Shared resource vault (links, secrets, files)
- activity_log: Audit trail (logins, admin actions)
- schema_version: Schema version tracking

Schema Version: 2
"""

import logging

logger = logging.getLogger(__name__)


def create_tables(cursor):
    """Create all tables and indexes

    Args:
        cursor: SQLite cursor object
    """
    # 1. users table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            secure_word_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'STAFF',
            timezone TEXT NOT NULL DEFAULT 'UTC',
            job_title TEXT,
            discord_id TEXT,
            image TEXT,
            created_at TIMESTAMP NOT NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)")

    # 2. polls table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS polls (
            id TEXT PRIMARY KEY,
            question TEXT NOT NULL,
            description TEXT,
            created_by_id TEXT NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT 1,
            expires_at TIMESTAMP,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (created_by_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_polls_created ON polls(created_at DESC)")

    # 3. poll_options table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS poll_options (
            id TEXT PRIMARY KEY,
            poll_id TEXT NOT NULL,
            text TEXT NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (poll_id) REFERENCES polls(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_options_poll ON poll_options(poll_id)")

    # 4. votes table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS votes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            poll_id TEXT NOT NULL,
            option_id TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (poll_id) REFERENCES polls(id) ON DELETE CASCADE,
            FOREIGN KEY (option_id) REFERENCES poll_options(id) ON DELETE CASCADE,
            UNIQUE(user_id, poll_id)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_votes_option ON votes(option_id)")

    # 5. poll_comments table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS poll_comments (
            id TEXT PRIMARY KEY,
            poll_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            parent_id TEXT,
            content TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            FOREIGN KEY (poll_id) REFERENCES polls(id) ON DELETE CASCADE,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (parent_id) REFERENCES poll_comments(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_comments_poll ON poll_comments(poll_id, created_at)")

    # 6. notifications table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            link TEXT,
            is_read BOOLEAN NOT NULL DEFAULT 0,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user_unread ON notifications(user_id, is_read)")

    # 7. info_items table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS info_items (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            content TEXT NOT NULL,
            type TEXT NOT NULL,
            visible_to TEXT NOT NULL DEFAULT 'ALL',
            created_at TIMESTAMP NOT NULL
        )
    """)

    # 8. activity_log table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS activity_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT,
            action TEXT NOT NULL,
            details TEXT,
            timestamp TIMESTAMP NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE SET NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_activity_timestamp ON activity_log(timestamp DESC)")

    # 9. schema_version table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            description TEXT
        )
    """)

    logger.debug("All tables and indexes created")
