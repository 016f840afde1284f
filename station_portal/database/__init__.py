"""
Database package for Station Portal

This package provides a modular database interface with:
- schema.py: Database table definitions
- migrations.py: Schema migration functions
- queries.py: SELECT query methods
- crud.py: INSERT/UPDATE/DELETE operations
- activity.py: Activity logging functions

The main PortalDatabase class (below) provides a unified interface
to all database operations.

Schema Version: 2
"""

import sqlite3
import logging

logger = logging.getLogger(__name__)

# Import migration functions
from .migrations import _initialize_schema
# Import query functions
from . import queries
# Import CRUD functions
from . import crud
# Import activity functions
from . import activity


class PortalDatabase:
    """SQLite database for the staff portal

    Tables:
    - users: Staff accounts
    - polls / poll_options / votes: Team polls
    - poll_comments: Poll discussion threads
    - notifications: Per-user notifications
    - info_items: Shared resource vault
    - activity_log: Audit trail
    - schema_version: Schema version tracking
    """

    # Current schema version
    SCHEMA_VERSION = 2

    def __init__(self, db_path):
        self.db_path = db_path
        self.conn = None

    def connect(self):
        """Connect to database and create/update schema if needed"""
        # Allow connection to be used across threads (required for Flask multi-threading)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)

        cursor = self.conn.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys = ON")
            _initialize_schema(cursor, self.conn, self.SCHEMA_VERSION)
        finally:
            cursor.close()

        logger.info(f"Connected to database {self.db_path}")

    def get_cursor(self):
        """Get a new cursor for the current request

        This creates a fresh cursor for each request to avoid 'Recursive use of cursors' errors
        when multiple Flask requests use the database simultaneously.
        """
        return self.conn.cursor()

    def close(self):
        """Close the database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None

    # ==================== USER METHODS ====================

    def create_user(self, name, email, password_hash, secure_word_hash,
                    role='STAFF', timezone_name='America/New_York', job_title=None):
        """Create a user (raises sqlite3.IntegrityError on duplicate email)"""
        cursor = self.conn.cursor()
        try:
            return crud.create_user(cursor, self.conn, name, email, password_hash,
                                    secure_word_hash, role, timezone_name, job_title)
        finally:
            cursor.close()

    def update_user(self, user_id, **kwargs):
        """Update user fields"""
        cursor = self.conn.cursor()
        try:
            return crud.update_user(cursor, self.conn, user_id, **kwargs)
        finally:
            cursor.close()

    def delete_user(self, user_id):
        """Delete a user"""
        cursor = self.conn.cursor()
        try:
            return crud.delete_user(cursor, self.conn, user_id)
        finally:
            cursor.close()

    def get_user(self, user_id, include_secrets=False):
        """Get user by ID"""
        cursor = self.conn.cursor()
        try:
            return queries.get_user_by_id(cursor, user_id, include_secrets)
        finally:
            cursor.close()

    def get_user_by_email(self, email):
        """Get user by email (includes hashes)"""
        cursor = self.conn.cursor()
        try:
            return queries.get_user_by_email(cursor, email)
        finally:
            cursor.close()

    def get_all_users(self):
        """Get all users, newest first"""
        cursor = self.conn.cursor()
        try:
            return queries.get_all_users(cursor)
        finally:
            cursor.close()

    def get_team_members(self):
        """Get the staff directory"""
        cursor = self.conn.cursor()
        try:
            return queries.get_team_members(cursor)
        finally:
            cursor.close()

    # ==================== POLL METHODS ====================

    def create_poll(self, question, description, created_by_id, options, expires_at=None):
        """Create a poll and notify every other user about it

        Returns:
            ID of the new poll
        """
        cursor = self.conn.cursor()
        try:
            poll_id = crud.create_poll(cursor, self.conn, question, description,
                                       created_by_id, options, expires_at)
            other_users = queries.get_user_ids_except(cursor, created_by_id)
            crud.create_notifications(
                cursor, self.conn, other_users,
                'POLL_CREATED', 'New Poll', f'"{question}" - Cast your vote!', '/polls'
            )
            return poll_id
        finally:
            cursor.close()

    def get_poll(self, poll_id):
        """Get a poll with its options"""
        cursor = self.conn.cursor()
        try:
            return queries.get_poll(cursor, poll_id)
        finally:
            cursor.close()

    def get_polls_for_user(self, user_id):
        """Get all polls as seen by one user"""
        cursor = self.conn.cursor()
        try:
            return queries.get_polls_for_user(cursor, user_id)
        finally:
            cursor.close()

    def get_all_polls_with_counts(self):
        """Get all polls with vote/comment counts"""
        cursor = self.conn.cursor()
        try:
            return queries.get_all_polls_with_counts(cursor)
        finally:
            cursor.close()

    def update_poll(self, poll_id, question, description):
        """Edit a poll"""
        cursor = self.conn.cursor()
        try:
            return crud.update_poll(cursor, self.conn, poll_id, question, description)
        finally:
            cursor.close()

    def close_poll(self, poll_id):
        """Stop a poll from accepting votes"""
        cursor = self.conn.cursor()
        try:
            return crud.set_poll_active(cursor, self.conn, poll_id, False)
        finally:
            cursor.close()

    def delete_poll(self, poll_id):
        """Delete a poll"""
        cursor = self.conn.cursor()
        try:
            return crud.delete_poll(cursor, self.conn, poll_id)
        finally:
            cursor.close()

    def get_vote(self, user_id, poll_id):
        """Get a user's vote on a poll"""
        cursor = self.conn.cursor()
        try:
            return queries.get_vote(cursor, user_id, poll_id)
        finally:
            cursor.close()

    def add_vote(self, user_id, poll_id, option_id):
        """Record a vote and clear the voter's unread poll notifications"""
        cursor = self.conn.cursor()
        try:
            vote_id = crud.add_vote(cursor, self.conn, user_id, poll_id, option_id)
            crud.mark_notifications_read(cursor, self.conn, user_id, link='/polls')
            return vote_id
        finally:
            cursor.close()

    # ==================== COMMENT METHODS ====================

    def add_comment(self, poll_id, user_id, content, parent_id=None):
        """Add a comment or reply"""
        cursor = self.conn.cursor()
        try:
            return crud.add_comment(cursor, self.conn, poll_id, user_id, content, parent_id)
        finally:
            cursor.close()

    def get_comment(self, comment_id):
        """Get a comment"""
        cursor = self.conn.cursor()
        try:
            return queries.get_comment(cursor, comment_id)
        finally:
            cursor.close()

    def update_comment(self, comment_id, content):
        """Edit a comment"""
        cursor = self.conn.cursor()
        try:
            return crud.update_comment(cursor, self.conn, comment_id, content)
        finally:
            cursor.close()

    def delete_comment(self, comment_id):
        """Delete a comment"""
        cursor = self.conn.cursor()
        try:
            return crud.delete_comment(cursor, self.conn, comment_id)
        finally:
            cursor.close()

    # ==================== NOTIFICATION METHODS ====================

    def count_unread_notifications(self, user_id):
        """Count a user's unread notifications"""
        cursor = self.conn.cursor()
        try:
            return queries.count_unread_notifications(cursor, user_id)
        finally:
            cursor.close()

    def get_unread_notifications(self, user_id, limit=10):
        """Get a user's unread notifications"""
        cursor = self.conn.cursor()
        try:
            return queries.get_unread_notifications(cursor, user_id, limit)
        finally:
            cursor.close()

    def mark_notifications_read(self, user_id, notification_ids=None):
        """Mark some or all of a user's notifications read"""
        cursor = self.conn.cursor()
        try:
            return crud.mark_notifications_read(cursor, self.conn, user_id, notification_ids)
        finally:
            cursor.close()

    def delete_read_notifications_older_than(self, days=30):
        """Delete old read notifications"""
        cursor = self.conn.cursor()
        try:
            return crud.delete_read_notifications_older_than(cursor, self.conn, days)
        finally:
            cursor.close()

    # ==================== INFO ITEM METHODS ====================

    def get_all_info_items(self):
        """Get all info items"""
        cursor = self.conn.cursor()
        try:
            return queries.get_all_info_items(cursor)
        finally:
            cursor.close()

    def get_info_item(self, item_id):
        """Get an info item"""
        cursor = self.conn.cursor()
        try:
            return queries.get_info_item(cursor, item_id)
        finally:
            cursor.close()

    def create_info_item(self, title, description, content, item_type, visible_to='ALL'):
        """Add an info item"""
        cursor = self.conn.cursor()
        try:
            return crud.create_info_item(cursor, self.conn, title, description,
                                         content, item_type, visible_to)
        finally:
            cursor.close()

    def update_info_item(self, item_id, title, description, content, item_type, visible_to='ALL'):
        """Update an info item"""
        cursor = self.conn.cursor()
        try:
            return crud.update_info_item(cursor, self.conn, item_id, title, description,
                                         content, item_type, visible_to)
        finally:
            cursor.close()

    def delete_info_item(self, item_id):
        """Delete an info item"""
        cursor = self.conn.cursor()
        try:
            return crud.delete_info_item(cursor, self.conn, item_id)
        finally:
            cursor.close()

    # ==================== ACTIVITY METHODS ====================

    def log_activity(self, action, user_id=None, details=None):
        """Write an activity log entry"""
        cursor = self.conn.cursor()
        try:
            log_id = activity.log_activity(cursor, action, user_id, details)
            self.conn.commit()
            return log_id
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()

    def get_recent_activity(self, limit=10):
        """Get recent activity entries"""
        cursor = self.conn.cursor()
        try:
            return activity.get_recent_activity(cursor, limit)
        finally:
            cursor.close()

    def cleanup_old_activity(self, days=90):
        """Delete activity entries past retention"""
        cursor = self.conn.cursor()
        try:
            deleted = activity.cleanup_old_activity(cursor, days)
            self.conn.commit()
            return deleted
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()


__all__ = ['PortalDatabase', 'queries', 'crud', 'activity']
