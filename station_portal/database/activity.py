"""
Activity logging module for Station Portal

This module provides functions to log and retrieve staff activity events.
Activity logs create an audit trail shown on the admin page.

Actions:
- LOGIN: Successful sign-in
- USER_CREATED / USER_DELETED: Admin user management
- MIGRATION: Schema migrations
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any

logger = logging.getLogger(__name__)


def log_activity(
    cursor,
    action: str,
    user_id: Optional[str] = None,
    details: Optional[str] = None
) -> int:
    """Log an activity event

    Args:
        cursor: SQLite cursor object
        action: Action name (LOGIN, USER_CREATED, etc.)
        user_id: Acting user's ID (optional)
        details: Free-text details (optional)

    Returns:
        int: ID of the inserted activity log entry
    """
    cursor.execute("""
        INSERT INTO activity_log (user_id, action, details, timestamp)
        VALUES (?, ?, ?, ?)
    """, (user_id, action, details, datetime.now(timezone.utc).isoformat()))

    log_id = cursor.lastrowid
    logger.debug(f"Logged activity {log_id}: {action} (user {user_id})")
    return log_id


def get_recent_activity(cursor, limit: int = 10) -> List[Dict[str, Any]]:
    """Get the most recent activity entries with the acting user's name and email

    Args:
        cursor: SQLite cursor object
        limit: Number of entries (default: 10)

    Returns:
        List of activity dicts, newest first
    """
    cursor.execute("""
        SELECT a.id, a.action, a.details, a.timestamp, a.user_id,
               u.name AS user_name, u.email AS user_email
        FROM activity_log a
        LEFT JOIN users u ON u.id = a.user_id
        ORDER BY a.timestamp DESC, a.id DESC
        LIMIT ?
    """, (limit,))

    activities = []
    for row in cursor.fetchall():
        activities.append({
            'id': row[0],
            'action': row[1],
            'details': row[2],
            'timestamp': row[3],
            'user_id': row[4],
            'user': {'name': row[5], 'email': row[6]} if row[4] else None,
        })
    return activities


def cleanup_old_activity(cursor, days: int = 90) -> int:
    """Delete activity entries older than the retention period

    Args:
        cursor: SQLite cursor object
        days: Retention period in days (default: 90)

    Returns:
        int: Number of entries deleted
    """
    cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
    cursor.execute("DELETE FROM activity_log WHERE timestamp < ?", (cutoff,))
    deleted = cursor.rowcount
    logger.debug(f"Deleted {deleted} activity entries older than {days} days")
    return deleted
