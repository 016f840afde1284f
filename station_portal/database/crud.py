"""
Database CRUD operations for Station Portal

This module contains all INSERT/UPDATE/DELETE operations that modify the database.

CRUD Categories:
- User CRUD: create_user, update_user, delete_user
- Poll CRUD: create_poll, update_poll, set_poll_active, delete_poll
- Vote CRUD: add_vote
- Comment CRUD: add_comment, update_comment, delete_comment
- Notification CRUD: create_notifications, mark_notifications_read,
  delete_read_notifications_older_than
- Info item CRUD: create_info_item, update_info_item, delete_info_item
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

USER_UPDATE_FIELDS = (
    'name', 'timezone', 'job_title', 'discord_id', 'image',
    'password_hash', 'secure_word_hash', 'role',
)


def new_id():
    """Generate a new row ID"""
    return uuid.uuid4().hex


def utc_now():
    """Current UTC time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


# ==================== USER CRUD ====================

def create_user(cursor, conn, name, email, password_hash, secure_word_hash,
                role='STAFF', timezone_name='America/New_York', job_title=None):
    """Create a staff user

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        name: Display name
        email: Login email (unique)
        password_hash: Bcrypt hash of the password
        secure_word_hash: Bcrypt hash of the secure word
        role: 'ADMIN' or 'STAFF'
        timezone_name: IANA timezone name
        job_title: Optional job title

    Returns:
        ID of the new user

    Raises:
        sqlite3.IntegrityError: If the email is already in use
    """
    user_id = new_id()
    try:
        cursor.execute("""
            INSERT INTO users (id, name, email, password_hash, secure_word_hash,
                               role, timezone, job_title, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (user_id, name, email, password_hash, secure_word_hash,
              role, timezone_name, job_title, utc_now()))
        conn.commit()
        logger.info(f"Created user {email} ({role})")
        return user_id
    except Exception as e:
        logger.error(f"Error creating user {email}: {e}")
        conn.rollback()
        raise


def update_user(cursor, conn, user_id, **kwargs):
    """Update user fields

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        user_id: User ID
        **kwargs: Fields to update (see USER_UPDATE_FIELDS)

    Returns:
        True if updated, False if nothing to update or user not found
    """
    updates = []
    params = []

    for key, value in kwargs.items():
        if key in USER_UPDATE_FIELDS:
            updates.append(f"{key} = ?")
            params.append(value)

    if not updates:
        return False

    params.append(user_id)

    try:
        cursor.execute(f"""
            UPDATE users
            SET {', '.join(updates)}
            WHERE id = ?
        """, params)
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}")
        conn.rollback()
        raise


def delete_user(cursor, conn, user_id):
    """Delete a user (polls, votes, comments and notifications cascade)

    Returns:
        True if deleted, False if user not found
    """
    try:
        cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
        conn.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted user {user_id}")
        return deleted
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        conn.rollback()
        raise


# ==================== POLL CRUD ====================

def create_poll(cursor, conn, question, description, created_by_id, options, expires_at=None):
    """Create a poll with its options

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        question: Poll question
        description: Optional description
        created_by_id: Creator's user ID
        options: List of option texts (already trimmed)
        expires_at: Optional ISO timestamp after which voting stops

    Returns:
        ID of the new poll
    """
    poll_id = new_id()
    try:
        cursor.execute("""
            INSERT INTO polls (id, question, description, created_by_id, is_active, expires_at, created_at)
            VALUES (?, ?, ?, ?, 1, ?, ?)
        """, (poll_id, question, description, created_by_id, expires_at, utc_now()))

        cursor.executemany("""
            INSERT INTO poll_options (id, poll_id, text, position)
            VALUES (?, ?, ?, ?)
        """, [(new_id(), poll_id, text, position) for position, text in enumerate(options)])

        conn.commit()
        logger.info(f"Created poll {poll_id} with {len(options)} options")
        return poll_id
    except Exception as e:
        logger.error(f"Error creating poll: {e}")
        conn.rollback()
        raise


def update_poll(cursor, conn, poll_id, question, description):
    """Edit a poll's question and description"""
    try:
        cursor.execute("""
            UPDATE polls SET question = ?, description = ? WHERE id = ?
        """, (question, description, poll_id))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error updating poll {poll_id}: {e}")
        conn.rollback()
        raise


def set_poll_active(cursor, conn, poll_id, is_active):
    """Open or close a poll"""
    try:
        cursor.execute("UPDATE polls SET is_active = ? WHERE id = ?",
                       (1 if is_active else 0, poll_id))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error setting poll {poll_id} active={is_active}: {e}")
        conn.rollback()
        raise


def delete_poll(cursor, conn, poll_id):
    """Delete a poll (options, votes and comments cascade)"""
    try:
        cursor.execute("DELETE FROM polls WHERE id = ?", (poll_id,))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error deleting poll {poll_id}: {e}")
        conn.rollback()
        raise


# ==================== VOTE CRUD ====================

def add_vote(cursor, conn, user_id, poll_id, option_id):
    """Record a vote

    Raises:
        sqlite3.IntegrityError: If the user already voted on this poll
    """
    vote_id = new_id()
    try:
        cursor.execute("""
            INSERT INTO votes (id, user_id, poll_id, option_id, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (vote_id, user_id, poll_id, option_id, utc_now()))
        conn.commit()
        return vote_id
    except Exception as e:
        logger.error(f"Error recording vote on poll {poll_id}: {e}")
        conn.rollback()
        raise


# ==================== COMMENT CRUD ====================

def add_comment(cursor, conn, poll_id, user_id, content, parent_id=None):
    """Add a comment (or a reply when parent_id is set)"""
    comment_id = new_id()
    try:
        cursor.execute("""
            INSERT INTO poll_comments (id, poll_id, user_id, parent_id, content, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (comment_id, poll_id, user_id, parent_id, content, utc_now()))
        conn.commit()
        return comment_id
    except Exception as e:
        logger.error(f"Error adding comment to poll {poll_id}: {e}")
        conn.rollback()
        raise


def update_comment(cursor, conn, comment_id, content):
    """Edit a comment's content"""
    try:
        cursor.execute("""
            UPDATE poll_comments SET content = ?, updated_at = ? WHERE id = ?
        """, (content, utc_now(), comment_id))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error updating comment {comment_id}: {e}")
        conn.rollback()
        raise


def delete_comment(cursor, conn, comment_id):
    """Delete a comment (replies cascade)"""
    try:
        cursor.execute("DELETE FROM poll_comments WHERE id = ?", (comment_id,))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error deleting comment {comment_id}: {e}")
        conn.rollback()
        raise


# ==================== NOTIFICATION CRUD ====================

def create_notifications(cursor, conn, user_ids, notification_type, title, message, link=None):
    """Create the same notification for several users

    Returns:
        Number of notifications created
    """
    if not user_ids:
        return 0

    now = utc_now()
    try:
        cursor.executemany("""
            INSERT INTO notifications (id, user_id, type, title, message, link, is_read, created_at)
            VALUES (?, ?, ?, ?, ?, ?, 0, ?)
        """, [(new_id(), user_id, notification_type, title, message, link, now) for user_id in user_ids])
        conn.commit()
        logger.debug(f"Created {len(user_ids)} {notification_type} notifications")
        return len(user_ids)
    except Exception as e:
        logger.error(f"Error creating notifications: {e}")
        conn.rollback()
        raise


def mark_notifications_read(cursor, conn, user_id, notification_ids=None, link=None):
    """Mark a user's notifications as read

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        user_id: Owner of the notifications (other users' rows are never touched)
        notification_ids: Specific IDs to mark, or None for all unread
        link: Only mark notifications pointing at this link (optional)

    Returns:
        Number of notifications updated
    """
    where = ["user_id = ?", "is_read = 0"]
    params = [user_id]

    if notification_ids:
        placeholders = ', '.join('?' for _ in notification_ids)
        where.append(f"id IN ({placeholders})")
        params.extend(notification_ids)

    if link is not None:
        where.append("link = ?")
        params.append(link)

    try:
        cursor.execute(f"""
            UPDATE notifications SET is_read = 1
            WHERE {' AND '.join(where)}
        """, params)
        conn.commit()
        return cursor.rowcount
    except Exception as e:
        logger.error(f"Error marking notifications read for {user_id}: {e}")
        conn.rollback()
        raise


def delete_read_notifications_older_than(cursor, conn, days=30):
    """Delete read notifications older than the given number of days

    Returns:
        Number of notifications deleted
    """
    cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
    try:
        cursor.execute("""
            DELETE FROM notifications WHERE is_read = 1 AND created_at < ?
        """, (cutoff,))
        conn.commit()
        return cursor.rowcount
    except Exception as e:
        logger.error(f"Error deleting old notifications: {e}")
        conn.rollback()
        raise


# ==================== INFO ITEM CRUD ====================

def create_info_item(cursor, conn, title, description, content, item_type, visible_to='ALL'):
    """Add a resource to the vault"""
    item_id = new_id()
    try:
        cursor.execute("""
            INSERT INTO info_items (id, title, description, content, type, visible_to, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (item_id, title, description or '', content, item_type, visible_to, utc_now()))
        conn.commit()
        logger.info(f"Created {item_type} info item: {title}")
        return item_id
    except Exception as e:
        logger.error(f"Error creating info item {title}: {e}")
        conn.rollback()
        raise


def update_info_item(cursor, conn, item_id, title, description, content, item_type, visible_to='ALL'):
    """Replace an info item's fields

    Returns:
        True if updated, False if item not found
    """
    try:
        cursor.execute("""
            UPDATE info_items
            SET title = ?, description = ?, content = ?, type = ?, visible_to = ?
            WHERE id = ?
        """, (title, description or '', content, item_type, visible_to, item_id))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error updating info item {item_id}: {e}")
        conn.rollback()
        raise


def delete_info_item(cursor, conn, item_id):
    """Delete an info item

    Returns:
        True if deleted, False if item not found
    """
    try:
        cursor.execute("DELETE FROM info_items WHERE id = ?", (item_id,))
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        logger.error(f"Error deleting info item {item_id}: {e}")
        conn.rollback()
        raise
