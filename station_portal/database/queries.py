"""
Database query methods for Station Portal

This module contains all SELECT query methods for retrieving data from the database.
All methods return data structures (dicts, lists) and do not modify the database.

Query Categories:
- User queries: get_user_by_id, get_user_by_email, get_all_users, get_team_members
- Poll queries: get_poll, get_vote, get_polls_for_user, get_all_polls_with_counts
- Comment queries: get_comment
- Notification queries: count_unread_notifications, get_unread_notifications
- Info item queries: get_all_info_items, get_info_item
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Columns safe to send to clients (no hashes)
PUBLIC_USER_COLUMNS = "id, name, email, role, timezone, job_title, discord_id, image, created_at"


def _fetch_dicts(cursor):
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def _fetch_dict(cursor):
    row = cursor.fetchone()
    if not row:
        return None
    columns = [desc[0] for desc in cursor.description]
    return dict(zip(columns, row))


def is_expired(expires_at, now=None):
    """Check whether an ISO expiry timestamp is in the past

    Args:
        expires_at: ISO-8601 string or None (never expires)
        now: Reference time (default: current UTC time)

    Returns:
        True if expired, False otherwise
    """
    if not expires_at:
        return False
    expiry = datetime.fromisoformat(expires_at)
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry < (now or datetime.now(timezone.utc))


# ==================== USER QUERIES ====================

def get_user_by_id(cursor, user_id, include_secrets=False):
    """Get a user by ID

    Args:
        cursor: SQLite cursor object
        user_id: User ID
        include_secrets: Include password/secure word hashes (default: False)

    Returns:
        User dict or None
    """
    columns = "*" if include_secrets else PUBLIC_USER_COLUMNS
    cursor.execute(f"SELECT {columns} FROM users WHERE id = ?", (user_id,))
    return _fetch_dict(cursor)


def get_user_by_email(cursor, email):
    """Get a user by email, including hashes (used for login)"""
    cursor.execute("SELECT * FROM users WHERE email = ?", (email,))
    return _fetch_dict(cursor)


def get_all_users(cursor):
    """Get all users, newest first (no hashes)"""
    cursor.execute(f"SELECT {PUBLIC_USER_COLUMNS} FROM users ORDER BY created_at DESC")
    return _fetch_dicts(cursor)


def get_team_members(cursor):
    """Get the staff directory ordered by name

    Returns:
        List of dicts with name, email, role, job_title, timezone
    """
    cursor.execute("""
        SELECT name, email, role, job_title, timezone
        FROM users
        ORDER BY name COLLATE NOCASE ASC
    """)
    return _fetch_dicts(cursor)


def get_user_ids_except(cursor, user_id):
    """Get the IDs of every user except one"""
    cursor.execute("SELECT id FROM users WHERE id != ?", (user_id,))
    return [row[0] for row in cursor.fetchall()]


# ==================== POLL QUERIES ====================

def get_poll(cursor, poll_id):
    """Get a poll with its options

    Returns:
        Poll dict with an 'options' list, or None
    """
    cursor.execute("SELECT * FROM polls WHERE id = ?", (poll_id,))
    poll = _fetch_dict(cursor)
    if not poll:
        return None

    cursor.execute("""
        SELECT id, text FROM poll_options WHERE poll_id = ? ORDER BY position
    """, (poll_id,))
    poll['options'] = _fetch_dicts(cursor)
    poll['is_active'] = bool(poll['is_active'])
    return poll


def get_vote(cursor, user_id, poll_id):
    """Get a user's vote on a poll, or None"""
    cursor.execute("""
        SELECT id, option_id, created_at FROM votes WHERE user_id = ? AND poll_id = ?
    """, (user_id, poll_id))
    return _fetch_dict(cursor)


def _get_poll_comments(cursor, poll_id):
    """Get a poll's comments threaded as top-level comments with replies"""
    cursor.execute("""
        SELECT c.id, c.parent_id, c.content, c.created_at, c.updated_at,
               u.id AS user_id, u.name AS user_name, u.image AS user_image
        FROM poll_comments c
        JOIN users u ON u.id = c.user_id
        WHERE c.poll_id = ?
        ORDER BY c.created_at ASC
    """, (poll_id,))
    rows = _fetch_dicts(cursor)

    top_level = []
    by_id = {}
    for row in rows:
        comment = {
            'id': row['id'],
            'content': row['content'],
            'created_at': row['created_at'],
            'updated_at': row['updated_at'],
            'user': {'id': row['user_id'], 'name': row['user_name'], 'image': row['user_image']},
        }
        if row['parent_id'] is None:
            comment['replies'] = []
            top_level.append(comment)
            by_id[row['id']] = comment

    for row in rows:
        parent = by_id.get(row['parent_id'])
        if parent is not None:
            parent['replies'].append({
                'id': row['id'],
                'content': row['content'],
                'created_at': row['created_at'],
                'updated_at': row['updated_at'],
                'user': {'id': row['user_id'], 'name': row['user_name'], 'image': row['user_image']},
            })

    return top_level, len(rows)


def get_polls_for_user(cursor, user_id):
    """Get every poll as seen by one user, newest first

    Each poll carries its creator, options with vote counts and voter names,
    the option this user voted for, totals, expiry state, voters, and
    threaded comments.

    Args:
        cursor: SQLite cursor object
        user_id: The viewing user's ID

    Returns:
        List of poll dicts
    """
    cursor.execute("""
        SELECT p.*, u.name AS created_by_name, u.image AS created_by_image
        FROM polls p
        JOIN users u ON u.id = p.created_by_id
        ORDER BY p.created_at DESC
    """)
    polls = _fetch_dicts(cursor)

    for poll in polls:
        cursor.execute("""
            SELECT o.id AS option_id, o.text, v.user_id, u.name AS user_name
            FROM poll_options o
            LEFT JOIN votes v ON v.option_id = o.id
            LEFT JOIN users u ON u.id = v.user_id
            WHERE o.poll_id = ?
            ORDER BY o.position, v.created_at
        """, (poll['id'],))

        options = {}
        voters = []
        seen_voters = set()
        for row in _fetch_dicts(cursor):
            option = options.setdefault(row['option_id'], {
                'id': row['option_id'],
                'text': row['text'],
                'votes': 0,
                'voters': [],
            })
            if row['user_id']:
                option['votes'] += 1
                option['voters'].append({'id': row['user_id'], 'name': row['user_name']})
                if row['user_id'] not in seen_voters:
                    seen_voters.add(row['user_id'])
                    voters.append({'id': row['user_id'], 'name': row['user_name']})

        own_vote = get_vote(cursor, user_id, poll['id'])
        comments, comment_count = _get_poll_comments(cursor, poll['id'])

        poll['is_active'] = bool(poll['is_active'])
        poll['created_by'] = {'name': poll.pop('created_by_name'), 'image': poll.pop('created_by_image')}
        poll['options'] = list(options.values())
        poll['user_voted_option_id'] = own_vote['option_id'] if own_vote else None
        poll['total_votes'] = sum(o['votes'] for o in poll['options'])
        poll['comment_count'] = comment_count
        poll['is_expired'] = is_expired(poll['expires_at'])
        poll['voters'] = voters
        poll['voter_ids'] = [v['id'] for v in voters]
        poll['comments'] = comments

    return polls


def get_all_polls_with_counts(cursor):
    """Get all polls with creator name, option vote counts and totals

    Used by the assistant's poll search.
    """
    cursor.execute("""
        SELECT p.id, p.question, p.description, p.is_active, p.created_at, p.expires_at,
               u.name AS created_by,
               (SELECT COUNT(*) FROM votes v WHERE v.poll_id = p.id) AS total_votes,
               (SELECT COUNT(*) FROM poll_comments c WHERE c.poll_id = p.id) AS total_comments
        FROM polls p
        JOIN users u ON u.id = p.created_by_id
        ORDER BY p.created_at DESC
    """)
    polls = _fetch_dicts(cursor)

    for poll in polls:
        cursor.execute("""
            SELECT o.text, COUNT(v.id) AS votes
            FROM poll_options o
            LEFT JOIN votes v ON v.option_id = o.id
            WHERE o.poll_id = ?
            GROUP BY o.id
            ORDER BY o.position
        """, (poll['id'],))
        poll['options'] = _fetch_dicts(cursor)
        poll['is_active'] = bool(poll['is_active'])

    return polls


# ==================== COMMENT QUERIES ====================

def get_comment(cursor, comment_id):
    """Get a single comment row, or None"""
    cursor.execute("SELECT * FROM poll_comments WHERE id = ?", (comment_id,))
    return _fetch_dict(cursor)


# ==================== NOTIFICATION QUERIES ====================

def count_unread_notifications(cursor, user_id):
    """Count a user's unread notifications"""
    cursor.execute("""
        SELECT COUNT(*) FROM notifications WHERE user_id = ? AND is_read = 0
    """, (user_id,))
    return cursor.fetchone()[0]


def get_unread_notifications(cursor, user_id, limit=10):
    """Get a user's unread notifications, newest first"""
    cursor.execute("""
        SELECT id, type, title, message, link, is_read, created_at
        FROM notifications
        WHERE user_id = ? AND is_read = 0
        ORDER BY created_at DESC
        LIMIT ?
    """, (user_id, limit))
    notifications = _fetch_dicts(cursor)
    for notification in notifications:
        notification['is_read'] = bool(notification['is_read'])
    return notifications


# ==================== INFO ITEM QUERIES ====================

def get_all_info_items(cursor):
    """Get all info items, newest first"""
    cursor.execute("""
        SELECT id, title, description, content, type, visible_to, created_at
        FROM info_items
        ORDER BY created_at DESC
    """)
    return _fetch_dicts(cursor)


def get_info_item(cursor, item_id):
    """Get a single info item, or None"""
    cursor.execute("SELECT * FROM info_items WHERE id = ?", (item_id,))
    return _fetch_dict(cursor)
