"""
Cleanup functions for Station Portal

This module provides scheduled maintenance functions for:
- Activity log entries (keep 90 days)
- Read notifications (keep 30 days)
- Listener analytics regeneration from a configured CSV export
"""

import os
import logging
from datetime import datetime

logger = logging.getLogger(__name__)


def cleanup_activity_logs(db, days=90):
    """Clean up old activity log entries

    Args:
        db: PortalDatabase instance
        days: Retention period in days (default: 90)

    Returns:
        int: Number of entries deleted
    """
    if not db:
        logger.warning("Database not provided for activity cleanup")
        return 0

    try:
        deleted = db.cleanup_old_activity(days=days)

        if deleted > 0:
            logger.info(f"Cleaned up {deleted} old activity log entries (older than {days} days)")

        return deleted

    except Exception as e:
        logger.error(f"Error during activity log cleanup: {e}")
        return 0


def cleanup_read_notifications(db, days=30):
    """Delete notifications that were read more than `days` days ago

    Args:
        db: PortalDatabase instance
        days: Retention period in days (default: 30)

    Returns:
        int: Number of notifications deleted
    """
    if not db:
        logger.warning("Database not provided for notification cleanup")
        return 0

    try:
        deleted = db.delete_read_notifications_older_than(days=days)

        if deleted > 0:
            logger.info(f"Cleaned up {deleted} read notifications (older than {days} days)")

        return deleted

    except Exception as e:
        logger.error(f"Error during notification cleanup: {e}")
        return 0


def regenerate_analytics(settings):
    """Rebuild the analytics JSON from the configured listener CSV

    Args:
        settings: Settings dict (maintenance.analytics_csv, portal.analytics_file)

    Returns:
        True if regenerated, False if not configured or failed
    """
    from station_portal.analytics import DEFAULT_ANALYTICS_FILE, process_listener_csv

    csv_path = settings.get('maintenance', {}).get('analytics_csv')
    if not csv_path:
        return False

    if not os.path.exists(csv_path):
        logger.warning(f"Analytics CSV not found: {csv_path}")
        return False

    output_path = settings.get('portal', {}).get('analytics_file', DEFAULT_ANALYTICS_FILE)
    try:
        process_listener_csv(csv_path, output_path)
        return True
    except Exception as e:
        logger.error(f"Error regenerating analytics from {csv_path}: {e}")
        return False


def run_all_cleanup(db, settings=None):
    """Run all cleanup jobs

    Args:
        db: PortalDatabase instance
        settings: Settings dict (optional, will load if not provided)

    Returns:
        dict: Cleanup results
    """
    if not settings:
        from station_portal.gui import load_settings
        settings = load_settings()

    maintenance = settings.get('maintenance', {}) if settings else {}
    activity_retention = maintenance.get('activity_retention_days', 90)
    notification_retention = maintenance.get('notification_retention_days', 30)

    results = {
        'activity_deleted': cleanup_activity_logs(db, days=activity_retention),
        'notifications_deleted': cleanup_read_notifications(db, days=notification_retention),
        'timestamp': datetime.now().isoformat()
    }

    logger.info(f"Cleanup complete: {results}")
    return results
