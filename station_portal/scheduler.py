"""
APScheduler wrapper for Station Portal

This module provides a simple interface to APScheduler for maintenance jobs:
- BackgroundScheduler setup
- Daily activity log and read-notification cleanup
- Optional daily analytics regeneration
- Graceful shutdown support
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

ACTIVITY_CLEANUP_JOB = 'activity_cleanup_job'
NOTIFICATION_CLEANUP_JOB = 'notification_cleanup_job'
ANALYTICS_JOB = 'analytics_job'


class PortalScheduler:
    """Wrapper for APScheduler to manage background maintenance jobs

    Attributes:
        scheduler: BackgroundScheduler instance
    """

    def __init__(self):
        self.scheduler = BackgroundScheduler()

    def start(self):
        """Start the scheduler thread

        Returns:
            True if started, False if already running
        """
        if self.scheduler.running:
            logger.info("Scheduler already running")
            return False

        self.scheduler.start()
        logger.info(f"Scheduler started with jobs: {', '.join(self.job_ids()) or 'none'}")
        return True

    def _add_daily_job(self, func, job_id, name, hour, minute):
        if self.scheduler.get_job(job_id):
            logger.info(f"{name} already exists")
            return False

        self.scheduler.add_job(
            func,
            'cron',
            hour=hour,
            minute=minute,
            id=job_id,
            name=name
        )
        logger.info(f"{name} scheduled for daily at {hour:02d}:{minute:02d}")
        return True

    def add_cleanup_jobs(self, activity_cleanup_func, notification_cleanup_func, hour=4, minute=0):
        """Add daily cleanup jobs for activity logs and read notifications

        Args:
            activity_cleanup_func: Function to call for activity cleanup (no args)
            notification_cleanup_func: Function to call for notification cleanup (no args)
            hour: Hour to run cleanup (default: 4 AM)
            minute: Minute to run cleanup (default: 0)

        Returns:
            True if added successfully, False on error
        """
        try:
            self._add_daily_job(activity_cleanup_func, ACTIVITY_CLEANUP_JOB,
                                'Activity Log Cleanup Job', hour, minute)
            # Notification cleanup 10 minutes after activity cleanup
            self._add_daily_job(notification_cleanup_func, NOTIFICATION_CLEANUP_JOB,
                                'Notification Cleanup Job', hour, (minute + 10) % 60)
            return True

        except Exception as e:
            logger.error(f"Error adding cleanup jobs: {e}")
            return False

    def add_analytics_job(self, analytics_func, hour=2, minute=0):
        """Add daily analytics regeneration job

        Returns:
            True if added, False if already exists or error
        """
        try:
            return self._add_daily_job(analytics_func, ANALYTICS_JOB,
                                       'Listener Analytics Job', hour, minute)
        except Exception as e:
            logger.error(f"Error adding analytics job: {e}")
            return False

    def job_ids(self):
        """IDs of all scheduled jobs"""
        return [job.id for job in self.scheduler.get_jobs()]

    def shutdown(self, wait=True):
        """Shutdown scheduler (graceful shutdown)

        Args:
            wait: Wait for running jobs to complete (default: True)
        """
        if not self.scheduler.running:
            return
        try:
            logger.info("Shutting down scheduler...")
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shut down")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")
