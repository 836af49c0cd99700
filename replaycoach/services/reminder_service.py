import atexit
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List, Tuple
from apscheduler.schedulers.background import BackgroundScheduler
from replaycoach.database import get_db
from replaycoach.models import Booking
from replaycoach.models.booking import BookingStatus
from replaycoach.services.notification_service import NotificationService
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

JOB_ID = 'booking_reminders'

# kind -> lead time before the session
REMINDER_LEADS = {
    '24h': timedelta(hours=24),
    '30m': timedelta(minutes=30),
}


def reminder_dict(booking: Booking) -> Dict:
    data = booking.to_dict()
    submission = booking.submission
    data['discordId'] = submission.discord_id if submission else None
    data['discordUsername'] = submission.discord_username if submission else None
    return data


class ReminderScheduler:
    """Polls for upcoming sessions and sends Discord reminders.

    Already-sent (booking, kind) pairs are remembered in memory only, so a
    restart inside a reminder window can send that reminder twice.
    """

    def __init__(self, notification_service: NotificationService = None,
                 interval_minutes: int = None, window_minutes: int = None):
        self.notifications = notification_service or NotificationService()
        self.interval_minutes = interval_minutes or Config.REMINDER_INTERVAL_MINUTES
        self.window = timedelta(minutes=window_minutes or Config.REMINDER_WINDOW_MINUTES)
        self.scheduler = None
        # (booking id, kind) -> time after which that reminder can no longer come due
        self._sent = {}
        self._lock = Lock()
        self._exit_hook_registered = False

    def start(self) -> bool:
        """Start polling; a second call while running does nothing"""
        with self._lock:
            if self.is_running():
                logger.info("Reminder scheduler already running")
                return False

            self.scheduler = BackgroundScheduler()
            self.scheduler.add_job(
                self.run_scan,
                'interval',
                minutes=self.interval_minutes,
                id=JOB_ID,
                next_run_time=datetime.now(),
                max_instances=1,
                coalesce=True
            )
            self.scheduler.start()
            if not self._exit_hook_registered:
                atexit.register(self.stop)
                self._exit_hook_registered = True

        logger.info(f"Reminder scheduler started, checking every {self.interval_minutes} minutes")
        return True

    def stop(self):
        with self._lock:
            if self.scheduler and self.scheduler.running:
                self.scheduler.shutdown(wait=False)
                logger.info("Reminder scheduler stopped")
            self.scheduler = None

    def is_running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def find_due_reminders(self, now: datetime = None) -> List[Tuple[Dict, str]]:
        """SCHEDULED bookings whose start is within the window around each lead time"""
        now = now or datetime.utcnow()
        due = []
        with get_db() as db:
            for kind, lead in REMINDER_LEADS.items():
                bookings = db.query(Booking).filter(
                    Booking.status == BookingStatus.SCHEDULED,
                    Booking.scheduled_at >= now + lead - self.window,
                    Booking.scheduled_at <= now + lead + self.window
                ).order_by(Booking.scheduled_at.asc()).all()
                due.extend((reminder_dict(booking), kind) for booking in bookings)
        return due

    def run_scan(self, now: datetime = None) -> Dict:
        """Send every due reminder not sent yet. One failure never stops the scan."""
        now = now or datetime.utcnow()
        sent = skipped = failed = 0

        try:
            due = self.find_due_reminders(now)
        except Exception as e:
            logger.error(f"Error querying bookings for reminders: {str(e)}")
            return {'sent': 0, 'skipped': 0, 'failed': 0}

        self._prune_sent(now)
        for booking, kind in due:
            key = (booking['id'], kind)
            if key in self._sent:
                skipped += 1
                continue

            try:
                if self._send(booking, kind):
                    self._sent[key] = now + REMINDER_LEADS[kind] + self.window
                    sent += 1
                else:
                    failed += 1
            except Exception as e:
                logger.error(f"Error sending {kind} reminder for booking {booking['id']}: {str(e)}")
                failed += 1

        if due:
            logger.info(f"Reminder scan: {sent} sent, {skipped} already sent, {failed} failed")
        return {'sent': sent, 'skipped': skipped, 'failed': failed}

    def _prune_sent(self, now: datetime):
        for key, expires_at in list(self._sent.items()):
            if expires_at < now:
                del self._sent[key]

    def _send(self, booking: Dict, kind: str) -> bool:
        client = self.notifications.send_booking_reminder(booking, kind)
        if kind == '24h':
            return client['success']

        admin = self.notifications.send_admin_booking_reminder(booking)
        return client['success'] or admin['success']

    def status(self) -> Dict:
        return {
            'isRunning': self.is_running(),
            'checkInterval': f"{self.interval_minutes} minutes",
            'reminderWindows': [
                f"{kind} before session (±{int(self.window.total_seconds() // 60)} minutes)"
                for kind in REMINDER_LEADS
            ],
            'remindersSent': len(self._sent),
        }
