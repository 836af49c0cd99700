import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock, patch
from replaycoach.database import get_db
from replaycoach.models import Booking, ReplaySubmission
from replaycoach.models.booking import BookingStatus
from replaycoach.models.submission import SubmissionStatus
from replaycoach.services.reminder_service import ReminderScheduler

NOW = datetime(2030, 1, 7, 12, 0)


def add_booking(offset, status=BookingStatus.SCHEDULED, discord_id='42'):
    with get_db() as db:
        submission = ReplaySubmission(
            email='player@example.com',
            coaching_type='live-coaching',
            rank='Gold',
            role='Tank',
            status=SubmissionStatus.PAYMENT_RECEIVED,
            discord_id=discord_id,
            discord_username='player'
        )
        db.add(submission)
        db.flush()
        booking = Booking(
            email='player@example.com',
            session_type='live-coaching',
            scheduled_at=NOW + offset,
            status=status,
            submission_id=submission.id
        )
        db.add(booking)
        db.flush()
        return booking.id


@pytest.fixture
def notifications():
    service = Mock()
    service.send_booking_reminder.return_value = {'success': True, 'error': None}
    service.send_admin_booking_reminder.return_value = {'success': True, 'error': None}
    return service


@pytest.fixture
def scheduler(notifications):
    reminder_scheduler = ReminderScheduler(notification_service=notifications)
    yield reminder_scheduler
    reminder_scheduler.stop()


class TestReminderSelection:
    """Test which bookings are due for a reminder"""

    def test_windows(self, scheduler):
        in_24h = add_booking(timedelta(hours=24))
        early_24h = add_booking(timedelta(hours=24, minutes=-5))
        late_24h = add_booking(timedelta(hours=24, minutes=5))
        add_booking(timedelta(hours=24, minutes=6))
        add_booking(timedelta(hours=23, minutes=54))
        in_30m = add_booking(timedelta(minutes=33))
        early_30m = add_booking(timedelta(minutes=25))
        late_30m = add_booking(timedelta(minutes=35))
        add_booking(timedelta(minutes=36))
        add_booking(timedelta(minutes=24))
        add_booking(timedelta(hours=2))

        due = {(booking['id'], kind) for booking, kind in scheduler.find_due_reminders(NOW)}

        assert due == {
            (in_24h, '24h'), (early_24h, '24h'), (late_24h, '24h'),
            (in_30m, '30m'), (early_30m, '30m'), (late_30m, '30m'),
        }

    def test_only_scheduled_bookings(self, scheduler):
        add_booking(timedelta(hours=24), status=BookingStatus.PENDING)
        add_booking(timedelta(hours=24), status=BookingStatus.CANCELLED)
        add_booking(timedelta(minutes=30), status=BookingStatus.COMPLETED)

        assert scheduler.find_due_reminders(NOW) == []

    def test_reminder_carries_discord_identity(self, scheduler):
        add_booking(timedelta(minutes=30), discord_id='777')

        [(booking, kind)] = scheduler.find_due_reminders(NOW)
        assert kind == '30m'
        assert booking['discordId'] == '777'
        assert booking['discordUsername'] == 'player'


class TestReminderScan:
    """Test sending reminders"""

    def test_scan_sends_each_reminder_once(self, scheduler, notifications):
        add_booking(timedelta(hours=24))
        add_booking(timedelta(minutes=30))

        assert scheduler.run_scan(NOW) == {'sent': 2, 'skipped': 0, 'failed': 0}
        assert notifications.send_booking_reminder.call_count == 2
        notifications.send_admin_booking_reminder.assert_called_once()

        # Next poll lands in the same windows
        assert scheduler.run_scan(NOW + timedelta(minutes=5)) == {'sent': 0, 'skipped': 2, 'failed': 0}
        assert notifications.send_booking_reminder.call_count == 2

    def test_failures_are_retried_next_scan(self, scheduler, notifications):
        add_booking(timedelta(hours=24))
        notifications.send_booking_reminder.return_value = {'success': False, 'error': 'DMs closed'}

        assert scheduler.run_scan(NOW)['failed'] == 1

        notifications.send_booking_reminder.return_value = {'success': True, 'error': None}
        assert scheduler.run_scan(NOW)['sent'] == 1

    def test_one_failure_does_not_stop_scan(self, scheduler, notifications):
        add_booking(timedelta(hours=24))
        add_booking(timedelta(hours=24, minutes=1))
        notifications.send_booking_reminder.side_effect = [
            RuntimeError('boom'),
            {'success': True, 'error': None},
        ]

        assert scheduler.run_scan(NOW) == {'sent': 1, 'skipped': 0, 'failed': 1}

    def test_sent_reminders_are_forgotten_after_session(self, scheduler):
        add_booking(timedelta(hours=24))
        add_booking(timedelta(minutes=30))

        scheduler.run_scan(NOW)
        assert scheduler.status()['remindersSent'] == 2

        # 30m reminder entry goes once its session has started, the 24h one a day later
        scheduler.run_scan(NOW + timedelta(hours=1))
        assert scheduler.status()['remindersSent'] == 1

        scheduler.run_scan(NOW + timedelta(hours=25))
        assert scheduler.status()['remindersSent'] == 0

    def test_admin_reminder_counts_for_30m(self, scheduler, notifications):
        add_booking(timedelta(minutes=30), discord_id=None)
        notifications.send_booking_reminder.return_value = {
            'success': False, 'error': 'Client has not connected Discord account'
        }

        assert scheduler.run_scan(NOW)['sent'] == 1


class TestSchedulerLifecycle:
    """Test start/stop of the polling loop"""

    def test_start_is_idempotent(self, scheduler):
        with patch.object(scheduler, 'run_scan'):
            assert scheduler.start() is True
            assert scheduler.is_running() is True
            assert scheduler.start() is False

            scheduler.stop()
            assert scheduler.is_running() is False

    def test_status(self, scheduler):
        status = scheduler.status()
        assert status['isRunning'] is False
        assert status['checkInterval'] == '5 minutes'
        assert len(status['reminderWindows']) == 2

    def test_stop_start_cycles_register_one_exit_hook(self, scheduler):
        with patch.object(scheduler, 'run_scan'), \
                patch('replaycoach.services.reminder_service.atexit.register') as mock_register:
            for _ in range(3):
                assert scheduler.start() is True
                scheduler.stop()

        mock_register.assert_called_once_with(scheduler.stop)
