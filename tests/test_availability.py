import pytest
from datetime import date, datetime
from pydantic import ValidationError
from replaycoach.database import get_db
from replaycoach.errors import Conflict, NotFound, ValidationFailed
from replaycoach.models import Booking
from replaycoach.models.booking import BookingStatus
from replaycoach.schemas import ExceptionCreate, ExceptionQuery, SlotCreate, SlotUpdate
from replaycoach.services.availability_service import (
    AvailabilityService, day_of_week, intervals_overlap, local_to_utc, utc_to_local
)

# 2030-01-07 is a Monday; New York is UTC-5 in January
MONDAY = '2030-01-07'
BEFORE = datetime(2030, 1, 1)


@pytest.fixture
def availability_service():
    return AvailabilityService()


def make_slot(service, day=1, start='09:00', end='10:00', session_type='vod-review', **kwargs):
    return service.create_slot(SlotCreate(
        day_of_week=day, start_time=start, end_time=end, session_type=session_type, **kwargs
    ))


def make_booking(scheduled_at, session_type='vod-review', status=BookingStatus.SCHEDULED):
    service = AvailabilityService()
    with get_db() as db:
        booking = Booking(
            email='player@example.com',
            session_type=session_type,
            scheduled_at=scheduled_at,
            status=status
        )
        db.add(booking)
        db.flush()
        service.reserve_time(db, booking)
        return booking.id


class TestOverlapRules:
    """Test slot overlap validation"""

    def test_touching_intervals_do_not_overlap(self):
        assert intervals_overlap(540, 600, 600, 660) is False
        assert intervals_overlap(540, 600, 570, 630) is True
        assert intervals_overlap(540, 660, 570, 600) is True

    def test_overlapping_slot_rejected_adjacent_accepted(self, availability_service):
        make_slot(availability_service, start='09:00', end='10:00')

        with pytest.raises(Conflict) as exc:
            make_slot(availability_service, start='09:30', end='10:30')
        assert exc.value.message == 'This time slot overlaps with an existing slot'

        adjacent = make_slot(availability_service, start='10:00', end='11:00')
        assert adjacent['startTime'] == '10:00'
        assert len(availability_service.list_slots()) == 2

    def test_overlap_only_within_same_day_and_type(self, availability_service):
        make_slot(availability_service, start='09:00', end='10:00')

        make_slot(availability_service, day=2, start='09:00', end='10:00')
        make_slot(availability_service, start='09:00', end='10:00', session_type='live-coaching')

        assert len(availability_service.list_slots()) == 3

    def test_inactive_slots_do_not_block(self, availability_service):
        make_slot(availability_service, start='09:00', end='10:00', is_active=False)
        slot = make_slot(availability_service, start='09:30', end='10:30')
        assert slot['isActive'] is True

    def test_end_must_be_after_start(self, availability_service):
        with pytest.raises(ValidationFailed):
            make_slot(availability_service, start='10:00', end='10:00')
        with pytest.raises(ValidationFailed):
            make_slot(availability_service, start='11:00', end='10:00')

    def test_time_format_validated(self):
        with pytest.raises(ValidationError):
            SlotCreate(day_of_week=1, start_time='9am', end_time='10:00', session_type='vod-review')
        with pytest.raises(ValidationError):
            SlotCreate(day_of_week=7, start_time='09:00', end_time='10:00', session_type='vod-review')

    def test_single_digit_hours_are_normalized(self):
        slot = SlotCreate(day_of_week=1, start_time='9:00', end_time='10:00', session_type='vod-review')
        assert slot.start_time == '09:00'


class TestSlotUpdates:
    """Test partial slot updates"""

    def test_update_rechecks_overlap_excluding_itself(self, availability_service):
        first = make_slot(availability_service, start='09:00', end='10:00')
        second = make_slot(availability_service, start='10:00', end='11:00')

        # Growing into its own range is fine
        updated = availability_service.update_slot(first['id'], SlotUpdate(start_time='08:00'))
        assert updated['startTime'] == '08:00'

        with pytest.raises(Conflict):
            availability_service.update_slot(second['id'], SlotUpdate(start_time='09:30'))

    def test_deactivating_skips_overlap_check(self, availability_service):
        make_slot(availability_service, start='09:00', end='10:00')
        second = make_slot(availability_service, start='10:00', end='11:00')

        updated = availability_service.update_slot(
            second['id'], SlotUpdate(start_time='09:30', is_active=False)
        )
        assert updated['isActive'] is False
        assert updated['startTime'] == '09:30'

    def test_update_rejects_inverted_range(self, availability_service):
        slot = make_slot(availability_service)
        with pytest.raises(ValidationFailed):
            availability_service.update_slot(slot['id'], SlotUpdate(end_time='08:00'))

    def test_update_missing_slot(self, availability_service):
        with pytest.raises(NotFound):
            availability_service.update_slot(999, SlotUpdate(is_active=False))

    def test_delete_refused_with_future_bookings(self, availability_service):
        slot = make_slot(availability_service)
        make_booking(local_to_utc(datetime(2030, 1, 7, 9, 0)))

        with pytest.raises(Conflict) as exc:
            availability_service.delete_slot(slot['id'], now=BEFORE)
        assert exc.value.extra['futureBookings'] == 1

    def test_delete_slot(self, availability_service):
        slot = make_slot(availability_service)
        availability_service.delete_slot(slot['id'])
        assert availability_service.list_slots() == []


class TestExceptions:
    """Test blocked dates and booked time"""

    def test_end_date_after_start(self):
        with pytest.raises(ValidationError):
            ExceptionCreate(date='2030-01-07T14:00:00Z', end_date='2030-01-07T14:00:00Z', reason='blocked')

    def test_block_cannot_cover_booking(self, availability_service):
        booking_id = make_booking(datetime(2030, 1, 7, 14, 0))

        with pytest.raises(Conflict) as exc:
            availability_service.create_exception(ExceptionCreate(
                date='2030-01-07T13:00:00Z', end_date='2030-01-07T18:00:00Z', reason='blocked'
            ))
        assert exc.value.extra['conflictingBookings'] == [booking_id]

    def test_booked_exception_cannot_be_deleted(self, availability_service):
        make_booking(datetime(2030, 1, 7, 14, 0))
        booked = availability_service.list_exceptions(ExceptionQuery(reason='booked'))

        assert len(booked) == 1
        assert booked[0]['notes'].startswith('Booking ID:')
        with pytest.raises(Conflict):
            availability_service.delete_exception(booked[0]['id'])

    def test_create_and_delete_block(self, availability_service):
        exception = availability_service.create_exception(ExceptionCreate(
            date='2030-01-07T00:00:00Z', end_date='2030-01-08T00:00:00Z', reason='holiday', notes='Day off'
        ))
        assert exception['reason'] == 'holiday'

        availability_service.delete_exception(exception['id'])
        assert availability_service.list_exceptions(ExceptionQuery()) == []

    def test_double_booking_rejected(self):
        make_booking(datetime(2030, 1, 7, 14, 0))
        with pytest.raises(Conflict) as exc:
            make_booking(datetime(2030, 1, 7, 14, 30))
        assert exc.value.message == 'This time slot is no longer available'


class TestAvailableSlots:
    """Test public open start times"""

    def test_day_of_week_starts_sunday(self):
        assert day_of_week(date(2030, 1, 6)) == 0
        assert day_of_week(date(2030, 1, 7)) == 1
        assert day_of_week(date(2030, 1, 12)) == 6

    def test_timezone_conversion(self):
        utc = local_to_utc(datetime(2030, 1, 7, 9, 0))
        assert utc == datetime(2030, 1, 7, 14, 0)
        assert utc_to_local(utc).hour == 9

    def test_slots_expand_by_duration(self, availability_service):
        make_slot(availability_service, start='09:00', end='11:00')

        result = availability_service.get_available_slots(MONDAY, 'vod-review', now=BEFORE)

        assert result['dayOfWeek'] == 1
        assert [s['datetime'] for s in result['availableSlots']] == [
            '2030-01-07T14:00:00Z', '2030-01-07T15:00:00Z'
        ]
        assert result['availableSlots'][0]['time'] == '9:00 AM'

    def test_booked_and_blocked_times_removed(self, availability_service):
        make_slot(availability_service, start='09:00', end='12:00')
        make_booking(datetime(2030, 1, 7, 14, 0))
        availability_service.create_exception(ExceptionCreate(
            date='2030-01-07T16:00:00Z', end_date='2030-01-07T17:00:00Z', reason='blocked'
        ))

        result = availability_service.get_available_slots(MONDAY, 'vod-review', now=BEFORE)
        assert [s['datetime'] for s in result['availableSlots']] == ['2030-01-07T15:00:00Z']

    def test_lead_time_and_other_session_types(self, availability_service):
        make_slot(availability_service, start='09:00', end='11:00')
        make_slot(availability_service, start='09:00', end='11:00', session_type='live-coaching')

        # 13:50Z is inside the 15 minute lead before the 14:00Z start
        result = availability_service.get_available_slots(
            MONDAY, 'vod-review', now=datetime(2030, 1, 7, 13, 50)
        )
        assert [s['datetime'] for s in result['availableSlots']] == ['2030-01-07T15:00:00Z']

    def test_no_slots_configured(self, availability_service):
        result = availability_service.get_available_slots(MONDAY, 'live-coaching', now=BEFORE)
        assert result['availableSlots'] == []
        assert 'message' in result

    def test_invalid_date(self, availability_service):
        with pytest.raises(ValidationFailed):
            availability_service.get_available_slots('2030-13-40', 'vod-review')
