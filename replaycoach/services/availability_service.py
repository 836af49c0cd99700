from datetime import datetime, date, timedelta, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from config.config import Config
from replaycoach.database import get_db
from replaycoach.errors import Conflict, NotFound, ValidationFailed
from replaycoach.models import AvailabilitySlot, AvailabilityException
from replaycoach.schemas import SlotCreate, SlotUpdate, ExceptionCreate, ExceptionQuery
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

BOOKED = 'booked'


def parse_time_to_minutes(value: str) -> int:
    """"HH:MM" -> minutes since midnight"""
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open interval overlap; intervals that only touch do not overlap"""
    return start_a < end_b and end_a > start_b


def find_overlapping_slot(start_time: str, end_time: str,
                          slots: Iterable[AvailabilitySlot]) -> Optional[AvailabilitySlot]:
    """First slot whose time range overlaps [start_time, end_time), if any"""
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    for slot in slots:
        if intervals_overlap(start, end, parse_time_to_minutes(slot.start_time),
                             parse_time_to_minutes(slot.end_time)):
            return slot
    return None


def business_timezone() -> ZoneInfo:
    return ZoneInfo(Config.BUSINESS_TIMEZONE)


def local_to_utc(value: datetime) -> datetime:
    """Business-local wall clock -> naive UTC"""
    return value.replace(tzinfo=business_timezone()).astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(value: datetime) -> datetime:
    """Naive UTC -> aware business-local datetime"""
    return value.replace(tzinfo=timezone.utc).astimezone(business_timezone())


def day_of_week(value: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (value.weekday() + 1) % 7


def format_clock(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = 'AM' if value.hour < 12 else 'PM'
    return f"{hour}:{value.minute:02d} {suffix}"


class AvailabilityService:
    """Weekly availability slots, date exceptions and open booking times"""

    # Slots

    def _check_overlap(self, db, day: int, session_type: str, start_time: str,
                       end_time: str, exclude_id: int = None):
        query = db.query(AvailabilitySlot).filter(
            AvailabilitySlot.day_of_week == day,
            AvailabilitySlot.session_type == session_type,
            AvailabilitySlot.is_active == True  # noqa: E712
        )
        if exclude_id is not None:
            query = query.filter(AvailabilitySlot.id != exclude_id)

        overlapping = find_overlapping_slot(start_time, end_time, query.all())
        if overlapping:
            logger.info(
                f"Rejected slot {start_time}-{end_time} on day {day}: "
                f"overlaps slot {overlapping.id} ({overlapping.start_time}-{overlapping.end_time})"
            )
            raise Conflict("This time slot overlaps with an existing slot")

    @staticmethod
    def _check_order(start_time: str, end_time: str):
        if parse_time_to_minutes(end_time) <= parse_time_to_minutes(start_time):
            raise ValidationFailed("End time must be after start time")

    def list_slots(self, session_type: str = None, is_active: bool = None, now: datetime = None) -> List[dict]:
        """All slots ordered by day then start time, each with its upcoming exceptions"""
        now = now or datetime.utcnow()
        with get_db() as db:
            query = db.query(AvailabilitySlot)
            if session_type:
                query = query.filter(AvailabilitySlot.session_type == session_type)
            if is_active is not None:
                query = query.filter(AvailabilitySlot.is_active == is_active)

            slots = query.order_by(AvailabilitySlot.day_of_week, AvailabilitySlot.start_time).all()
            return [
                slot.to_dict(exceptions=[e for e in slot.exceptions if e.date >= now])
                for slot in slots
            ]

    def create_slot(self, data: SlotCreate) -> dict:
        """Create a weekly slot; rejects inverted ranges and overlaps with active slots"""
        self._check_order(data.start_time, data.end_time)

        with get_db() as db:
            self._check_overlap(db, data.day_of_week, data.session_type, data.start_time, data.end_time)

            slot = AvailabilitySlot(
                day_of_week=data.day_of_week,
                start_time=data.start_time,
                end_time=data.end_time,
                slot_duration=data.slot_duration,
                session_type=data.session_type,
                is_active=data.is_active
            )
            db.add(slot)
            db.flush()

            logger.info(f"Created availability slot {slot.id} (day {slot.day_of_week} {slot.start_time}-{slot.end_time})")
            return slot.to_dict(exceptions=[])

    def update_slot(self, slot_id: int, data: SlotUpdate) -> dict:
        with get_db() as db:
            slot = db.get(AvailabilitySlot, slot_id)
            if not slot:
                raise NotFound("Availability slot not found")

            changes = {
                field: getattr(data, field)
                for field in data.model_fields_set
                if getattr(data, field) is not None
            }

            day = changes.get('day_of_week', slot.day_of_week)
            start_time = changes.get('start_time', slot.start_time)
            end_time = changes.get('end_time', slot.end_time)
            session_type = changes.get('session_type', slot.session_type)
            is_active = changes.get('is_active', slot.is_active)

            self._check_order(start_time, end_time)
            if is_active:
                self._check_overlap(db, day, session_type, start_time, end_time, exclude_id=slot.id)

            for field, value in changes.items():
                setattr(slot, field, value)
            db.flush()

            logger.info(f"Updated availability slot {slot.id}: {sorted(changes)}")
            return slot.to_dict()

    def delete_slot(self, slot_id: int, now: datetime = None):
        """Hard delete, refused while the slot still has upcoming bookings"""
        now = now or datetime.utcnow()
        with get_db() as db:
            slot = db.get(AvailabilitySlot, slot_id)
            if not slot:
                raise NotFound("Availability slot not found")

            future_bookings = db.query(AvailabilityException).filter(
                AvailabilityException.slot_id == slot.id,
                AvailabilityException.reason == BOOKED,
                AvailabilityException.date >= now
            ).count()

            if future_bookings:
                raise Conflict(
                    "Cannot delete slot with future bookings. Deactivate it instead.",
                    extra={'futureBookings': future_bookings}
                )

            db.delete(slot)
            logger.info(f"Deleted availability slot {slot_id}")

    # Exceptions

    def list_exceptions(self, query: ExceptionQuery) -> List[dict]:
        with get_db() as db:
            q = db.query(AvailabilityException)
            if query.reason:
                q = q.filter(AvailabilityException.reason == query.reason)
            if query.start_date:
                q = q.filter(AvailabilityException.date >= query.start_date)
            if query.end_date:
                q = q.filter(AvailabilityException.date <= query.end_date)

            return [e.to_dict() for e in q.order_by(AvailabilityException.date).all()]

    def _overlapping_exceptions(self, db, start: datetime, end: datetime, reason: str = None):
        q = db.query(AvailabilityException).filter(
            AvailabilityException.date < end,
            AvailabilityException.end_date > start
        )
        if reason:
            q = q.filter(AvailabilityException.reason == reason)
        return q.all()

    def create_exception(self, data: ExceptionCreate) -> dict:
        """Block a date range; may not cover existing bookings"""
        with get_db() as db:
            if data.slot_id is not None and not db.get(AvailabilitySlot, data.slot_id):
                raise NotFound("Availability slot not found")

            booked = self._overlapping_exceptions(db, data.date, data.end_date, reason=BOOKED)
            if booked:
                raise Conflict(
                    "This time range overlaps with an existing booking",
                    extra={'conflictingBookings': [e.booking_id for e in booked]}
                )

            exception = AvailabilityException(
                slot_id=data.slot_id,
                date=data.date,
                end_date=data.end_date,
                reason=data.reason,
                notes=data.notes
            )
            db.add(exception)
            db.flush()

            logger.info(f"Created {exception.reason} exception {exception.id} from {exception.date} to {exception.end_date}")
            return exception.to_dict()

    def delete_exception(self, exception_id: int):
        with get_db() as db:
            exception = db.get(AvailabilityException, exception_id)
            if not exception:
                raise NotFound("Exception not found")
            if exception.reason == BOOKED:
                raise Conflict("Cannot delete a booked time slot. Cancel the booking instead.")

            db.delete(exception)
            logger.info(f"Deleted availability exception {exception_id}")

    # Booking support

    def find_slot_for(self, db, start: datetime, session_type: str) -> Optional[AvailabilitySlot]:
        """Active slot whose weekly window contains the given UTC start time"""
        local = utc_to_local(start)
        minutes = local.hour * 60 + local.minute
        slots = db.query(AvailabilitySlot).filter(
            AvailabilitySlot.day_of_week == day_of_week(local.date()),
            AvailabilitySlot.session_type == session_type,
            AvailabilitySlot.is_active == True  # noqa: E712
        ).all()
        for slot in slots:
            if parse_time_to_minutes(slot.start_time) <= minutes < parse_time_to_minutes(slot.end_time):
                return slot
        return None

    def reserve_time(self, db, booking, source: str = None) -> AvailabilityException:
        """Block the session hour for a booking inside the caller's transaction"""
        start = booking.scheduled_at
        end = start + timedelta(minutes=Config.SESSION_LENGTH_MINUTES)

        if self._overlapping_exceptions(db, start, end):
            raise Conflict("This time slot is no longer available")

        slot = self.find_slot_for(db, start, booking.session_type)
        exception = AvailabilityException(
            slot_id=slot.id if slot else None,
            booking_id=booking.id,
            date=start,
            end_date=end,
            reason=BOOKED,
            notes=f"Booking ID: {booking.id}" + (f" ({source})" if source else "")
        )
        db.add(exception)
        db.flush()
        return exception

    def release_time(self, db, booking_id: int) -> bool:
        """Remove the booked exception of a cancelled booking"""
        exception = db.query(AvailabilityException).filter_by(booking_id=booking_id).first()
        if not exception:
            return False
        db.delete(exception)
        logger.info(f"Released booked time for booking {booking_id}")
        return True

    # Public

    def get_available_slots(self, date_str: str, session_type: str, now: datetime = None) -> dict:
        """Open start times for one business-local day"""
        now = now or datetime.utcnow()
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            raise ValidationFailed("Invalid date (YYYY-MM-DD)")

        weekday = day_of_week(day)
        lead = timedelta(minutes=Config.BOOKING_LEAD_MINUTES)
        session = timedelta(minutes=Config.SESSION_LENGTH_MINUTES)

        with get_db() as db:
            slots = db.query(AvailabilitySlot).filter(
                AvailabilitySlot.day_of_week == weekday,
                AvailabilitySlot.session_type == session_type,
                AvailabilitySlot.is_active == True  # noqa: E712
            ).order_by(AvailabilitySlot.start_time).all()

            starts = set()
            for slot in slots:
                current = parse_time_to_minutes(slot.start_time)
                end = parse_time_to_minutes(slot.end_time)
                while current < end:
                    local = datetime(day.year, day.month, day.day, current // 60, current % 60)
                    starts.add(local_to_utc(local))
                    current += slot.slot_duration

            day_start = local_to_utc(datetime(day.year, day.month, day.day))
            day_end = local_to_utc(datetime(day.year, day.month, day.day) + timedelta(days=1))
            exceptions = self._overlapping_exceptions(db, day_start, day_end + session)

            available = []
            for start in sorted(starts):
                if start - lead < now:
                    continue
                if any(intervals_overlap(start, start + session, e.date, e.end_date) for e in exceptions):
                    continue
                local = utc_to_local(start)
                available.append({
                    'datetime': start.isoformat() + 'Z',
                    'time': format_clock(local),
                    'date': local.date().isoformat(),
                })

            result = {
                'availableSlots': available,
                'date': date_str,
                'dayOfWeek': weekday,
                'sessionType': session_type,
                'timezone': Config.BUSINESS_TIMEZONE,
            }
            if not slots:
                result['message'] = 'No availability configured for this day and session type'
            return result
