from datetime import datetime
from typing import Dict, List
from replaycoach.database import get_db
from replaycoach.errors import NotFound
from replaycoach.models import Booking
from replaycoach.models.booking import BookingStatus
from replaycoach.schemas import BookingQuery, BookingUpdate
from replaycoach.services.availability_service import AvailabilityService
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

SORT_COLUMNS = {
    'scheduledAt': Booking.scheduled_at,
    'createdAt': Booking.created_at,
    'updatedAt': Booking.updated_at,
}

# Statuses that hold their hour on the calendar
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.SCHEDULED)


def booking_summary(booking: Booking, now: datetime = None) -> Dict:
    data = booking.to_dict(now)
    submission = booking.submission
    data['submission'] = {
        'id': submission.id,
        'discordTag': submission.discord_tag,
        'discordUsername': submission.discord_username,
        'rank': submission.rank,
        'role': submission.role,
        'hero': submission.hero,
        'status': submission.status.value,
    } if submission else None
    return data


class BookingService:
    """Admin view of scheduled sessions. Bookings are never deleted."""

    def __init__(self):
        self.availability = AvailabilityService()

    def list_bookings(self, query: BookingQuery, now: datetime = None) -> List[Dict]:
        now = now or datetime.utcnow()
        with get_db() as db:
            q = db.query(Booking)
            if query.status:
                q = q.filter(Booking.status == query.status)
            if query.upcoming is True:
                q = q.filter(Booking.scheduled_at >= now)
            elif query.upcoming is False:
                q = q.filter(Booking.scheduled_at < now)

            column = SORT_COLUMNS[query.sort]
            q = q.order_by(column.asc() if query.order == 'asc' else column.desc())
            return [booking_summary(b, now) for b in q.all()]

    def get_booking(self, booking_id: int) -> Dict:
        with get_db() as db:
            booking = db.get(Booking, booking_id)
            if not booking:
                raise NotFound("Booking not found")
            return booking_summary(booking)

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Dict:
        """Status transition; cancelling frees the hour, reinstating claims it again"""
        with get_db() as db:
            booking = db.get(Booking, booking_id)
            if not booking:
                raise NotFound("Booking not found")

            previous = booking.status
            if data.status != previous:
                if data.status == BookingStatus.CANCELLED:
                    self.availability.release_time(db, booking.id)
                elif previous == BookingStatus.CANCELLED and data.status in ACTIVE_STATUSES:
                    self.availability.reserve_time(db, booking)
                booking.status = data.status

            if 'notes' in data.model_fields_set:
                booking.notes = data.notes or None

            db.flush()
            logger.info(f"Booking {booking.id} updated: {previous.value} -> {booking.status.value}")
            return booking_summary(booking)
