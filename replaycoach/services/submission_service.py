from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import or_, cast, String
from replaycoach.database import get_db
from replaycoach.errors import NotFound, ValidationFailed
from replaycoach.models import Booking, ReplayCode, ReplaySubmission
from replaycoach.models.booking import BookingStatus
from replaycoach.models.submission import SubmissionStatus
from replaycoach.schemas import ReplaySubmissionCreate, SubmissionQuery, SubmissionUpdate
from replaycoach.services.availability_service import AvailabilityService
from replaycoach.services.notification_service import NotificationService
from replaycoach.services.payment_service import PaymentService
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

SCHEDULED_TYPES = ('vod-review', 'live-coaching')

SORT_COLUMNS = {
    'submittedAt': ReplaySubmission.submitted_at,
    'reviewedAt': ReplaySubmission.reviewed_at,
    'status': ReplaySubmission.status,
}


def check_schedule(coaching_type: str, scheduled_at: Optional[datetime], now: datetime = None):
    """Live session types need a start time in the future"""
    now = now or datetime.utcnow()
    if coaching_type in SCHEDULED_TYPES and not scheduled_at:
        raise ValidationFailed("Scheduled time is required for VOD Review and Live Coaching")
    if scheduled_at and scheduled_at <= now:
        raise ValidationFailed("Scheduled time must be in the future")


class SubmissionService:
    """Replay intake and the admin review queue"""

    def __init__(self):
        self.availability = AvailabilityService()
        self.payments = PaymentService()
        self.notifications = NotificationService()

    def build_submission(self, db, data: ReplaySubmissionCreate, status: SubmissionStatus,
                         discord: Dict = None, friend_code_id: int = None) -> ReplaySubmission:
        """Persist a submission with its replay codes inside the caller's transaction"""
        discord = discord or {}
        submission = ReplaySubmission(
            email=data.email,
            discord_tag=data.discord_tag,
            discord_id=discord.get('discordId'),
            discord_username=discord.get('discordUsername'),
            coaching_type=data.coaching_type,
            rank=data.rank,
            role=data.role,
            hero=data.hero,
            status=status,
            friend_code_id=friend_code_id,
            replays=[
                ReplayCode(code=replay.code, map_name=replay.map_name, notes=replay.notes)
                for replay in data.replays
            ]
        )
        db.add(submission)
        db.flush()
        return submission

    def build_booking(self, db, submission: ReplaySubmission, scheduled_at: datetime,
                      status: BookingStatus, source: str = None) -> Booking:
        """Create the submission's booking and block its hour"""
        booking = Booking(
            email=submission.email,
            session_type=submission.coaching_type,
            scheduled_at=scheduled_at,
            status=status,
            submission_id=submission.id
        )
        db.add(booking)
        db.flush()
        self.availability.reserve_time(db, booking, source=source)
        return booking

    @staticmethod
    def notification_payload(submission: ReplaySubmission) -> Dict:
        data = submission.to_dict()
        data['scheduledAt'] = submission.booking.scheduled_at.isoformat() if submission.booking else None
        return data

    def submit(self, data: ReplaySubmissionCreate, discord: Dict = None, now: datetime = None) -> Dict:
        """Public intake; attaches an unlinked paid payment when the player already checked out"""
        check_schedule(data.coaching_type, data.scheduled_at, now)

        with get_db() as db:
            payment = self.payments.find_unlinked_payment(db, data.email, data.coaching_type)
            status = SubmissionStatus.PAYMENT_RECEIVED if payment else SubmissionStatus.AWAITING_PAYMENT

            submission = self.build_submission(db, data, status, discord)
            if payment:
                payment.submission_id = submission.id

            booking = None
            if data.scheduled_at:
                booking = self.build_booking(
                    db, submission, data.scheduled_at,
                    BookingStatus.SCHEDULED if payment else BookingStatus.PENDING
                )

            db.refresh(submission)
            payload = self.notification_payload(submission)
            result = {
                'submissionId': submission.id,
                'status': submission.status.value,
                'requiresPayment': payment is None,
                'bookingId': booking.id if booking else None,
            }

        logger.info(
            f"New replay submission {result['submissionId']} with {len(data.replays)} replays "
            f"({'paid' if payment else 'awaiting payment'})"
        )
        if payment:
            self.send_new_submission_notifications(payload)
        return result

    def send_new_submission_notifications(self, payload: Dict, via_friend_code: bool = False):
        self.notifications.send_submission_emails(payload)
        self.notifications.notify_new_submission(payload, via_friend_code=via_friend_code)

    # Admin

    def list_submissions(self, query: SubmissionQuery) -> List[Dict]:
        with get_db() as db:
            q = db.query(ReplaySubmission)
            if query.status:
                q = q.filter(ReplaySubmission.status == query.status)
            if query.search:
                term = f"%{query.search.strip()}%"
                q = q.filter(or_(
                    ReplaySubmission.email.ilike(term),
                    cast(ReplaySubmission.id, String).like(term)
                ))

            column = SORT_COLUMNS[query.sort]
            q = q.order_by(column.asc() if query.order == 'asc' else column.desc())
            return [submission.to_dict() for submission in q.all()]

    def get_submission(self, submission_id: int) -> Dict:
        with get_db() as db:
            submission = db.get(ReplaySubmission, submission_id)
            if not submission:
                raise NotFound("Submission not found")
            return submission.to_dict(detail=True)

    def update_submission(self, submission_id: int, data: SubmissionUpdate, now: datetime = None) -> Dict:
        """Review workflow; optionally tells the player the review is ready"""
        now = now or datetime.utcnow()
        with get_db() as db:
            submission = db.get(ReplaySubmission, submission_id)
            if not submission:
                raise NotFound("Submission not found")

            fields = data.model_fields_set
            if 'status' in fields and data.status:
                submission.status = data.status
                if data.status == SubmissionStatus.COMPLETED:
                    submission.reviewed_at = now
            if 'review_notes' in fields:
                submission.review_notes = data.review_notes or None
            if 'review_url' in fields:
                submission.review_url = data.review_url

            db.flush()
            result = submission.to_dict(detail=True)
            discord_id = submission.discord_id

        logger.info(f"Updated submission {submission_id}: {sorted(fields)}")

        notified = {'emailSent': False, 'discordSent': False}
        if result['status'] == SubmissionStatus.COMPLETED.value and (data.send_email or data.send_discord_notification):
            notified = self.notifications.notify_review_ready(
                result,
                discord_id=discord_id,
                send_email=data.send_email,
                send_discord=data.send_discord_notification
            )

        return {'submission': result, **notified}

    def archive_submission(self, submission_id: int) -> Dict:
        """Submissions are archived, never deleted"""
        with get_db() as db:
            submission = db.get(ReplaySubmission, submission_id)
            if not submission:
                raise NotFound("Submission not found")
            submission.status = SubmissionStatus.ARCHIVED
            logger.info(f"Archived submission {submission_id}")
            return submission.to_dict()
