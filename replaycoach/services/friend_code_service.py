import enum
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from replaycoach.database import get_db
from replaycoach.errors import DuplicateEntry, NotFound, ValidationFailed
from replaycoach.models import FriendCode, Payment, ReplaySubmission
from replaycoach.models.booking import BookingStatus
from replaycoach.models.payment import PaymentStatus
from replaycoach.models.submission import SubmissionStatus
from replaycoach.schemas import FriendCodeCreate, FriendCodeRedemption, FriendCodeUpdate
from replaycoach.services.payment_service import get_coaching_package, to_minor_units
from replaycoach.services.submission_service import SubmissionService, check_schedule
from replaycoach.utils.logger import get_logger, mask_code

logger = get_logger(__name__)


class FriendCodeDeletion(enum.Enum):
    DELETED = "deleted"
    DEACTIVATED = "deactivated"


def check_redeemable(code: FriendCode, now: datetime):
    """Raise ValidationFailed unless the code can be used right now"""
    if not code:
        raise ValidationFailed("Invalid friend code")
    if not code.is_active:
        raise ValidationFailed("This friend code is no longer active")
    if code.expires_at and code.expires_at <= now:
        raise ValidationFailed("This friend code has expired")
    if code.max_uses is not None and code.uses_count >= code.max_uses:
        raise ValidationFailed("This friend code has reached its usage limit")


class FriendCodeService:
    """Promotional codes that replace the payment step"""

    def __init__(self):
        self.submissions = SubmissionService()

    def redeem(self, data: FriendCodeRedemption, discord: Dict = None, now: datetime = None) -> Dict:
        """Create a paid-equivalent submission (and booking) without Stripe"""
        now = now or datetime.utcnow()
        check_schedule(data.coaching_type, data.scheduled_at, now)
        package = get_coaching_package(data.coaching_type)

        with get_db() as db:
            code = db.query(FriendCode).filter_by(code=data.friend_code.strip().upper()).first()
            check_redeemable(code, now)

            submission = self.submissions.build_submission(
                db, data, SubmissionStatus.PAYMENT_RECEIVED, discord, friend_code_id=code.id
            )

            db.add(Payment(
                amount=to_minor_units(package['price']),
                currency='usd',
                status=PaymentStatus.SUCCEEDED,
                coaching_type=data.coaching_type,
                customer_email=data.email,
                submission_id=submission.id
            ))

            booking = None
            if data.scheduled_at:
                booking = self.submissions.build_booking(
                    db, submission, data.scheduled_at, BookingStatus.SCHEDULED,
                    source='Friend Code'
                )

            code.uses_count += 1
            db.flush()
            db.refresh(submission)

            payload = self.submissions.notification_payload(submission)
            result = {
                'submissionId': submission.id,
                'bookingId': booking.id if booking else None,
            }

        logger.info(
            f"Friend code {mask_code(data.friend_code.upper())} redeemed for submission {result['submissionId']}"
            f"{' with booking ' + str(result['bookingId']) if result['bookingId'] else ''}"
        )
        self.submissions.notifications.notify_new_submission(payload, via_friend_code=True)
        return result

    # Admin

    def list_codes(self) -> List[Dict]:
        with get_db() as db:
            rows = db.query(FriendCode, func.count(ReplaySubmission.id)).outerjoin(
                ReplaySubmission, ReplaySubmission.friend_code_id == FriendCode.id
            ).group_by(FriendCode.id).order_by(FriendCode.created_at.desc(), FriendCode.id.desc()).all()
            return [code.to_dict(submission_count=count) for code, count in rows]

    def get_code(self, code_id: int) -> Dict:
        with get_db() as db:
            code = db.get(FriendCode, code_id)
            if not code:
                raise NotFound("Friend code not found")
            data = code.to_dict(submission_count=len(code.submissions))
            data['submissions'] = [
                {
                    'id': s.id,
                    'email': s.email,
                    'coachingType': s.coaching_type,
                    'status': s.status.value,
                    'submittedAt': s.submitted_at.isoformat(),
                }
                for s in sorted(code.submissions, key=lambda s: s.submitted_at, reverse=True)
            ]
            return data

    def create_code(self, data: FriendCodeCreate) -> Dict:
        with get_db() as db:
            if db.query(FriendCode).filter_by(code=data.code).first():
                raise DuplicateEntry("A friend code with this value already exists")

            code = FriendCode(
                code=data.code,
                description=data.description or None,
                max_uses=data.max_uses,
                expires_at=data.expires_at
            )
            db.add(code)
            db.flush()

            logger.info(f"Friend code {code.id} created ({mask_code(code.code)})")
            return code.to_dict(submission_count=0)

    def update_code(self, code_id: int, data: FriendCodeUpdate) -> Dict:
        with get_db() as db:
            code = db.get(FriendCode, code_id)
            if not code:
                raise NotFound("Friend code not found")

            fields = data.model_fields_set
            if 'description' in fields:
                code.description = data.description or None
            if 'max_uses' in fields:
                code.max_uses = data.max_uses
            if 'expires_at' in fields:
                code.expires_at = data.expires_at
            if 'is_active' in fields and data.is_active is not None:
                code.is_active = data.is_active

            db.flush()
            logger.info(f"Friend code {code.id} updated: {sorted(fields)}")
            return code.to_dict()

    def delete(self, code_id: int) -> Tuple[FriendCodeDeletion, Optional[Dict]]:
        """Unused codes are removed; used codes are only deactivated so history keeps its link.

        Returns the outcome and, for a deactivated code, the updated row.
        """
        with get_db() as db:
            code = db.get(FriendCode, code_id)
            if not code:
                raise NotFound("Friend code not found")

            submission_count = db.query(ReplaySubmission).filter_by(friend_code_id=code.id).count()
            if submission_count:
                code.is_active = False
                db.flush()
                logger.info(f"Friend code {code.id} deactivated ({submission_count} submissions)")
                return FriendCodeDeletion.DEACTIVATED, code.to_dict(submission_count=submission_count)

            db.delete(code)
            logger.info(f"Friend code {code_id} deleted")
            return FriendCodeDeletion.DELETED, None
