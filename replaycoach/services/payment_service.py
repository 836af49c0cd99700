from typing import Dict, Optional
from replaycoach.database import get_db
from replaycoach.errors import Conflict, IntegrationError, NotFound, ValidationFailed
from replaycoach.models import Payment, ReplaySubmission
from replaycoach.models.payment import PaymentStatus
from replaycoach.integrations import StripeClient
from replaycoach.schemas import CheckoutRequest
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)


def get_coaching_package(coaching_type: str) -> Optional[Dict]:
    return Config.COACHING_PACKAGES.get(coaching_type)


def to_minor_units(price) -> int:
    """Dollars -> cents"""
    return int(round(price * 100))


class PaymentService:
    """Stripe Checkout sessions and Payment rows"""

    def __init__(self):
        self.stripe = StripeClient()

    def create_checkout_session(self, data: CheckoutRequest, origin: str) -> Dict:
        """Start a Stripe Checkout for a submission or a bare (type, email) pair"""
        with get_db() as db:
            submission_id = None

            if data.submission_id is not None:
                submission = db.get(ReplaySubmission, data.submission_id)
                if not submission:
                    raise NotFound("Submission not found")

                existing = db.query(Payment).filter_by(submission_id=submission.id).first()
                if existing:
                    raise Conflict("Payment already exists for this submission")

                coaching_type = submission.coaching_type
                email = submission.email
                submission_id = submission.id
            elif data.coaching_type and data.email:
                coaching_type = data.coaching_type
                email = data.email
            else:
                raise ValidationFailed("Either submissionId or (coachingType and email) is required")

            package = get_coaching_package(coaching_type)
            if not package:
                raise ValidationFailed("Invalid coaching type")

            if not package.get('price_id'):
                logger.error(f"Stripe price id missing for package {coaching_type}")
                raise IntegrationError("Price ID not configured for this package")

            metadata = {'coachingType': coaching_type, 'email': email}
            if submission_id is not None:
                metadata['submissionId'] = str(submission_id)

            session = self.stripe.create_checkout_session(
                price_id=package['price_id'],
                customer_email=email,
                success_url=f"{origin}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{origin}/checkout/cancel",
                metadata=metadata
            )
            if not session:
                raise IntegrationError("Failed to create checkout session")

            payment = Payment(
                stripe_session_id=session.id,
                stripe_payment_id=getattr(session, 'payment_intent', None),
                amount=to_minor_units(package['price']),
                currency='usd',
                status=PaymentStatus.PENDING,
                coaching_type=coaching_type,
                customer_email=email,
                submission_id=submission_id
            )
            db.add(payment)
            db.flush()

            logger.info(f"Created checkout session {session.id} for payment {payment.id} ({coaching_type})")
            return {'sessionId': session.id, 'url': session.url, 'paymentId': payment.id}

    def get_payment_details(self, session_id: str) -> Dict:
        """What the checkout success page shows"""
        if not session_id:
            raise ValidationFailed("session_id is required")

        with get_db() as db:
            payment = db.query(Payment).filter_by(stripe_session_id=session_id).first()
            if not payment:
                raise NotFound("Payment not found")

            submission = None
            if payment.submission:
                booking = payment.submission.booking
                submission = {
                    'id': payment.submission.id,
                    'status': payment.submission.status.value,
                    'booking': {
                        'id': booking.id,
                        'scheduledAt': booking.scheduled_at.isoformat(),
                        'sessionType': booking.session_type,
                        'status': booking.status.value,
                    } if booking else None,
                }

            return {
                'coachingType': payment.coaching_type,
                'email': payment.customer_email,
                'status': payment.status.value,
                'amount': payment.amount,
                'currency': payment.currency,
                'submission': submission,
            }

    def find_unlinked_payment(self, db, email: str, coaching_type: str = None) -> Optional[Payment]:
        """Latest succeeded payment not yet attached to a submission"""
        query = db.query(Payment).filter(
            Payment.customer_email == email.lower(),
            Payment.status == PaymentStatus.SUCCEEDED,
            Payment.submission_id.is_(None)
        )
        if coaching_type:
            query = query.filter(Payment.coaching_type == coaching_type)
        return query.order_by(Payment.created_at.desc(), Payment.id.desc()).first()

    def verify_payment(self, email: str, coaching_type: str = None) -> Dict:
        if not email:
            raise ValidationFailed("Email is required")

        with get_db() as db:
            payment = self.find_unlinked_payment(db, email, coaching_type)
            if not payment:
                return {'valid': False, 'message': 'No valid payment found'}

            return {
                'valid': True,
                'payment': {
                    'id': payment.id,
                    'coachingType': payment.coaching_type,
                    'amount': payment.amount,
                    'currency': payment.currency,
                }
            }
