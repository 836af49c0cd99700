from typing import Optional
from replaycoach.database import get_db
from replaycoach.models import Payment
from replaycoach.models.booking import BookingStatus
from replaycoach.models.payment import PaymentStatus
from replaycoach.models.submission import SubmissionStatus
from replaycoach.services.availability_service import AvailabilityService
from replaycoach.services.notification_service import NotificationService
from replaycoach.services.submission_service import SubmissionService
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookService:
    """Service for handling webhook events"""

    def __init__(self):
        self.notification_service = NotificationService()
        self.submission_service = SubmissionService()
        self.availability_service = AvailabilityService()

    def process_stripe_event(self, event: dict) -> dict:
        """Process Stripe webhook events"""
        event_type = event.get('type')
        data = event.get('data', {}).get('object', {})

        logger.info(f"Processing Stripe event: {event_type}")

        if event_type == 'checkout.session.completed':
            return self._checkout_completed(data)

        elif event_type == 'checkout.session.expired':
            return self._checkout_expired(data)

        elif event_type == 'payment_intent.succeeded':
            return self._payment_succeeded(data)

        elif event_type == 'payment_intent.payment_failed':
            with get_db() as db:
                payment = db.query(Payment).filter_by(stripe_payment_id=data.get('id')).first()
                if payment:
                    payment.status = PaymentStatus.FAILED
                    if payment.submission and payment.submission.status == SubmissionStatus.AWAITING_PAYMENT:
                        payment.submission.status = SubmissionStatus.PAYMENT_FAILED

                    reason = (data.get('last_payment_error') or {}).get('message')
                    logger.error(f"Payment {payment.id} failed: {reason}")
                    return {'payment_id': payment.id, 'status': 'failed'}

        elif event_type == 'charge.refunded':
            payment_intent_id = data.get('payment_intent')
            if payment_intent_id:
                with get_db() as db:
                    payment = db.query(Payment).filter_by(stripe_payment_id=payment_intent_id).first()
                    if payment:
                        payment.status = PaymentStatus.REFUNDED
                        logger.info(f"Payment {payment.id} refunded")
                        return {'payment_id': payment.id, 'status': 'refunded'}

        else:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return {'status': 'ignored'}

        logger.warning(f"No payment matched Stripe event {event_type}")
        return {'status': 'unmatched'}

    def _checkout_completed(self, session: dict) -> dict:
        with get_db() as db:
            payment = db.query(Payment).filter_by(stripe_session_id=session.get('id')).first()
            if not payment:
                logger.warning("No payment matched Stripe event checkout.session.completed")
                return {'status': 'unmatched'}

            if session.get('payment_intent'):
                payment.stripe_payment_id = session['payment_intent']

            # payment_intent.succeeded may have arrived first and matched nothing
            if session.get('payment_status') == 'paid':
                outcome = self._mark_succeeded(db, payment)
                payment_id = payment.id
            else:
                if payment.status in (PaymentStatus.PENDING, PaymentStatus.CANCELLED):
                    payment.status = PaymentStatus.PROCESSING
                logger.info(f"Payment {payment.id} processing, checkout session completed")
                return {'payment_id': payment.id, 'status': 'processing'}

        self._notify_succeeded(outcome)
        return {'payment_id': payment_id, 'status': 'succeeded'}

    def _checkout_expired(self, session: dict) -> dict:
        """Abandoned checkout: cancel the payment and free any held session time"""
        with get_db() as db:
            payment = db.query(Payment).filter_by(stripe_session_id=session.get('id')).first()
            if not payment:
                logger.warning("No payment matched Stripe event checkout.session.expired")
                return {'status': 'unmatched'}

            if payment.status != PaymentStatus.PENDING:
                return {'payment_id': payment.id, 'status': payment.status.value.lower()}

            payment.status = PaymentStatus.CANCELLED
            booking = payment.submission.booking if payment.submission else None
            if booking and booking.status == BookingStatus.PENDING:
                booking.status = BookingStatus.CANCELLED
                self.availability_service.release_time(db, booking.id)

            logger.info(f"Payment {payment.id} cancelled, checkout session expired")
            return {'payment_id': payment.id, 'status': 'cancelled'}

    def _payment_succeeded(self, intent: dict) -> dict:
        with get_db() as db:
            payment = db.query(Payment).filter_by(stripe_payment_id=intent.get('id')).first()
            if not payment:
                logger.warning("No payment matched Stripe event payment_intent.succeeded")
                return {'status': 'unmatched'}

            outcome = self._mark_succeeded(db, payment)
            payment_id = payment.id

        self._notify_succeeded(outcome)
        return {'payment_id': payment_id, 'status': 'succeeded'}

    def _mark_succeeded(self, db, payment: Payment) -> Optional[dict]:
        """Move the payment and its submission/booking to paid.

        Returns what the notifications need, or None when the payment had
        already succeeded (a repeated or second success event).
        """
        if payment.status == PaymentStatus.SUCCEEDED:
            return None
        payment.status = PaymentStatus.SUCCEEDED

        submission_payload = None
        submission = payment.submission
        if submission:
            if submission.status in (SubmissionStatus.AWAITING_PAYMENT, SubmissionStatus.PAYMENT_FAILED):
                submission.status = SubmissionStatus.PAYMENT_RECEIVED
            if submission.booking and submission.booking.status == BookingStatus.PENDING:
                submission.booking.status = BookingStatus.SCHEDULED
            db.flush()
            submission_payload = self.submission_service.notification_payload(submission)

        logger.info(f"Payment {payment.id} succeeded")
        return {'payment': payment.to_dict(), 'submission': submission_payload}

    def _notify_succeeded(self, outcome: Optional[dict]):
        if not outcome:
            return
        self.notification_service.notify_payment_received(outcome['payment'])
        if outcome['submission']:
            self.submission_service.send_new_submission_notifications(outcome['submission'])
