import json
import stripe
from typing import Dict, Optional
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

# Configure Stripe
stripe.api_key = Config.STRIPE_SECRET_KEY


class StripeClient:
    """Wrapper for Stripe API operations"""

    def __init__(self):
        self.api_key = Config.STRIPE_SECRET_KEY
        if not self.api_key:
            logger.warning("Stripe API key not configured")

    def create_checkout_session(self, price_id: str, customer_email: str, success_url: str,
                                cancel_url: str, metadata: Dict = None):
        """Create a hosted Checkout Session for a single coaching package"""
        try:
            session = stripe.checkout.Session.create(
                mode='payment',
                payment_method_types=['card'],
                line_items=[{'price': price_id, 'quantity': 1}],
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                api_key=self.api_key
            )
            return session
        except stripe.StripeError as e:
            logger.error(f"Error creating checkout session: {str(e)}")
            return None

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Optional[Dict]:
        """Verify webhook signature and return the event as a plain dict"""
        if not Config.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured")
            return None

        try:
            stripe.Webhook.construct_event(
                payload, signature, Config.STRIPE_WEBHOOK_SECRET
            )
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {str(e)}")
            return None
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid webhook signature: {str(e)}")
            return None

        return json.loads(payload)
