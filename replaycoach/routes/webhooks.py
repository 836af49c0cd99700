from flask import Blueprint, request, jsonify
from replaycoach.integrations import StripeClient
from replaycoach.errors import handle_api_error
from replaycoach.services.webhook_service import WebhookService
from replaycoach.utils.logger import get_logger

bp = Blueprint('webhooks', __name__)
logger = get_logger(__name__)

stripe_client = StripeClient()
webhook_service = WebhookService()


@bp.route('/stripe', methods=['POST'])
def stripe_webhook():
    """Handle Stripe webhook events"""
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature')

    if not sig_header:
        return jsonify({'success': False, 'error': 'No signature header'}), 400

    # Verify webhook signature
    event = stripe_client.verify_webhook_signature(payload, sig_header)
    if not event:
        return jsonify({'success': False, 'error': 'Invalid signature'}), 400

    # Process event
    try:
        result = webhook_service.process_stripe_event(event)
        return jsonify({'received': True, 'result': result}), 200
    except Exception as e:
        return handle_api_error(e, 'process Stripe webhook')
