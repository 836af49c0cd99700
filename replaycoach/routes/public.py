from flask import Blueprint, request, jsonify
from config.config import Config
from replaycoach.errors import ValidationFailed, handle_api_error
from replaycoach.schemas import (
    AvailableSlotsQuery, BlogPostQuery, CheckoutRequest, ContactRequest,
    FriendCodeRedemption, ReplaySubmissionCreate
)
from replaycoach.services.auth_service import DISCORD_LINK_COOKIE, DiscordAuthService
from replaycoach.services.availability_service import AvailabilityService
from replaycoach.services.blog_service import BlogService
from replaycoach.services.friend_code_service import FriendCodeService
from replaycoach.services.notification_service import NotificationService
from replaycoach.services.payment_service import PaymentService
from replaycoach.services.submission_service import SubmissionService
from replaycoach.utils.rate_limiter import RateLimiter, get_client_ip
from replaycoach.utils.logger import get_logger

bp = Blueprint('public', __name__)
logger = get_logger(__name__)

availability_service = AvailabilityService()
blog_service = BlogService()
friend_code_service = FriendCodeService()
notification_service = NotificationService()
payment_service = PaymentService()
submission_service = SubmissionService()

contact_limiter = RateLimiter(
    Config.CONTACT_RATE_LIMIT,
    Config.CONTACT_RATE_WINDOW_SECONDS,
    key_prefix='contact',
    message='Too many messages. Please try again later.'
)
friend_code_limiter = RateLimiter(
    Config.CONTACT_RATE_LIMIT,
    Config.CONTACT_RATE_WINDOW_SECONDS,
    key_prefix='friend_code',
    message='Too many friend code attempts. Please try again later.'
)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def linked_discord():
    return DiscordAuthService.read_identity(request.cookies.get(DISCORD_LINK_COOKIE))


@bp.route('/contact', methods=['POST'])
def contact():
    """Forward a contact form message to the coach"""
    try:
        headers = contact_limiter.hit(get_client_ip(request))
        data = ContactRequest.model_validate(json_body())

        if not notification_service.send_contact_message(data.name, data.email, data.message):
            response = jsonify({'success': False, 'error': 'Failed to send message. Please try again later.'})
            response.headers.update(headers)
            return response, 500

        response = jsonify({'success': True, 'message': 'Message sent successfully'})
        response.headers.update(headers)
        return response, 200

    except Exception as e:
        return handle_api_error(e, 'send contact message')


@bp.route('/checkout', methods=['POST'])
def checkout():
    """Create a Stripe Checkout session"""
    try:
        data = CheckoutRequest.model_validate(json_body())
        origin = (request.headers.get('Origin') or Config.APP_URL).rstrip('/')
        result = payment_service.create_checkout_session(data, origin)
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'create checkout session')


@bp.route('/payment/details', methods=['GET'])
def payment_details():
    try:
        result = payment_service.get_payment_details(request.args.get('session_id'))
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'get payment details')


@bp.route('/payment/verify', methods=['GET'])
def verify_payment():
    """Does this email have a paid checkout waiting for its replays?"""
    try:
        result = payment_service.verify_payment(
            request.args.get('email', '').strip(),
            request.args.get('coachingType')
        )
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'verify payment')


@bp.route('/friend-code/validate', methods=['POST'])
def redeem_friend_code():
    """Redeem a friend code in place of checkout"""
    try:
        headers = friend_code_limiter.hit(get_client_ip(request))
        data = FriendCodeRedemption.model_validate(json_body())
        result = friend_code_service.redeem(data, discord=linked_discord())

        response = jsonify({
            'success': True,
            'message': 'Friend code applied! Your submission has been received.',
            **result
        })
        response.headers.update(headers)
        return response, 201

    except Exception as e:
        return handle_api_error(e, 'redeem friend code')


@bp.route('/replay/submit', methods=['POST'])
def submit_replay():
    try:
        data = ReplaySubmissionCreate.model_validate(json_body())
        result = submission_service.submit(data, discord=linked_discord())
        return jsonify({'success': True, **result}), 201

    except Exception as e:
        return handle_api_error(e, 'submit replays')


@bp.route('/booking/available-slots', methods=['GET'])
def available_slots():
    try:
        query = AvailableSlotsQuery.model_validate(request.args.to_dict())
        result = availability_service.get_available_slots(query.date, query.session_type)
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'get available slots')


# Blog

@bp.route('/blog/posts', methods=['GET'])
def blog_posts():
    try:
        query = BlogPostQuery.model_validate(request.args.to_dict())
        return jsonify({'success': True, **blog_service.list_published(query)}), 200

    except Exception as e:
        return handle_api_error(e, 'list blog posts')


@bp.route('/blog/tags', methods=['GET'])
def blog_tags():
    try:
        return jsonify({'success': True, **blog_service.get_tags()}), 200

    except Exception as e:
        return handle_api_error(e, 'list blog tags')


@bp.route('/blog/<slug>', methods=['GET'])
def blog_post(slug):
    try:
        return jsonify({'success': True, 'post': blog_service.get_published(slug)}), 200

    except Exception as e:
        return handle_api_error(e, 'get blog post')
