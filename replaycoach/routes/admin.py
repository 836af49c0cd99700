from flask import Blueprint, current_app, request, jsonify
from replaycoach.errors import IntegrationError, ValidationFailed, handle_api_error
from replaycoach.middleware.auth import require_auth
from replaycoach.schemas import (
    AdminBlogQuery, BlogPostCreate, BlogPostUpdate, BookingQuery, BookingUpdate,
    ExceptionCreate, ExceptionQuery, FriendCodeCreate, FriendCodeUpdate,
    SlotCreate, SlotUpdate, SubmissionQuery, SubmissionUpdate
)
from replaycoach.services.availability_service import AvailabilityService
from replaycoach.services.blog_service import BlogService
from replaycoach.services.booking_service import BookingService
from replaycoach.services.friend_code_service import FriendCodeDeletion, FriendCodeService
from replaycoach.services.notification_service import NotificationService
from replaycoach.services.submission_service import SubmissionService
from replaycoach.utils.logger import get_logger

bp = Blueprint('admin', __name__)
logger = get_logger(__name__)

availability_service = AvailabilityService()
blog_service = BlogService()
booking_service = BookingService()
friend_code_service = FriendCodeService()
notification_service = NotificationService()
submission_service = SubmissionService()


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def bool_arg(name: str):
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.lower() == 'true'


# ===========================
# Availability
# ===========================

@bp.route('/availability', methods=['GET'])
@require_auth
def list_slots(current_admin):
    try:
        slots = availability_service.list_slots(
            session_type=request.args.get('sessionType'),
            is_active=bool_arg('isActive')
        )
        return jsonify({'success': True, 'slots': slots}), 200

    except Exception as e:
        return handle_api_error(e, 'list availability slots')


@bp.route('/availability', methods=['POST'])
@require_auth
def create_slot(current_admin):
    try:
        data = SlotCreate.model_validate(json_body())
        slot = availability_service.create_slot(data)
        return jsonify({'success': True, 'slot': slot}), 201

    except Exception as e:
        return handle_api_error(e, 'create availability slot')


@bp.route('/availability/<int:slot_id>', methods=['PATCH'])
@require_auth
def update_slot(current_admin, slot_id):
    try:
        data = SlotUpdate.model_validate(json_body())
        slot = availability_service.update_slot(slot_id, data)
        return jsonify({'success': True, 'slot': slot}), 200

    except Exception as e:
        return handle_api_error(e, 'update availability slot')


@bp.route('/availability/<int:slot_id>', methods=['DELETE'])
@require_auth
def delete_slot(current_admin, slot_id):
    try:
        availability_service.delete_slot(slot_id)
        return jsonify({'success': True, 'message': 'Availability slot deleted'}), 200

    except Exception as e:
        return handle_api_error(e, 'delete availability slot')


@bp.route('/availability/exceptions', methods=['GET'])
@require_auth
def list_exceptions(current_admin):
    try:
        query = ExceptionQuery.model_validate(request.args.to_dict())
        return jsonify({'success': True, 'exceptions': availability_service.list_exceptions(query)}), 200

    except Exception as e:
        return handle_api_error(e, 'list availability exceptions')


@bp.route('/availability/exceptions', methods=['POST'])
@require_auth
def create_exception(current_admin):
    try:
        data = ExceptionCreate.model_validate(json_body())
        exception = availability_service.create_exception(data)
        return jsonify({'success': True, 'exception': exception}), 201

    except Exception as e:
        return handle_api_error(e, 'create availability exception')


@bp.route('/availability/exceptions/<int:exception_id>', methods=['DELETE'])
@require_auth
def delete_exception(current_admin, exception_id):
    try:
        availability_service.delete_exception(exception_id)
        return jsonify({'success': True, 'message': 'Exception deleted'}), 200

    except Exception as e:
        return handle_api_error(e, 'delete availability exception')


# ===========================
# Bookings
# ===========================

@bp.route('/bookings', methods=['GET'])
@require_auth
def list_bookings(current_admin):
    try:
        query = BookingQuery.model_validate(request.args.to_dict())
        return jsonify({'success': True, 'bookings': booking_service.list_bookings(query)}), 200

    except Exception as e:
        return handle_api_error(e, 'list bookings')


@bp.route('/bookings/<int:booking_id>', methods=['GET'])
@require_auth
def get_booking(current_admin, booking_id):
    try:
        return jsonify({'success': True, 'booking': booking_service.get_booking(booking_id)}), 200

    except Exception as e:
        return handle_api_error(e, 'get booking')


@bp.route('/bookings/<int:booking_id>', methods=['PATCH'])
@require_auth
def update_booking(current_admin, booking_id):
    try:
        data = BookingUpdate.model_validate(json_body())
        booking = booking_service.update_booking(booking_id, data)
        return jsonify({'success': True, 'booking': booking}), 200

    except Exception as e:
        return handle_api_error(e, 'update booking')


# ===========================
# Submissions
# ===========================

@bp.route('/submissions', methods=['GET'])
@require_auth
def list_submissions(current_admin):
    try:
        query = SubmissionQuery.model_validate(request.args.to_dict())
        return jsonify({'success': True, 'submissions': submission_service.list_submissions(query)}), 200

    except Exception as e:
        return handle_api_error(e, 'list submissions')


@bp.route('/submissions/<int:submission_id>', methods=['GET'])
@require_auth
def get_submission(current_admin, submission_id):
    try:
        return jsonify({'success': True, 'submission': submission_service.get_submission(submission_id)}), 200

    except Exception as e:
        return handle_api_error(e, 'get submission')


@bp.route('/submissions/<int:submission_id>', methods=['PATCH'])
@require_auth
def update_submission(current_admin, submission_id):
    try:
        data = SubmissionUpdate.model_validate(json_body())
        result = submission_service.update_submission(submission_id, data)
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'update submission')


@bp.route('/submissions/<int:submission_id>', methods=['DELETE'])
@require_auth
def archive_submission(current_admin, submission_id):
    try:
        submission = submission_service.archive_submission(submission_id)
        return jsonify({'success': True, 'message': 'Submission archived', 'submission': submission}), 200

    except Exception as e:
        return handle_api_error(e, 'archive submission')


# ===========================
# Friend codes
# ===========================

@bp.route('/friend-codes', methods=['GET'])
@require_auth
def list_friend_codes(current_admin):
    try:
        return jsonify({'success': True, 'friendCodes': friend_code_service.list_codes()}), 200

    except Exception as e:
        return handle_api_error(e, 'list friend codes')


@bp.route('/friend-codes', methods=['POST'])
@require_auth
def create_friend_code(current_admin):
    try:
        data = FriendCodeCreate.model_validate(json_body())
        return jsonify({'success': True, 'friendCode': friend_code_service.create_code(data)}), 201

    except Exception as e:
        return handle_api_error(e, 'create friend code')


@bp.route('/friend-codes/<int:code_id>', methods=['GET'])
@require_auth
def get_friend_code(current_admin, code_id):
    try:
        return jsonify({'success': True, 'friendCode': friend_code_service.get_code(code_id)}), 200

    except Exception as e:
        return handle_api_error(e, 'get friend code')


@bp.route('/friend-codes/<int:code_id>', methods=['PATCH'])
@require_auth
def update_friend_code(current_admin, code_id):
    try:
        data = FriendCodeUpdate.model_validate(json_body())
        return jsonify({'success': True, 'friendCode': friend_code_service.update_code(code_id, data)}), 200

    except Exception as e:
        return handle_api_error(e, 'update friend code')


@bp.route('/friend-codes/<int:code_id>', methods=['DELETE'])
@require_auth
def delete_friend_code(current_admin, code_id):
    try:
        outcome, friend_code = friend_code_service.delete(code_id)
        if outcome == FriendCodeDeletion.DEACTIVATED:
            return jsonify({
                'success': True,
                'result': outcome.value,
                'message': 'Friend code has been used and was deactivated instead of deleted',
                'friendCode': friend_code
            }), 200

        return jsonify({'success': True, 'result': outcome.value, 'message': 'Friend code deleted'}), 200

    except Exception as e:
        return handle_api_error(e, 'delete friend code')


# ===========================
# Blog
# ===========================

@bp.route('/blog', methods=['GET'])
@require_auth
def list_blog_posts(current_admin):
    try:
        query = AdminBlogQuery.model_validate(request.args.to_dict())
        return jsonify({'success': True, **blog_service.list_posts(query)}), 200

    except Exception as e:
        return handle_api_error(e, 'list blog posts')


@bp.route('/blog', methods=['POST'])
@require_auth
def create_blog_post(current_admin):
    try:
        data = BlogPostCreate.model_validate(json_body())
        return jsonify({'success': True, 'post': blog_service.create_post(data)}), 201

    except Exception as e:
        return handle_api_error(e, 'create blog post')


@bp.route('/blog/<int:post_id>', methods=['GET'])
@require_auth
def get_blog_post(current_admin, post_id):
    try:
        return jsonify({'success': True, 'post': blog_service.get_post(post_id)}), 200

    except Exception as e:
        return handle_api_error(e, 'get blog post')


@bp.route('/blog/<int:post_id>', methods=['PATCH'])
@require_auth
def update_blog_post(current_admin, post_id):
    try:
        data = BlogPostUpdate.model_validate(json_body())
        return jsonify({'success': True, 'post': blog_service.update_post(post_id, data)}), 200

    except Exception as e:
        return handle_api_error(e, 'update blog post')


@bp.route('/blog/<int:post_id>', methods=['DELETE'])
@require_auth
def delete_blog_post(current_admin, post_id):
    try:
        blog_service.delete_post(post_id)
        return jsonify({'success': True, 'message': 'Blog post deleted'}), 200

    except Exception as e:
        return handle_api_error(e, 'delete blog post')


# ===========================
# Operations
# ===========================

@bp.route('/discord/test', methods=['POST'])
@require_auth
def discord_test(current_admin):
    """Send a test DM to the coach's Discord account"""
    try:
        result = notification_service.send_test_message()
        if not result['success']:
            raise IntegrationError(result['error'] or 'Failed to send Discord test message')
        return jsonify({'success': True, 'message': 'Test message sent'}), 200

    except Exception as e:
        return handle_api_error(e, 'send Discord test message')


@bp.route('/reminders/status', methods=['GET'])
@require_auth
def reminder_status(current_admin):
    try:
        scheduler = current_app.extensions.get('reminder_scheduler')
        if scheduler is None:
            return jsonify({'success': True, 'isRunning': False}), 200
        return jsonify({'success': True, **scheduler.status()}), 200

    except Exception as e:
        return handle_api_error(e, 'get reminder status')
