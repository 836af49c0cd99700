from datetime import datetime
from typing import Dict
from config.config import Config
from replaycoach.integrations import DiscordClient, SendGridClient
from replaycoach.services.availability_service import utc_to_local
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

COACHING_NAMES = {key: package['name'] for key, package in Config.COACHING_PACKAGES.items()}


def coaching_name(coaching_type: str) -> str:
    return COACHING_NAMES.get(coaching_type, coaching_type)


def format_session_time(value) -> str:
    """Human readable business-local time for an ISO string or naive UTC datetime"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.rstrip('Z'))
    local = utc_to_local(value)
    hour = local.hour % 12 or 12
    suffix = 'AM' if local.hour < 12 else 'PM'
    return f"{local.strftime('%A, %B')} {local.day}, {local.year} at {hour}:{local.minute:02d} {suffix} {local.tzname()}"


class NotificationService:
    """Discord and email notifications. Failures are logged and reported, never raised."""

    def __init__(self):
        self.discord = DiscordClient()
        self.sendgrid = SendGridClient()

    def _dm(self, user_id: str, content: str, context: str) -> Dict:
        try:
            result = self.discord.send_direct_message(user_id, content)
        except Exception as e:
            logger.error(f"Error sending Discord {context}: {str(e)}")
            return {'success': False, 'error': str(e)}

        if result['success']:
            logger.info(f"Discord {context} sent")
        else:
            logger.warning(f"Discord {context} not sent: {result['error']}")
        return result

    def _dm_admin(self, content: str, context: str) -> Dict:
        if not Config.ADMIN_DISCORD_USER_ID:
            logger.warning(f"ADMIN_DISCORD_USER_ID not configured, skipping {context}")
            return {'success': False, 'error': 'ADMIN_DISCORD_USER_ID not configured'}
        return self._dm(Config.ADMIN_DISCORD_USER_ID, content, context)

    # Submissions

    def notify_new_submission(self, submission: Dict, via_friend_code: bool = False) -> Dict:
        """DM the coach about a new replay submission"""
        replay_list = '\n\n'.join(
            f"**Replay {index}:**\nCode: `{replay['code']}`\nMap: {replay['mapName']}"
            + (f"\nNotes: {replay['notes']}" if replay.get('notes') else '')
            for index, replay in enumerate(submission['replays'], start=1)
        )

        lines = [
            "🎮 **New VOD Review Request**" + (" (friend code)" if via_friend_code else ''),
            '',
            f"**Type:** {coaching_name(submission['coachingType'])}",
            f"**Email:** {submission['email']}",
        ]
        discord = submission.get('discordUsername') or submission.get('discordTag')
        if discord:
            lines.append(f"**Discord:** {discord}")
        lines.append(f"**Rank / Role:** {submission['rank']} {submission['role']}")
        if submission.get('hero'):
            lines.append(f"**Hero:** {submission['hero']}")
        if submission.get('scheduledAt'):
            lines.append(f"**Session:** {format_session_time(submission['scheduledAt'])}")
        lines += ['', replay_list]

        return self._dm_admin('\n'.join(lines), f"submission notification for {submission['id']}")

    def send_submission_emails(self, submission: Dict) -> Dict:
        """Confirmation to the player and a heads-up to the coach's inbox"""
        results = {'confirmation': False, 'admin': False}
        try:
            results['confirmation'] = self.sendgrid.send_submission_confirmation(
                submission['email'], submission
            ) is not None
            if Config.ADMIN_EMAIL:
                results['admin'] = self.sendgrid.send_submission_notification(
                    Config.ADMIN_EMAIL, submission
                ) is not None
            else:
                logger.warning("ADMIN_EMAIL not configured, skipping admin notification")
        except Exception as e:
            logger.error(f"Error sending submission emails for {submission['id']}: {str(e)}")
        return results

    def notify_review_ready(self, submission: Dict, discord_id: str = None,
                            send_email: bool = False, send_discord: bool = False) -> Dict:
        """Tell the player their review is complete over the requested channels"""
        results = {'emailSent': False, 'discordSent': False}

        if send_email:
            try:
                results['emailSent'] = self.sendgrid.send_review_ready(submission['email'], submission) is not None
            except Exception as e:
                logger.error(f"Error sending review ready email for {submission['id']}: {str(e)}")

        if send_discord:
            hero = f" {submission['hero']}" if submission.get('hero') else ''
            lines = [
                "🎉 **Your Review is Ready!**",
                '',
                f"Your {submission['rank']} {submission['role']}{hero} replay review is now complete!",
            ]
            if submission.get('reviewUrl'):
                lines.append(f"**📹 Watch Your Review:** {submission['reviewUrl']}")
            if submission.get('reviewNotes'):
                lines.append(f"**📝 Coach's Notes:**\n{submission['reviewNotes']}")
            lines += ['', "Thank you for submitting your replay! If you have any questions, feel free to reach out."]

            if discord_id:
                result = self._dm(discord_id, '\n'.join(lines), f"review ready message for {submission['id']}")
                results['discordSent'] = result['success']
                results['discordError'] = result['error']
            else:
                results['discordError'] = 'User has not connected Discord account'

        return results

    # Payments

    def notify_payment_received(self, payment: Dict) -> Dict:
        amount = payment['amount'] / 100
        content = (
            "💰 **Payment Received**\n\n"
            f"**Package:** {coaching_name(payment['coachingType'])}\n"
            f"**Amount:** ${amount:.2f} {payment['currency'].upper()}\n"
            f"**Customer:** {payment['customerEmail']}"
        )
        return self._dm_admin(content, f"payment notification for payment {payment['id']}")

    # Bookings

    def send_booking_reminder(self, booking: Dict, kind: str) -> Dict:
        """Remind the client; kind is '24h' or '30m'"""
        when = 'tomorrow' if kind == '24h' else 'in 30 minutes'
        content = (
            f"⏰ **Session Reminder**\n\n"
            f"Your {coaching_name(booking['sessionType'])} session starts {when}.\n"
            f"**When:** {format_session_time(booking['scheduledAt'])}\n\n"
            "See you there!"
        )

        discord_id = booking.get('discordId')
        if not discord_id:
            return {'success': False, 'error': 'Client has not connected Discord account'}
        return self._dm(discord_id, content, f"{kind} reminder for booking {booking['id']}")

    def send_admin_booking_reminder(self, booking: Dict) -> Dict:
        client = booking.get('discordUsername') or booking['email']
        content = (
            "⏰ **Session in 30 minutes**\n\n"
            f"**Client:** {client}\n"
            f"**Type:** {coaching_name(booking['sessionType'])}\n"
            f"**When:** {format_session_time(booking['scheduledAt'])}"
        )
        return self._dm_admin(content, f"admin reminder for booking {booking['id']}")

    # Misc

    def send_contact_message(self, name: str, email: str, message: str) -> bool:
        if not Config.ADMIN_EMAIL:
            logger.warning("ADMIN_EMAIL not configured, cannot forward contact message")
            return False
        try:
            return self.sendgrid.send_contact_message(Config.ADMIN_EMAIL, name, email, message) is not None
        except Exception as e:
            logger.error(f"Error forwarding contact message: {str(e)}")
            return False

    def send_test_message(self) -> Dict:
        content = f"✅ Test notification from {Config.APP_URL} at {datetime.utcnow().isoformat()}Z"
        return self._dm_admin(content, "test message")
