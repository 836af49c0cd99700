import sendgrid
from html import escape
from sendgrid.helpers.mail import Mail, Email, To, Content, ReplyTo
from typing import Dict, Optional
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

BRAND = "Replay Coach"


class SendGridClient:
    """Wrapper for SendGrid email operations"""

    def __init__(self):
        self.api_key = Config.SENDGRID_API_KEY
        self.from_email = Config.SENDGRID_FROM_EMAIL

        if self.api_key:
            self.client = sendgrid.SendGridAPIClient(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("SendGrid API key not configured")

    def send_email(self, to_email: str, subject: str, html_content: str,
                   plain_content: str = None, reply_to: str = None) -> Optional[Dict]:
        """Send email via SendGrid"""
        if not self.client:
            logger.error("SendGrid client not initialized")
            return None

        try:
            message = Mail(
                from_email=Email(self.from_email, BRAND),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            if plain_content:
                message.plain_text_content = Content("text/plain", plain_content)

            if reply_to:
                message.reply_to = ReplyTo(reply_to)

            response = self.client.send(message)

            return {
                'status_code': response.status_code,
                'message_id': response.headers.get('X-Message-Id')
            }
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return None

    @staticmethod
    def _replay_rows(replays) -> str:
        rows = []
        for index, replay in enumerate(replays, start=1):
            notes = f"<br><em>{escape(replay['notes'])}</em>" if replay.get('notes') else ''
            rows.append(
                f"<li><strong>Replay {index}:</strong> <code>{escape(replay['code'])}</code>"
                f" on {escape(replay['mapName'])}{notes}</li>"
            )
        return ''.join(rows)

    def send_submission_confirmation(self, to_email: str, submission: Dict) -> Optional[Dict]:
        """Confirm a replay submission to the player"""
        subject = f"{BRAND} - We received your replays"
        hero = f" ({escape(submission['hero'])})" if submission.get('hero') else ''
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>Thanks for your submission!</h2>
                <p>We received your {escape(submission['coachingType'])} request for your
                   {escape(submission['rank'])} {escape(submission['role'])}{hero} games.</p>
                <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
                    <ul>{self._replay_rows(submission['replays'])}</ul>
                </div>
                <p>Submission ID: {submission['id']}</p>
                <p>You'll hear from us as soon as your review is ready.</p>
            </body>
        </html>
        """
        plain_content = (
            f"Thanks for your submission! We received your {submission['coachingType']} request.\n"
            f"Submission ID: {submission['id']}"
        )

        return self.send_email(to_email, subject, html_content, plain_content)

    def send_submission_notification(self, to_email: str, submission: Dict) -> Optional[Dict]:
        """Tell the coach a new submission came in"""
        subject = f"New {submission['coachingType']} submission #{submission['id']}"
        discord = escape(submission.get('discordTag') or submission.get('discordUsername') or 'not provided')
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>New Replay Submission</h2>
                <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
                    <p><strong>Email:</strong> {escape(submission['email'])}</p>
                    <p><strong>Discord:</strong> {discord}</p>
                    <p><strong>Rank / Role:</strong> {escape(submission['rank'])} {escape(submission['role'])}</p>
                    <ul>{self._replay_rows(submission['replays'])}</ul>
                </div>
            </body>
        </html>
        """

        return self.send_email(to_email, subject, html_content)

    def send_review_ready(self, to_email: str, submission: Dict) -> Optional[Dict]:
        """Let the player know their review is finished"""
        subject = f"{BRAND} - Your review is ready"
        link = ''
        if submission.get('reviewUrl'):
            url = escape(submission['reviewUrl'])
            link = f"""
                <p style="margin: 30px 0;">
                    <a href="{url}"
                       style="background-color: #FF9800; color: white; padding: 14px 28px;
                              text-decoration: none; border-radius: 4px; display: inline-block;">
                        Watch Your Review
                    </a>
                </p>"""
        notes = ''
        if submission.get('reviewNotes'):
            notes = f"<p><strong>Coach's notes:</strong></p><p style=\"white-space: pre-wrap;\">{escape(submission['reviewNotes'])}</p>"
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>Your review is ready!</h2>
                <p>Your {escape(submission['rank'])} {escape(submission['role'])} replay review is complete.</p>
                {link}
                {notes}
                <p>Thanks for submitting your replays.</p>
            </body>
        </html>
        """

        return self.send_email(to_email, subject, html_content)

    def send_contact_message(self, to_email: str, name: str, sender_email: str, message: str) -> Optional[Dict]:
        """Forward a contact form message to the coach"""
        subject = f"Contact form: {name}"
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>New Contact Message</h2>
                <p><strong>From:</strong> {escape(name)} &lt;{escape(sender_email)}&gt;</p>
                <p style="white-space: pre-wrap;">{escape(message)}</p>
            </body>
        </html>
        """
        plain_content = f"From: {name} <{sender_email}>\n\n{message}"

        return self.send_email(to_email, subject, html_content, plain_content, reply_to=sender_email)
