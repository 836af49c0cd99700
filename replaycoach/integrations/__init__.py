from .stripe_client import StripeClient
from .discord_client import DiscordClient
from .sendgrid_client import SendGridClient

__all__ = ['StripeClient', 'DiscordClient', 'SendGridClient']
