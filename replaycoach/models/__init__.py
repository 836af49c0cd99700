from .admin import Admin
from .availability import AvailabilitySlot, AvailabilityException
from .booking import Booking
from .submission import ReplaySubmission, ReplayCode
from .payment import Payment
from .friend_code import FriendCode
from .blog_post import BlogPost

__all__ = [
    'Admin', 'AvailabilitySlot', 'AvailabilityException', 'Booking',
    'ReplaySubmission', 'ReplayCode', 'Payment', 'FriendCode', 'BlogPost'
]
