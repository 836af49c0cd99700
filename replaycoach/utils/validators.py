import re
from datetime import datetime, timezone
from typing import Optional, Tuple

TIME_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$')
SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
REPLAY_CODE_PATTERN = re.compile(r'^[A-Z0-9]{6,10}$')
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """Validate email format"""
    if not email:
        return False, "Email is required"
    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"
    return True, None


def validate_time(value: str) -> Tuple[bool, Optional[str]]:
    """Validate a 24h "HH:MM" wall-clock time"""
    if not value or not TIME_PATTERN.match(value):
        return False, "Invalid time format (HH:MM)"
    return True, None


def validate_slug(slug: str) -> Tuple[bool, Optional[str]]:
    """Validate a URL slug (lowercase words joined by single hyphens)"""
    if not slug:
        return False, "Slug is required"
    if not SLUG_PATTERN.match(slug):
        return False, "Slug must be lowercase letters, numbers and hyphens"
    return True, None


def validate_replay_code(code: str) -> Tuple[bool, Optional[str]]:
    """Validate an in-game replay code; returns the normalized code on success"""
    normalized = (code or '').strip().upper()
    if not REPLAY_CODE_PATTERN.match(normalized):
        return False, "Replay code must be 6-10 letters or numbers"
    return True, normalized


def slugify(title: str) -> str:
    """Build a slug from a post title"""
    slug = re.sub(r'[^a-z0-9]+', '-', (title or '').lower())
    return slug.strip('-')


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC, the storage convention"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
