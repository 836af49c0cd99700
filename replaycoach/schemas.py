"""Request schemas - pydantic models for validating JSON bodies and query strings"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from replaycoach.models.booking import BookingStatus
from replaycoach.models.submission import SubmissionStatus
from replaycoach.utils.validators import (
    validate_email, validate_time, validate_slug, validate_replay_code, to_naive_utc
)

CoachingType = Literal['review-async', 'vod-review', 'live-coaching']
SessionType = Literal['vod-review', 'live-coaching']
Rank = Literal['Bronze', 'Silver', 'Gold', 'Platinum', 'Diamond', 'Master', 'Grandmaster', 'Champion', 'Top 500']
Role = Literal['Tank', 'DPS', 'Support']


def _check_email(value):
    valid, error = validate_email(value)
    if not valid:
        raise ValueError(error)
    return value.lower()


def _check_time(value):
    valid, error = validate_time(value)
    if not valid:
        raise ValueError(error)
    hours, minutes = value.split(':')
    return f"{int(hours):02d}:{minutes}"


def _check_slug(value):
    valid, error = validate_slug(value)
    if not valid:
        raise ValueError(error)
    return value


def _check_replay_code(value):
    valid, result = validate_replay_code(value)
    if not valid:
        raise ValueError(result)
    return result


def _clean_tags(value):
    return [tag.strip() for tag in value if tag and tag.strip()]


Email = Annotated[str, AfterValidator(_check_email)]
WallTime = Annotated[str, AfterValidator(_check_time)]
Slug = Annotated[str, AfterValidator(_check_slug)]
UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]
Tags = Annotated[List[str], AfterValidator(_clean_tags)]
BlankAsNone = BeforeValidator(lambda v: v or None)


class ApiSchema(BaseModel):
    """Accepts camelCase keys from the browser, exposes snake_case attributes"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# ===========================
# Public forms
# ===========================

class ContactRequest(ApiSchema):
    name: str = Field(..., min_length=2, max_length=100)
    email: Email
    message: str = Field(..., min_length=10, max_length=1000)


class CheckoutRequest(ApiSchema):
    submission_id: Optional[int] = None
    coaching_type: Optional[str] = None
    email: Optional[Email] = None


class ReplayEntry(ApiSchema):
    code: Annotated[str, AfterValidator(_check_replay_code)]
    map_name: str = Field(..., min_length=2, max_length=100)
    notes: Annotated[Optional[str], BlankAsNone] = Field(None, max_length=500)


class ReplaySubmissionCreate(ApiSchema):
    email: Email
    discord_tag: Annotated[Optional[str], BlankAsNone] = Field(None, max_length=100)
    coaching_type: CoachingType
    rank: Rank
    role: Role
    hero: Annotated[Optional[str], BlankAsNone] = Field(None, min_length=2, max_length=50)
    replays: List[ReplayEntry] = Field(..., min_length=1, max_length=5)
    scheduled_at: Optional[UtcDatetime] = None


class FriendCodeRedemption(ReplaySubmissionCreate):
    friend_code: str = Field(..., min_length=1, max_length=50)


# ===========================
# Availability
# ===========================

class SlotCreate(ApiSchema):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: WallTime
    end_time: WallTime
    session_type: SessionType
    slot_duration: int = Field(60, gt=0, le=480)
    is_active: bool = True


class SlotUpdate(ApiSchema):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[WallTime] = None
    end_time: Optional[WallTime] = None
    session_type: Optional[SessionType] = None
    slot_duration: Optional[int] = Field(None, gt=0, le=480)
    is_active: Optional[bool] = None


class ExceptionCreate(ApiSchema):
    slot_id: Optional[int] = None
    date: UtcDatetime
    end_date: UtcDatetime
    reason: Literal['blocked', 'holiday']
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode='after')
    def check_range(self):
        if self.end_date <= self.date:
            raise ValueError('End date must be after start date')
        return self


class ExceptionQuery(ApiSchema):
    reason: Optional[Literal['blocked', 'holiday', 'booked']] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None


class AvailableSlotsQuery(ApiSchema):
    date: str = Field(..., pattern=r'^\d{4}-\d{2}-\d{2}$')
    session_type: SessionType


# ===========================
# Bookings and submissions
# ===========================

class BookingQuery(ApiSchema):
    status: Optional[BookingStatus] = None
    sort: Literal['scheduledAt', 'createdAt', 'updatedAt'] = 'scheduledAt'
    order: Literal['asc', 'desc'] = 'asc'
    upcoming: Optional[bool] = None


class BookingUpdate(ApiSchema):
    status: BookingStatus
    notes: Optional[str] = Field(None, max_length=2000)


class SubmissionQuery(ApiSchema):
    status: Optional[SubmissionStatus] = None
    sort: Literal['submittedAt', 'reviewedAt', 'status'] = 'submittedAt'
    order: Literal['asc', 'desc'] = 'desc'
    search: Optional[str] = None


class SubmissionUpdate(ApiSchema):
    status: Optional[SubmissionStatus] = None
    review_notes: Optional[str] = None
    review_url: Annotated[Optional[str], BlankAsNone] = Field(None, max_length=500)
    send_email: bool = False
    send_discord_notification: bool = False

    @field_validator('review_url')
    @classmethod
    def check_url(cls, v):
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError('Review URL must be an http(s) URL')
        return v


# ===========================
# Friend codes
# ===========================

class FriendCodeCreate(ApiSchema):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    max_uses: Optional[int] = Field(None, gt=0)
    expires_at: Optional[UtcDatetime] = None

    @field_validator('code')
    @classmethod
    def upper(cls, v):
        return v.upper()


class FriendCodeUpdate(ApiSchema):
    description: Optional[str] = None
    max_uses: Optional[int] = Field(None, gt=0)
    expires_at: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


# ===========================
# Blog
# ===========================

class BlogPostQuery(ApiSchema):
    page: int = Field(1, gt=0)
    limit: int = Field(12, gt=0, le=100)
    tag: Optional[str] = None


class AdminBlogQuery(ApiSchema):
    page: int = Field(1, gt=0)
    limit: int = Field(20, gt=0, le=100)
    published: Literal['true', 'false', 'all'] = 'all'
    sort: Literal['createdAt', 'updatedAt', 'publishedAt', 'title'] = 'createdAt'
    order: Literal['asc', 'desc'] = 'desc'


class BlogPostCreate(ApiSchema):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[Slug] = None
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    tags: Tags = Field(default_factory=list)
    published: bool = False


class BlogPostUpdate(ApiSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[Slug] = None
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = None
    tags: Optional[Tags] = None
    published: Optional[bool] = None


# ===========================
# Admin auth
# ===========================

class LoginRequest(ApiSchema):
    email: Email
    password: str = Field(..., min_length=1)
