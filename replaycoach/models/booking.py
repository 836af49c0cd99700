from datetime import datetime
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum, Text
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel, isoformat


class BookingStatus(enum.Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class Booking(BaseModel):
    __tablename__ = 'bookings'

    email = Column(String(255), nullable=False, index=True)
    session_type = Column(String(50), nullable=False)
    scheduled_at = Column(DateTime, nullable=False, index=True)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    notes = Column(Text)

    submission_id = Column(Integer, ForeignKey('replay_submissions.id', ondelete='SET NULL'), unique=True)

    submission = relationship("ReplaySubmission", back_populates="booking")
    exception = relationship("AvailabilityException", back_populates="booking", uselist=False)

    def to_dict(self, now=None):
        now = now or datetime.utcnow()
        return {
            'id': self.id,
            'email': self.email,
            'sessionType': self.session_type,
            'scheduledAt': isoformat(self.scheduled_at),
            'status': self.status.value,
            'notes': self.notes,
            'submissionId': self.submission_id,
            'isPast': self.scheduled_at < now,
            'isUpcoming': self.scheduled_at >= now,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
