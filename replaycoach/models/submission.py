from datetime import datetime
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum, Text
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel, isoformat


class SubmissionStatus(enum.Enum):
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class ReplaySubmission(BaseModel):
    __tablename__ = 'replay_submissions'

    # Contact
    email = Column(String(255), nullable=False, index=True)
    discord_tag = Column(String(100))
    discord_id = Column(String(50), index=True)
    discord_username = Column(String(100))

    # Coaching request
    coaching_type = Column(String(50), nullable=False)
    rank = Column(String(50), nullable=False)
    role = Column(String(50), nullable=False)
    hero = Column(String(50))

    # Review
    status = Column(Enum(SubmissionStatus), nullable=False, default=SubmissionStatus.AWAITING_PAYMENT, index=True)
    review_notes = Column(Text)
    review_url = Column(String(500))
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    reviewed_at = Column(DateTime)

    friend_code_id = Column(Integer, ForeignKey('friend_codes.id', ondelete='SET NULL'))

    # Relationships
    replays = relationship("ReplayCode", back_populates="submission", cascade="all, delete-orphan")
    payment = relationship("Payment", back_populates="submission", uselist=False)
    booking = relationship("Booking", back_populates="submission", uselist=False)
    friend_code = relationship("FriendCode", back_populates="submissions")

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'email': self.email,
            'discordTag': self.discord_tag,
            'discordUsername': self.discord_username,
            'coachingType': self.coaching_type,
            'rank': self.rank,
            'role': self.role,
            'hero': self.hero,
            'status': self.status.value,
            'reviewNotes': self.review_notes,
            'reviewUrl': self.review_url,
            'submittedAt': isoformat(self.submitted_at),
            'reviewedAt': isoformat(self.reviewed_at),
            'replays': [replay.to_dict() for replay in self.replays],
        }
        if detail:
            data['payment'] = self.payment.to_dict() if self.payment else None
            data['booking'] = self.booking.to_dict() if self.booking else None
            data['friendCodeId'] = self.friend_code_id
        return data


class ReplayCode(BaseModel):
    __tablename__ = 'replay_codes'

    code = Column(String(10), nullable=False)
    map_name = Column(String(100), nullable=False)
    notes = Column(Text)
    submission_id = Column(Integer, ForeignKey('replay_submissions.id', ondelete='CASCADE'), nullable=False, index=True)

    submission = relationship("ReplaySubmission", back_populates="replays")

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'mapName': self.map_name,
            'notes': self.notes,
        }
