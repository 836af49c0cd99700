from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from .base import BaseModel, isoformat

SESSION_TYPES = ('vod-review', 'live-coaching')


class AvailabilitySlot(BaseModel):
    """Recurring weekly availability template"""
    __tablename__ = 'availability_slots'

    day_of_week = Column(Integer, nullable=False, index=True)  # 0 = Sunday, 6 = Saturday
    start_time = Column(String(5), nullable=False)  # "HH:MM" wall clock
    end_time = Column(String(5), nullable=False)
    slot_duration = Column(Integer, nullable=False, default=60)  # minutes
    session_type = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    exceptions = relationship(
        "AvailabilityException",
        back_populates="slot",
        cascade="all, delete-orphan",
        order_by="AvailabilityException.date"
    )

    def to_dict(self, exceptions=None):
        data = {
            'id': self.id,
            'dayOfWeek': self.day_of_week,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'slotDuration': self.slot_duration,
            'sessionType': self.session_type,
            'isActive': self.is_active,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if exceptions is not None:
            data['exceptions'] = [e.to_dict() for e in exceptions]
        return data


class AvailabilityException(BaseModel):
    """Date-specific override of availability: blocked time or a booking"""
    __tablename__ = 'availability_exceptions'

    date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    reason = Column(String(20), nullable=False)  # blocked, holiday, booked
    notes = Column(Text)

    slot_id = Column(Integer, ForeignKey('availability_slots.id', ondelete='CASCADE'), index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id', ondelete='CASCADE'), unique=True)

    slot = relationship("AvailabilitySlot", back_populates="exceptions")
    booking = relationship("Booking", back_populates="exception")

    def to_dict(self):
        return {
            'id': self.id,
            'date': isoformat(self.date),
            'endDate': isoformat(self.end_date),
            'reason': self.reason,
            'notes': self.notes,
            'slotId': self.slot_id,
            'bookingId': self.booking_id,
            'createdAt': isoformat(self.created_at),
        }
