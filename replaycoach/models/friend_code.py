from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from .base import BaseModel, isoformat


class FriendCode(BaseModel):
    """Promotional code that skips the payment step"""
    __tablename__ = 'friend_codes'

    code = Column(String(50), unique=True, nullable=False)  # stored upper-case
    description = Column(Text)
    max_uses = Column(Integer)  # None = unlimited
    uses_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime)
    is_active = Column(Boolean, nullable=False, default=True)

    submissions = relationship("ReplaySubmission", back_populates="friend_code")

    def to_dict(self, submission_count=None):
        data = {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'maxUses': self.max_uses,
            'usesCount': self.uses_count,
            'expiresAt': isoformat(self.expires_at),
            'isActive': self.is_active,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if submission_count is not None:
            data['submissionCount'] = submission_count
        return data
