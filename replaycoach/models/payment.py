from sqlalchemy import Column, String, Integer, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel, isoformat


class PaymentStatus(enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class Payment(BaseModel):
    __tablename__ = 'payments'

    # Stripe details
    stripe_session_id = Column(String(255), unique=True)
    stripe_payment_id = Column(String(255), unique=True)

    # Payment details
    amount = Column(Integer, nullable=False)  # minor units (cents)
    currency = Column(String(3), nullable=False, default='usd')
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)
    coaching_type = Column(String(50), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)

    # At most one payment per submission
    submission_id = Column(Integer, ForeignKey('replay_submissions.id', ondelete='SET NULL'), unique=True)

    submission = relationship("ReplaySubmission", back_populates="payment")

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'currency': self.currency,
            'status': self.status.value,
            'coachingType': self.coaching_type,
            'customerEmail': self.customer_email,
            'submissionId': self.submission_id,
            'stripeSessionId': self.stripe_session_id,
            'createdAt': isoformat(self.created_at),
        }
