from sqlalchemy import Column, String
from .base import BaseModel


class Admin(BaseModel):
    __tablename__ = 'admins'

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100))

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
        }
