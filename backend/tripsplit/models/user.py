"""
User model for authentication and user management.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from tripsplit.db.base import BaseModel


class User(BaseModel):
    """Registered account. May be linked to participants in many trips."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    owned_trips = relationship("Trip", back_populates="owner")
    participations = relationship("TripParticipant", back_populates="user")
