"""
Settlement model for direct payments between participants.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import relationship
from tripsplit.db.base import BaseModel


class Settlement(BaseModel):
    """A payment from one participant to another. Carries no splits."""
    __tablename__ = "settlements"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    from_participant_id = Column(Integer, ForeignKey("trip_participants.id"), nullable=False, index=True)
    to_participant_id = Column(Integer, ForeignKey("trip_participants.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    notes = Column(Text, nullable=True)
    settled_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    trip = relationship("Trip", back_populates="settlements")
    from_participant = relationship("TripParticipant", foreign_keys=[from_participant_id])
    to_participant = relationship("TripParticipant", foreign_keys=[to_participant_id])

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlements_amount_positive"),
        CheckConstraint("from_participant_id <> to_participant_id", name="ck_settlements_distinct_parties"),
    )
