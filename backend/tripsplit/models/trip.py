"""
Trip model for group travel cost sharing.
"""
from decimal import Decimal
from sqlalchemy import Column, String, Text, Numeric, ForeignKey, Integer
from sqlalchemy.orm import relationship
from tripsplit.db.base import BaseModel


class Trip(BaseModel):
    """Trip (group) owning a roster, its expenses and its settlements."""
    __tablename__ = "trips"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    base_currency = Column(String(3), nullable=False, default="INR")

    # Relationships
    owner = relationship("User", back_populates="owned_trips")
    participants = relationship("TripParticipant", back_populates="trip", order_by="TripParticipant.id")
    expenses = relationship("Expense", back_populates="trip")
    settlements = relationship("Settlement", back_populates="trip")


class TripParticipant(BaseModel):
    """
    A member of a trip tracked for cost sharing.

    total_paid and total_owed are running totals maintained by the ledger
    services in the same transaction as the expense, split or settlement
    that moves them. They are never recomputed from the record tables.
    """
    __tablename__ = "trip_participants"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # Optional linked account
    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=True)
    total_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_owed = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    # Relationships
    trip = relationship("Trip", back_populates="participants")
    user = relationship("User", back_populates="participations")

    @property
    def balance(self) -> Decimal:
        """Positive = net creditor, negative = net debtor."""
        return (self.total_paid or Decimal(0)) - (self.total_owed or Decimal(0))
