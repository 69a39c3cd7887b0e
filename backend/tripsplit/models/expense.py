"""
Expense model for tracking spending.
"""
import enum
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text, CheckConstraint
from sqlalchemy.orm import relationship
from tripsplit.db.base import BaseModel


class SplitType(str, enum.Enum):
    """How an expense is divided among participants."""
    EQUAL = "equal"
    EXPLICIT = "explicit"


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    paid_by_participant_id = Column(Integer, ForeignKey("trip_participants.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    category = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)
    receipt_url = Column(String(500), nullable=True)
    split_type = Column(String(20), nullable=False, default=SplitType.EQUAL.value)
    version_id = Column(Integer, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    paid_by = relationship("TripParticipant", foreign_keys=[paid_by_participant_id])
    splits = relationship(
        "ExpenseSplit",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseSplit.id",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    __mapper_args__ = {"version_id_col": version_id}


class ExpenseSplit(BaseModel):
    """A participant's allocated share of one expense."""
    __tablename__ = "expense_splits"

    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("trip_participants.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="splits")
    participant = relationship("TripParticipant")
