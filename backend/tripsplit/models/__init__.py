"""Models package - Import all models for SQLAlchemy registration."""
from tripsplit.models.user import User
from tripsplit.models.trip import Trip, TripParticipant
from tripsplit.models.expense import Expense, ExpenseSplit, SplitType
from tripsplit.models.settlement import Settlement

__all__ = [
    "User",
    "Trip",
    "TripParticipant",
    "Expense",
    "ExpenseSplit",
    "SplitType",
    "Settlement",
]
