"""
Database initialization script.
"""
from tripsplit.db.session import init_db

# Import all models so SQLAlchemy can register them
from tripsplit.models import (  # noqa: F401
    User, Trip, TripParticipant, Expense, ExpenseSplit, Settlement
)

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Database initialized successfully!")
