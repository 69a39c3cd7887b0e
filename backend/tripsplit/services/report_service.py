"""
Balance reporter: read-only views over a trip's ledger.
"""
from decimal import Decimal
from typing import List
from sqlalchemy.orm import Session
from tripsplit.models.expense import Expense
from tripsplit.models.user import User
from tripsplit.schemas.expense import CategoryExpenseItem, ExpenseSummaryResponse, ParticipantBalance
from tripsplit.services.trip_service import check_trip_access, list_participants


def balances_for(trip_id: int, actor: User, db: Session) -> List[ParticipantBalance]:
    """Running totals and balance for every participant, in roster order."""
    check_trip_access(trip_id, actor, db)
    return [
        ParticipantBalance(
            participant_id=p.id,
            participant_name=p.name,
            total_paid=p.total_paid,
            total_owed=p.total_owed,
            balance=p.balance
        )
        for p in list_participants(trip_id, db)
    ]


def summary_for(trip_id: int, actor: User, db: Session) -> ExpenseSummaryResponse:
    """
    Spend totals for a trip: overall, per category, and per participant.
    Settlements move money between participants and are not spend, so
    they do not appear in the totals.
    """
    trip = check_trip_access(trip_id, actor, db)
    expenses = db.query(Expense).filter(Expense.trip_id == trip_id).all()

    total_expenses = sum((exp.amount for exp in expenses), Decimal(0))

    # Group expenses by category
    category_totals = {}
    category_counts = {}
    for expense in expenses:
        category = expense.category or "uncategorized"
        category_totals[category] = category_totals.get(category, Decimal(0)) + expense.amount
        category_counts[category] = category_counts.get(category, 0) + 1

    category_items = []
    for category, total_amount in category_totals.items():
        percentage = float(total_amount / total_expenses * 100) if total_expenses > 0 else 0.0
        category_items.append(CategoryExpenseItem(
            category=category,
            total_amount=total_amount,
            expense_count=category_counts[category],
            percentage=round(percentage, 2)
        ))

    # Sort by total amount (descending)
    category_items.sort(key=lambda x: (-x.total_amount, x.category))

    return ExpenseSummaryResponse(
        trip_id=trip_id,
        currency=trip.base_currency,
        total_expenses=total_expenses,
        expense_count=len(expenses),
        categories=category_items,
        participant_balances=balances_for(trip_id, actor, db)
    )
