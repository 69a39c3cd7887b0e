"""
Expense service: expense lifecycle and its effect on participant balances.

Every mutation reverses exactly what the expense contributed before and
applies what it contributes after, inside a single transaction:

* payer.total_paid carries the expense amount;
* each split participant's total_owed carries the split amount.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from tripsplit.core.exceptions import BadRequestError, NotFoundError
from tripsplit.db.session import transaction
from tripsplit.models.expense import Expense, ExpenseSplit, SplitType
from tripsplit.models.user import User
from tripsplit.schemas.expense import ExpenseCreate, ExpenseUpdate
from tripsplit.services.allocation_service import (
    Allocation, allocate_equal, allocate_explicit, require_positive
)
from tripsplit.services.ledger_service import apply_paid_delta, apply_splits
from tripsplit.services.trip_service import (
    check_owner_access, check_trip_access, get_trip_participant, list_participants
)

logger = logging.getLogger(__name__)


def _allocate(
    trip_id: int,
    amount: Decimal,
    split_type: Optional[SplitType],
    splits: Optional[list],
    db: Session
) -> Tuple[List[Allocation], SplitType]:
    """Pick the allocation mode: explicit when splits are given, else equal over the roster."""
    roster_ids = [p.id for p in list_participants(trip_id, db)]
    if splits:
        return allocate_explicit(amount, splits, roster_ids), SplitType.EXPLICIT
    if split_type == SplitType.EXPLICIT:
        raise BadRequestError("An explicit split requires at least one split")
    return allocate_equal(amount, roster_ids), SplitType.EQUAL


def _current_allocations(expense: Expense) -> List[Allocation]:
    return [(split.participant_id, split.amount) for split in expense.splits]


def _load_expense_for_update(expense_id: int, db: Session) -> Expense:
    """Load and row-lock an expense for the rest of the transaction."""
    expense = db.query(Expense).filter(Expense.id == expense_id).with_for_update().first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def create_expense(trip_id: int, data: ExpenseCreate, actor: User, db: Session) -> Expense:
    """Record an expense, its splits, and the matching balance deltas."""
    trip = check_trip_access(trip_id, actor, db)
    amount = require_positive(data.amount)
    payer = get_trip_participant(trip_id, data.paid_by_participant_id, db)
    allocations, split_type = _allocate(trip_id, amount, data.split_type, data.splits, db)

    with transaction(db):
        expense = Expense(
            trip_id=trip_id,
            paid_by_participant_id=payer.id,
            amount=amount,
            currency=(data.currency or trip.base_currency).upper(),
            category=data.category.lower(),
            description=data.description,
            date=data.date,
            receipt_url=data.receipt_url,
            split_type=split_type.value
        )
        for participant_id, share in allocations:
            expense.splits.append(ExpenseSplit(participant_id=participant_id, amount=share))
        db.add(expense)
        db.flush()

        apply_paid_delta(payer.id, amount, db)
        apply_splits(allocations, db)

    logger.info(f"Expense created: {expense.id} for trip {trip_id} ({split_type.value}, {len(allocations)} splits)")
    return get_expense(expense.id, actor, db)


def get_expense(expense_id: int, actor: User, db: Session) -> Expense:
    expense = db.query(Expense).options(
        joinedload(Expense.paid_by),
        joinedload(Expense.splits).joinedload(ExpenseSplit.participant)
    ).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    check_trip_access(expense.trip_id, actor, db)
    return expense


def list_expenses(trip_id: int, actor: User, db: Session) -> List[Expense]:
    """Expenses of a trip, newest date first."""
    check_trip_access(trip_id, actor, db)
    return db.query(Expense).options(
        joinedload(Expense.paid_by),
        joinedload(Expense.splits).joinedload(ExpenseSplit.participant)
    ).filter(
        Expense.trip_id == trip_id
    ).order_by(Expense.date.desc(), Expense.id.desc()).all()


def update_expense(expense_id: int, data: ExpenseUpdate, actor: User, db: Session) -> Expense:
    """
    Update an expense in place.

    Payer change: the old payer gets back the old amount and the new payer
    is charged the new (or unchanged) amount. Amount-only change: the payer
    moves by the difference. Splits are replaced only when ``splits`` or
    ``split_type`` is supplied; otherwise they are left as they are.
    """
    with transaction(db):
        expense = _load_expense_for_update(expense_id, db)
        check_owner_access(expense.trip_id, actor, db)
        trip_id = expense.trip_id

        old_amount = expense.amount
        old_payer_id = expense.paid_by_participant_id
        new_amount = require_positive(data.amount) if data.amount is not None else old_amount
        new_payer_id = old_payer_id
        if data.paid_by_participant_id is not None and data.paid_by_participant_id != old_payer_id:
            new_payer_id = get_trip_participant(trip_id, data.paid_by_participant_id, db).id

        allocations = None
        split_type = None
        if data.splits is not None or data.split_type is not None:
            allocations, split_type = _allocate(trip_id, new_amount, data.split_type, data.splits, db)

        if new_payer_id != old_payer_id:
            apply_paid_delta(old_payer_id, -old_amount, db)
            apply_paid_delta(new_payer_id, new_amount, db)
            expense.paid_by_participant_id = new_payer_id
        elif new_amount != old_amount:
            apply_paid_delta(old_payer_id, new_amount - old_amount, db)
        expense.amount = new_amount

        if allocations is not None:
            apply_splits(_current_allocations(expense), db, sign=-1)
            expense.splits.clear()
            db.flush()
            for participant_id, share in allocations:
                expense.splits.append(ExpenseSplit(participant_id=participant_id, amount=share))
            apply_splits(allocations, db)
            expense.split_type = split_type.value

        if data.currency is not None:
            expense.currency = data.currency.upper()
        if data.category is not None:
            expense.category = data.category.lower()
        if data.description is not None:
            expense.description = data.description
        if data.date is not None:
            expense.date = data.date
        if data.receipt_url is not None:
            expense.receipt_url = data.receipt_url
        # Always dirty the row so the version check runs even for split-only updates
        expense.updated_at = datetime.utcnow()

    logger.info(f"Expense updated: {expense_id} for trip {trip_id}")
    return get_expense(expense_id, actor, db)


def delete_expense(expense_id: int, actor: User, db: Session) -> None:
    """Reverse the expense's contribution to every balance, then delete it."""
    with transaction(db):
        expense = _load_expense_for_update(expense_id, db)
        check_owner_access(expense.trip_id, actor, db)
        trip_id = expense.trip_id

        apply_paid_delta(expense.paid_by_participant_id, -expense.amount, db)
        apply_splits(_current_allocations(expense), db, sign=-1)
        db.delete(expense)

    logger.info(f"Expense deleted: {expense_id} from trip {trip_id}")
