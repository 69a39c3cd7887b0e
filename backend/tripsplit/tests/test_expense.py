"""
Tests for expense ledger operations and their effect on running totals.
"""
import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import func
from tripsplit.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from tripsplit.db.session import transaction
from tripsplit.models.expense import Expense, ExpenseSplit
from tripsplit.models.trip import TripParticipant
from tripsplit.models.user import User
from tripsplit.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseSplitRequest
from tripsplit.schemas.trip import ParticipantCreate
from tripsplit.services import expense_service, trip_service

ZERO = (Decimal("0"), Decimal("0"))


def new_expense(payer_id, amount="100.00", **kwargs):
    return ExpenseCreate(
        paid_by_participant_id=payer_id,
        amount=Decimal(amount),
        category=kwargs.pop("category", "food"),
        date=kwargs.pop("date", date(2024, 5, 1)),
        **kwargs
    )


def test_equal_expense_scenario(db, owner, p1, p2, totals):
    """P1 pays 100.00 split equally: P1 +50.00, P2 -50.00."""
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)

    assert expense.split_type == "equal"
    assert sorted(s.amount for s in expense.splits) == [Decimal("50.00"), Decimal("50.00")]
    assert totals(p1.id) == (Decimal("100.00"), Decimal("50.00"))
    assert totals(p2.id) == (Decimal("0.00"), Decimal("50.00"))
    assert db.get(TripParticipant, p1.id).balance == Decimal("50.00")
    assert db.get(TripParticipant, p2.id).balance == Decimal("-50.00")


def test_create_then_delete_restores_totals(db, owner, p1, p2, totals):
    expense_service.create_expense(p1.trip_id, new_expense(p2.id, "30.00"), owner, db)
    before = (totals(p1.id), totals(p2.id))

    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id, "77.77"), owner, db)
    expense_service.delete_expense(expense.id, owner, db)

    assert (totals(p1.id), totals(p2.id)) == before
    assert db.query(ExpenseSplit).filter(ExpenseSplit.expense_id == expense.id).count() == 0
    assert db.get(Expense, expense.id) is None


def test_delete_returns_both_participants_to_zero(db, owner, p1, p2, totals):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    expense_service.delete_expense(expense.id, owner, db)
    assert totals(p1.id) == ZERO
    assert totals(p2.id) == ZERO


def test_explicit_splits_are_stored_as_given(db, owner, p1, p2, totals):
    data = new_expense(p1.id, "90.00", splits=[
        ExpenseSplitRequest(participant_id=p1.id, amount=Decimal("30.00")),
        ExpenseSplitRequest(participant_id=p2.id, amount=Decimal("60.00")),
    ])
    expense = expense_service.create_expense(p1.trip_id, data, owner, db)

    assert expense.split_type == "explicit"
    assert totals(p1.id) == (Decimal("90.00"), Decimal("30.00"))
    assert totals(p2.id) == (Decimal("0.00"), Decimal("60.00"))


def test_conservation_when_splits_sum_to_amount(db, owner, member, p1, p2):
    expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)
    expense_service.create_expense(p1.trip_id, new_expense(p2.id, "40.00"), member, db)
    expense_service.create_expense(p1.trip_id, new_expense(p2.id, "25.00", splits=[
        ExpenseSplitRequest(participant_id=p1.id, amount=Decimal("25.00")),
    ]), member, db)

    paid, owed = db.query(
        func.sum(TripParticipant.total_paid), func.sum(TripParticipant.total_owed)
    ).filter(TripParticipant.trip_id == p1.trip_id).one()
    assert Decimal(str(paid)) == Decimal(str(owed)) == Decimal("165.00")


def test_update_amount_round_trip(db, owner, p1, p2, totals):
    """X -> Y -> X restores the original balances."""
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)
    original = (totals(p1.id), totals(p2.id))

    expense_service.update_expense(expense.id, ExpenseUpdate(amount=Decimal("80.00")), owner, db)
    assert totals(p1.id)[0] == Decimal("80.00")
    # splits untouched when none are supplied
    assert totals(p2.id)[1] == Decimal("50.00")

    expense_service.update_expense(expense.id, ExpenseUpdate(amount=Decimal("100.00")), owner, db)
    assert (totals(p1.id), totals(p2.id)) == original


def test_update_payer_and_amount_together(db, owner, p1, p2, totals):
    """The old payer is credited back the old amount; the new payer gets the new amount."""
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)

    updated = expense_service.update_expense(
        expense.id, ExpenseUpdate(paid_by_participant_id=p2.id, amount=Decimal("60.00")), owner, db
    )

    assert updated.paid_by_participant_id == p2.id
    assert totals(p1.id)[0] == Decimal("0.00")
    assert totals(p2.id)[0] == Decimal("60.00")


def test_update_replaces_splits(db, owner, p1, p2, totals):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)

    updated = expense_service.update_expense(expense.id, ExpenseUpdate(splits=[
        ExpenseSplitRequest(participant_id=p2.id, amount=Decimal("100.00")),
    ]), owner, db)

    assert updated.split_type == "explicit"
    assert [(s.participant_id, s.amount) for s in updated.splits] == [(p2.id, Decimal("100.00"))]
    assert totals(p1.id) == (Decimal("100.00"), Decimal("0.00"))
    assert totals(p2.id) == (Decimal("0.00"), Decimal("100.00"))
    assert db.query(ExpenseSplit).filter(ExpenseSplit.expense_id == expense.id).count() == 1


def test_update_equal_resplit_uses_new_amount(db, owner, p1, p2, totals):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)

    expense_service.update_expense(
        expense.id, ExpenseUpdate(amount=Decimal("60.00"), split_type="equal"), owner, db
    )

    assert totals(p1.id) == (Decimal("60.00"), Decimal("30.00"))
    assert totals(p2.id) == (Decimal("0.00"), Decimal("30.00"))


def test_update_plain_fields_do_not_touch_balances(db, owner, p1, p2, totals):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    before = (totals(p1.id), totals(p2.id))

    updated = expense_service.update_expense(expense.id, ExpenseUpdate(
        category="Transport", description="Taxi", date=date(2024, 5, 2), currency="usd"
    ), owner, db)

    assert (updated.category, updated.description, updated.currency) == ("transport", "Taxi", "USD")
    assert updated.date == date(2024, 5, 2)
    assert (totals(p1.id), totals(p2.id)) == before


def test_equal_split_uses_current_roster(db, owner, p1, totals):
    """Participants added later are not part of earlier equal splits."""
    expense_service.create_expense(p1.trip_id, new_expense(p1.id, "100.00"), owner, db)
    late = trip_service.add_participant(p1.trip_id, ParticipantCreate(name="Late"), owner, db)

    assert totals(p1.id) == (Decimal("100.00"), Decimal("100.00"))
    assert totals(late.id) == (Decimal("0.00"), Decimal("0.00"))


def test_failure_mid_create_rolls_back_everything(db, owner, p1, p2, totals, monkeypatch):
    """The payer delta has been issued when the split deltas fail; nothing may survive."""
    def boom(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(expense_service, "apply_splits", boom)
    with pytest.raises(RuntimeError):
        expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)

    assert totals(p1.id) == ZERO
    assert totals(p2.id) == ZERO
    assert db.query(Expense).count() == 0
    assert db.query(ExpenseSplit).count() == 0


def test_failure_mid_delete_keeps_expense_and_totals(db, owner, p1, p2, totals, monkeypatch):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    before = (totals(p1.id), totals(p2.id))

    def boom(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(expense_service, "apply_splits", boom)
    with pytest.raises(RuntimeError):
        expense_service.delete_expense(expense.id, owner, db)

    assert (totals(p1.id), totals(p2.id)) == before
    assert db.get(Expense, expense.id) is not None


def test_payer_outside_trip_not_found(db, owner, p1):
    with pytest.raises(NotFoundError):
        expense_service.create_expense(p1.trip_id, new_expense(9999), owner, db)


def test_split_for_non_member_rejected(db, owner, p1, totals):
    data = new_expense(p1.id, splits=[ExpenseSplitRequest(participant_id=9999, amount=Decimal("10.00"))])
    with pytest.raises(BadRequestError):
        expense_service.create_expense(p1.trip_id, data, owner, db)
    assert totals(p1.id) == ZERO


def test_explicit_type_without_splits_rejected(db, owner, p1):
    with pytest.raises(BadRequestError):
        expense_service.create_expense(p1.trip_id, new_expense(p1.id, split_type="explicit"), owner, db)


def test_outsider_cannot_create(db, outsider, p1):
    with pytest.raises(ForbiddenError):
        expense_service.create_expense(p1.trip_id, new_expense(p1.id), outsider, db)


def test_member_can_create_but_not_update_or_delete(db, member, p1, p2):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p2.id), member, db)
    with pytest.raises(ForbiddenError):
        expense_service.update_expense(expense.id, ExpenseUpdate(amount=Decimal("1.00")), member, db)
    # the locked read is rolled back with the rejected request
    assert not db.in_transaction()
    with pytest.raises(ForbiddenError):
        expense_service.delete_expense(expense.id, member, db)
    assert not db.in_transaction()


def test_missing_expense_not_found(db, owner, p1):
    with pytest.raises(NotFoundError):
        expense_service.get_expense(12345, owner, db)
    with pytest.raises(NotFoundError):
        expense_service.delete_expense(12345, owner, db)


def test_list_expenses_newest_first(db, owner, p1, p2):
    older = expense_service.create_expense(p1.trip_id, new_expense(p1.id, date=date(2024, 5, 1)), owner, db)
    newer = expense_service.create_expense(p1.trip_id, new_expense(p2.id, date=date(2024, 5, 3)), owner, db)
    assert [e.id for e in expense_service.list_expenses(p1.trip_id, owner, db)] == [newer.id, older.id]


def test_concurrent_modification_raises_conflict(db, session_factory, owner, p1):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    stale = db.get(Expense, expense.id)
    assert stale.version_id == 1

    other = session_factory()
    fresh = other.get(Expense, expense.id)
    fresh.description = "edited elsewhere"
    other.commit()
    other.close()

    with pytest.raises(ConflictError):
        with transaction(db):
            stale.description = "edited here"


@pytest.mark.parametrize("amount", ["0", "-5.00"])
def test_non_positive_amount_rejected_on_create(db, owner, p1, p2, totals, amount):
    with pytest.raises(BadRequestError):
        expense_service.create_expense(p1.trip_id, new_expense(p1.id, amount), owner, db)
    assert totals(p1.id) == ZERO
    assert db.query(Expense).count() == 0


def test_non_positive_amount_rejected_on_update(db, owner, p1, p2, totals):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    before = (totals(p1.id), totals(p2.id))

    with pytest.raises(BadRequestError):
        expense_service.update_expense(expense.id, ExpenseUpdate(amount=Decimal("-1.00")), owner, db)

    assert (totals(p1.id), totals(p2.id)) == before


def test_concurrent_expenses_for_same_payer_both_count(session_factory, owner, member, p1, p2, monkeypatch):
    """A second expense committed mid-transaction must not be overwritten."""
    trip_id, payer_id = p1.trip_id, p1.id
    first = session_factory()
    second = session_factory()
    first_actor = first.get(User, owner.id)
    second_actor = second.get(User, member.id)
    payer = first.get(TripParticipant, payer_id)
    assert payer.total_paid == Decimal("0.00")

    apply_paid_delta = expense_service.apply_paid_delta
    interleaved = []

    def commit_other_expense_first(participant_id, delta, session):
        if not interleaved:
            interleaved.append(True)
            expense_service.create_expense(trip_id, new_expense(payer_id, "30.00"), second_actor, second)
        apply_paid_delta(participant_id, delta, session)

    monkeypatch.setattr(expense_service, "apply_paid_delta", commit_other_expense_first)
    expense_service.create_expense(trip_id, new_expense(payer_id, "100.00"), first_actor, first)

    first.refresh(payer)
    assert interleaved == [True]
    assert payer.total_paid == Decimal("130.00")
    assert payer.total_owed == Decimal("65.00")
    first.close()
    second.close()


def test_update_conflicts_when_expense_changed_underneath(db, session_factory, owner, p1, p2, totals, monkeypatch):
    expense = expense_service.create_expense(p1.trip_id, new_expense(p1.id), owner, db)
    expense_id = expense.id
    before = (totals(p1.id), totals(p2.id))

    apply_paid_delta = expense_service.apply_paid_delta

    def edit_elsewhere_first(participant_id, delta, session):
        other = session_factory()
        other.get(Expense, expense_id).description = "edited elsewhere"
        other.commit()
        other.close()
        apply_paid_delta(participant_id, delta, session)

    monkeypatch.setattr(expense_service, "apply_paid_delta", edit_elsewhere_first)
    with pytest.raises(ConflictError):
        expense_service.update_expense(expense_id, ExpenseUpdate(amount=Decimal("80.00")), owner, db)

    assert (totals(p1.id), totals(p2.id)) == before
    stored = db.get(Expense, expense_id)
    assert (stored.amount, stored.description, stored.version_id) == (Decimal("100.00"), "edited elsewhere", 2)
