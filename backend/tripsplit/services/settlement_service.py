"""
Settlement service: direct payments between participants and settle-up suggestions.
"""
import heapq
import logging
from decimal import Decimal
from typing import List, Tuple
from sqlalchemy.orm import Session, joinedload
from tripsplit.core.exceptions import BadRequestError, NotFoundError
from tripsplit.db.session import transaction
from tripsplit.models.settlement import Settlement
from tripsplit.models.user import User
from tripsplit.schemas.settlement import SettlementCreate
from tripsplit.services.allocation_service import require_positive
from tripsplit.services.ledger_service import apply_owed_delta, apply_paid_delta
from tripsplit.services.trip_service import (
    check_owner_access, check_trip_access, get_trip_participant, list_participants
)

logger = logging.getLogger(__name__)


class Transfer:
    """Represents a single suggested transfer between participants."""
    def __init__(self, from_participant_id: int, to_participant_id: int, amount: Decimal):
        self.from_participant_id = from_participant_id
        self.to_participant_id = to_participant_id
        self.amount = amount


def _apply_settlement(settlement: Settlement, db: Session, sign: int = 1) -> None:
    """
    Payer's contribution grows by the amount; the recipient's outstanding
    debt shrinks by it. ``sign=-1`` undoes exactly that.
    """
    apply_paid_delta(settlement.from_participant_id, sign * settlement.amount, db)
    apply_owed_delta(settlement.to_participant_id, -sign * settlement.amount, db)


def create_settlement(trip_id: int, data: SettlementCreate, actor: User, db: Session) -> Settlement:
    """Record a payment from one participant to another and apply it to both balances."""
    trip = check_trip_access(trip_id, actor, db)

    if data.from_participant_id == data.to_participant_id:
        raise BadRequestError("A settlement needs two different participants")
    amount = require_positive(data.amount, "Settlement amount")
    try:
        payer = get_trip_participant(trip_id, data.from_participant_id, db)
        recipient = get_trip_participant(trip_id, data.to_participant_id, db)
    except NotFoundError as e:
        raise BadRequestError(e.message) from e

    with transaction(db):
        settlement = Settlement(
            trip_id=trip_id,
            from_participant_id=payer.id,
            to_participant_id=recipient.id,
            amount=amount,
            currency=(data.currency or trip.base_currency).upper(),
            notes=data.notes
        )
        db.add(settlement)
        db.flush()
        _apply_settlement(settlement, db)

    logger.info(f"Settlement created: {settlement.id} for trip {trip_id}")
    return get_settlement(settlement.id, actor, db)


def get_settlement(settlement_id: int, actor: User, db: Session) -> Settlement:
    settlement = db.query(Settlement).options(
        joinedload(Settlement.from_participant),
        joinedload(Settlement.to_participant)
    ).filter(Settlement.id == settlement_id).first()
    if not settlement:
        raise NotFoundError("Settlement not found")
    check_trip_access(settlement.trip_id, actor, db)
    return settlement


def list_settlements(trip_id: int, actor: User, db: Session) -> List[Settlement]:
    """Settlements of a trip, most recent first."""
    check_trip_access(trip_id, actor, db)
    return db.query(Settlement).options(
        joinedload(Settlement.from_participant),
        joinedload(Settlement.to_participant)
    ).filter(
        Settlement.trip_id == trip_id
    ).order_by(Settlement.settled_at.desc(), Settlement.id.desc()).all()


def delete_settlement(settlement_id: int, actor: User, db: Session) -> None:
    """Undo a settlement's balance effect and delete it."""
    with transaction(db):
        settlement = db.query(Settlement).filter(Settlement.id == settlement_id).with_for_update().first()
        if not settlement:
            raise NotFoundError("Settlement not found")
        check_owner_access(settlement.trip_id, actor, db)
        trip_id = settlement.trip_id

        _apply_settlement(settlement, db, sign=-1)
        db.delete(settlement)

    logger.info(f"Settlement deleted: {settlement_id} from trip {trip_id}")


def suggest_transfers(trip_id: int, actor: User, db: Session) -> List[Tuple[Transfer, str, str]]:
    """
    Suggest the payments that would bring every balance to zero.
    Read-only; nothing is recorded until a settlement is created.
    """
    check_trip_access(trip_id, actor, db)
    participants = list_participants(trip_id, db)
    names = {p.id: p.name for p in participants}
    transfers = minimize_transfers([(p.id, p.balance) for p in participants])
    return [(t, names[t.from_participant_id], names[t.to_participant_id]) for t in transfers]


def minimize_transfers(balances: List[Tuple[int, Decimal]]) -> List[Transfer]:
    """
    Greedy settle-up over ``(participant_id, balance)`` pairs.

    The largest remaining debtor pays the largest remaining creditor; any
    remainder goes back on its heap. Equal amounts are ordered by
    participant id.
    """
    creditors = [(-bal, pid) for pid, bal in balances if bal > 0]
    debtors = [(bal, pid) for pid, bal in balances if bal < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transfers = []
    while creditors and debtors:
        credit, creditor_id = heapq.heappop(creditors)
        debt, debtor_id = heapq.heappop(debtors)
        credit, debt = -credit, -debt

        amount = min(credit, debt)
        transfers.append(Transfer(debtor_id, creditor_id, amount))

        if credit > amount:
            heapq.heappush(creditors, (amount - credit, creditor_id))
        if debt > amount:
            heapq.heappush(debtors, (amount - debt, debtor_id))

    return transfers
