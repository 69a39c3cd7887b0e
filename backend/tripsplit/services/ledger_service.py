"""
Participant ledger: running totals per trip participant.

total_paid and total_owed are only ever moved by the deltas below, issued
inside the caller's transaction. The arithmetic runs in the database
(``SET total_paid = total_paid + :delta``), never as a read-modify-write
in Python.
"""
import logging
from decimal import Decimal
from sqlalchemy.orm import Session
from tripsplit.core.exceptions import NotFoundError
from tripsplit.models.trip import TripParticipant

logger = logging.getLogger(__name__)


def _apply(participant_id: int, column, delta: Decimal, db: Session) -> None:
    if delta == 0:
        return
    updated = db.query(TripParticipant).filter(
        TripParticipant.id == participant_id
    ).update({column: column + delta}, synchronize_session=False)
    if updated != 1:
        raise NotFoundError(f"Participant {participant_id} not found")
    logger.debug(f"Participant {participant_id}: {column.key} {delta:+}")


def apply_paid_delta(participant_id: int, delta: Decimal, db: Session) -> None:
    """Add ``delta`` (may be negative) to the participant's total_paid."""
    _apply(participant_id, TripParticipant.total_paid, delta, db)


def apply_owed_delta(participant_id: int, delta: Decimal, db: Session) -> None:
    """Add ``delta`` (may be negative) to the participant's total_owed."""
    _apply(participant_id, TripParticipant.total_owed, delta, db)


def apply_splits(splits, db: Session, sign: int = 1) -> None:
    """Move total_owed for every (participant_id, amount) pair, forward or reversed."""
    for participant_id, amount in splits:
        apply_owed_delta(participant_id, sign * amount, db)
