"""
Trip and roster service: membership checks and participant directory.
"""
import logging
from typing import List, Optional
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from tripsplit.core.config import settings
from tripsplit.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from tripsplit.db.session import transaction
from tripsplit.models.expense import Expense, ExpenseSplit
from tripsplit.models.settlement import Settlement
from tripsplit.models.trip import Trip, TripParticipant
from tripsplit.models.user import User
from tripsplit.schemas.trip import TripCreate, ParticipantCreate

logger = logging.getLogger(__name__)


def get_trip(trip_id: int, db: Session) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def is_owner(trip_id: int, user_id: int, db: Session) -> bool:
    return db.query(Trip.id).filter(Trip.id == trip_id, Trip.owner_id == user_id).first() is not None


def is_participant(trip_id: int, user_id: int, db: Session) -> bool:
    return db.query(TripParticipant.id).filter(
        TripParticipant.trip_id == trip_id,
        TripParticipant.user_id == user_id
    ).first() is not None


def check_trip_access(trip_id: int, actor: User, db: Session) -> Trip:
    """Return the trip if the actor is its owner or a linked participant."""
    trip = get_trip(trip_id, db)
    if not is_owner(trip_id, actor.id, db) and not is_participant(trip_id, actor.id, db):
        logger.warning(f"User {actor.id} denied access to trip {trip_id}")
        raise ForbiddenError("You don't have access to this trip")
    return trip


def check_owner_access(trip_id: int, actor: User, db: Session) -> Trip:
    """Return the trip if the actor owns it."""
    trip = get_trip(trip_id, db)
    if not is_owner(trip_id, actor.id, db):
        logger.warning(f"User {actor.id} attempted an owner-only action on trip {trip_id}")
        raise ForbiddenError("Only the trip owner can perform this action")
    return trip


def get_participant(participant_id: int, db: Session) -> TripParticipant:
    participant = db.query(TripParticipant).filter(TripParticipant.id == participant_id).first()
    if not participant:
        raise NotFoundError("Participant not found")
    return participant


def get_trip_participant(trip_id: int, participant_id: int, db: Session) -> TripParticipant:
    """Resolve a participant that must belong to the given trip."""
    participant = get_participant(participant_id, db)
    if participant.trip_id != trip_id:
        raise NotFoundError(f"Participant {participant_id} not found in this trip")
    return participant


def list_participants(trip_id: int, db: Session) -> List[TripParticipant]:
    return db.query(TripParticipant).filter(
        TripParticipant.trip_id == trip_id
    ).order_by(TripParticipant.id).all()


def create_trip(data: TripCreate, actor: User, db: Session) -> Trip:
    """Create a trip; the creator becomes owner and its first participant."""
    with transaction(db):
        trip = Trip(
            name=data.name,
            description=data.description,
            owner_id=actor.id,
            base_currency=(data.base_currency or settings.DEFAULT_CURRENCY).upper()
        )
        db.add(trip)
        db.flush()

        db.add(TripParticipant(
            trip_id=trip.id,
            user_id=actor.id,
            name=data.creator_name or actor.username,
            email=actor.email
        ))

    logger.info(f"Trip created: {trip.id} by user {actor.id}")
    db.refresh(trip)
    return trip


def list_trips(actor: User, db: Session) -> List[Trip]:
    """Trips the actor owns or participates in."""
    member_trip_ids = select(TripParticipant.trip_id).where(TripParticipant.user_id == actor.id)
    return db.query(Trip).filter(
        or_(Trip.owner_id == actor.id, Trip.id.in_(member_trip_ids))
    ).order_by(Trip.id).all()


def delete_trip(trip_id: int, actor: User, db: Session) -> None:
    """Delete a trip with its whole ledger: splits, expenses, settlements, roster."""
    check_owner_access(trip_id, actor, db)

    with transaction(db):
        expense_ids = select(Expense.id).where(Expense.trip_id == trip_id)
        db.query(ExpenseSplit).filter(
            ExpenseSplit.expense_id.in_(expense_ids)
        ).delete(synchronize_session=False)
        db.query(Expense).filter(Expense.trip_id == trip_id).delete(synchronize_session=False)
        db.query(Settlement).filter(Settlement.trip_id == trip_id).delete(synchronize_session=False)
        db.query(TripParticipant).filter(TripParticipant.trip_id == trip_id).delete(synchronize_session=False)
        db.query(Trip).filter(Trip.id == trip_id).delete(synchronize_session=False)

    logger.info(f"Trip deleted: {trip_id}")


def add_participant(trip_id: int, data: ParticipantCreate, actor: User, db: Session) -> TripParticipant:
    """Add a participant. Links a registered account by id or, failing that, by email."""
    check_owner_access(trip_id, actor, db)

    if data.email and db.query(TripParticipant.id).filter(
        TripParticipant.trip_id == trip_id,
        TripParticipant.email == data.email
    ).first():
        raise BadRequestError("Participant with this email already exists")

    linked_user: Optional[User] = None
    if data.user_id is not None:
        linked_user = db.query(User).filter(User.id == data.user_id).first()
        if not linked_user:
            raise NotFoundError("User not found")
    elif data.email:
        linked_user = db.query(User).filter(User.email == data.email).first()

    if linked_user and is_participant(trip_id, linked_user.id, db):
        raise BadRequestError("User is already a participant of this trip")

    with transaction(db):
        participant = TripParticipant(
            trip_id=trip_id,
            user_id=linked_user.id if linked_user else None,
            name=data.name,
            email=data.email
        )
        db.add(participant)

    logger.info(f"Participant added: {participant.id} to trip {trip_id}")
    db.refresh(participant)
    return participant


def remove_participant(trip_id: int, participant_id: int, actor: User, db: Session) -> None:
    """Remove a participant that no expense, split or settlement references."""
    trip = check_owner_access(trip_id, actor, db)
    participant = get_trip_participant(trip_id, participant_id, db)

    if participant.user_id is not None and participant.user_id == trip.owner_id:
        raise BadRequestError("Cannot remove the trip owner as a participant")

    referenced = (
        db.query(Expense.id).filter(Expense.paid_by_participant_id == participant_id).first()
        or db.query(ExpenseSplit.id).filter(ExpenseSplit.participant_id == participant_id).first()
        or db.query(Settlement.id).filter(or_(
            Settlement.from_participant_id == participant_id,
            Settlement.to_participant_id == participant_id
        )).first()
    )
    if referenced:
        raise BadRequestError("Participant has expenses or settlements and cannot be removed")

    with transaction(db):
        db.delete(participant)

    logger.info(f"Participant removed: {participant_id} from trip {trip_id}")
