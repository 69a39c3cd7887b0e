"""
Trip and participant management routes.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List
from tripsplit.db.session import get_db
from tripsplit.models.user import User
from tripsplit.schemas.trip import (
    TripCreate, TripResponse, TripDetailResponse,
    ParticipantCreate, ParticipantResponse
)
from tripsplit.api.dependencies import get_current_user
from tripsplit.services import trip_service

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new trip. The creator is added as its first participant."""
    return trip_service.create_trip(trip_data, current_user, db)


@router.get("", response_model=List[TripResponse])
async def list_trips(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all trips the current user owns or takes part in."""
    return trip_service.list_trips(current_user, db)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get trip details with its roster."""
    trip = trip_service.check_trip_access(trip_id, current_user, db)
    participants = trip_service.list_participants(trip_id, db)
    return TripDetailResponse(
        id=trip.id,
        name=trip.name,
        description=trip.description,
        owner_id=trip.owner_id,
        base_currency=trip.base_currency,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
        participants=[ParticipantResponse.model_validate(p) for p in participants]
    )


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a trip together with its roster, expenses and settlements (owner only)."""
    trip_service.delete_trip(trip_id, current_user, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{trip_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the trip roster with running totals."""
    trip_service.check_trip_access(trip_id, current_user, db)
    return trip_service.list_participants(trip_id, db)


@router.post("/{trip_id}/participants", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def add_participant(
    trip_id: int,
    participant_data: ParticipantCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a participant to the trip (owner only)."""
    return trip_service.add_participant(trip_id, participant_data, current_user, db)


@router.delete("/{trip_id}/participants/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_participant(
    trip_id: int,
    participant_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a participant with no expenses or settlements (owner only)."""
    trip_service.remove_participant(trip_id, participant_id, current_user, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
