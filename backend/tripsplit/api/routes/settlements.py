"""
Settlement routes.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List
from tripsplit.db.session import get_db
from tripsplit.models.settlement import Settlement
from tripsplit.models.user import User
from tripsplit.schemas.settlement import SettlementCreate, SettlementResponse, Transfer
from tripsplit.api.dependencies import get_current_user
from tripsplit.services import settlement_service

router = APIRouter(prefix="/settlements", tags=["settlements"])


def build_settlement_response(settlement: Settlement) -> SettlementResponse:
    return SettlementResponse(
        id=settlement.id,
        trip_id=settlement.trip_id,
        from_participant_id=settlement.from_participant_id,
        from_participant_name=settlement.from_participant.name,
        to_participant_id=settlement.to_participant_id,
        to_participant_name=settlement.to_participant.name,
        amount=settlement.amount,
        currency=settlement.currency,
        notes=settlement.notes,
        settled_at=settlement.settled_at
    )


@router.get("/trip/{trip_id}", response_model=List[SettlementResponse])
async def list_settlements(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all settlements for a trip, most recent first."""
    settlements = settlement_service.list_settlements(trip_id, current_user, db)
    return [build_settlement_response(s) for s in settlements]


@router.post("/trip/{trip_id}", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(
    trip_id: int,
    settlement_data: SettlementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record a direct payment between two participants."""
    settlement = settlement_service.create_settlement(trip_id, settlement_data, current_user, db)
    return build_settlement_response(settlement)


@router.get("/trip/{trip_id}/suggestions", response_model=List[Transfer])
async def suggest_transfers(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Suggest the fewest payments that would clear all balances."""
    suggestions = settlement_service.suggest_transfers(trip_id, current_user, db)
    return [
        Transfer(
            from_participant_id=t.from_participant_id,
            from_participant_name=from_name,
            to_participant_id=t.to_participant_id,
            to_participant_name=to_name,
            amount=t.amount
        )
        for t, from_name, to_name in suggestions
    ]


@router.delete("/{settlement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a settlement and reverse its effect on balances (owner only)."""
    settlement_service.delete_settlement(settlement_id, current_user, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
