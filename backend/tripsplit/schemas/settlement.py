"""
Pydantic schemas for Settlement entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class SettlementCreate(BaseModel):
    """Schema for recording a direct payment between two participants."""
    from_participant_id: int
    to_participant_id: int
    amount: Decimal = Field(..., decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = None


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    trip_id: int
    from_participant_id: int
    from_participant_name: str
    to_participant_id: int
    to_participant_name: str
    amount: Decimal
    currency: str
    notes: Optional[str] = None
    settled_at: datetime


class Transfer(BaseModel):
    """Schema for a single suggested transfer."""
    from_participant_id: int
    from_participant_name: str
    to_participant_id: int
    to_participant_name: str
    amount: Decimal
