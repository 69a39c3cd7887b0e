"""
Pydantic schemas for Trip and TripParticipant entities.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class TripCreate(BaseModel):
    """Schema for trip creation."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    base_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    creator_name: Optional[str] = None  # Display name of the creator's participant row


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    name: str
    description: Optional[str] = None
    owner_id: int
    base_currency: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ParticipantCreate(BaseModel):
    """Schema for adding a participant to a trip."""
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    user_id: Optional[int] = None  # Link to a registered account


class ParticipantResponse(BaseModel):
    """Schema for participant response, including running totals."""
    id: int
    trip_id: int
    user_id: Optional[int] = None
    name: str
    email: Optional[str] = None
    total_paid: Decimal
    total_owed: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with participants."""
    participants: List[ParticipantResponse] = []
