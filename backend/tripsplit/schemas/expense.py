"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date as dt_date, datetime
from decimal import Decimal
from tripsplit.models.expense import SplitType


class ExpenseSplitRequest(BaseModel):
    """One explicit (participant, amount) allocation."""
    participant_id: int
    amount: Decimal = Field(..., decimal_places=2)


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    paid_by_participant_id: int
    amount: Decimal = Field(..., decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)  # Defaults to trip's base currency
    category: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    date: dt_date
    receipt_url: Optional[str] = None
    split_type: Optional[SplitType] = None
    splits: Optional[List[ExpenseSplitRequest]] = None  # Non-empty list means explicit split


class ExpenseUpdate(BaseModel):
    """
    Schema for expense update. Every field is optional.

    Supplying ``splits`` replaces the allocations explicitly; supplying
    ``split_type="equal"`` without splits re-derives equal shares from the
    current roster at the (possibly new) amount.
    """
    paid_by_participant_id: Optional[int] = None
    amount: Optional[Decimal] = Field(None, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    date: Optional[dt_date] = None
    receipt_url: Optional[str] = None
    split_type: Optional[SplitType] = None
    splits: Optional[List[ExpenseSplitRequest]] = None


class ExpenseSplitResponse(BaseModel):
    """Schema for expense split response."""
    id: int
    participant_id: int
    participant_name: str
    amount: Decimal


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    trip_id: int
    paid_by_participant_id: int
    paid_by_name: str
    amount: Decimal
    currency: str
    category: str
    description: Optional[str] = None
    date: dt_date
    receipt_url: Optional[str] = None
    split_type: str
    splits: List[ExpenseSplitResponse] = []
    created_at: datetime
    updated_at: datetime


class ParticipantBalance(BaseModel):
    """Running totals and derived balance of one participant."""
    participant_id: int
    participant_name: str
    total_paid: Decimal
    total_owed: Decimal
    balance: Decimal  # total_paid - total_owed; positive = net creditor


class CategoryExpenseItem(BaseModel):
    """Schema for category expense item in summary."""
    category: str
    total_amount: Decimal
    expense_count: int
    percentage: float  # Percentage of total expenses (0-100)


class ExpenseSummaryResponse(BaseModel):
    """Spend totals per trip. Settlements are transfers and are not counted."""
    trip_id: int
    currency: str
    total_expenses: Decimal
    expense_count: int
    categories: List[CategoryExpenseItem]
    participant_balances: List[ParticipantBalance]
