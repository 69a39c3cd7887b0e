"""
Expense management and balance routes.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List
from tripsplit.db.session import get_db
from tripsplit.models.expense import Expense
from tripsplit.models.user import User
from tripsplit.schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseSplitResponse,
    ExpenseSummaryResponse, ParticipantBalance
)
from tripsplit.api.dependencies import get_current_user
from tripsplit.services import expense_service, report_service

router = APIRouter(prefix="/expenses", tags=["expenses"])


def build_expense_response(expense: Expense) -> ExpenseResponse:
    """Flatten an expense with its payer and splits into the response schema."""
    return ExpenseResponse(
        id=expense.id,
        trip_id=expense.trip_id,
        paid_by_participant_id=expense.paid_by_participant_id,
        paid_by_name=expense.paid_by.name,
        amount=expense.amount,
        currency=expense.currency,
        category=expense.category,
        description=expense.description,
        date=expense.date,
        receipt_url=expense.receipt_url,
        split_type=expense.split_type,
        splits=[
            ExpenseSplitResponse(
                id=split.id,
                participant_id=split.participant_id,
                participant_name=split.participant.name,
                amount=split.amount
            )
            for split in expense.splits
        ],
        created_at=expense.created_at,
        updated_at=expense.updated_at
    )


@router.get("/trip/{trip_id}", response_model=List[ExpenseResponse])
async def list_expenses(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all expenses for a trip, newest first."""
    expenses = expense_service.list_expenses(trip_id, current_user, db)
    return [build_expense_response(expense) for expense in expenses]


@router.post("/trip/{trip_id}", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    trip_id: int,
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create an expense. Without ``splits`` the amount is divided equally
    across the whole roster; with ``splits`` the given shares are used.
    """
    expense = expense_service.create_expense(trip_id, expense_data, current_user, db)
    return build_expense_response(expense)


@router.get("/trip/{trip_id}/balances", response_model=List[ParticipantBalance])
async def get_balances(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Paid, owed and net balance for every participant."""
    return report_service.balances_for(trip_id, current_user, db)


@router.get("/trip/{trip_id}/summary", response_model=ExpenseSummaryResponse)
async def get_summary(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Expense totals by category plus participant balances."""
    return report_service.summary_for(trip_id, current_user, db)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get an expense by id."""
    return build_expense_response(expense_service.get_expense(expense_id, current_user, db))


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update an expense (owner only)."""
    expense = expense_service.update_expense(expense_id, expense_data, current_user, db)
    return build_expense_response(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an expense and reverse its effect on balances (owner only)."""
    expense_service.delete_expense(expense_id, current_user, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
