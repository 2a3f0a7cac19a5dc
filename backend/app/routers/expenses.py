"""Expense API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import LedgerError
from app.models.expense import Expense, ExpenseStatus
from app.models.expense_payment import ExpensePayment
from app.repositories.expense_repository import ExpenseRepository
from app.repositories.payment_source_repository import PaymentSourceRepository
from app.schemas.expense import (
    ExpenseCreate,
    ExpensePaymentResponse,
    ExpensePayRequest,
    ExpenseResponse,
    ExpenseSettlementResponse,
)
from app.schemas.payment_source import PaymentSourceTransactionResponse
from app.services.audit_service import AuditService
from app.services.expense_settlement_service import ExpenseSettlementService

router = APIRouter()


@router.get(
    "/",
    response_model=list[ExpenseResponse],
    summary="List expenses",
)
async def list_expenses(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    status: ExpenseStatus | None = None,
    payment_source_id: UUID | None = None,
    db: Session = Depends(get_db),
) -> list[Expense]:
    return ExpenseRepository(db).get_all(
        skip=skip, limit=limit, status=status, payment_source_id=payment_source_id
    )


@router.post(
    "/",
    response_model=ExpenseResponse,
    status_code=201,
    summary="Create expense",
    responses={
        400: {"description": "Invalid payment source reference"},
        422: {"description": "Validation error"},
    },
)
async def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
) -> Expense:
    if data.payment_source_id and not PaymentSourceRepository(db).get_by_id(
        data.payment_source_id
    ):
        raise HTTPException(status_code=400, detail="Payment source not found")
    expense = ExpenseRepository(db).create(data)
    AuditService(db).log_create(
        "expense",
        expense.id,  # type: ignore[arg-type]
        data={"title": expense.title, "amount": expense.amount},
    )
    db.commit()
    db.refresh(expense)
    return expense


@router.get(
    "/{expense_id}",
    response_model=ExpenseResponse,
    summary="Get expense",
    responses={404: {"description": "Expense not found"}},
)
async def get_expense(
    expense_id: UUID,
    db: Session = Depends(get_db),
) -> Expense:
    expense = ExpenseRepository(db).get_by_id(expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.get(
    "/{expense_id}/payments",
    response_model=list[ExpensePaymentResponse],
    summary="List expense payments",
    responses={404: {"description": "Expense not found"}},
)
async def list_expense_payments(
    expense_id: UUID,
    db: Session = Depends(get_db),
) -> list[ExpensePayment]:
    try:
        return ExpenseSettlementService(db).get_payments(expense_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/{expense_id}/pay",
    response_model=ExpenseSettlementResponse,
    summary="Pay expense",
    responses={
        400: {"description": "Missing attachment or invalid amount"},
        404: {"description": "Expense not found"},
        409: {"description": "Expense is already paid or cancelled"},
    },
)
async def pay_expense(
    expense_id: UUID,
    data: ExpensePayRequest,
    db: Session = Depends(get_db),
) -> ExpenseSettlementResponse:
    """Mark an expense paid and debit its payment source, if it has one."""
    try:
        result = ExpenseSettlementService(db).settle_expense(
            expense_id,
            payment_method=data.payment_method,
            attachment_url=data.attachment_url,
            amount=data.amount,
            payment_reference=data.payment_reference,
            notes=data.notes,
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return ExpenseSettlementResponse(
        expense=ExpenseResponse.model_validate(result.expense),
        payment=ExpensePaymentResponse.model_validate(result.payment),
        transaction=(
            PaymentSourceTransactionResponse.model_validate(result.transaction)
            if result.transaction
            else None
        ),
    )
