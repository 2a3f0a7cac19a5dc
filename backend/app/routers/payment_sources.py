"""Payment source API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import LedgerError
from app.models.expense import Expense
from app.models.payment_source import PaymentSource
from app.models.payment_source_transaction import PaymentSourceTransaction
from app.repositories.payment_source_repository import PaymentSourceRepository
from app.schemas.expense import ExpenseResponse
from app.schemas.payment_source import (
    BalanceAdjustmentRequest,
    BalanceAdjustmentResponse,
    PaymentSourceCreate,
    PaymentSourceResponse,
    PaymentSourceStatsResponse,
    PaymentSourceTransactionResponse,
    StatsPeriod,
)
from app.schemas.reconciliation import BalanceCheckResponse
from app.services.payment_source_ledger import PaymentSourceLedgerService
from app.services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[PaymentSourceResponse],
    summary="List payment sources",
)
async def list_payment_sources(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    is_active: bool | None = None,
    db: Session = Depends(get_db),
) -> list[PaymentSource]:
    return PaymentSourceRepository(db).get_all(skip=skip, limit=limit, is_active=is_active)


@router.post(
    "/",
    response_model=PaymentSourceResponse,
    status_code=201,
    summary="Create payment source",
    responses={422: {"description": "Validation error"}},
)
async def create_payment_source(
    data: PaymentSourceCreate,
    db: Session = Depends(get_db),
) -> PaymentSource:
    """Create a payment source. A non-zero initial balance is booked as an adjustment."""
    try:
        return PaymentSourceLedgerService(db).create_source(data)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.get(
    "/stats",
    response_model=PaymentSourceStatsResponse,
    summary="Payment source statistics",
)
async def get_payment_source_stats(
    period: StatsPeriod = StatsPeriod.MONTH,
    db: Session = Depends(get_db),
) -> PaymentSourceStatsResponse:
    """Totals across all sources and expense spending per source for the period."""
    stats = PaymentSourceLedgerService(db).get_stats(period)
    return PaymentSourceStatsResponse.model_validate(stats)


@router.get(
    "/{source_id}",
    response_model=PaymentSourceResponse,
    summary="Get payment source",
    responses={404: {"description": "Payment source not found"}},
)
async def get_payment_source(
    source_id: UUID,
    db: Session = Depends(get_db),
) -> PaymentSource:
    source = PaymentSourceRepository(db).get_by_id(source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Payment source not found")
    return source


@router.get(
    "/{source_id}/transactions",
    response_model=list[PaymentSourceTransactionResponse],
    summary="List payment source transactions",
    responses={404: {"description": "Payment source not found"}},
)
async def list_payment_source_transactions(
    source_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[PaymentSourceTransaction]:
    """Balance changes of a payment source, newest first."""
    try:
        return PaymentSourceLedgerService(db).get_transactions(source_id, skip=skip, limit=limit)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/{source_id}/adjust-balance",
    response_model=BalanceAdjustmentResponse,
    summary="Adjust payment source balance",
    responses={
        400: {"description": "Invalid adjustment amount"},
        404: {"description": "Payment source not found"},
    },
)
async def adjust_payment_source_balance(
    source_id: UUID,
    data: BalanceAdjustmentRequest,
    db: Session = Depends(get_db),
) -> BalanceAdjustmentResponse:
    try:
        source, txn = PaymentSourceLedgerService(db).adjust_payment_source_balance(
            source_id, data.amount, data.description, data.type
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return BalanceAdjustmentResponse(
        updated_source=PaymentSourceResponse.model_validate(source),
        transaction=PaymentSourceTransactionResponse.model_validate(txn),
    )


@router.get(
    "/{source_id}/verify",
    response_model=BalanceCheckResponse,
    summary="Verify payment source balance",
    responses={404: {"description": "Payment source not found"}},
)
async def verify_payment_source(
    source_id: UUID,
    strict: bool = Query(default=False, description="Fail with LEDGER_INCONSISTENCY on any mismatch"),
    db: Session = Depends(get_db),
) -> BalanceCheckResponse:
    try:
        reconciliation = ReconciliationService(db)
        check = reconciliation.verify_payment_source(source_id)
        if strict:
            reconciliation.ensure_consistent(check)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return BalanceCheckResponse.model_validate(check)


@router.get(
    "/{source_id}/expenses",
    response_model=list[ExpenseResponse],
    summary="List expenses funded from a payment source",
    responses={404: {"description": "Payment source not found"}},
)
async def list_payment_source_expenses(
    source_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Expense]:
    try:
        return PaymentSourceLedgerService(db).get_expenses(source_id, skip=skip, limit=limit)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
