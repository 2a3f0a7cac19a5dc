"""Client API endpoints, including the client credit ledger."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import LedgerError
from app.models.client import Client
from app.repositories.client_repository import ClientRepository
from app.schemas.client import ClientCreate, ClientResponse
from app.schemas.credit import (
    ClientCreditResponse,
    CreditHistoryResponse,
    CreditRefundRequest,
    CreditRefundResponse,
)
from app.schemas.reconciliation import BalanceCheckResponse
from app.services.audit_service import AuditService
from app.services.credit_ledger import CreditLedgerService
from app.services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[ClientResponse],
    summary="List clients",
)
async def list_clients(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Client]:
    """List clients with pagination."""
    clients = ClientRepository(db).get_all(skip=skip, limit=limit)
    response.headers["X-Total-Count"] = str(len(clients))
    return clients


@router.post(
    "/",
    response_model=ClientResponse,
    status_code=201,
    summary="Create client",
    responses={422: {"description": "Validation error"}},
)
async def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
) -> Client:
    client = ClientRepository(db).create(data)
    AuditService(db).log_create("client", client.id, data={"name": client.name})  # type: ignore[arg-type]
    db.commit()
    db.refresh(client)
    return client


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
    responses={404: {"description": "Client not found"}},
)
async def get_client(
    client_id: UUID,
    db: Session = Depends(get_db),
) -> Client:
    client = ClientRepository(db).get_by_id(client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.get(
    "/{client_id}/credit",
    response_model=ClientCreditResponse,
    summary="Get client credit",
    responses={404: {"description": "Client not found"}},
)
async def get_client_credit(
    client_id: UUID,
    db: Session = Depends(get_db),
) -> ClientCreditResponse:
    """Current credit balance and the full credit history, newest first."""
    try:
        summary = CreditLedgerService(db).get_credit(client_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return ClientCreditResponse(
        current_balance=summary.current_balance,
        history=[CreditHistoryResponse.model_validate(h) for h in summary.history],
    )


@router.post(
    "/{client_id}/credit/refund",
    response_model=CreditRefundResponse,
    summary="Refund client credit",
    responses={
        400: {"description": "Invalid amount or insufficient credit"},
        404: {"description": "Client not found"},
        500: {"description": "Credit balance does not match its history"},
    },
)
async def refund_client_credit(
    client_id: UUID,
    data: CreditRefundRequest,
    db: Session = Depends(get_db),
) -> CreditRefundResponse:
    """Pay part of a client's credit balance back to them."""
    try:
        new_balance = CreditLedgerService(db).refund_client_credit(
            client_id,
            data.refund_amount,
            refund_method=data.refund_method.value,
            refund_reference=data.refund_reference,
            notes=data.notes,
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return CreditRefundResponse(new_credit_balance=new_balance)


@router.get(
    "/{client_id}/credit/verify",
    response_model=BalanceCheckResponse,
    summary="Verify client credit balance",
    responses={404: {"description": "Client not found"}},
)
async def verify_client_credit(
    client_id: UUID,
    strict: bool = Query(default=False, description="Fail with LEDGER_INCONSISTENCY on any mismatch"),
    db: Session = Depends(get_db),
) -> BalanceCheckResponse:
    try:
        reconciliation = ReconciliationService(db)
        check = reconciliation.verify_client_credit(client_id)
        if strict:
            reconciliation.ensure_consistent(check)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return BalanceCheckResponse.model_validate(check)
