"""Invoice API endpoints: payments, refunds and credit application."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import LedgerError
from app.models.invoice import Invoice, InvoiceStatus
from app.models.payment import Payment
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.credit import ApplyCreditRequest, ApplyCreditResponse
from app.schemas.invoice import InvoiceCreate, InvoiceResponse
from app.schemas.payment import (
    InvoiceRefundRequest,
    InvoiceRefundResponse,
    PaymentRecord,
    PaymentRecordResponse,
    PaymentResponse,
)
from app.schemas.reconciliation import BalanceCheckResponse, OverpaymentReplayResponse
from app.services.credit_application_service import CreditApplicationService
from app.services.invoice_payment_service import InvoicePaymentService
from app.services.invoice_service import InvoiceService
from app.services.reconciliation_service import ReconciliationService
from app.services.refund_service import RefundService

router = APIRouter()


@router.get(
    "/",
    response_model=list[InvoiceResponse],
    summary="List invoices",
)
async def list_invoices(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    client_id: UUID | None = None,
    status: InvoiceStatus | None = None,
    db: Session = Depends(get_db),
) -> list[Invoice]:
    """List invoices with optional client and status filters."""
    return InvoiceRepository(db).get_all(skip=skip, limit=limit, client_id=client_id, status=status)


@router.post(
    "/",
    response_model=InvoiceResponse,
    status_code=201,
    summary="Create invoice",
    responses={
        404: {"description": "Client not found"},
        422: {"description": "Validation error"},
    },
)
async def create_invoice(
    data: InvoiceCreate,
    db: Session = Depends(get_db),
) -> Invoice:
    try:
        return InvoiceService(db).create_invoice(data)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/overpayment-credits/replay",
    response_model=OverpaymentReplayResponse,
    summary="Replay missing overpayment credits",
)
async def replay_overpayment_credits(
    db: Session = Depends(get_db),
) -> OverpaymentReplayResponse:
    """Add client credit for approved overpayments whose credit was never written.

    Safe to call repeatedly; payments already credited are skipped.
    """
    repaired = ReconciliationService(db).replay_missing_overpayment_credits()
    return OverpaymentReplayResponse(repaired_payment_ids=repaired)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    invoice = InvoiceRepository(db).get_by_id(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.post(
    "/{invoice_id}/send",
    response_model=InvoiceResponse,
    summary="Send invoice",
    responses={
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice cannot be sent from its current status"},
    },
)
async def send_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    try:
        return InvoiceService(db).send_invoice(invoice_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    summary="Cancel invoice",
    responses={
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice cannot be cancelled from its current status"},
    },
)
async def cancel_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    try:
        return InvoiceService(db).cancel_invoice(invoice_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/{invoice_id}/mark-overdue",
    response_model=InvoiceResponse,
    summary="Mark invoice overdue",
    responses={
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice cannot become overdue from its current status"},
    },
)
async def mark_invoice_overdue(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    try:
        return InvoiceService(db).mark_overdue(invoice_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.get(
    "/{invoice_id}/payments",
    response_model=list[PaymentResponse],
    summary="List invoice payments",
    responses={404: {"description": "Invoice not found"}},
)
async def list_invoice_payments(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> list[Payment]:
    """Every payment and refund recorded against an invoice, oldest first."""
    try:
        return InvoicePaymentService(db).get_payments(invoice_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None


@router.post(
    "/{invoice_id}/payments",
    response_model=PaymentRecordResponse,
    status_code=201,
    summary="Record payment",
    responses={
        400: {"description": "Invalid amount or unapproved overpayment"},
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice does not accept payments"},
    },
)
async def record_payment(
    invoice_id: UUID,
    data: PaymentRecord,
    db: Session = Depends(get_db),
) -> PaymentRecordResponse:
    """Record a payment against an invoice.

    A payment larger than the remaining balance is rejected with
    ``OVERPAYMENT_DETECTED`` and the full breakdown; re-submit it with
    ``admin_approved`` set to move the excess into the client's credit.
    """
    try:
        result = InvoicePaymentService(db).record_payment(
            invoice_id,
            data.amount,
            payment_date=data.payment_date,
            payment_method=data.payment_method,
            bank_transfer_number=data.bank_transfer_number,
            attachment_url=data.attachment_url,
            notes=data.notes,
            admin_approved=data.admin_approved,
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return PaymentRecordResponse(
        payment=PaymentResponse.model_validate(result.payment),
        new_status=result.new_status,
        paid_amount=result.paid_amount,
        overpayment_handled=result.overpayment_handled,
        credit_added=result.credit_added,
    )


@router.post(
    "/{invoice_id}/refund",
    response_model=InvoiceRefundResponse,
    summary="Refund invoice",
    responses={
        400: {"description": "Refund exceeds paid amount"},
        404: {"description": "Invoice or original payment not found"},
    },
)
async def refund_invoice(
    invoice_id: UUID,
    data: InvoiceRefundRequest,
    db: Session = Depends(get_db),
) -> InvoiceRefundResponse:
    try:
        result = RefundService(db).refund_invoice(
            invoice_id,
            data.refund_amount,
            refund_method=data.refund_method,
            refund_reference=data.refund_reference,
            notes=data.notes,
            original_payment_id=data.original_payment_id,
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return InvoiceRefundResponse(
        refund_payment=PaymentResponse.model_validate(result.refund_payment),
        new_paid_amount=result.new_paid_amount,
        new_status=result.new_status,
    )


@router.post(
    "/{invoice_id}/apply-credit",
    response_model=ApplyCreditResponse,
    summary="Apply client credit to invoice",
    responses={
        400: {"description": "Insufficient credit or nothing left to pay"},
        404: {"description": "Invoice or client not found"},
    },
)
async def apply_client_credit(
    invoice_id: UUID,
    data: ApplyCreditRequest,
    db: Session = Depends(get_db),
) -> ApplyCreditResponse:
    try:
        result = CreditApplicationService(db).apply_credit(
            invoice_id, data.client_id, data.credit_amount
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return ApplyCreditResponse(
        payment=PaymentResponse.model_validate(result.payment),
        credit_used=result.credit_used,
        remaining_credit=result.remaining_credit,
    )


@router.get(
    "/{invoice_id}/verify",
    response_model=BalanceCheckResponse,
    summary="Verify invoice paid amount",
    responses={404: {"description": "Invoice not found"}},
)
async def verify_invoice(
    invoice_id: UUID,
    strict: bool = Query(default=False, description="Fail with LEDGER_INCONSISTENCY on any mismatch"),
    db: Session = Depends(get_db),
) -> BalanceCheckResponse:
    try:
        reconciliation = ReconciliationService(db)
        check = reconciliation.verify_invoice(invoice_id)
        if strict:
            reconciliation.ensure_consistent(check)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from None
    return BalanceCheckResponse.model_validate(check)
