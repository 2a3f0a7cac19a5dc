import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from app.core.config import settings
from app.routers import (
    audit_logs,
    clients,
    expenses,
    invoices,
    notifications,
    payment_sources,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

OPENAPI_TAGS = [
    {"name": "Clients", "description": "Manage clients and their credit balance."},
    {
        "name": "Invoices",
        "description": "Invoices, payments, overpayment approval, refunds and credit application.",
    },
    {"name": "Payment Sources", "description": "Cash and bank accounts that fund expenses."},
    {"name": "Expenses", "description": "Record and pay business expenses."},
    {"name": "Notifications", "description": "In-app notifications and ledger alerts."},
    {"name": "Audit Logs", "description": "Query the audit trail for ledger entities."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Business ledger API. Record invoice payments, route overpayments into "
        "client credit, apply and refund credit, refund invoices, and pay "
        "expenses from tracked payment sources."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(clients.router, prefix="/v1/clients", tags=["Clients"])
app.include_router(invoices.router, prefix="/v1/invoices", tags=["Invoices"])
app.include_router(
    payment_sources.router,
    prefix="/v1/payment_sources",
    tags=["Payment Sources"],
)
app.include_router(expenses.router, prefix="/v1/expenses", tags=["Expenses"])
app.include_router(
    notifications.router,
    prefix="/v1/notifications",
    tags=["Notifications"],
)
app.include_router(
    audit_logs.router,
    prefix="/v1/audit_logs",
    tags=["Audit Logs"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
