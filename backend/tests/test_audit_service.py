"""Tests for AuditLogRepository and AuditService."""

from decimal import Decimal
from uuid import uuid4

import pytest

from app.repositories.audit_log_repository import AuditLogRepository
from app.schemas.audit_log import AuditLogResponse
from app.services.audit_service import AuditService


@pytest.fixture
def repo(db_session):
    return AuditLogRepository(db_session)


@pytest.fixture
def service(db_session):
    return AuditService(db_session)


class TestAuditService:
    def test_log_create(self, db_session, service, repo):
        entity_id = uuid4()
        service.log_create("invoice", entity_id, data={"amount": Decimal("10.50")}, actor_id="admin-1")
        db_session.commit()

        logs = repo.get_by_entity("invoice", entity_id)
        assert len(logs) == 1
        assert logs[0].action == "created"
        assert logs[0].new_values == {"amount": "10.50"}
        assert logs[0].actor_id == "admin-1"

    def test_log_update_keeps_changed_fields(self, db_session, service, repo):
        entity_id = uuid4()
        service.log_update(
            "invoice",
            entity_id,
            old_data={"status": "sent", "amount": Decimal("100")},
            new_data={"status": "paid", "amount": Decimal("100")},
            action="payment_recorded",
        )
        db_session.commit()

        log = repo.get_by_entity("invoice", entity_id)[0]
        assert log.action == "payment_recorded"
        assert log.old_values == {"status": "sent"}
        assert log.new_values == {"status": "paid"}
        assert log.actor_id == "system"

    def test_log_update_without_changes_writes_nothing(self, db_session, service, repo):
        entity_id = uuid4()
        service.log_update("client", entity_id, old_data={"a": 1}, new_data={"a": 1})
        db_session.commit()
        assert repo.get_by_entity("client", entity_id) == []

    def test_rolled_back_with_the_caller(self, db_session, service, repo):
        entity_id = uuid4()
        service.log_create("client", entity_id)
        db_session.rollback()
        assert repo.get_by_entity("client", entity_id) == []


class TestLedgerOperationsAreAudited:
    def test_payment_writes_audit_rows(self, db_session, repo, invoice, pay):
        result = pay(invoice.id, "30.00")
        invoice_logs = repo.get_by_entity("invoice", invoice.id)
        actions = {log.action for log in invoice_logs}
        assert "created" in actions
        assert "payment_applied" in actions
        assert repo.get_by_entity("payment", result.payment.id)

        response = AuditLogResponse.model_validate(invoice_logs[0])
        assert response.entity_id == invoice.id
