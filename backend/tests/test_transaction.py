"""Tests for run_in_transaction retry behaviour."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import InsufficientCreditError, TransientStoreError
from app.core.transaction import ledger_transaction, run_in_transaction


@pytest.fixture
def session():
    return MagicMock()


def _operational_error():
    return OperationalError("UPDATE clients", {}, Exception("database is locked"))


class TestLedgerTransaction:
    def test_commits_on_success(self, session):
        with ledger_transaction(session):
            pass
        session.commit.assert_called_once()
        session.rollback.assert_not_called()

    def test_rolls_back_on_error(self, session):
        with pytest.raises(RuntimeError), ledger_transaction(session):
            raise RuntimeError("boom")
        session.rollback.assert_called_once()
        session.commit.assert_not_called()


class TestRunInTransaction:
    def test_returns_result(self, session):
        result = run_in_transaction(session, lambda: 42, entity_type="client", entity_id="c1")
        assert result == 42
        session.commit.assert_called_once()

    def test_retries_transient_failure(self, session):
        operation = MagicMock(side_effect=[_operational_error(), StaleDataError("stale"), "done"])
        result = run_in_transaction(
            session,
            operation,
            entity_type="client",
            entity_id="c1",
            max_attempts=3,
            backoff_seconds=0,
        )
        assert result == "done"
        assert operation.call_count == 3
        assert session.rollback.call_count == 2

    def test_gives_up_after_max_attempts(self, session):
        operation = MagicMock(side_effect=_operational_error())
        with pytest.raises(TransientStoreError) as exc_info:
            run_in_transaction(
                session,
                operation,
                entity_type="invoice",
                entity_id="inv-1",
                max_attempts=2,
                backoff_seconds=0,
            )
        assert exc_info.value.attempts == 2
        assert exc_info.value.status_code == 503
        assert operation.call_count == 2

    def test_backoff_doubles(self, session):
        operation = MagicMock(side_effect=[_operational_error(), _operational_error(), "ok"])
        with patch("app.core.transaction.time.sleep") as sleep:
            run_in_transaction(
                session,
                operation,
                entity_type="client",
                entity_id="c1",
                max_attempts=3,
                backoff_seconds=0.05,
            )
        assert [c.args[0] for c in sleep.call_args_list] == [0.05, 0.1]

    def test_ledger_errors_are_not_retried(self, session):
        operation = MagicMock(side_effect=InsufficientCreditError("c1", 0, 5))
        with pytest.raises(InsufficientCreditError):
            run_in_transaction(
                session, operation, entity_type="client", entity_id="c1", backoff_seconds=0
            )
        assert operation.call_count == 1
        session.rollback.assert_called_once()
