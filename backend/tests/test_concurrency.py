"""
Retry wrapper tests.

Verifies:
- Storage conflicts are replayed and the unit of work eventually commits
- Exhausted retries surface as ReferentialConflictError
- Business rejections are never replayed
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from shopstock.errors import InsufficientInventoryError, ReferentialConflictError
from shopstock.services import concurrency
from shopstock.services.concurrency import run_with_retry


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)


def _locked():
    return OperationalError("UPDATE inventory_balances", {}, Exception("database is locked"))


def test_replays_after_lock_conflict(db_session):
    calls = []

    def _op():
        calls.append(len(calls))
        if len(calls) == 1:
            raise _locked()
        return "committed"

    assert run_with_retry(_op) == "committed"
    assert len(calls) == 2


def test_replays_after_duplicate_lazy_row(db_session):
    calls = []

    def _op():
        calls.append(len(calls))
        if len(calls) < 3:
            raise IntegrityError("INSERT INTO inventory_balances", {}, Exception("UNIQUE constraint failed"))
        return len(calls)

    assert run_with_retry(_op, attempts=3) == 3


def test_gives_up_after_configured_attempts(app, db_session):
    calls = []

    def _op():
        calls.append(1)
        raise _locked()

    with pytest.raises(ReferentialConflictError) as exc:
        run_with_retry(_op)

    assert len(calls) == app.config["MOVEMENT_RETRY_ATTEMPTS"]
    assert exc.value.details == {"attempts": app.config["MOVEMENT_RETRY_ATTEMPTS"]}
    assert isinstance(exc.value.__cause__, OperationalError)


def test_business_errors_not_replayed(db_session):
    calls = []

    def _op():
        calls.append(1)
        raise InsufficientInventoryError("Insufficient inventory in SHOP")

    with pytest.raises(InsufficientInventoryError):
        run_with_retry(_op)

    assert len(calls) == 1


def test_single_attempt_floor(db_session):
    calls = []

    def _op():
        calls.append(1)
        raise _locked()

    with pytest.raises(ReferentialConflictError):
        run_with_retry(_op, attempts=0)

    assert len(calls) == 1
