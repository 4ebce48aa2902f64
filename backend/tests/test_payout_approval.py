import pytest
from app import app
from conftest import create_payout, create_user
from extensions import db
from models import AuditLog, CreditTransaction, Payout, User, UserRole, VerificationStatus
from repositories import payouts_repo
from security import CallerIdentity, ValidationError
from services import admin_service
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError


def _lawyer(credits: int) -> dict:
    return create_user(
        role=UserRole.LAWYER.value,
        verification_status=VerificationStatus.VERIFIED.value,
        credits=credits,
        specialty="Family Law",
    )


def _snapshot(payout_id: str, lawyer_id: str):
    with app.app_context():
        payout = db.session.get(Payout, payout_id)
        lawyer = db.session.get(User, lawyer_id)
        ledger = payouts_repo.list_credit_transactions(lawyer_id)
        result = (
            payout.status,
            payout.processed_by,
            payout.processed_at,
            lawyer.credits,
            [(row["amount"], row["type"]) for row in ledger],
        )
        db.session.remove()
        return result


def test_approve_payout_debits_lawyer_and_records_ledger_entry(admin):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 50)
    invalidated = []

    with app.app_context():
        result = admin_service.approve_payout(
            CallerIdentity(admin["subject"]),
            {"payout_id": payout_id},
            invalidate_cache_cb=invalidated.append,
        )
    assert result == {"success": True}
    assert invalidated == ["admin"]

    status, processed_by, processed_at, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert status == "PROCESSED"
    assert processed_by == admin["id"]
    assert processed_at is not None
    assert credits == 50
    assert ledger == [(-50, "ADMIN_ADJUSTMENT")]

    with app.app_context():
        events = db.session.execute(
            select(AuditLog).where(AuditLog.event_type == "payout.approved")
        ).scalars().all()
        assert len(events) == 1
        assert events[0].actor_id == admin["id"]


def test_approve_payout_rejects_insufficient_credits(admin):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 150)
    invalidated = []

    with app.app_context(), pytest.raises(ValidationError) as excinfo:
        admin_service.approve_payout(
            CallerIdentity(admin["subject"]),
            {"payout_id": payout_id},
            invalidate_cache_cb=invalidated.append,
        )
    assert excinfo.value.code == "insufficient_credits"
    assert excinfo.value.details == {"available": 100, "requested": 150}
    assert invalidated == []

    status, processed_by, _, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert status == "PROCESSING"
    assert processed_by is None
    assert credits == 100
    assert ledger == []


def test_second_approval_reports_already_processed(admin):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 40)
    caller = CallerIdentity(admin["subject"])

    with app.app_context():
        admin_service.approve_payout(caller, {"payout_id": payout_id})
        with pytest.raises(ValidationError) as excinfo:
            admin_service.approve_payout(caller, {"payout_id": payout_id})
    assert excinfo.value.code == "not_found"
    assert excinfo.value.message == "Payout request not found or already processed"

    _, _, _, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert credits == 60
    assert ledger == [(-40, "ADMIN_ADJUSTMENT")]


def test_unknown_payout_id_is_not_found(admin):
    with app.app_context(), pytest.raises(ValidationError) as excinfo:
        admin_service.approve_payout(
            CallerIdentity(admin["subject"]), {"payout_id": "does-not-exist"}
        )
    assert excinfo.value.code == "not_found"


def test_ledger_failure_rolls_back_status_and_balance(admin, monkeypatch):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 30)

    def failing_insert(conn, user_id, amount, transaction_type, created_at):
        raise OperationalError("INSERT INTO credit_transactions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(payouts_repo, "_insert_credit_transaction", failing_insert)

    with app.app_context(), pytest.raises(ValidationError) as excinfo:
        admin_service.approve_payout(
            CallerIdentity(admin["subject"]), {"payout_id": payout_id}
        )
    assert excinfo.value.code == "database_error"
    assert excinfo.value.message.startswith("Failed to approve payout:")

    status, processed_by, _, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert status == "PROCESSING"
    assert processed_by is None
    assert credits == 100
    assert ledger == []


def test_debit_failure_rolls_back_status(admin, monkeypatch):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 30)

    def failing_debit(conn, user_id, credits, updated_at):
        raise RuntimeError("Simulated failure while debiting")

    monkeypatch.setattr(payouts_repo, "_deduct_credits", failing_debit)

    with app.app_context(), pytest.raises(RuntimeError):
        admin_service.approve_payout(
            CallerIdentity(admin["subject"]), {"payout_id": payout_id}
        )

    status, _, _, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert status == "PROCESSING"
    assert credits == 100
    assert ledger == []


def test_non_admin_cannot_approve_payout(client):
    lawyer = _lawyer(100)
    payout_id = create_payout(lawyer["id"], 30)

    with app.app_context(), pytest.raises(ValidationError) as excinfo:
        admin_service.approve_payout(
            CallerIdentity(lawyer["subject"]), {"payout_id": payout_id}
        )
    assert excinfo.value.code == "unauthorized"

    status, _, _, credits, ledger = _snapshot(payout_id, lawyer["id"])
    assert status == "PROCESSING"
    assert credits == 100
    assert ledger == []


def test_missing_payout_id_is_rejected(admin):
    with app.app_context(), pytest.raises(ValidationError) as excinfo:
        admin_service.approve_payout(CallerIdentity(admin["subject"]), {})
    assert excinfo.value.code == "invalid_input"
    assert excinfo.value.message == "Payout ID is required"

    with app.app_context():
        total = db.session.execute(
            select(func.count()).select_from(CreditTransaction)
        ).scalar()
    assert total == 0
