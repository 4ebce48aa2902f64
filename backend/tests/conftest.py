import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

TEST_JWT_SECRET = "lexbridge-test-secret-with-enough-entropy-0123456789"

_db_dir = tempfile.mkdtemp(prefix="lexbridge-tests-")
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL") or (
    f"sqlite:///{os.path.join(_db_dir, 'lexbridge_test.db')}"
)
os.environ["IDENTITY_JWT_SECRET"] = TEST_JWT_SECRET
os.environ.pop("IDENTITY_JWT_ISSUER", None)

import jwt  # noqa: E402
import pytest  # noqa: E402
from app import app  # noqa: E402
from extensions import db  # noqa: E402
from infra import cache_manager  # noqa: E402
from models import Payout, User, UserRole  # noqa: E402


def _reset_schema() -> None:
    db.session.remove()
    db.drop_all()
    db.create_all()


@pytest.fixture()
def client():
    app.config.update({"TESTING": True, "API_KEY": None})

    try:
        with app.app_context():
            _reset_schema()
    except Exception as exc:  # pragma: no cover - skip if database unavailable
        pytest.skip(f"Database not available: {exc}")

    cache_manager.reset_cache()

    with app.test_client() as client:
        yield client

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def make_token(subject: str, *, expires_in: timedelta = timedelta(hours=1)) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(subject: str) -> dict:
    return {"Authorization": f"Bearer {make_token(subject)}"}


def create_user(
    *,
    role: str = UserRole.CLIENT.value,
    verification_status: str | None = None,
    credits: int = 0,
    name: str | None = None,
    specialty: str | None = None,
    created_at: datetime | None = None,
) -> dict:
    token = uuid.uuid4().hex[:10]
    with app.app_context():
        user = User(
            identity_subject=f"idp_{token}",
            email=f"{token}@example.com",
            name=name or f"User {token}",
            role=role,
            specialty=specialty,
            credits=credits,
        )
        if verification_status is not None:
            user.verification_status = verification_status
        if created_at is not None:
            user.created_at = created_at
        db.session.add(user)
        db.session.commit()
        return {"id": user.id, "subject": user.identity_subject}


def create_payout(lawyer_id: str, credits: int, *, created_at: datetime | None = None) -> str:
    with app.app_context():
        payout = Payout(
            lawyer_id=lawyer_id,
            credits=credits,
            amount=credits * 10.0,
            platform_fee=credits * 2.0,
            net_amount=credits * 8.0,
            paypal_email="payouts@example.com",
        )
        if created_at is not None:
            payout.created_at = created_at
        db.session.add(payout)
        db.session.commit()
        return payout.id


@pytest.fixture()
def admin(client):
    return create_user(role=UserRole.ADMIN.value, name="Site Admin")
