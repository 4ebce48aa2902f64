import pytest
from app import app
from conftest import create_user
from models import UserRole, VerificationStatus
from repositories import users_repo


@pytest.mark.usefixtures("client")
def test_update_lawyer_verification_only_touches_lawyers():
    lawyer = create_user(
        role=UserRole.LAWYER.value,
        verification_status=VerificationStatus.PENDING.value,
    )
    outsider = create_user(role=UserRole.CLIENT.value)

    with app.app_context():
        assert users_repo.update_lawyer_verification(lawyer["id"], "VERIFIED") == 1
        assert users_repo.update_lawyer_verification(outsider["id"], "VERIFIED") == 0

        row = users_repo.get_user_by_id(lawyer["id"])
        assert row is not None
        assert row["verification_status"] == "VERIFIED"
        assert bool(row["is_active"]) is True

        users_repo.update_lawyer_verification(lawyer["id"], "PENDING", is_active=False)
        row = users_repo.get_user_by_id(lawyer["id"])
        assert row["verification_status"] == "PENDING"
        assert bool(row["is_active"]) is False


@pytest.mark.usefixtures("client")
def test_get_user_by_subject_and_role_assignment():
    user = create_user(role=UserRole.CLIENT.value)

    with app.app_context():
        assert users_repo.get_user_by_subject("idp_missing") is None
        assert users_repo.get_user_by_subject(user["subject"])["role"] == "CLIENT"

        assert users_repo.set_role_by_subject(user["subject"], UserRole.ADMIN.value) == 1
        assert users_repo.get_user_by_subject(user["subject"])["role"] == "ADMIN"
        assert users_repo.set_role_by_subject("idp_missing", UserRole.ADMIN.value) == 0


@pytest.mark.usefixtures("client")
def test_count_lawyers_by_status():
    for status in ("PENDING", "PENDING", "VERIFIED", "REJECTED"):
        create_user(role=UserRole.LAWYER.value, verification_status=status)
    create_user(role=UserRole.CLIENT.value)

    with app.app_context():
        assert users_repo.count_lawyers_by_status() == {
            "PENDING": 2,
            "VERIFIED": 1,
            "REJECTED": 1,
        }
