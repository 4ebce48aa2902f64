"""Repository handling user and provider persistence and retrieval."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from db_utils import transactional_connection
from db_utils import connection as sa_connection
from extensions import db
from models import UserRole, VerificationStatus

PROVIDER_COLUMNS = """
    id,
    identity_subject,
    email,
    name,
    image_url,
    role,
    specialty,
    experience_years,
    description,
    verification_status,
    is_active,
    credits,
    created_at,
    updated_at
"""


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(sep=" ")


def get_user_by_subject(subject: str) -> Optional[dict]:
    """Fetch a user row by identity-provider subject, returning None when absent."""
    conn = sa_connection(db.engine)
    try:
        row = conn.execute(
            "SELECT id, identity_subject, email, name, role FROM users WHERE identity_subject = ?",
            (subject,),
        ).fetchone()
    finally:
        conn.close()

    if not row:
        return None
    return dict(row)


def get_user_by_id(user_id: str) -> Optional[dict]:
    """Fetch a full user row by id, returning None when absent."""
    conn = sa_connection(db.engine)
    try:
        row = conn.execute(
            f"SELECT {PROVIDER_COLUMNS} FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
    finally:
        conn.close()

    if not row:
        return None
    return dict(row)


def _list_lawyers(status: str, order_sql: str) -> List[dict]:
    conn = sa_connection(db.engine)
    try:
        rows = conn.execute(
            f"""
            SELECT {PROVIDER_COLUMNS}
            FROM users
            WHERE role = ? AND verification_status = ?
            ORDER BY {order_sql}
            """,
            (UserRole.LAWYER.value, status),
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]


def list_pending_lawyers() -> List[dict]:
    """Lawyers awaiting review, newest sign-ups first."""
    return _list_lawyers(VerificationStatus.PENDING.value, "created_at DESC, id ASC")


def list_verified_lawyers() -> List[dict]:
    """Verified lawyers ordered alphabetically by name."""
    return _list_lawyers(VerificationStatus.VERIFIED.value, "name ASC, id ASC")


def update_lawyer_verification(
    lawyer_id: str,
    status: str,
    *,
    is_active: Optional[bool] = None,
) -> int:
    """Set a lawyer's verification status (and optionally the active flag).

    Returns the affected row count; zero means no lawyer has that id.
    """
    assignments: List[str] = ["verification_status = ?", "updated_at = ?"]
    params: List[Any] = [status, _timestamp()]
    if is_active is not None:
        assignments.append("is_active = ?")
        params.append(bool(is_active))
    params.extend([lawyer_id, UserRole.LAWYER.value])

    with transactional_connection(db.engine) as conn:
        result = conn.execute(
            f"UPDATE users SET {', '.join(assignments)} WHERE id = ? AND role = ?",
            params,
        )
        return result.rowcount


def set_role_by_subject(subject: str, role: str) -> int:
    """Assign a role to the user with the given identity subject."""
    with transactional_connection(db.engine) as conn:
        result = conn.execute(
            "UPDATE users SET role = ?, updated_at = ? WHERE identity_subject = ?",
            (role, _timestamp(), subject),
        )
        return result.rowcount


def count_lawyers_by_status() -> Dict[str, int]:
    conn = sa_connection(db.engine)
    try:
        rows = conn.execute(
            """
            SELECT verification_status, COUNT(*) AS total
            FROM users
            WHERE role = ?
            GROUP BY verification_status
            """,
            (UserRole.LAWYER.value,),
        ).fetchall()
    finally:
        conn.close()
    return {
        str(row["verification_status"]): int(row["total"])
        for row in rows
        if row["verification_status"] is not None
    }
