"""Repository for payout requests and the credit ledger."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from db_utils import connection as sa_connection
from db_utils import transactional_connection
from extensions import db
from models import PayoutStatus, TransactionType


class RepositoryError(Exception):
    """Base repository error."""


class NotFoundError(RepositoryError):
    """Raised when a payout is absent or no longer awaiting processing."""


class InsufficientCreditsError(RepositoryError):
    """Raised when the owning lawyer cannot cover the requested credits."""

    def __init__(self, message: str, *, available: int, requested: int):
        super().__init__(message)
        self.available = available
        self.requested = requested


LAWYER_PROJECTION = ("name", "email", "specialty", "credits")


def _timestamp(value: Optional[datetime] = None) -> str:
    return (value or datetime.now(timezone.utc)).isoformat(sep=" ")


def _split_lawyer_projection(row) -> Dict[str, Any]:
    item = dict(row)
    lawyer = {"id": item["lawyer_id"]}
    lawyer.update(
        {key: item.pop(f"lawyer_{key}", None) for key in LAWYER_PROJECTION}
    )
    item["lawyer"] = lawyer
    return item


def list_pending_payouts() -> List[dict]:
    """Payouts awaiting processing, newest first, with a lawyer projection."""
    conn = sa_connection(db.engine)
    try:
        rows = conn.execute(
            """
            SELECT
                p.id,
                p.lawyer_id,
                p.credits,
                p.amount,
                p.platform_fee,
                p.net_amount,
                p.paypal_email,
                p.status,
                p.created_at,
                p.updated_at,
                p.processed_at,
                p.processed_by,
                u.name AS lawyer_name,
                u.email AS lawyer_email,
                u.specialty AS lawyer_specialty,
                u.credits AS lawyer_credits
            FROM payouts p
            JOIN users u ON u.id = p.lawyer_id
            WHERE p.status = ?
            ORDER BY p.created_at DESC, p.id ASC
            """,
            (PayoutStatus.PROCESSING.value,),
        ).fetchall()
    finally:
        conn.close()
    return [_split_lawyer_projection(row) for row in rows]


def count_pending_payouts() -> Dict[str, int]:
    conn = sa_connection(db.engine)
    try:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total, COALESCE(SUM(credits), 0) AS credits
            FROM payouts
            WHERE status = ?
            """,
            (PayoutStatus.PROCESSING.value,),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        return {"total": 0, "credits": 0}
    return {"total": int(row["total"] or 0), "credits": int(row["credits"] or 0)}


def _fetch_processing_payout(conn, payout_id: str) -> Optional[dict]:
    row = conn.execute(
        """
        SELECT
            p.id,
            p.lawyer_id,
            p.credits,
            u.credits AS lawyer_credits
        FROM payouts p
        JOIN users u ON u.id = p.lawyer_id
        WHERE p.id = ? AND p.status = ?
        """,
        (payout_id, PayoutStatus.PROCESSING.value),
    ).fetchone()
    return dict(row) if row else None


def _mark_processed(conn, payout_id: str, processed_by: str, processed_at: str) -> int:
    result = conn.execute(
        """
        UPDATE payouts
        SET status = ?, processed_at = ?, processed_by = ?, updated_at = ?
        WHERE id = ? AND status = ?
        """,
        (
            PayoutStatus.PROCESSED.value,
            processed_at,
            processed_by,
            processed_at,
            payout_id,
            PayoutStatus.PROCESSING.value,
        ),
    )
    return result.rowcount


def _deduct_credits(conn, user_id: str, credits: int, updated_at: str) -> int:
    result = conn.execute(
        """
        UPDATE users
        SET credits = credits - ?, updated_at = ?
        WHERE id = ? AND credits >= ?
        """,
        (credits, updated_at, user_id, credits),
    )
    return result.rowcount


def _insert_credit_transaction(
    conn, user_id: str, amount: int, transaction_type: str, created_at: str
) -> str:
    transaction_id = str(uuid.uuid4())
    conn.execute(
        """
        INSERT INTO credit_transactions (id, user_id, amount, type, package_id, created_at)
        VALUES (?, ?, ?, ?, NULL, ?)
        """,
        (transaction_id, user_id, amount, transaction_type, created_at),
    )
    return transaction_id


def process_payout(
    payout_id: str,
    *,
    processed_by: str,
    processed_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Mark a payout processed, debit the lawyer and append the ledger entry.

    All three writes share one transaction. The status and balance updates are
    guarded in their WHERE clauses so a concurrent approval of the same payout
    (or a concurrent debit) affects zero rows and aborts this one.
    """
    stamp = _timestamp(processed_at)
    with transactional_connection(db.engine) as conn:
        payout = _fetch_processing_payout(conn, payout_id)
        if payout is None:
            raise NotFoundError("Payout request not found or already processed")

        requested = int(payout["credits"])
        available = int(payout["lawyer_credits"] or 0)
        if available < requested:
            raise InsufficientCreditsError(
                "Lawyer doesn't have enough credits for this payout",
                available=available,
                requested=requested,
            )

        if _mark_processed(conn, payout_id, processed_by, stamp) != 1:
            raise NotFoundError("Payout request not found or already processed")

        if _deduct_credits(conn, payout["lawyer_id"], requested, stamp) != 1:
            raise InsufficientCreditsError(
                "Lawyer doesn't have enough credits for this payout",
                available=available,
                requested=requested,
            )

        transaction_id = _insert_credit_transaction(
            conn,
            payout["lawyer_id"],
            -requested,
            TransactionType.ADMIN_ADJUSTMENT.value,
            stamp,
        )

    return {
        "payout_id": payout_id,
        "lawyer_id": payout["lawyer_id"],
        "credits": requested,
        "remaining_credits": available - requested,
        "transaction_id": transaction_id,
    }


def list_credit_transactions(user_id: str) -> List[dict]:
    """Ledger entries for a user, newest first."""
    conn = sa_connection(db.engine)
    try:
        rows = conn.execute(
            """
            SELECT id, user_id, amount, type, package_id, created_at
            FROM credit_transactions
            WHERE user_id = ?
            ORDER BY created_at DESC, id ASC
            """,
            (user_id,),
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]
