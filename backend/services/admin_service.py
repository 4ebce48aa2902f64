"""
Admin service.

Privilege checks, provider verification management and payout approval.
Every operation receives the caller's identity explicitly and keeps Flask
types out of this layer; cache invalidation is injected as a callback.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from audit import log_event
from infra.cache_manager import ADMIN_VIEW_CACHE_TTL, ADMIN_VIEW_PREFIX
from models import UserRole, VerificationStatus
from repositories import payouts_repo, users_repo
from security import (
    CallerIdentity,
    ValidationError,
    unauthorized_error,
    validate_lawyer_active_payload,
    validate_lawyer_status_payload,
    validate_payout_approval_payload,
)
from .common import store_error

logger = structlog.get_logger("lexbridge.admin")

InvalidateCallback = Optional[Callable[[str], None]]

UNKNOWN_ADMIN = "unknown"


def _isoformat(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=value.tzinfo or timezone.utc).isoformat()
    if value:
        return str(value)
    return None


def _serialize_lawyer_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    item = dict(row)
    item["is_active"] = bool(item.get("is_active"))
    item["credits"] = int(item.get("credits") or 0)
    for key in ("created_at", "updated_at"):
        if key in item:
            item[key] = _isoformat(item[key])
    return item


def _serialize_payout_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    item = dict(row)
    for key in ("created_at", "updated_at", "processed_at"):
        if key in item:
            item[key] = _isoformat(item[key])
    lawyer = dict(item.get("lawyer") or {})
    if "credits" in lawyer:
        lawyer["credits"] = int(lawyer["credits"] or 0)
    item["lawyer"] = lawyer
    return item


def _notify(invalidate_cache_cb: InvalidateCallback) -> None:
    if invalidate_cache_cb:
        invalidate_cache_cb(ADMIN_VIEW_PREFIX)


def _lookup_caller(caller: CallerIdentity) -> Optional[Dict[str, Any]]:
    if caller is None or not caller.subject:
        return None
    try:
        return users_repo.get_user_by_subject(caller.subject)
    except Exception as exc:
        logger.error("admin.verify_failed", subject=caller.subject, error=str(exc))
        return None


def verify_admin(caller: CallerIdentity) -> bool:
    """Return True iff the caller resolves to a user holding the ADMIN role.

    Never raises: a missing identity, an unknown user and lookup failures all
    answer False.
    """
    user = _lookup_caller(caller)
    return bool(user) and user.get("role") == UserRole.ADMIN.value


def _require_admin(caller: CallerIdentity) -> Optional[str]:
    """Raise unless the caller is an admin; return the admin's user id."""
    user = _lookup_caller(caller)
    if not user or user.get("role") != UserRole.ADMIN.value:
        logger.warning(
            "admin.unauthorized", subject=getattr(caller, "subject", None)
        )
        raise unauthorized_error()
    return user.get("id")


def list_pending_lawyers(caller: CallerIdentity) -> Dict[str, List[Dict[str, Any]]]:
    _require_admin(caller)
    try:
        rows = users_repo.list_pending_lawyers()
    except SQLAlchemyError as exc:
        raise store_error("fetch pending lawyers", exc, include_detail=False)
    return {"lawyers": [_serialize_lawyer_row(row) for row in rows]}


def list_verified_lawyers(caller: CallerIdentity) -> Dict[str, List[Dict[str, Any]]]:
    _require_admin(caller)
    try:
        rows = users_repo.list_verified_lawyers()
    except SQLAlchemyError as exc:
        raise store_error("fetch verified lawyers", exc, include_detail=False)
    return {"lawyers": [_serialize_lawyer_row(row) for row in rows]}


def _set_lawyer_verification(
    admin_id: Optional[str],
    lawyer_id: str,
    status: str,
    *,
    is_active: Optional[bool],
    event_type: str,
) -> None:
    try:
        updated = users_repo.update_lawyer_verification(
            lawyer_id, status, is_active=is_active
        )
    except SQLAlchemyError as exc:
        log_event(
            f"{event_type}_failed",
            "Lawyer status update failed",
            actor_id=admin_id,
            level="error",
            context={"lawyer_id": lawyer_id, "status": status},
        )
        raise store_error("update lawyer status", exc, lawyer_id=lawyer_id)

    if updated == 0:
        raise ValidationError("Lawyer not found", code="not_found", status=404)


def update_lawyer_status(
    caller: CallerIdentity,
    payload: Optional[Mapping[str, Any]],
    *,
    invalidate_cache_cb: InvalidateCallback = None,
) -> Dict[str, bool]:
    admin_id = _require_admin(caller)
    data = validate_lawyer_status_payload(payload)
    lawyer_id = data["lawyer_id"]
    status = data["status"]

    # Verifying a suspended lawyer reactivates them.
    is_active = True if status == VerificationStatus.VERIFIED.value else None
    _set_lawyer_verification(
        admin_id,
        lawyer_id,
        status,
        is_active=is_active,
        event_type="lawyer.status_updated",
    )

    _notify(invalidate_cache_cb)
    log_event(
        "lawyer.status_updated",
        f"Lawyer verification set to {status}",
        actor_id=admin_id,
        context={"lawyer_id": lawyer_id, "status": status},
    )
    return {"success": True}


def update_lawyer_active_status(
    caller: CallerIdentity,
    payload: Optional[Mapping[str, Any]],
    *,
    invalidate_cache_cb: InvalidateCallback = None,
) -> Dict[str, bool]:
    """Suspend or reinstate a lawyer.

    Suspension moves the lawyer back to PENDING review and clears ``is_active``;
    reinstatement marks them VERIFIED and active again.
    """
    admin_id = _require_admin(caller)
    data = validate_lawyer_active_payload(payload)
    lawyer_id = data["lawyer_id"]
    suspend = data["suspend"]
    status = (
        VerificationStatus.PENDING.value if suspend else VerificationStatus.VERIFIED.value
    )

    _set_lawyer_verification(
        admin_id,
        lawyer_id,
        status,
        is_active=not suspend,
        event_type="lawyer.active_updated",
    )

    _notify(invalidate_cache_cb)
    log_event(
        "lawyer.active_updated",
        "Lawyer suspended" if suspend else "Lawyer reinstated",
        actor_id=admin_id,
        context={"lawyer_id": lawyer_id, "suspend": suspend},
    )
    return {"success": True}


def list_pending_payouts(caller: CallerIdentity) -> Dict[str, List[Dict[str, Any]]]:
    _require_admin(caller)
    try:
        rows = payouts_repo.list_pending_payouts()
    except SQLAlchemyError as exc:
        raise store_error("fetch pending payouts", exc, include_detail=False)
    return {"payouts": [_serialize_payout_row(row) for row in rows]}


def approve_payout(
    caller: CallerIdentity,
    payload: Optional[Mapping[str, Any]],
    *,
    invalidate_cache_cb: InvalidateCallback = None,
) -> Dict[str, bool]:
    admin_id = _require_admin(caller)
    data = validate_payout_approval_payload(payload)
    payout_id = data["payout_id"]

    try:
        result = payouts_repo.process_payout(
            payout_id, processed_by=admin_id or UNKNOWN_ADMIN
        )
    except payouts_repo.NotFoundError as exc:
        log_event(
            "payout.approve_failed",
            str(exc),
            actor_id=admin_id,
            level="warning",
            context={"payout_id": payout_id, "reason": "not_found"},
        )
        raise ValidationError(str(exc), code="not_found", status=404)
    except payouts_repo.InsufficientCreditsError as exc:
        log_event(
            "payout.approve_failed",
            str(exc),
            actor_id=admin_id,
            level="warning",
            context={
                "payout_id": payout_id,
                "reason": "insufficient_credits",
                "available": exc.available,
                "requested": exc.requested,
            },
        )
        raise ValidationError(
            str(exc),
            code="insufficient_credits",
            status=409,
            details={"available": exc.available, "requested": exc.requested},
        )
    except SQLAlchemyError as exc:
        raise store_error("approve payout", exc, payout_id=payout_id)

    _notify(invalidate_cache_cb)
    log_event(
        "payout.approved",
        "Payout approved",
        actor_id=admin_id,
        context=result,
    )
    return {"success": True}


def get_admin_overview(
    caller: CallerIdentity,
    *,
    cache_get,
    cache_set,
    cache_ttl: int = ADMIN_VIEW_CACHE_TTL,
) -> Dict[str, Any]:
    """Dashboard counters, cached until the next admin mutation or TTL expiry."""
    _require_admin(caller)
    cache_key_parts = ("overview",)
    cached = cache_get(ADMIN_VIEW_PREFIX, cache_key_parts)
    if cached is not None:
        return cached

    try:
        lawyer_counts = users_repo.count_lawyers_by_status()
        payout_counts = payouts_repo.count_pending_payouts()
    except SQLAlchemyError as exc:
        raise store_error("load admin overview", exc, include_detail=False)

    payload = {
        "lawyers": {
            status.value: lawyer_counts.get(status.value, 0)
            for status in VerificationStatus
        },
        "pending_payouts": payout_counts["total"],
        "pending_payout_credits": payout_counts["credits"],
    }
    cache_set(ADMIN_VIEW_PREFIX, cache_key_parts, payload, cache_ttl)
    return payload
