from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError

from extensions import db
from models import AuditLog

audit_logger = structlog.get_logger("lexbridge.audit")


def _normalize_level(level: str) -> str:
    return (level or "info").strip().lower() or "info"


def _safe_context(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not context:
        return {}
    safe: Dict[str, Any] = {}
    for key, value in context.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            safe[key] = value
        elif isinstance(value, dict):
            safe[key] = _safe_context(value)
        else:
            safe[key] = str(value)
    return safe


def _persist_log(
    *,
    timestamp: datetime,
    actor_id: Optional[str],
    event_type: str,
    message: str,
    level: str,
    context: Dict[str, Any],
) -> None:
    session = db.session
    try:
        session.add(
            AuditLog(
                timestamp=timestamp,
                actor_id=actor_id,
                event_type=event_type,
                message=message,
                context=context,
                level=level,
            )
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        if is_audit_table_missing_error(exc):
            audit_logger.warning(
                "audit_log.table_missing",
                event_type=event_type,
                actor_id=actor_id,
                details="Audit log table missing. Apply latest migrations.",
            )
        else:
            audit_logger.error(
                "audit_log.persist_failed",
                event_type=event_type,
                actor_id=actor_id,
                error=str(exc),
            )


def log_event(
    event_type: str,
    message: str,
    *,
    actor_id: Optional[str] = None,
    level: str = "info",
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Mirror an admin action to structlog and persist it as an AuditLog row.

    Persistence problems are logged and swallowed; an audit write never fails
    the action it describes.
    """
    normalized_level = _normalize_level(level)
    normalized_context = _safe_context(context)

    log_method = getattr(audit_logger, normalized_level, audit_logger.info)
    log_method(
        "audit_event",
        event_type=event_type,
        actor_id=actor_id,
        message=message,
        context=normalized_context,
    )

    _persist_log(
        timestamp=datetime.now(timezone.utc),
        actor_id=actor_id,
        event_type=event_type,
        message=message,
        level=normalized_level,
        context=normalized_context,
    )


def _extract_error_message(exc: SQLAlchemyError) -> str:
    if isinstance(exc, (ProgrammingError, OperationalError)) and getattr(exc, "orig", None):
        return str(exc.orig).lower()
    return str(exc).lower()


def is_audit_table_missing_error(exc: SQLAlchemyError) -> bool:
    message = _extract_error_message(exc)
    if "audit_logs" not in message:
        return False
    indicators = ("does not exist", "no such table", "undefined table")
    return any(indicator in message for indicator in indicators)
