import structlog

from security import ValidationError

logger = structlog.get_logger("lexbridge.services")


def store_error(action: str, exc: Exception, *, include_detail: bool = True, **context) -> ValidationError:
    """Log a data-access failure and build the error surfaced to the caller."""
    logger.error("store.failure", action=action, error=str(exc), **context)
    message = f"Failed to {action}"
    if include_detail:
        message = f"{message}: {exc}"
    return ValidationError(message, code="database_error", status=500)
