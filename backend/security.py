from functools import wraps
from typing import Any, Dict, Mapping, NamedTuple, Optional

from flask import current_app, g, jsonify, request
from pydantic import ValidationError as PydanticValidationError
from schemas import LawyerActivePayload, LawyerStatusPayload, PayoutApprovalPayload


class CallerIdentity(NamedTuple):
    """Identity-provider subject of the caller, passed explicitly to services."""

    subject: Optional[str]


ANONYMOUS = CallerIdentity(subject=None)


def require_api_key():
    """Require API key when LEXBRIDGE_API_KEY is set."""
    api_key: Optional[str] = current_app.config.get("API_KEY")
    if not api_key:
        return None

    if request.method == "OPTIONS":
        return None

    public_endpoints = current_app.config.get("PUBLIC_ENDPOINTS", {"home"})
    endpoint = request.endpoint or ""
    if endpoint.split(".", 1)[-1] in public_endpoints:
        return None

    provided = request.headers.get("X-API-Key") or request.args.get("api_key")
    if provided != api_key:
        return error_response("unauthorized", "Unauthorized", 401)
    return None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapped(*args, **kwargs):
            if not getattr(g, "current_user", None):
                return error_response(
                    "unauthorized", "Missing or invalid access token", 401
                )
            return fn(*args, **kwargs)

        return wrapped

    return decorator


class ValidationError(Exception):
    def __init__(
        self,
        message: str,
        *,
        code: str = "invalid_input",
        status: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details or {}


def unauthorized_error() -> ValidationError:
    return ValidationError("Unauthorized", code="unauthorized", status=403)


def error_response(
    code: str,
    message: str,
    status: int,
    details: Optional[Dict[str, Any]] = None,
):
    payload = {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        }
    }
    return jsonify(payload), status


def _extract_error_info(exc: PydanticValidationError) -> tuple[str, Dict[str, Any]]:
    errors = exc.errors()
    fields = [
        ".".join(str(part) for part in err.get("loc", []) if part != "__root__")
        for err in errors
    ]
    if errors:
        message = errors[0].get("msg") or ""
        if message.startswith("Value error, "):
            message = message.split(", ", 1)[1]
        if message:
            return message, {"fields": fields}
    return str(exc), {"fields": fields}


def _validate(model, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid input", code="invalid_json")

    try:
        data = model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        message, details = _extract_error_info(exc)
        raise ValidationError(message, details=details)
    return data.model_dump()


def validate_lawyer_status_payload(payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return _validate(LawyerStatusPayload, payload)


def validate_lawyer_active_payload(payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return _validate(LawyerActivePayload, payload)


def validate_payout_approval_payload(
    payload: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    return _validate(PayoutApprovalPayload, payload)
