from typing import Any, Dict

from flask import g, request
from security import ANONYMOUS, CallerIdentity


def current_caller() -> CallerIdentity:
    user = getattr(g, "current_user", None)
    if not user or not user.get("subject"):
        return ANONYMOUS
    return CallerIdentity(subject=user["subject"])


def request_payload() -> Dict[str, Any]:
    """Accept either a JSON body or submitted form fields."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()
