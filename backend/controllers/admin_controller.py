from flask import Blueprint, jsonify

from controllers.helpers import current_caller, request_payload
from infra import health_service
from infra.cache_manager import cache_get, cache_set, invalidate_cache
from security import jwt_required
from services import admin_service

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/healthz")
def health():
    summary, healthy = health_service.build_health_summary(
        health_service.SERVER_START_TIME
    )
    status_code = 200 if healthy else 503
    return jsonify(summary), status_code


@admin_bp.get("/admin/verify")
@jwt_required()
def verify_admin():
    return jsonify({"is_admin": admin_service.verify_admin(current_caller())})


@admin_bp.get("/admin/overview")
@jwt_required()
def overview():
    payload = admin_service.get_admin_overview(
        current_caller(),
        cache_get=cache_get,
        cache_set=cache_set,
    )
    return jsonify(payload)


@admin_bp.get("/admin/lawyers/pending")
@jwt_required()
def pending_lawyers():
    return jsonify(admin_service.list_pending_lawyers(current_caller()))


@admin_bp.get("/admin/lawyers/verified")
@jwt_required()
def verified_lawyers():
    return jsonify(admin_service.list_verified_lawyers(current_caller()))


@admin_bp.post("/admin/lawyers/status")
@jwt_required()
def update_lawyer_status():
    result = admin_service.update_lawyer_status(
        current_caller(),
        request_payload(),
        invalidate_cache_cb=invalidate_cache,
    )
    return jsonify(result), 200


@admin_bp.post("/admin/lawyers/active")
@jwt_required()
def update_lawyer_active_status():
    result = admin_service.update_lawyer_active_status(
        current_caller(),
        request_payload(),
        invalidate_cache_cb=invalidate_cache,
    )
    return jsonify(result), 200


@admin_bp.get("/admin/payouts/pending")
@jwt_required()
def pending_payouts():
    return jsonify(admin_service.list_pending_payouts(current_caller()))


@admin_bp.post("/admin/payouts/approve")
@jwt_required()
def approve_payout():
    result = admin_service.approve_payout(
        current_caller(),
        request_payload(),
        invalidate_cache_cb=invalidate_cache,
    )
    return jsonify(result), 200
