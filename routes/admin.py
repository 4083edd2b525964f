"""Administrative endpoints for role management and audit history."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from identity.policy import Resource, current_session, role_required
from models.audit_entry import Actor
from utils.outcomes import identity_service, unwrap
from utils.request_validation import parse_json_request, parse_pagination

admin_bp = Blueprint("admin", __name__)


def _role_change_response(outcome, account_id: int):
    account = unwrap(outcome, allow_no_change=True)
    if account is None:
        account = unwrap(identity_service().get_profile(account_id))
        return jsonify({"changed": False, "message": outcome.message, "user": account.to_dict()})
    return jsonify({"changed": True, "message": "Role updated.", "user": account.to_dict()})


@admin_bp.route("/accounts/<int:account_id>/role", methods=["PUT"])
@role_required(Resource.ROLE_MANAGEMENT)
def change_role(account_id: int):
    """Change an account's role. Setting the current role again is a no-op."""

    payload = parse_json_request(request, required_keys=("role",))
    session = current_session()

    outcome = identity_service().change_role(
        account_id,
        payload["role"],
        Actor.operator(session.subject_id),
        actor_role=session.role,
    )
    return _role_change_response(outcome, account_id)


@admin_bp.route("/accounts/<int:account_id>/promote", methods=["POST"])
@role_required(Resource.ROLE_MANAGEMENT)
def promote(account_id: int):
    """Promote an account to administrator."""

    session = current_session()
    outcome = identity_service().promote_to_admin(
        account_id, Actor.operator(session.subject_id), actor_role=session.role
    )
    return _role_change_response(outcome, account_id)


@admin_bp.route("/accounts/<int:account_id>/history", methods=["GET"])
@role_required(Resource.AUDIT_HISTORY)
def account_history(account_id: int):
    """Return an account's audit entries in the order they were written."""

    limit, offset = parse_pagination(request)
    service = identity_service()

    entries = unwrap(service.get_history(account_id, limit=limit, offset=offset))
    return jsonify(
        {
            "entries": [entry.to_dict() for entry in entries],
            "total": service.store.count_history(account_id),
            "limit": limit,
            "offset": offset,
        }
    )
