"""Authentication blueprint: registration, sign-in, verification, reset and profile."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from identity.policy import Resource, current_session, role_required
from utils.outcomes import identity_service, unwrap
from utils.request_validation import parse_json_request, parse_pagination

auth_bp = Blueprint("auth", __name__)

RESET_REQUESTED_MESSAGE = "If the email is registered, a password reset email has been sent."
VERIFICATION_REQUESTED_MESSAGE = "If the email is registered, a verification email has been sent."


def _signed_in_payload(signed_in, message: str) -> dict:
    return {
        "message": message,
        "access_token": signed_in.session,
        "user": signed_in.account.to_dict(),
    }


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a new account with an email, password, and optional provider role."""
    payload = parse_json_request(request, required_keys=("email", "password"))

    registered = unwrap(
        identity_service().register(
            email=payload.get("email"),
            password=payload.get("password"),
            full_name=payload.get("full_name"),
            role=payload.get("role") or "CUSTOMER",
            phone=payload.get("phone"),
        )
    )

    return (
        jsonify(
            {
                "message": "Registration successful. Please verify your email address.",
                "requires_verification": True,
                "verification_sent": registered.verification_sent,
                "user": registered.account.to_dict(),
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate with email and password and return a session token."""
    payload = parse_json_request(request, required_keys=("email", "password"))

    signed_in = unwrap(identity_service().login(payload["email"], payload["password"]))
    return jsonify(_signed_in_payload(signed_in, "Signed in.")), HTTPStatus.OK


@auth_bp.route("/google", methods=["POST"])
def google_sign_in() -> tuple:
    """Sign in (or sign up) with a Google ID token credential."""
    payload = parse_json_request(request, required_keys=("credential",))

    signed_in = unwrap(identity_service().sign_in_with_external_identity(payload["credential"]))
    body = _signed_in_payload(signed_in, "Signed in with Google.")
    body["created"] = signed_in.created
    status = HTTPStatus.CREATED if signed_in.created else HTTPStatus.OK
    return jsonify(body), status


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email() -> tuple:
    payload = parse_json_request(request, required_keys=("token",))

    signed_in = unwrap(identity_service().confirm_verification(str(payload["token"])))
    return jsonify(_signed_in_payload(signed_in, "Email verified.")), HTTPStatus.OK


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification() -> tuple:
    payload = parse_json_request(request, required_keys=("email",))

    outcome = identity_service().request_verification(payload["email"])
    if outcome.no_change:
        return jsonify({"message": outcome.message}), HTTPStatus.OK
    unwrap(outcome)
    return jsonify({"message": VERIFICATION_REQUESTED_MESSAGE}), HTTPStatus.OK


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password() -> tuple:
    payload = parse_json_request(request, required_keys=("email",))

    unwrap(identity_service().request_password_reset(payload["email"]))
    return jsonify({"message": RESET_REQUESTED_MESSAGE}), HTTPStatus.OK


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password() -> tuple:
    payload = parse_json_request(request, required_keys=("token", "new_password"))

    signed_in = unwrap(
        identity_service().confirm_password_reset(
            str(payload["token"]), payload["new_password"]
        )
    )
    return jsonify(_signed_in_payload(signed_in, "Password has been reset.")), HTTPStatus.OK


@auth_bp.route("/me", methods=["GET"])
@role_required(Resource.PROFILE)
def get_me():
    """Return the signed-in account."""
    account = unwrap(identity_service().get_profile(current_session().subject_id))
    return jsonify({"user": account.to_dict()})


@auth_bp.route("/me", methods=["PUT"])
@role_required(Resource.PROFILE)
def update_me():
    """Update descriptive profile fields of the signed-in account."""
    payload = parse_json_request(request)

    changes = {
        key: payload[key] for key in ("full_name", "phone", "avatar_url") if key in payload
    }
    if not changes:
        raise BadRequest("Provide at least one of: full_name, phone, avatar_url.")
    account = unwrap(identity_service().update_profile(current_session().subject_id, **changes))
    return jsonify({"message": "Profile updated.", "user": account.to_dict()})


@auth_bp.route("/password", methods=["PUT"])
@role_required(Resource.PROFILE)
def change_password():
    payload = parse_json_request(request, required_keys=("current_password", "new_password"))

    unwrap(
        identity_service().change_password(
            current_session().subject_id,
            payload["current_password"],
            payload["new_password"],
        )
    )
    return jsonify({"message": "Password changed."})


@auth_bp.route("/email", methods=["PUT"])
@role_required(Resource.PROFILE)
def change_email():
    """Change the account email; the new address must be verified again."""
    payload = parse_json_request(request, required_keys=("email",))

    account = unwrap(identity_service().change_email(current_session().subject_id, payload["email"]))
    return jsonify(
        {
            "message": "Email changed. Please verify your new address.",
            "requires_verification": True,
            "user": account.to_dict(),
        }
    )


@auth_bp.route("/history", methods=["GET"])
@role_required(Resource.OWN_HISTORY)
def my_history():
    """Return the signed-in account's audit history."""
    limit, offset = parse_pagination(request)
    service = identity_service()
    account_id = current_session().subject_id

    entries = unwrap(service.get_history(account_id, limit=limit, offset=offset))
    return jsonify(
        {
            "entries": [entry.to_dict() for entry in entries],
            "total": service.store.count_history(account_id),
            "limit": limit,
            "offset": offset,
        }
    )
