from flask import Blueprint, request, jsonify, current_app

from omnirambles.extensions import limiter
from omnirambles.auth.schemas import (
    RegisterSchema, LoginSchema, ChangePasswordSchema,
    ForgotPasswordSchema, ResetPasswordSchema, SessionOut,
)
from omnirambles.common.authz import login_required, session_token_from_request
from omnirambles.common.deps import credential_store, session_authority
from omnirambles.common.utils import success
from omnirambles.users.schemas import UserOut

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
change_password_schema = ChangePasswordSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
session_out = SessionOut()
user_out = UserOut()


def _session_response(issued, status: int):
    """Corps JSON + cookie HttpOnly portant le même token opaque."""
    cfg = current_app.config
    resp = jsonify(session_out.dump({
        "user": issued.user,
        "session_token": issued.token,
        "expires_at": issued.expires_at,
    }))
    resp.status_code = status
    resp.set_cookie(
        cfg["AUTH_COOKIE_NAME"],
        issued.token,
        expires=issued.expires_at,
        httponly=True,
        secure=cfg["AUTH_COOKIE_SECURE"],
        samesite=cfg["AUTH_COOKIE_SAMESITE"],
    )
    return resp


@bp.post("/register")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_AUTH_REGISTER", "10/hour"))
def register():
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)

    user = credential_store().register(data["email"], data["username"], data["password"])
    issued = session_authority().issue(user)
    return _session_response(issued, 201)


@bp.post("/login")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_AUTH_LOGIN", "30/minute"))
def login():
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)

    user = credential_store().authenticate(data["email"], data["password"])
    issued = session_authority().issue(user)
    return _session_response(issued, 200)


@bp.post("/logout")
@login_required
def logout(user):
    session_authority().revoke(session_token_from_request())
    resp, status = success(message="Logged out.")
    resp.delete_cookie(current_app.config["AUTH_COOKIE_NAME"])
    return resp, status


@bp.get("/me")
@login_required
def me(user):
    return jsonify(user_out.dump(user)), 200


@bp.post("/password")
@login_required
@limiter.limit(lambda: current_app.config.get("RATELIMIT_AUTH_PASSWORD", "10/minute"))
def change_password(user):
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)

    credential_store().change_password(user.id, data["current_password"], data["new_password"])
    return success(message="Password changed.")


@bp.post("/password/forgot")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_AUTH_PASSWORD", "10/minute"))
def forgot_password():
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)

    token = credential_store().create_reset_token(data["email"])
    # même réponse que l'email existe ou non
    body = None
    if token and current_app.config.get("PASSWORD_RESET_EXPOSE_TOKEN"):
        body = {"reset_token": token}
    return success(body, message="If the email exists, a reset link has been sent.")


@bp.post("/password/reset")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_AUTH_PASSWORD", "10/minute"))
def reset_password():
    payload = request.get_json(silent=True) or {}
    data = reset_password_schema.load(payload)

    user = credential_store().consume_reset_token(data["token"], data["new_password"])
    # nouveau mot de passe: toutes les sessions existantes tombent
    session_authority().revoke_user(user.id)
    return success(message="Password has been reset.")
