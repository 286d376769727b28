from flask import Blueprint, request, jsonify, current_app
from omnirambles.common.authz import login_required, session_token_from_request
from omnirambles.common.deps import credential_store, session_authority
from omnirambles.users.schemas import UserOut, ProfileUpdateIn

bp = Blueprint("users", __name__)
user_out = UserOut()
profile_in = ProfileUpdateIn()


@bp.patch("/me")
@login_required
def update_profile(user):
    payload = request.get_json(silent=True) or {}
    data = profile_in.load(payload)

    updated = credential_store().update_profile(user.id, email=data.get("email"), username=data.get("username"))
    # le snapshot de la session doit suivre le profil
    snapshot = session_authority().refresh(session_token_from_request(), updated)
    return jsonify(user_out.dump(snapshot)), 200


@bp.delete("/me")
@login_required
def delete_account(user):
    # compte d'abord: si la suppression échoue, les sessions restent valides
    credential_store().delete_account(user.id)
    session_authority().revoke_user(user.id)
    resp = current_app.response_class(status=204)
    resp.delete_cookie(current_app.config["AUTH_COOKIE_NAME"])
    return resp
