from functools import wraps
from flask import current_app, g, request
from omnirambles.common.deps import session_authority


def session_token_from_request() -> str | None:
    """Cookie de session, sinon en-tête Authorization: Bearer <token>."""
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def login_required(fn):
    """
    Résout la session et passe l'utilisateur public en premier argument:
        @bp.get("/")
        @login_required
        def list_things(user): ...
    Lève AuthenticationError (401) si pas de session valide.
    """
    @wraps(fn)
    def inner(*args, **kwargs):
        user = session_authority().resolve(session_token_from_request())
        g.user_id = str(user.id)
        return fn(user, *args, **kwargs)
    return inner
