# omnirambles/health/routes.py
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from omnirambles.extensions import db

bp = Blueprint("health", __name__)


def _ping_db() -> bool:
    try:
        with db.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _ping_redis(uri: str) -> str:
    """'n/a' si le storage du limiter n'est pas redis."""
    if not uri.startswith(("redis://", "rediss://")):
        return "n/a"
    try:
        import redis  # import tardif
        redis.from_url(uri).ping()
        return "up"
    except Exception:
        return "down"


# Liveness: le process répond, la DB est indicative
@bp.get("/healthz")
def healthz():
    return jsonify({
        "status": "ok",
        "env": current_app.config["APP_ENV"],
        "db": "up" if _ping_db() else "down",
    })


# Readiness: DB obligatoire, Redis si configuré
@bp.get("/readyz")
def readyz():
    status = {
        "db": "up" if _ping_db() else "down",
        "redis": _ping_redis(current_app.config.get("RATELIMIT_STORAGE_URI", "memory://")),
    }
    ok = status["db"] == "up" and status["redis"] != "down"
    status["status"] = "ok" if ok else "error"
    return jsonify(status), (200 if ok else 503)
