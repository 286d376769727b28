import hashlib
from datetime import datetime, timezone

from flask import jsonify


def success(data=None, message="ok", status=200):
    return jsonify({"status": "success", "message": message, "data": data}), status


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite rend des datetimes naïfs: on les considère UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
