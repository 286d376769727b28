# tests/test_app.py
from conftest import auth, register
from omnirambles.auth.sessions import MemorySessionStore
from omnirambles.common.deps import MEMORY_STORE_KEY


def test_healthz_and_readyz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok", "env": "test", "db": "up"}

    r = client.get("/readyz")
    assert r.status_code == 200
    assert r.get_json()["redis"] == "n/a"


def test_request_id_and_security_headers(client):
    r = client.get("/healthz", headers={"X-Request-Id": "req-123"})
    assert r.headers["X-Request-Id"] == "req-123"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "Strict-Transport-Security" not in r.headers

    r = client.get("/healthz")
    assert r.headers["X-Request-Id"]


def test_errors_are_json(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "http_error"

    r = client.post("/api/v1/auth/login", data="not json", content_type="text/plain")
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "validation_error"


def test_openapi_document(client):
    r = client.get("/openapi.json")
    assert r.status_code == 200
    doc = r.get_json()
    assert doc["openapi"].startswith("3.")
    assert "/api/v1/notes/{id}/versions" in doc["paths"]
    assert {"sessionCookie", "bearerAuth"} <= set(doc["components"]["securitySchemes"])
    assert "Note" in doc["components"]["schemas"]


def test_memory_session_store(app, client):
    app.config["SESSION_STORE"] = "memory"
    app.extensions[MEMORY_STORE_KEY] = MemorySessionStore()

    token = register(client, "mem@example.com", "mem_user")
    assert client.get("/api/v1/auth/me", headers=auth(token)).status_code == 200
    assert len(app.extensions[MEMORY_STORE_KEY]._records) == 1

    client.post("/api/v1/auth/logout", headers=auth(token))
    assert client.get("/api/v1/auth/me", headers=auth(token)).status_code == 401


def test_log_records_carry_request_context(app):
    import logging
    from flask import g
    from omnirambles.common.logging import RequestContextFilter

    record = logging.LogRecord("omnirambles.notes", logging.INFO, __file__, 1, "note_created", None, None)
    with app.test_request_context("/api/v1/notes/"):
        g.request_id = "rid-1"
        g.user_id = "u-1"
        assert RequestContextFilter().filter(record)
    assert record.request_id == "rid-1"
    assert record.user_id == "u-1"

    # hors requête: le record passe sans enrichissement
    bare = logging.LogRecord("omnirambles.cli", logging.INFO, __file__, 1, "purge", None, None)
    assert RequestContextFilter().filter(bare)
    assert not hasattr(bare, "request_id")
