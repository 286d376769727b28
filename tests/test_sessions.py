# tests/test_sessions.py
from datetime import timedelta

import pytest

from omnirambles.auth.models import UserSession
from omnirambles.auth.sessions import MemorySessionStore, SessionAuthority, SqlSessionStore
from omnirambles.common.errors import AuthenticationError
from omnirambles.common.utils import hash_token, utcnow


@pytest.fixture(params=["sql", "memory"])
def authority(request, session):
    store = SqlSessionStore(session) if request.param == "sql" else MemorySessionStore()
    return SessionAuthority(store, ttl=timedelta(hours=24))


def test_issue_and_resolve(authority, make_user):
    user = make_user()
    issued = authority.issue(user)
    assert len(issued.token) >= 43
    assert timedelta(hours=23) < issued.expires_at - utcnow() <= timedelta(hours=24)

    resolved = authority.resolve(issued.token)
    assert resolved.id == user.id
    assert resolved.email == user.email
    assert not hasattr(resolved, "password_hash")


def test_tokens_are_unique(authority, make_user):
    user = make_user()
    tokens = {authority.issue(user).token for _ in range(10)}
    assert len(tokens) == 10


def test_missing_or_unknown_token(authority):
    with pytest.raises(AuthenticationError) as exc:
        authority.resolve(None)
    assert exc.value.code == "authentication_required"

    with pytest.raises(AuthenticationError) as exc:
        authority.resolve("does-not-exist")
    assert exc.value.code == "session_invalid"


def test_expired_session_is_destroyed_on_read(session, make_user):
    user = make_user()
    store = MemorySessionStore()
    authority = SessionAuthority(store, ttl=timedelta(seconds=-1))
    issued = authority.issue(user)

    with pytest.raises(AuthenticationError):
        authority.resolve(issued.token)
    assert store.read(issued.token) is None


def test_revoke_and_revoke_user(authority, make_user):
    user = make_user()
    first = authority.issue(user)
    second = authority.issue(user)

    assert authority.revoke(first.token) is True
    assert authority.revoke(first.token) is False
    with pytest.raises(AuthenticationError):
        authority.resolve(first.token)
    authority.resolve(second.token)

    third = authority.issue(user)
    assert authority.revoke_user(user.id) == 2
    for issued in (second, third):
        with pytest.raises(AuthenticationError):
            authority.resolve(issued.token)


def test_refresh_keeps_expiry(authority, make_user, session):
    user = make_user()
    issued = authority.issue(user)
    user.username = "carol_two"
    session.commit()

    snapshot = authority.refresh(issued.token, user)
    assert snapshot.username == "carol_two"
    assert authority.resolve(issued.token).username == "carol_two"
    assert authority.store.read(issued.token).expires_at == issued.expires_at


def test_sql_store_hashes_tokens(session, make_user):
    user = make_user()
    authority = SessionAuthority(SqlSessionStore(session))
    issued = authority.issue(user)

    row = session.get(UserSession, hash_token(issued.token))
    assert row is not None
    assert session.get(UserSession, issued.token) is None


def test_expire_purges_only_expired(session, make_user):
    user = make_user()
    store = SqlSessionStore(session)
    store.create("old-token", user.id, {}, utcnow() - timedelta(minutes=1))
    store.create("live-token", user.id, {}, utcnow() + timedelta(hours=1))

    assert store.expire(utcnow()) == 1
    assert store.read("old-token") is None
    assert store.read("live-token") is not None


def test_purge_sessions_cli(app, session, make_user):
    user = make_user()
    SqlSessionStore(session).create("old-token", user.id, {}, utcnow() - timedelta(minutes=1))

    result = app.test_cli_runner().invoke(args=["purge-sessions"])
    assert result.exit_code == 0
    assert "1 expired session(s) removed" in result.output
