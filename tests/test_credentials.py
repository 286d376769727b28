# tests/test_credentials.py
# CredentialStore piloté directement, sans HTTP
from datetime import timedelta

import pytest

from conftest import PASSWORD
from omnirambles.auth.models import PasswordResetToken
from omnirambles.auth.service import CredentialStore, dummy_hash, normalize_email
from omnirambles.common.errors import (
    AccountDisabled, AccountLocked, DuplicateEmail, InvalidCredentials, InvalidOrExpiredToken, NotFoundError, ValidationError,
)
from omnirambles.common.utils import hash_token, utcnow


@pytest.fixture()
def store(session):
    return CredentialStore(session, bcrypt_rounds=4, max_failed_attempts=3, lockout=timedelta(minutes=10))


def test_register_stores_bcrypt_hash(store):
    user = store.register("  Dan@Example.COM ", "dan", PASSWORD)
    assert user.email == "dan@example.com"
    assert user.password_hash != PASSWORD
    assert user.password_hash.startswith("$2")
    assert user.check_password(PASSWORD)
    assert not user.check_password("nope")


def test_normalize_email():
    assert normalize_email("  A@B.Co ") == "a@b.co"
    assert normalize_email(None) == ""


def test_duplicate_email_is_case_insensitive(store):
    store.register("dan@example.com", "dan", PASSWORD)
    with pytest.raises(DuplicateEmail):
        store.register("DAN@example.com", "dan2", PASSWORD)


def test_invalid_email_rejected(store):
    with pytest.raises(ValidationError):
        store.register("not-an-email", "dan", PASSWORD)


def test_lockout_threshold_is_configurable(store):
    store.register("dan@example.com", "dan", PASSWORD)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            store.authenticate("dan@example.com", "wrong-pass-1")

    with pytest.raises(AccountLocked) as exc:
        store.authenticate("dan@example.com", PASSWORD)
    assert exc.value.details["retry_after_minutes"] in (10, 11)


def test_success_resets_failure_counter(store):
    user = store.register("dan@example.com", "dan", PASSWORD)
    for _ in range(2):
        with pytest.raises(InvalidCredentials):
            store.authenticate("dan@example.com", "wrong-pass-1")
    assert user.failed_login_attempts == 2

    store.authenticate("dan@example.com", PASSWORD)
    assert user.failed_login_attempts == 0
    assert user.last_login is not None

    # le compteur repart de zéro: deux nouveaux échecs ne verrouillent pas
    for _ in range(2):
        with pytest.raises(InvalidCredentials):
            store.authenticate("dan@example.com", "wrong-pass-1")
    store.authenticate("dan@example.com", PASSWORD)


def test_reset_token_hashed_at_rest(session, store):
    user = store.register("dan@example.com", "dan", PASSWORD)
    raw = store.create_reset_token("dan@example.com")
    row = session.query(PasswordResetToken).filter_by(user_id=user.id).one()
    assert row.token_hash == hash_token(raw)
    assert row.token_hash != raw

    assert store.create_reset_token("ghost@example.com") is None


def test_expired_reset_token_rejected(session, store):
    store.register("dan@example.com", "dan", PASSWORD)
    raw = store.create_reset_token("dan@example.com")
    row = session.query(PasswordResetToken).one()
    row.expires_at = utcnow() - timedelta(seconds=1)
    session.commit()

    with pytest.raises(InvalidOrExpiredToken):
        store.consume_reset_token(raw, "Brandnew789")


def test_reset_clears_lockout(store):
    user = store.register("dan@example.com", "dan", PASSWORD)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            store.authenticate("dan@example.com", "wrong-pass-1")

    raw = store.create_reset_token("dan@example.com")
    store.consume_reset_token(raw, "Brandnew789")
    assert user.failed_login_attempts == 0
    assert user.locked_until is None
    store.authenticate("dan@example.com", "Brandnew789")


def test_weak_password_checked_before_token_is_spent(store):
    store.register("dan@example.com", "dan", PASSWORD)
    raw = store.create_reset_token("dan@example.com")
    with pytest.raises(ValidationError):
        store.consume_reset_token(raw, "weak")
    # le token reste utilisable
    store.consume_reset_token(raw, "Brandnew789")


def test_get_user_missing(store):
    import uuid
    with pytest.raises(NotFoundError):
        store.get_user(uuid.uuid4())


def test_unknown_email_hash_computed_once(session):
    dummy_hash.cache_clear()
    # un store par requête en prod: le hash jetable ne doit pas être recalculé
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            CredentialStore(session, bcrypt_rounds=4).authenticate("ghost@example.com", PASSWORD)
    info = dummy_hash.cache_info()
    assert info.misses == 1
    assert info.hits == 2


def test_set_active_toggles_login(store):
    store.register("dave@example.com", "dave", PASSWORD)
    user = store.set_active("DAVE@example.com", False)
    assert user.is_active is False
    with pytest.raises(AccountDisabled):
        store.authenticate("dave@example.com", PASSWORD)

    store.set_active("dave@example.com", True)
    assert store.authenticate("dave@example.com", PASSWORD).username == "dave"

    with pytest.raises(NotFoundError):
        store.set_active("nobody@example.com", False)
