# tests/conftest.py
import os, sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SESSION_STORE", "sql")

from omnirambles import create_app
from omnirambles.extensions import db

PASSWORD = "SuperSecret123"


@pytest.fixture()
def app():
    # une app + une base SQLite mémoire neuve par test
    app = create_app()
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    # pas de cookies: chaque appel choisit son utilisateur via Bearer
    return app.test_client(use_cookies=False)


@pytest.fixture()
def session(app):
    """Session SQLAlchemy pour piloter les composants sans passer par HTTP."""
    with app.app_context():
        yield db.session


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, username, password=PASSWORD):
    r = client.post("/api/v1/auth/register", json={"email": email, "username": username, "password": password})
    assert r.status_code == 201, r.get_json()
    return r.get_json()["session_token"]


@pytest.fixture()
def alice(client):
    return register(client, "alice@example.com", "alice")


@pytest.fixture()
def bob(client):
    return register(client, "bob@example.com", "bob")


@pytest.fixture()
def make_user(session):
    """Crée un utilisateur directement via le CredentialStore."""
    from omnirambles.auth.service import CredentialStore

    def _make(email="carol@example.com", username="carol", password=PASSWORD):
        return CredentialStore(session, bcrypt_rounds=4).register(email, username, password)
    return _make
