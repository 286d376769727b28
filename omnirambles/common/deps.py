# omnirambles/common/deps.py
# Construit les composants du domaine pour la requête courante:
# session SQLAlchemy de Flask-SQLAlchemy + valeurs de app.config.
from datetime import timedelta

from flask import current_app

from omnirambles.auth.service import CredentialStore
from omnirambles.auth.sessions import SessionAuthority, SqlSessionStore
from omnirambles.extensions import db
from omnirambles.notes.query import NoteQuery
from omnirambles.notes.service import NoteStore
from omnirambles.tags.service import TagRegistry

MEMORY_STORE_KEY = "omnirambles.session_store"


def credential_store() -> CredentialStore:
    cfg = current_app.config
    return CredentialStore(
        db.session,
        bcrypt_rounds=cfg["BCRYPT_ROUNDS"],
        max_failed_attempts=cfg["MAX_LOGIN_ATTEMPTS"],
        lockout=timedelta(minutes=cfg["LOCKOUT_MINUTES"]),
        reset_token_ttl=timedelta(minutes=cfg["RESET_TOKEN_MINUTES"]),
    )


def session_store():
    if current_app.config["SESSION_STORE"] == "memory":
        return current_app.extensions[MEMORY_STORE_KEY]
    return SqlSessionStore(db.session)


def session_authority() -> SessionAuthority:
    return SessionAuthority(session_store(), ttl=current_app.config["SESSION_TTL"])


def note_store() -> NoteStore:
    return NoteStore(db.session, max_length=current_app.config["NOTE_MAX_LENGTH"])


def note_query() -> NoteQuery:
    return NoteQuery(db.session, max_limit=current_app.config["NOTES_MAX_LIMIT"])


def tag_registry() -> TagRegistry:
    return TagRegistry(db.session)
