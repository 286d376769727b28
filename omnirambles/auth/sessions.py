"""
Sessions serveur à token opaque.

``SessionStore`` est la capacité clé/valeur (create/read/destroy/expire);
``SessionAuthority`` émet et résout les tokens. Le TTL est fixe depuis la
création: aucune activité ne prolonge une session.
"""
import abc
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from omnirambles.auth.models import UserSession
from omnirambles.common.db import atomic
from omnirambles.common.errors import AuthenticationError
from omnirambles.common.utils import as_utc, hash_token, utcnow
from omnirambles.users.schemas import PublicUser, UserOut, public_user

logger = logging.getLogger(__name__)

_user_schema = UserOut()


@dataclass(frozen=True)
class SessionRecord:
    user_id: uuid.UUID
    data: dict
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime
    user: PublicUser


class SessionStore(abc.ABC):
    @abc.abstractmethod
    def create(self, token: str, user_id: uuid.UUID, data: dict, expires_at: datetime) -> None: ...

    @abc.abstractmethod
    def read(self, token: str) -> SessionRecord | None: ...

    @abc.abstractmethod
    def destroy(self, token: str) -> bool: ...

    @abc.abstractmethod
    def destroy_user(self, user_id: uuid.UUID) -> int: ...

    @abc.abstractmethod
    def expire(self, now: datetime) -> int:
        """Purge les sessions expirées, renvoie le nombre supprimé."""


class SqlSessionStore(SessionStore):
    def __init__(self, session: Session):
        self.session = session

    def create(self, token, user_id, data, expires_at):
        with atomic(self.session):
            self.session.add(UserSession(
                token_hash=hash_token(token), user_id=user_id, data=data, expires_at=expires_at,
            ))

    def read(self, token):
        row = self.session.get(UserSession, hash_token(token))
        if row is None:
            return None
        return SessionRecord(user_id=row.user_id, data=dict(row.data), expires_at=as_utc(row.expires_at))

    def destroy(self, token):
        with atomic(self.session):
            result = self.session.execute(delete(UserSession).where(UserSession.token_hash == hash_token(token)))
        return result.rowcount > 0

    def destroy_user(self, user_id):
        with atomic(self.session):
            result = self.session.execute(delete(UserSession).where(UserSession.user_id == user_id))
        return result.rowcount

    def expire(self, now):
        with atomic(self.session):
            result = self.session.execute(delete(UserSession).where(UserSession.expires_at <= now))
        return result.rowcount


class MemorySessionStore(SessionStore):
    """Store en mémoire process: tests et dev mono-process uniquement."""

    def __init__(self):
        self._records: dict[str, SessionRecord] = {}

    def create(self, token, user_id, data, expires_at):
        self._records[hash_token(token)] = SessionRecord(user_id=user_id, data=dict(data), expires_at=expires_at)

    def read(self, token):
        return self._records.get(hash_token(token))

    def destroy(self, token):
        return self._records.pop(hash_token(token), None) is not None

    def destroy_user(self, user_id):
        keys = [k for k, rec in self._records.items() if rec.user_id == user_id]
        for k in keys:
            del self._records[k]
        return len(keys)

    def expire(self, now):
        keys = [k for k, rec in self._records.items() if rec.expires_at <= now]
        for k in keys:
            del self._records[k]
        return len(keys)


class SessionAuthority:
    def __init__(self, store: SessionStore, ttl: timedelta = timedelta(hours=24)):
        self.store = store
        self.ttl = ttl

    def issue(self, user) -> IssuedSession:
        token = secrets.token_urlsafe(32)
        expires_at = utcnow() + self.ttl
        snapshot = public_user(user)
        self.store.create(token, snapshot.id, _user_schema.dump(snapshot), expires_at)
        logger.info("session_issued", extra={"user_id": str(snapshot.id)})
        return IssuedSession(token=token, expires_at=expires_at, user=snapshot)

    def resolve(self, token: str | None) -> PublicUser:
        if not token:
            raise AuthenticationError("Authentication required.")
        record = self.store.read(token)
        if record is None:
            raise AuthenticationError("Session is invalid or has expired.", code="session_invalid")
        if as_utc(record.expires_at) <= utcnow():
            # expiration paresseuse: vérifiée à la lecture, pas de sweeper
            self.store.destroy(token)
            raise AuthenticationError("Session is invalid or has expired.", code="session_invalid")
        user = _user_schema.load(record.data)
        if user.id != record.user_id:
            raise AuthenticationError("Session is invalid or has expired.", code="session_invalid")
        return user

    def refresh(self, token: str, user) -> PublicUser:
        """Réécrit le snapshot public (après un changement de profil) sans prolonger le TTL."""
        record = self.store.read(token)
        if record is None:
            raise AuthenticationError("Session is invalid or has expired.", code="session_invalid")
        snapshot = public_user(user)
        self.store.destroy(token)
        self.store.create(token, snapshot.id, _user_schema.dump(snapshot), record.expires_at)
        return snapshot

    def revoke(self, token: str) -> bool:
        return self.store.destroy(token)

    def revoke_user(self, user_id: uuid.UUID) -> int:
        count = self.store.destroy_user(user_id)
        logger.info("sessions_revoked", extra={"user_id": str(user_id), "count": count})
        return count
