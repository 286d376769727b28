"""
Credential store: inscription, authentification avec lockout, mots de passe.

Toutes les méthodes reçoivent explicitement l'identité concernée; la session
SQLAlchemy est injectée au constructeur.
"""
import logging
import re
import secrets
import uuid
from functools import lru_cache
from datetime import timedelta

from passlib.hash import bcrypt
from sqlalchemy import select, update, delete, case
from sqlalchemy.orm import Session

from omnirambles.auth.models import PasswordResetToken
from omnirambles.common.db import atomic
from omnirambles.common.errors import (
    AccountDisabled, AccountLocked, ConflictError, DuplicateEmail, DuplicateUsername,
    InvalidCredentials, InvalidOrExpiredToken, NotFoundError, ValidationError,
)
from omnirambles.common.utils import as_utc, hash_token, utcnow
from omnirambles.users.models import User

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


@lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> str:
    """Hash jetable, calculé une fois par process et par coût bcrypt."""
    return bcrypt.using(rounds=rounds).hash(secrets.token_hex(16))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> None:
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format.", details={"field": "email"})


def validate_username(username: str) -> None:
    if not 3 <= len(username) <= 50:
        raise ValidationError("Username must be 3-50 characters long.", details={"field": "username"})
    if not USERNAME_RE.match(username):
        raise ValidationError(
            "Username can only contain letters, numbers, and underscores.", details={"field": "username"}
        )


def validate_password(password: str) -> None:
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long.", details={"field": "password"})
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter.", details={"field": "password"})
    if not re.search(r"[0-9]", password):
        raise ValidationError("Password must contain at least one number.", details={"field": "password"})


class CredentialStore:
    def __init__(
        self,
        session: Session,
        *,
        bcrypt_rounds: int = 12,
        max_failed_attempts: int = 5,
        lockout: timedelta = timedelta(minutes=15),
        reset_token_ttl: timedelta = timedelta(hours=1),
    ):
        self.session = session
        self.bcrypt_rounds = bcrypt_rounds
        self.max_failed_attempts = max_failed_attempts
        self.lockout = lockout
        self.reset_token_ttl = reset_token_ttl

    # --- lookups ---

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found.")
        return user

    def _by_email(self, email: str) -> User | None:
        return self.session.scalars(select(User).where(User.email == normalize_email(email))).first()

    def _email_taken(self, email: str, exclude_id=None) -> bool:
        q = select(User.id).where(User.email == email)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        return self.session.scalars(q).first() is not None

    def _username_taken(self, username: str, exclude_id=None) -> bool:
        q = select(User.id).where(User.username == username)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        return self.session.scalars(q).first() is not None

    # --- registration ---

    def register(self, email: str, username: str, password: str) -> User:
        email_n = normalize_email(email)
        username = (username or "").strip()
        validate_email(email_n)
        validate_username(username)
        validate_password(password)

        if self._email_taken(email_n):
            raise DuplicateEmail("Email already registered.", details={"email": email_n})
        if self._username_taken(username):
            raise DuplicateUsername("Username already taken.", details={"username": username})

        user = User(email=email_n, username=username)
        user.set_password(password, rounds=self.bcrypt_rounds)
        try:
            with atomic(self.session):
                self.session.add(user)
        except ConflictError:
            # course perdue contre une inscription concurrente
            raise ConflictError("Email or username already registered.")
        logger.info("user_registered", extra={"user_id": str(user.id)})
        return user

    # --- authentication ---

    def _verify_dummy(self, password: str) -> None:
        # email inconnu: un seul verify, même coût qu'un mauvais mot de passe
        bcrypt.verify(password, dummy_hash(self.bcrypt_rounds))

    def authenticate(self, email: str, password: str) -> User:
        user = self._by_email(email)
        if not user:
            self._verify_dummy(password or "")
            raise InvalidCredentials()

        now = utcnow()
        locked_until = as_utc(user.locked_until)
        if locked_until and locked_until > now:
            remaining = int((locked_until - now).total_seconds()) + 1
            logger.info("login_blocked", extra={"user_id": str(user.id)})
            raise AccountLocked(remaining)

        if not user.check_password(password or ""):
            self._record_failure(user)
            raise InvalidCredentials()

        if not user.is_active:
            raise AccountDisabled()

        with atomic(self.session):
            user.failed_login_attempts = 0
            user.locked_until = None
            user.last_login = now
        logger.info("login_succeeded", extra={"user_id": str(user.id)})
        return user

    def _record_failure(self, user: User) -> None:
        """Incrément + pose du lockout dans le même UPDATE."""
        lock_until = utcnow() + self.lockout
        stmt = (
            update(User)
            .where(User.id == user.id)
            .values(
                failed_login_attempts=User.failed_login_attempts + 1,
                locked_until=case(
                    (User.failed_login_attempts + 1 >= self.max_failed_attempts, lock_until),
                    else_=User.locked_until,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        with atomic(self.session):
            self.session.execute(stmt)
        self.session.refresh(user)
        if user.failed_login_attempts >= self.max_failed_attempts:
            logger.warning(
                "account_locked",
                extra={"user_id": str(user.id), "failed_attempts": user.failed_login_attempts},
            )
        else:
            logger.info(
                "login_failed",
                extra={"user_id": str(user.id), "failed_attempts": user.failed_login_attempts},
            )

    # --- passwords ---

    def change_password(self, user_id: uuid.UUID, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not user.check_password(current_password or ""):
            raise InvalidCredentials("Current password is incorrect.")
        validate_password(new_password)
        with atomic(self.session):
            user.set_password(new_password, rounds=self.bcrypt_rounds)
        logger.info("password_changed", extra={"user_id": str(user.id)})

    def create_reset_token(self, email: str) -> str | None:
        """Émet un token à usage unique; None si l'email est inconnu."""
        user = self._by_email(email)
        if not user:
            return None

        raw = secrets.token_hex(32)
        with atomic(self.session):
            # un seul token valide par utilisateur
            self.session.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
            self.session.add(PasswordResetToken(
                user_id=user.id,
                token_hash=hash_token(raw),
                expires_at=utcnow() + self.reset_token_ttl,
            ))
        logger.info("password_reset_requested", extra={"user_id": str(user.id)})
        return raw

    def consume_reset_token(self, token: str, new_password: str) -> User:
        validate_password(new_password)

        with atomic(self.session):
            reset = self.session.scalars(
                select(PasswordResetToken)
                .where(PasswordResetToken.token_hash == hash_token(token or ""))
                .with_for_update()
            ).first()
            if not reset or reset.used_at is not None or as_utc(reset.expires_at) <= utcnow():
                raise InvalidOrExpiredToken()

            user = self.session.get(User, reset.user_id)
            user.set_password(new_password, rounds=self.bcrypt_rounds)
            user.failed_login_attempts = 0
            user.locked_until = None
            reset.used_at = utcnow()
        logger.info("password_reset", extra={"user_id": str(user.id)})
        return user

    # --- profile ---

    def update_profile(self, user_id: uuid.UUID, email: str | None = None, username: str | None = None) -> User:
        user = self.get_user(user_id)
        if email is None and username is None:
            raise ValidationError("No updates provided.")

        if email is not None:
            email = normalize_email(email)
            validate_email(email)
            if self._email_taken(email, exclude_id=user.id):
                raise DuplicateEmail("Email already taken.", details={"email": email})
        if username is not None:
            username = username.strip()
            validate_username(username)
            if self._username_taken(username, exclude_id=user.id):
                raise DuplicateUsername("Username already taken.", details={"username": username})

        try:
            with atomic(self.session):
                if email is not None:
                    user.email = email
                if username is not None:
                    user.username = username
        except ConflictError:
            raise ConflictError("Email or username already taken.")
        logger.info("profile_updated", extra={"user_id": str(user.id)})
        return user

    def delete_account(self, user_id: uuid.UUID) -> None:
        user = self.get_user(user_id)
        with atomic(self.session):
            self.session.delete(user)
        logger.info("account_deleted", extra={"user_id": str(user_id)})

    def set_active(self, email: str, active: bool) -> User:
        user = self._by_email(email)
        if not user:
            raise NotFoundError("User not found.", details={"email": normalize_email(email)})
        with atomic(self.session):
            user.is_active = active
        logger.info("account_enabled" if active else "account_disabled", extra={"user_id": str(user.id)})
        return user
