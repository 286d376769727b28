import uuid
from sqlalchemy import Uuid
from passlib.hash import bcrypt
from omnirambles.extensions import db
from omnirambles.common.utils import utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    # toujours stocké en minuscules
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # lockout
    failed_login_attempts = db.Column(db.Integer, nullable=False, default=0)
    locked_until = db.Column(db.DateTime(timezone=True), nullable=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # suppression du compte -> tout le contenu part avec
    notes = db.relationship("Note", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    tags = db.relationship("Tag", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    reset_tokens = db.relationship("PasswordResetToken", cascade="all, delete-orphan", passive_deletes=True)

    # helpers mot de passe
    def set_password(self, raw_password: str, rounds: int = 12) -> None:
        self.password_hash = bcrypt.using(rounds=rounds).hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return bcrypt.verify(raw_password, self.password_hash)
