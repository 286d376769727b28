from sqlalchemy import Uuid, ForeignKey
from omnirambles.extensions import db
from omnirambles.common.utils import utcnow


class UserSession(db.Model):
    """
    Session serveur: le client ne détient qu'un token opaque, on stocke son sha256.
    """
    __tablename__ = "sessions"

    token_hash = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # snapshot dénormalisé des champs publics de l'utilisateur
    data = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)


class PasswordResetToken(db.Model):
    __tablename__ = "password_reset_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
