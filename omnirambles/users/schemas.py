import uuid
from dataclasses import dataclass
from datetime import datetime
from marshmallow import Schema, fields, validate, post_load, EXCLUDE


@dataclass(frozen=True)
class PublicUser:
    """Vue sans secrets d'un utilisateur (ni hash, ni compteurs de lockout)."""
    id: uuid.UUID
    email: str
    username: str
    is_active: bool
    created_at: datetime | None = None
    last_login: datetime | None = None


class UserOut(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.UUID(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    is_active = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)
    last_login = fields.DateTime(allow_none=True)

    @post_load
    def make_user(self, data, **kwargs):
        return PublicUser(**data)


class ProfileUpdateIn(Schema):
    email = fields.Email(validate=validate.Length(max=255))
    username = fields.String(validate=validate.Length(min=1, max=50))


def public_user(user) -> PublicUser:
    """Sanitize un User ORM (ou tout objet aux mêmes attributs)."""
    return PublicUser(
        id=user.id,
        email=user.email,
        username=user.username,
        is_active=user.is_active,
        created_at=user.created_at,
        last_login=user.last_login,
    )
