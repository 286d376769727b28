from marshmallow import Schema, fields, validate
from omnirambles.users.schemas import UserOut


class RegisterSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1, max=128))


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)


class ChangePasswordSchema(Schema):
    current_password = fields.String(required=True, load_only=True)
    new_password = fields.String(required=True, load_only=True, validate=validate.Length(max=128))


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True)


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, load_only=True, validate=validate.Length(min=32, max=128))
    new_password = fields.String(required=True, load_only=True, validate=validate.Length(max=128))


class SessionOut(Schema):
    user = fields.Nested(UserOut, required=True)
    session_token = fields.String(required=True)
    expires_at = fields.DateTime(required=True)
