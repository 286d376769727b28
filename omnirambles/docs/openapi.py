# omnirambles/docs/openapi.py
from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin
from marshmallow import Schema, fields

from omnirambles.auth.schemas import (
    RegisterSchema, LoginSchema, ChangePasswordSchema,
    ForgotPasswordSchema, ResetPasswordSchema, SessionOut,
)
from omnirambles.notes.schemas import NoteIn, NoteUpdateIn, AddTagIn, NoteOut, NoteVersionOut
from omnirambles.tags.schemas import TagIn, TagOut, TagUsageOut
from omnirambles.users.schemas import UserOut, ProfileUpdateIn


class MessageSchema(Schema):
    status = fields.String()
    message = fields.String()


class ErrorSchema(Schema):
    error = fields.Dict()


SECURED = [{"sessionCookie": []}, {"bearerAuth": []}]


def _ref(name: str):
    return {"$ref": f"#/components/schemas/{name}"}


def _json(name: str, description: str = "OK"):
    return {"description": description, "content": {"application/json": {"schema": _ref(name)}}}


def _body(name: str):
    return {"required": True, "content": {"application/json": {"schema": _ref(name)}}}


def _id_param(name: str):
    return {"in": "path", "name": name, "required": True, "schema": {"type": "integer"}}


def build_openapi():
    spec = APISpec(
        title="OmniRambles API",
        version="1.0.0",
        openapi_version="3.0.3",
        info={"description": "Notes, tags and version history behind a server-side session"},
        plugins=[MarshmallowPlugin()],
    )

    # Session opaque: cookie HttpOnly ou Bearer
    spec.components.security_scheme(
        "sessionCookie", {"type": "apiKey", "in": "cookie", "name": "omnirambles_sid"}
    )
    spec.components.security_scheme("bearerAuth", {"type": "http", "scheme": "bearer"})

    # Composants (schémas imbriqués d'abord: User, Tag)
    for name, schema in (
        ("User", UserOut), ("Tag", TagOut),
        ("Register", RegisterSchema), ("Login", LoginSchema), ("Session", SessionOut),
        ("ChangePassword", ChangePasswordSchema), ("ForgotPassword", ForgotPasswordSchema),
        ("ResetPassword", ResetPasswordSchema), ("ProfileUpdate", ProfileUpdateIn),
        ("NoteIn", NoteIn), ("NoteUpdate", NoteUpdateIn), ("AddTag", AddTagIn), ("Note", NoteOut),
        ("NoteVersion", NoteVersionOut), ("TagIn", TagIn), ("TagUsage", TagUsageOut),
        ("Message", MessageSchema), ("Error", ErrorSchema),
    ):
        spec.components.schema(name, schema=schema)

    # ---- AUTH ----
    spec.path(path="/api/v1/auth/register", operations={"post": {
        "summary": "Register and open a session",
        "requestBody": _body("Register"),
        "responses": {"201": _json("Session", "Created"), "409": _json("Error", "Email or username taken")},
    }})
    spec.path(path="/api/v1/auth/login", operations={"post": {
        "summary": "Login",
        "requestBody": _body("Login"),
        "responses": {
            "200": _json("Session"),
            "401": _json("Error", "Invalid credentials"),
            "423": _json("Error", "Account locked"),
        },
    }})
    spec.path(path="/api/v1/auth/logout", operations={"post": {
        "summary": "Destroy the current session", "security": SECURED,
        "responses": {"200": _json("Message")},
    }})
    spec.path(path="/api/v1/auth/me", operations={"get": {
        "summary": "Get current user", "security": SECURED,
        "responses": {"200": _json("User"), "401": _json("Error", "Unauthorized")},
    }})
    spec.path(path="/api/v1/auth/password", operations={"post": {
        "summary": "Change password", "security": SECURED,
        "requestBody": _body("ChangePassword"), "responses": {"200": _json("Message")},
    }})
    spec.path(path="/api/v1/auth/password/forgot", operations={"post": {
        "summary": "Request a password reset token",
        "requestBody": _body("ForgotPassword"), "responses": {"200": _json("Message")},
    }})
    spec.path(path="/api/v1/auth/password/reset", operations={"post": {
        "summary": "Reset password with a token",
        "requestBody": _body("ResetPassword"),
        "responses": {"200": _json("Message"), "400": _json("Error", "Invalid or expired token")},
    }})

    # ---- USERS ----
    spec.path(path="/api/v1/users/me", operations={
        "patch": {
            "summary": "Update profile", "security": SECURED,
            "requestBody": _body("ProfileUpdate"), "responses": {"200": _json("User")},
        },
        "delete": {
            "summary": "Delete account and all owned data", "security": SECURED,
            "responses": {"204": {"description": "No content"}},
        },
    })

    # ---- NOTES ----
    spec.path(path="/api/v1/notes/", operations={
        "post": {
            "summary": "Create note (version 1)", "security": SECURED,
            "requestBody": _body("NoteIn"), "responses": {"201": _json("Note", "Created")},
        },
        "get": {
            "summary": "List my notes", "security": SECURED,
            "parameters": [
                {"in": "query", "name": "tags", "schema": {"type": "string"},
                 "description": "Comma separated; a note matches if it carries any of them"},
                {"in": "query", "name": "sort_by", "schema": {"type": "string", "enum": ["created", "updated"]}},
                {"in": "query", "name": "sort_order", "schema": {"type": "string", "enum": ["asc", "desc"]}},
                {"in": "query", "name": "limit", "schema": {"type": "integer"}},
                {"in": "query", "name": "offset", "schema": {"type": "integer"}},
            ],
            "responses": {"200": {"description": "Paged list"}},
        },
    })
    spec.path(path="/api/v1/notes/{id}", operations={
        "get": {
            "summary": "Get note", "security": SECURED, "parameters": [_id_param("id")],
            "responses": {"200": _json("Note"), "404": _json("Error", "Not found")},
        },
        "put": {
            "summary": "Update content (new version) and/or replace live tags", "security": SECURED,
            "parameters": [_id_param("id")], "requestBody": _body("NoteUpdate"),
            "responses": {"200": _json("Note")},
        },
        "delete": {
            "summary": "Delete note", "security": SECURED, "parameters": [_id_param("id")],
            "responses": {"204": {"description": "No content"}},
        },
    })
    spec.path(path="/api/v1/notes/{id}/versions", operations={"get": {
        "summary": "Version history", "security": SECURED, "parameters": [_id_param("id")],
        "responses": {"200": {"description": "Versions, oldest first"}},
    }})
    spec.path(path="/api/v1/notes/{id}/versions/{version}", operations={"get": {
        "summary": "One version", "security": SECURED,
        "parameters": [_id_param("id"), _id_param("version")],
        "responses": {"200": _json("NoteVersion"), "404": _json("Error", "Not found")},
    }})
    spec.path(path="/api/v1/notes/{id}/tags", operations={"post": {
        "summary": "Add a tag by name", "security": SECURED, "parameters": [_id_param("id")],
        "requestBody": _body("AddTag"), "responses": {"200": _json("Note")},
    }})
    spec.path(path="/api/v1/notes/{id}/tags/{tag_id}", operations={"delete": {
        "summary": "Remove a tag from the note", "security": SECURED,
        "parameters": [_id_param("id"), _id_param("tag_id")], "responses": {"200": _json("Note")},
    }})

    # ---- TAGS ----
    spec.path(path="/api/v1/tags/", operations={
        "get": {
            "summary": "List tags with usage", "security": SECURED,
            "parameters": [{"in": "query", "name": "order", "schema": {"type": "string", "enum": ["name", "usage"]}}],
            "responses": {"200": {"description": "Tags"}},
        },
        "post": {
            "summary": "Create tag", "security": SECURED, "requestBody": _body("TagIn"),
            "responses": {"201": _json("Tag", "Created"), "409": _json("Error", "Duplicate tag")},
        },
    })
    spec.path(path="/api/v1/tags/{id}", operations={
        "patch": {
            "summary": "Rename tag", "security": SECURED, "parameters": [_id_param("id")],
            "requestBody": _body("TagIn"), "responses": {"200": _json("Tag")},
        },
        "delete": {
            "summary": "Delete tag", "security": SECURED, "parameters": [_id_param("id")],
            "responses": {"204": {"description": "No content"}},
        },
    })

    return spec.to_dict()
