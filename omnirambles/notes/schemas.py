from marshmallow import Schema, fields, validate, post_load, EXCLUDE
from omnirambles.tags.schemas import TagOut


class NoteIn(Schema):
    content = fields.String(required=True)


class NoteUpdateIn(Schema):
    content = fields.String()
    tags = fields.List(fields.String(validate=validate.Length(min=1, max=100)))


class AddTagIn(Schema):
    tag_name = fields.String(required=True, validate=validate.Length(min=1, max=100))


class NoteOut(Schema):
    id = fields.Integer(required=True)
    content = fields.String(required=True)
    created_at = fields.DateTime(required=True)
    updated_at = fields.DateTime(required=True)
    current_version = fields.Integer(required=True)
    tags = fields.List(fields.Nested(TagOut))


class NoteVersionOut(Schema):
    id = fields.Integer(required=True)
    note_id = fields.Integer(required=True)
    version = fields.Integer(required=True)
    content = fields.String(required=True)
    created_at = fields.DateTime(required=True)
    tags = fields.List(fields.Nested(TagOut))


class NoteListQuery(Schema):
    """Query string de GET /notes: ?tags=a,b&sort_by=updated&sort_order=asc&limit=20&offset=0"""
    class Meta:
        unknown = EXCLUDE

    tags = fields.String(load_default="")
    sort_by = fields.String(
        load_default="created",
        validate=validate.OneOf(["created", "updated", "created_at", "updated_at"]),
    )
    sort_order = fields.String(load_default="desc", validate=validate.OneOf(["asc", "desc"]))
    limit = fields.Integer(load_default=None, validate=validate.Range(min=1))
    offset = fields.Integer(load_default=0, validate=validate.Range(min=0))

    @post_load
    def split_tags(self, data, **kwargs):
        data["tags"] = [t.strip() for t in data["tags"].split(",") if t.strip()]
        return data
