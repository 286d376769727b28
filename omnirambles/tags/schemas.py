from marshmallow import Schema, fields, validate, EXCLUDE


class TagIn(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))


class TagOut(Schema):
    id = fields.Integer(required=True)
    name = fields.String(required=True)


class TagUsageOut(TagOut):
    note_count = fields.Integer(required=True)
    created_at = fields.DateTime(allow_none=True)


class TagListQuery(Schema):
    class Meta:
        unknown = EXCLUDE

    order = fields.String(load_default="name", validate=validate.OneOf(["name", "usage"]))
