from flask import Blueprint, request, jsonify
from omnirambles.common.authz import login_required
from omnirambles.common.deps import tag_registry
from omnirambles.common.errors import NotFoundError
from omnirambles.tags.schemas import TagIn, TagOut, TagUsageOut, TagListQuery

bp = Blueprint("tags", __name__)

tag_in = TagIn()
tag_out = TagOut()
tag_usage_many = TagUsageOut(many=True)
list_query = TagListQuery()


@bp.get("/")
@login_required
def list_tags(user):
    args = list_query.load(request.args)
    tags = tag_registry().list_tags(user, order=args["order"])
    return jsonify({"status": "success", "data": tag_usage_many.dump(tags)}), 200


@bp.post("/")
@login_required
def create_tag(user):
    payload = request.get_json(silent=True) or {}
    data = tag_in.load(payload)
    tag = tag_registry().create(user, data["name"])
    return jsonify(tag_out.dump(tag)), 201


@bp.patch("/<int:tag_id>")
@login_required
def rename_tag(user, tag_id):
    payload = request.get_json(silent=True) or {}
    data = tag_in.load(payload)
    tag = tag_registry().rename(user, tag_id, data["name"])
    return jsonify(tag_out.dump(tag)), 200


@bp.delete("/<int:tag_id>")
@login_required
def delete_tag(user, tag_id):
    if not tag_registry().delete(user, tag_id):
        raise NotFoundError("Tag not found.", details={"tag_id": tag_id})
    return ("", 204)
