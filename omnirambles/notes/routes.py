from flask import Blueprint, request, jsonify, current_app
from omnirambles.common.authz import login_required
from omnirambles.common.deps import note_query, note_store
from omnirambles.common.errors import NotFoundError, ValidationError
from omnirambles.notes.query import NoteFilters
from omnirambles.notes.schemas import (
    NoteIn, NoteUpdateIn, AddTagIn, NoteOut, NoteVersionOut, NoteListQuery,
)

bp = Blueprint("notes", __name__)

note_in = NoteIn()
note_update_in = NoteUpdateIn()
add_tag_in = AddTagIn()
note_out = NoteOut()
note_out_many = NoteOut(many=True)
version_out = NoteVersionOut()
version_out_many = NoteVersionOut(many=True)
list_query = NoteListQuery()


@bp.post("/")
@login_required
def create_note(user):
    payload = request.get_json(silent=True) or {}
    data = note_in.load(payload)
    note = note_store().create(user, data["content"])
    return jsonify(note_out.dump(note)), 201


@bp.get("/")
@login_required
def list_notes(user):
    args = list_query.load(request.args)
    filters = NoteFilters(
        tag_names=args["tags"],
        sort_by=args["sort_by"],
        sort_order=args["sort_order"],
        limit=args["limit"] or current_app.config["NOTES_DEFAULT_LIMIT"],
        offset=args["offset"],
    )
    notes, total = note_query().list_notes(user, filters)
    return jsonify({
        "status": "success",
        "data": note_out_many.dump(notes),
        "meta": {"limit": filters.limit, "offset": filters.offset, "total": total}
    }), 200


@bp.get("/<int:note_id>")
@login_required
def get_note(user, note_id):
    return jsonify(note_out.dump(note_store().get(user, note_id))), 200


@bp.put("/<int:note_id>")
@login_required
def update_note(user, note_id):
    payload = request.get_json(silent=True) or {}
    data = note_update_in.load(payload)

    # S'il n'y a aucun champ valide à mettre à jour
    if not data:
        raise ValidationError("No updatable fields provided.")

    # contenu et tags: une seule transaction, tout ou rien
    note = note_store().update(user, note_id, content=data.get("content"), tag_names=data.get("tags"))
    return jsonify(note_out.dump(note)), 200


@bp.delete("/<int:note_id>")
@login_required
def delete_note(user, note_id):
    if not note_store().delete(user, note_id):
        raise NotFoundError("Note not found.", details={"note_id": note_id})
    return ("", 204)


@bp.get("/<int:note_id>/versions")
@login_required
def list_versions(user, note_id):
    return jsonify(version_out_many.dump(note_store().versions(user, note_id))), 200


@bp.get("/<int:note_id>/versions/<int:version>")
@login_required
def get_version(user, note_id, version):
    return jsonify(version_out.dump(note_store().version(user, note_id, version))), 200


@bp.post("/<int:note_id>/tags")
@login_required
def add_tag(user, note_id):
    payload = request.get_json(silent=True) or {}
    data = add_tag_in.load(payload)
    note = note_store().add_tag(user, note_id, data["tag_name"])
    return jsonify(note_out.dump(note)), 200


@bp.delete("/<int:note_id>/tags/<int:tag_id>")
@login_required
def remove_tag(user, note_id, tag_id):
    note = note_store().remove_tag(user, note_id, tag_id)
    return jsonify(note_out.dump(note)), 200
