"""Listing des notes: filtre par tags, tri sur un horodatage, pagination."""
from dataclasses import dataclass, field

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from omnirambles.common.errors import ValidationError
from omnirambles.notes.models import Note, NoteVersion, note_tags
from omnirambles.notes.service import NoteView, note_view
from omnirambles.tags.models import Tag

SORT_COLUMNS = {
    "created": Note.created_at,
    "created_at": Note.created_at,
    "updated": Note.updated_at,
    "updated_at": Note.updated_at,
}


@dataclass
class NoteFilters:
    tag_names: list[str] = field(default_factory=list)
    sort_by: str = "created"
    sort_order: str = "desc"
    limit: int = 100
    offset: int = 0


class NoteQuery:
    def __init__(self, session: Session, max_limit: int = 1000):
        self.session = session
        self.max_limit = max_limit

    def _check(self, filters: NoteFilters) -> None:
        if filters.sort_by not in SORT_COLUMNS:
            raise ValidationError("sort_by must be 'created' or 'updated'.", details={"field": "sort_by"})
        if filters.sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'.", details={"field": "sort_order"})
        if not 1 <= filters.limit <= self.max_limit:
            raise ValidationError(f"limit must be between 1 and {self.max_limit}.", details={"field": "limit"})
        if filters.offset < 0:
            raise ValidationError("offset must be a non-negative integer.", details={"field": "offset"})

    def _scoped(self, user, tag_names: list[str]):
        q = select(Note).where(Note.user_id == user.id)
        names = sorted({n.strip().lower() for n in tag_names if n and n.strip()})
        if names:
            # OR: la note porte au moins un des tags demandés
            tagged = (
                select(note_tags.c.note_id)
                .join(Tag, Tag.id == note_tags.c.tag_id)
                .where(and_(Tag.user_id == user.id, Tag.name.in_(names)))
            )
            q = q.where(Note.id.in_(tagged))
        return q

    def list_notes(self, user, filters: NoteFilters | None = None) -> tuple[list[NoteView], int]:
        filters = filters or NoteFilters()
        self._check(filters)

        base = self._scoped(user, filters.tag_names)
        total = self.session.scalar(select(func.count()).select_from(base.subquery())) or 0

        column = SORT_COLUMNS[filters.sort_by]
        if filters.sort_order == "asc":
            ordering = (column.asc(), Note.id.asc())
        else:
            ordering = (column.desc(), Note.id.desc())
        notes = self.session.scalars(
            base.order_by(*ordering).limit(filters.limit).offset(filters.offset)
        ).all()

        versions = self._current_versions([n.id for n in notes])
        return [note_view(n, versions.get(n.id, 0)) for n in notes], total

    def _current_versions(self, note_ids: list[int]) -> dict[int, int]:
        if not note_ids:
            return {}
        rows = self.session.execute(
            select(NoteVersion.note_id, func.max(NoteVersion.version))
            .where(NoteVersion.note_id.in_(note_ids))
            .group_by(NoteVersion.note_id)
        )
        return {note_id: version for note_id, version in rows}
