"""
Notes et historique de versions.

Une note est une projection "courante" au-dessus d'une suite immuable de
versions (1, 2, ... sans trou). Chaque nouvelle version copie les tags live
de la note au moment de l'édition; les tags live, eux, se modifient sans
jamais toucher aux versions passées.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from omnirambles.common.db import atomic, insert_ignore
from omnirambles.common.errors import NotFoundError, ValidationError
from omnirambles.common.utils import utcnow
from omnirambles.notes.models import Note, NoteVersion, note_tags
from omnirambles.tags.models import Tag
from omnirambles.tags.service import TagRegistry, normalize_tag_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoteView:
    id: int
    content: str
    created_at: datetime
    updated_at: datetime
    current_version: int
    tags: list = field(default_factory=list)


@dataclass(frozen=True)
class VersionView:
    id: int
    note_id: int
    version: int
    content: str
    created_at: datetime
    tags: list = field(default_factory=list)


def note_view(note: Note, current_version: int) -> NoteView:
    return NoteView(
        id=note.id,
        content=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at,
        current_version=current_version,
        tags=list(note.tags),
    )


def version_view(version: NoteVersion) -> VersionView:
    return VersionView(
        id=version.id,
        note_id=version.note_id,
        version=version.version,
        content=version.content,
        created_at=version.created_at,
        tags=list(version.tags),
    )


class NoteStore:
    def __init__(self, session: Session, max_length: int = 50000):
        self.session = session
        self.max_length = max_length
        self.tags = TagRegistry(session)

    # --- helpers ---

    def _clean_content(self, content: str) -> str:
        content_n = (content or "").strip()
        if not content_n:
            raise ValidationError("Note content is required.", details={"field": "content"})
        if len(content_n) > self.max_length:
            raise ValidationError(
                f"Note content must be 1-{self.max_length} characters.", details={"field": "content"}
            )
        return content_n

    def _owned(self, user, note_id: int, for_update: bool = False) -> Note:
        q = select(Note).where(and_(Note.id == note_id, Note.user_id == user.id))
        if for_update:
            q = q.with_for_update()
        note = self.session.scalars(q).first()
        if not note:
            # absent ou pas à toi: même réponse
            raise NotFoundError("Note not found.", details={"note_id": note_id})
        return note

    def _max_version(self, note_id: int) -> int:
        return self.session.scalar(
            select(func.coalesce(func.max(NoteVersion.version), 0)).where(NoteVersion.note_id == note_id)
        )

    def _view(self, user, note_id: int) -> NoteView:
        note = self._owned(user, note_id)
        return note_view(note, self._max_version(note.id))

    # --- CRUD ---

    def create(self, user, content: str) -> NoteView:
        content_n = self._clean_content(content)
        now = utcnow()
        note = Note(user_id=user.id, content=content_n, created_at=now, updated_at=now)
        with atomic(self.session):
            self.session.add(note)
            self.session.flush()
            self.session.add(NoteVersion(note_id=note.id, version=1, content=content_n, created_at=now))
        logger.info("note_created", extra={"user_id": str(user.id), "note_id": note.id})
        return self._view(user, note.id)

    def get(self, user, note_id: int) -> NoteView:
        return self._view(user, note_id)

    def update(self, user, note_id: int, content: str | None = None, tag_names: list[str] | None = None) -> NoteView:
        """Nouveau contenu (-> nouvelle version) et/ou remplacement des tags live,
        le tout dans une seule transaction. Toutes les entrées sont validées avant
        la première écriture.
        """
        content_n = self._clean_content(content) if content is not None else None
        names = sorted({normalize_tag_name(n) for n in tag_names}) if tag_names is not None else None

        next_version = None
        with atomic(self.session):
            note = self._owned(user, note_id, for_update=True)
            # édition sans changement de texte: pas de nouvelle version
            if content_n is not None and content_n != note.content:
                next_version = self._max_version(note.id) + 1
                now = utcnow()
                # snapshot des tags live tels qu'ils sont avant l'édition
                self.session.add(NoteVersion(
                    note_id=note.id, version=next_version, content=content_n, created_at=now,
                    tags=list(note.tags),
                ))
                note.content = content_n
                note.updated_at = now
            if names is not None:
                note.tags = [self.tags.resolve_or_create(user, name) for name in names]

        if next_version is not None:
            logger.info(
                "note_versioned",
                extra={"user_id": str(user.id), "note_id": note_id, "version": next_version},
            )
        if names is not None:
            logger.info(
                "note_tags_replaced",
                extra={"user_id": str(user.id), "note_id": note_id, "count": len(names)},
            )
        return self._view(user, note_id)

    def delete(self, user, note_id: int) -> bool:
        note = self.session.scalars(
            select(Note).where(and_(Note.id == note_id, Note.user_id == user.id))
        ).first()
        if not note:
            return False
        with atomic(self.session):
            self.session.delete(note)
        logger.info("note_deleted", extra={"user_id": str(user.id), "note_id": note_id})
        return True

    # --- versions ---

    def versions(self, user, note_id: int) -> list[VersionView]:
        note = self._owned(user, note_id)
        rows = self.session.scalars(
            select(NoteVersion).where(NoteVersion.note_id == note.id).order_by(NoteVersion.version.asc())
        ).all()
        return [version_view(v) for v in rows]

    def version(self, user, note_id: int, number: int) -> VersionView:
        note = self._owned(user, note_id)
        row = self.session.scalars(
            select(NoteVersion).where(and_(NoteVersion.note_id == note.id, NoteVersion.version == number))
        ).first()
        if not row:
            raise NotFoundError("Version not found.", details={"note_id": note_id, "version": number})
        return version_view(row)

    # --- live tags ---

    def add_tag(self, user, note_id: int, tag_name: str) -> NoteView:
        with atomic(self.session):
            note = self._owned(user, note_id)
            tag = self.tags.resolve_or_create(user, tag_name)
            insert_ignore(
                self.session,
                note_tags,
                {"note_id": note.id, "tag_id": tag.id},
                index_elements=["note_id", "tag_id"],
            )
        logger.info("note_tag_added", extra={"user_id": str(user.id), "note_id": note_id, "tag_id": tag.id})
        return self._view(user, note_id)

    def remove_tag(self, user, note_id: int, tag_id: int) -> NoteView:
        with atomic(self.session):
            note = self._owned(user, note_id)
            # le tag doit aussi appartenir à l'utilisateur
            owned_tag = select(Tag.id).where(and_(Tag.id == tag_id, Tag.user_id == user.id))
            self.session.execute(
                delete(note_tags).where(and_(note_tags.c.note_id == note.id, note_tags.c.tag_id.in_(owned_tag)))
            )
        logger.info("note_tag_removed", extra={"user_id": str(user.id), "note_id": note_id, "tag_id": tag_id})
        return self._view(user, note_id)

    def set_tags(self, user, note_id: int, tag_names: list[str]) -> NoteView:
        """Remplace l'ensemble des tags live (les noms en double fusionnent)."""
        return self.update(user, note_id, tag_names=tag_names)
