"""
Registre des tags d'un utilisateur.

Un nom est unique par utilisateur (minuscules à l'écriture); deux utilisateurs
peuvent avoir chacun leur tag "perso" sans se voir.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from omnirambles.common.db import atomic, insert_ignore
from omnirambles.common.errors import ConflictError, DuplicateTag, NotFoundError, ValidationError
from omnirambles.common.utils import utcnow
from omnirambles.notes.models import note_tags
from omnirambles.tags.models import Tag

logger = logging.getLogger(__name__)

TAG_NAME_MAX = 100


@dataclass(frozen=True)
class TagUsage:
    id: int
    name: str
    note_count: int
    created_at: datetime | None = None


def normalize_tag_name(name: str) -> str:
    name_n = (name or "").strip().lower()
    if not name_n:
        raise ValidationError("Tag name is required.", details={"field": "name"})
    if len(name_n) > TAG_NAME_MAX:
        raise ValidationError(f"Tag name must be 1-{TAG_NAME_MAX} characters.", details={"field": "name"})
    return name_n


class TagRegistry:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user, tag_id: int) -> Tag:
        # le filtre user_id fait partie de la requête: un id deviné ne suffit pas
        tag = self.session.scalars(
            select(Tag).where(and_(Tag.id == tag_id, Tag.user_id == user.id))
        ).first()
        if not tag:
            raise NotFoundError("Tag not found.", details={"tag_id": tag_id})
        return tag

    def _by_name(self, user, name: str) -> Tag | None:
        return self.session.scalars(
            select(Tag).where(and_(Tag.user_id == user.id, Tag.name == name))
        ).first()

    def create(self, user, name: str) -> Tag:
        name_n = normalize_tag_name(name)
        if self._by_name(user, name_n):
            raise DuplicateTag("Tag already exists.", details={"name": name_n})

        tag = Tag(user_id=user.id, name=name_n)
        try:
            with atomic(self.session):
                self.session.add(tag)
        except ConflictError:
            raise DuplicateTag("Tag already exists.", details={"name": name_n})
        logger.info("tag_created", extra={"user_id": str(user.id), "tag_id": tag.id})
        return tag

    def rename(self, user, tag_id: int, new_name: str) -> Tag:
        tag = self.get(user, tag_id)
        name_n = normalize_tag_name(new_name)
        if name_n == tag.name:
            return tag

        other = self._by_name(user, name_n)
        if other and other.id != tag.id:
            raise DuplicateTag("Another tag already has this name.", details={"name": name_n})
        try:
            with atomic(self.session):
                tag.name = name_n
        except ConflictError:
            raise DuplicateTag("Another tag already has this name.", details={"name": name_n})
        logger.info("tag_renamed", extra={"user_id": str(user.id), "tag_id": tag_id})
        return tag

    def delete(self, user, tag_id: int) -> bool:
        tag = self.session.scalars(
            select(Tag).where(and_(Tag.id == tag_id, Tag.user_id == user.id))
        ).first()
        if not tag:
            return False
        with atomic(self.session):
            self.session.delete(tag)
        logger.info("tag_deleted", extra={"user_id": str(user.id), "tag_id": tag_id})
        return True

    def list_tags(self, user, order: str = "name") -> list[TagUsage]:
        """Tags avec nombre de notes liées (liens live uniquement, pas les versions)."""
        note_count = func.count(note_tags.c.note_id).label("note_count")
        q = (
            select(Tag.id, Tag.name, Tag.created_at, note_count)
            .outerjoin(note_tags, note_tags.c.tag_id == Tag.id)
            .where(Tag.user_id == user.id)
            .group_by(Tag.id, Tag.name, Tag.created_at)
        )
        if order == "usage":
            q = q.order_by(note_count.desc(), Tag.name.asc())
        else:
            q = q.order_by(Tag.name.asc())
        return [
            TagUsage(id=row.id, name=row.name, note_count=row.note_count, created_at=row.created_at)
            for row in self.session.execute(q)
        ]

    def resolve_or_create(self, user, name: str) -> Tag:
        """Upsert tolérant aux conflits: si une requête concurrente crée le même
        tag, on récupère simplement sa ligne. Ne commit pas.
        """
        name_n = normalize_tag_name(name)
        insert_ignore(
            self.session,
            Tag.__table__,
            {"user_id": user.id, "name": name_n, "created_at": utcnow()},
            index_elements=["user_id", "name"],
        )
        return self._by_name(user, name_n)
