from sqlalchemy import Uuid, ForeignKey
from omnirambles.extensions import db
from omnirambles.common.utils import utcnow

# tags "live" de la note
note_tags = db.Table(
    "note_tags",
    db.Column("note_id", db.Integer, ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True),
    db.Column("tag_id", db.Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)

# tags figés au moment de la création de chaque version
note_version_tags = db.Table(
    "note_version_tags",
    db.Column("note_version_id", db.Integer, ForeignKey("note_versions.id", ondelete="CASCADE"), primary_key=True),
    db.Column("tag_id", db.Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Note(db.Model):
    __tablename__ = "notes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # projection de la dernière version
    content = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    owner = db.relationship("User", back_populates="notes")
    tags = db.relationship("Tag", secondary=note_tags, back_populates="notes", order_by="Tag.name", lazy="selectin")
    versions = db.relationship(
        "NoteVersion",
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="NoteVersion.version",
    )


class NoteVersion(db.Model):
    """Snapshot immuable: jamais modifié après insertion."""
    __tablename__ = "note_versions"
    __table_args__ = (db.UniqueConstraint("note_id", "version", name="uq_note_versions_note_version"),)

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(db.Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    version = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    note = db.relationship("Note", back_populates="versions")
    tags = db.relationship(
        "Tag", secondary=note_version_tags, back_populates="note_versions", order_by="Tag.name", lazy="selectin"
    )
