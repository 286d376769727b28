from sqlalchemy import Uuid, ForeignKey
from omnirambles.extensions import db
from omnirambles.common.utils import utcnow


class Tag(db.Model):
    __tablename__ = "tags"
    __table_args__ = (db.UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # unique par utilisateur, minuscules à l'écriture
    name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    owner = db.relationship("User", back_populates="tags")
    # côté tag: la suppression d'un tag vide aussi les tables de liaison
    notes = db.relationship("Note", secondary="note_tags", back_populates="tags")
    note_versions = db.relationship("NoteVersion", secondary="note_version_tags", back_populates="tags")
