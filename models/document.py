"""Document model definition."""

from datetime import datetime

from . import db
from .folder import CATEGORIES


class Document(db.Model):
    """An uploaded file in a user's vault, optionally tagged as medical."""

    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    folder_id = db.Column(
        db.Integer,
        db.ForeignKey("folders.id"),
        nullable=True,
        index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(
        db.Enum(*CATEGORIES, name="vault_category"),
        nullable=False,
        default="document",
        server_default=db.text("'document'"),
    )
    filename = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    file_type = db.Column(db.String(128), nullable=False)
    size = db.Column(db.Integer, nullable=False, default=0)

    has_reminder = db.Column(db.Boolean, nullable=False, default=False)
    reminder_date = db.Column(db.Date, nullable=True)
    reminder_note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=db.func.now(),
    )
    last_accessed = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    folder = db.relationship(
        "Folder",
        backref=db.backref("documents", lazy="dynamic"),
    )

    def __repr__(self) -> str:
        return f"<Document id={self.id} user_id={self.user_id} category={self.category}>"

    def to_dict(self) -> dict:
        """Serialize the document metadata into a dictionary."""

        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "folder_id": self.folder_id,
            "original_name": self.original_name,
            "file_type": self.file_type,
            "size": self.size,
            "has_reminder": self.has_reminder,
            "reminder_date": self.reminder_date.isoformat() if self.reminder_date else None,
            "reminder_note": self.reminder_note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_accessed": self.last_accessed.isoformat() if self.last_accessed else None,
        }
