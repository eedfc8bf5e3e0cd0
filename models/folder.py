"""Folder model definition."""

from datetime import datetime

from . import db


CATEGORIES = ("document", "medical")


class Folder(db.Model):
    """A named, flat grouping of a user's documents."""

    __tablename__ = "folders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(
        db.Enum(*CATEGORIES, name="vault_category"),
        nullable=False,
        default="document",
        server_default=db.text("'document'"),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Folder id={self.id} user_id={self.user_id} name={self.name}>"
