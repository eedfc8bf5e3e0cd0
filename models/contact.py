"""Emergency contact model definition."""

from . import db


class Contact(db.Model):
    """A person or service to reach in an emergency."""

    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(120), nullable=False)
    relationship = db.Column(db.String(64), nullable=True)
    phone = db.Column(db.String(32), nullable=False)
    is_emergency_service = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "relationship": self.relationship,
            "phone": self.phone,
            "is_emergency_service": self.is_emergency_service,
        }
