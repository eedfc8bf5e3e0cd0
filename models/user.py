"""User model definition."""

from datetime import datetime

from . import db


GENDERS = ("Male", "Female", "Other", "Prefer not to say")
PROFILE_FIELDS = (
    "name",
    "phone",
    "dob",
    "gender",
    "blood_group",
    "address",
    "allergies",
    "conditions",
)


class User(db.Model):
    """A vault owner: login credentials plus profile and medical details."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    is_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    # Present only while a one-time code is outstanding.
    otp_hash = db.Column(db.String(255), nullable=True)
    otp_expires_at = db.Column(db.DateTime, nullable=True)

    name = db.Column(db.String(120), nullable=True)
    profile_pic = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=True)
    dob = db.Column(db.String(10), nullable=True)
    gender = db.Column(db.String(32), nullable=False, default="Prefer not to say")
    blood_group = db.Column(db.String(16), nullable=False, default="Unknown")
    address = db.Column(db.String(255), nullable=True)
    allergies = db.Column(db.Text, nullable=False, default="None")
    conditions = db.Column(db.Text, nullable=False, default="None")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def has_pending_otp(self) -> bool:
        return self.otp_hash is not None

    def to_profile(self) -> dict:
        """Serialize the profile attributes (never credentials)."""

        data = {"id": self.id, "email": self.email}
        for field in PROFILE_FIELDS:
            data[field] = getattr(self, field)
        data["profile_pic"] = self.profile_pic
        return data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
