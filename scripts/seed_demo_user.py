"""Create or refresh a verified demo account for local development."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app  # noqa: E402
from models import db  # noqa: E402

DEMO_NAME = "Demo User"
DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "DemoPass123"


def seed_demo_user(app) -> str:
    """Ensure the demo account exists, is verified and has the demo password."""

    with app.app_context():
        store = app.extensions["credential_store"]
        hasher = app.extensions["auth_flow"].hasher
        fields = {
            "password_hash": hasher.hash(DEMO_PASSWORD),
            "is_verified": True,
            "otp_hash": None,
            "otp_expires_at": None,
        }

        user = store.find_by_email(DEMO_EMAIL)
        if user is None:
            store.create({"name": DEMO_NAME, "email": DEMO_EMAIL, **fields})
            return "created"
        store.update_by_id(user.id, fields)
        return "updated"


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
    action = seed_demo_user(app)
    print(f"Demo user {action}: {DEMO_EMAIL}")


if __name__ == "__main__":
    main()
