"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .folder import Folder  # noqa: E402,F401
from .document import Document  # noqa: E402,F401
from .contact import Contact  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "Folder",
    "Document",
    "Contact",
]
