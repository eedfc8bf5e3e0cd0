"""Credential and document blob storage."""

from flask import current_app

from .abstract_storage import AbstractStorage
from .local_storage import LocalStorage


def upload_storage() -> LocalStorage:
    """Blob storage rooted at the current app's ``UPLOAD_DIR``."""

    return LocalStorage(current_app.config["UPLOAD_DIR"])


__all__ = ["AbstractStorage", "LocalStorage", "upload_storage"]
