"""Documents blueprint: uploads, listing, downloads and reminders."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Iterable

from flask import Blueprint, current_app, jsonify, request, send_file
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.document import Document
from models.folder import CATEGORIES, Folder
from services.otp import utcnow
from storage import upload_storage
from utils.guards import login_required
from utils.request_validation import parse_json_request

documents_bp = Blueprint("documents", __name__)

MAX_UPLOAD_SIZE_DEFAULT = 10 * 1024 * 1024  # 10 MB
ALLOWED_EXTENSIONS_DEFAULT = {"pdf", "png", "jpg", "jpeg", "txt", "doc", "docx"}


def _allowed_extensions() -> set[str]:
    configured = current_app.config.get("ALLOWED_UPLOAD_TYPES")
    if not configured:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized = {raw.strip().lower().lstrip(".") for raw in values if isinstance(raw, str)}
    normalized.discard("")
    return normalized or set(ALLOWED_EXTENSIONS_DEFAULT)


def _validate_upload(file: FileStorage) -> int:
    """Check extension and size; return the size in bytes."""

    if file.filename is None or file.filename.strip() == "":
        raise BadRequest("A document file is required.")

    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if extension not in _allowed_extensions():
        allowed = ", ".join(sorted(_allowed_extensions()))
        raise BadRequest(f"File type not allowed. Allowed types: {allowed}.")

    max_size = int(current_app.config.get("MAX_UPLOAD_SIZE", MAX_UPLOAD_SIZE_DEFAULT))
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size > max_size:
        raise BadRequest(f"File exceeds the maximum upload size of {max_size} bytes.")
    return size


def parse_category(value: object, default: str | None = "document") -> str | None:
    if value is None or str(value).strip() == "":
        return default
    category = str(value).strip().lower()
    if category not in CATEGORIES:
        raise BadRequest("category must be one of: document, medical.")
    return category


def _parse_date(value: object) -> date | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise BadRequest("Dates must use the YYYY-MM-DD format.")


def _resolve_folder(user_id: int, raw_folder_id: object) -> Folder | None:
    if raw_folder_id in (None, "", "null"):
        return None
    try:
        folder_id = int(raw_folder_id)
    except (TypeError, ValueError):
        raise BadRequest("folder_id must be an integer.")
    folder = db.session.get(Folder, folder_id)
    if folder is None or folder.user_id != user_id:
        raise NotFound("Folder not found.")
    return folder


def get_owned_document(user_id: int, document_id: int) -> Document:
    document = db.session.get(Document, document_id)
    if document is None or document.user_id != user_id:
        raise NotFound("Document not found.")
    return document


def upcoming_reminders(user_id: int, today: date | None = None) -> list[Document]:
    today = today or utcnow().date()
    return (
        Document.query.filter(
            Document.user_id == user_id,
            Document.has_reminder.is_(True),
            Document.reminder_date >= today,
        )
        .order_by(Document.reminder_date.asc())
        .all()
    )


def delete_document(document: Document) -> str:
    """Mark the record for deletion and return its blob key.

    The caller commits, then removes the blob.
    """

    db.session.delete(document)
    return document.file_path


@documents_bp.route("", methods=["POST"])
@login_required
def upload_document(session, user):
    """Store an uploaded file in the caller's vault."""

    file = request.files.get("file")
    if not isinstance(file, FileStorage):
        raise BadRequest("A document file is required.")
    size = _validate_upload(file)

    category = parse_category(request.form.get("category"))
    folder = _resolve_folder(user.id, request.form.get("folder_id"))
    reminder_date = _parse_date(request.form.get("reminder_date"))

    original_name = file.filename or "document"
    storage = upload_storage()
    stored_path = storage.save(file, user.id, original_name)

    document = Document(
        user_id=user.id,
        folder_id=folder.id if folder else None,
        title=(request.form.get("title") or "").strip() or original_name,
        category=category,
        filename=Path(stored_path).name,
        original_name=original_name,
        file_path=stored_path,
        file_type=file.mimetype or "application/octet-stream",
        size=size,
        has_reminder=reminder_date is not None,
        reminder_date=reminder_date,
        reminder_note=(request.form.get("reminder_note") or "").strip() or None,
    )
    db.session.add(document)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        storage.delete(stored_path)
        raise
    current_app.logger.info("User %s uploaded document %s", user.id, document.id)

    return jsonify({"document": document.to_dict()}), 201


@documents_bp.route("", methods=["GET"])
@login_required
def list_documents(session, user):
    query = Document.query.filter_by(user_id=user.id)

    category = parse_category(request.args.get("category"), default=None)
    if category:
        query = query.filter(Document.category == category)

    folder_arg = request.args.get("folder_id")
    if folder_arg == "none":
        query = query.filter(Document.folder_id.is_(None))
    elif folder_arg:
        folder = _resolve_folder(user.id, folder_arg)
        query = query.filter(Document.folder_id == folder.id)

    documents = query.order_by(Document.created_at.desc()).all()
    return jsonify([document.to_dict() for document in documents])


@documents_bp.route("/recent", methods=["GET"])
@login_required
def recent_documents(session, user):
    limit = request.args.get("limit", default=5, type=int)
    documents = (
        Document.query.filter_by(user_id=user.id)
        .order_by(Document.last_accessed.desc())
        .limit(max(1, min(limit, 50)))
        .all()
    )
    return jsonify([document.to_dict() for document in documents])


@documents_bp.route("/<int:document_id>", methods=["GET"])
@login_required
def get_document(document_id: int, session, user):
    return jsonify({"document": get_owned_document(user.id, document_id).to_dict()})


@documents_bp.route("/<int:document_id>/download", methods=["GET"])
@login_required
def download_document(document_id: int, session, user):
    """Stream a stored file back to its owner."""

    document = get_owned_document(user.id, document_id)
    storage = upload_storage()
    if not storage.exists(document.file_path):
        raise NotFound("Stored file could not be found.")

    document.last_accessed = utcnow()
    db.session.commit()

    return send_file(
        storage.absolute_path(document.file_path),
        mimetype=document.file_type or "application/octet-stream",
        as_attachment=True,
        download_name=document.original_name,
    )


@documents_bp.route("/<int:document_id>", methods=["PATCH"])
@login_required
def update_document(document_id: int, session, user):
    """Rename, move between folders, retag, or set a reminder."""

    document = get_owned_document(user.id, document_id)
    payload = parse_json_request(request)

    if "title" in payload:
        title = str(payload["title"] or "").strip()
        if not title:
            raise BadRequest("title must not be empty.")
        document.title = title
    if "category" in payload:
        document.category = parse_category(payload["category"])
    if "folder_id" in payload:
        folder = _resolve_folder(user.id, payload["folder_id"])
        document.folder_id = folder.id if folder else None
    if "reminder_date" in payload:
        document.reminder_date = _parse_date(payload["reminder_date"])
        document.has_reminder = document.reminder_date is not None
    if "reminder_note" in payload:
        document.reminder_note = (payload["reminder_note"] or "").strip() or None

    db.session.commit()
    return jsonify({"document": document.to_dict()})


@documents_bp.route("/<int:document_id>", methods=["DELETE"])
@login_required
def remove_document(document_id: int, session, user):
    document = get_owned_document(user.id, document_id)
    key = delete_document(document)
    db.session.commit()
    upload_storage().delete(key)
    return jsonify({"deleted": document_id})

