"""Folders blueprint: a flat set of named groups per user."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.document import Document
from models.folder import Folder
from routes.documents import parse_category
from utils.guards import login_required
from utils.request_validation import parse_json_request

folders_bp = Blueprint("folders", __name__)


def _get_owned_folder(user_id: int, folder_id: int) -> Folder:
    folder = db.session.get(Folder, folder_id)
    if folder is None or folder.user_id != user_id:
        raise NotFound("Folder not found.")
    return folder


def _clean_name(raw: object) -> str:
    name = str(raw or "").strip()
    if not name:
        raise BadRequest("Folder name is required.")
    if len(name) > 120:
        raise BadRequest("Folder name must be at most 120 characters.")
    return name


@folders_bp.route("", methods=["POST"])
@login_required
def create_folder(session, user):
    payload = parse_json_request(request, required_keys=("name",))
    folder = Folder(
        user_id=user.id,
        name=_clean_name(payload.get("name")),
        category=parse_category(payload.get("category")),
    )
    db.session.add(folder)
    db.session.commit()
    return jsonify({"folder": folder.to_dict()}), 201


@folders_bp.route("", methods=["GET"])
@login_required
def list_folders(session, user):
    query = Folder.query.filter_by(user_id=user.id)
    category = parse_category(request.args.get("category"), default=None)
    if category:
        query = query.filter(Folder.category == category)

    folders = query.order_by(Folder.name.asc()).all()
    counts = dict(
        db.session.query(Document.folder_id, db.func.count(Document.id))
        .filter(Document.user_id == user.id, Document.folder_id.isnot(None))
        .group_by(Document.folder_id)
        .all()
    )
    return jsonify(
        [{**folder.to_dict(), "document_count": counts.get(folder.id, 0)} for folder in folders]
    )


@folders_bp.route("/<int:folder_id>", methods=["PATCH"])
@login_required
def rename_folder(folder_id: int, session, user):
    folder = _get_owned_folder(user.id, folder_id)
    payload = parse_json_request(request, required_keys=("name",))
    folder.name = _clean_name(payload.get("name"))
    db.session.commit()
    return jsonify({"folder": folder.to_dict()})


@folders_bp.route("/<int:folder_id>", methods=["DELETE"])
@login_required
def delete_folder(folder_id: int, session, user):
    """Delete a folder; its documents fall back to the general area."""

    folder = _get_owned_folder(user.id, folder_id)
    moved = Document.query.filter_by(user_id=user.id, folder_id=folder.id).update(
        {Document.folder_id: None}, synchronize_session=False
    )
    db.session.delete(folder)
    db.session.commit()
    return jsonify({"deleted": folder_id, "documents_moved": moved})
