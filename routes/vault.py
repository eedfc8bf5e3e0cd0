"""Vault blueprint: overview, profile, shortcuts, emergency mode and account deletion."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, redirect, request, url_for
from flask_jwt_extended import unset_jwt_cookies
from werkzeug.exceptions import BadRequest, Forbidden

from models import db
from models.contact import Contact
from models.document import Document
from models.folder import Folder
from models.user import GENDERS, PROFILE_FIELDS
from routes.contacts import list_emergency_contacts
from routes.documents import delete_document, upcoming_reminders
from storage import upload_storage
from storage.credential_store import AbstractCredentialStore
from utils.guards import login_required

vault_bp = Blueprint("vault", __name__)

# Columns that must never be blank once set.
NON_BLANK_FIELDS = {"gender", "blood_group", "allergies", "conditions"}


def _count(model, user_id: int, **filters) -> int:
    return model.query.filter_by(user_id=user_id, **filters).count()


@vault_bp.route("/overview", methods=["GET"])
@login_required
def overview(session, user):
    """Landing view after login: counts and upcoming reminders."""

    return jsonify(
        {
            "user": {"id": user.id, "email": user.email, "name": user.name},
            "documents": _count(Document, user.id, category="document"),
            "medical_records": _count(Document, user.id, category="medical"),
            "folders": _count(Folder, user.id),
            "contacts": _count(Contact, user.id),
            "reminders": [document.to_dict() for document in upcoming_reminders(user.id)],
        }
    )


@vault_bp.route("/profile", methods=["GET"])
@login_required
def profile(session, user):
    payload = {"profile": user.to_profile()}
    message = request.args.get("message")
    if message:
        payload["message"] = message
    return jsonify(payload)


@vault_bp.route("/profile", methods=["POST"])
@login_required
def update_profile(session, user):
    """Update profile and medical fields from a form or JSON body."""

    data = request.form if request.form else (request.get_json(silent=True) or {})
    if not isinstance(data, dict):
        raise BadRequest("Profile data must be an object.")

    patch = {}
    for field in PROFILE_FIELDS:
        if field not in data:
            continue
        value = str(data.get(field) or "").strip()
        if field == "gender" and value not in GENDERS:
            raise BadRequest("gender must be one of: {}.".format(", ".join(GENDERS)))
        if field in NON_BLANK_FIELDS and not value:
            raise BadRequest(f"{field} must not be empty.")
        patch[field] = value or None

    if not patch:
        raise BadRequest("No profile fields supplied.")

    store: AbstractCredentialStore = current_app.extensions["credential_store"]
    updated = store.update_by_id(user.id, patch)
    return jsonify({"profile": updated.to_profile()})


@vault_bp.route("/medical-records", methods=["GET"])
@login_required
def medical_records(session, user):
    """Documents tagged as medical."""

    documents = (
        Document.query.filter_by(user_id=user.id, category="medical")
        .order_by(Document.created_at.desc())
        .all()
    )
    return jsonify([document.to_dict() for document in documents])


@vault_bp.route("/reminders", methods=["GET"])
@login_required
def reminders(session, user):
    """Documents with a reminder due today or later, soonest first."""

    return jsonify([document.to_dict() for document in upcoming_reminders(user.id)])


@vault_bp.route("/emergency-mode", methods=["GET"])
@login_required
def emergency_mode(session, user):
    """Read-only summary for first responders."""

    medical = (
        Document.query.filter_by(user_id=user.id, category="medical")
        .order_by(Document.created_at.desc())
        .all()
    )
    return jsonify(
        {
            "name": user.name,
            "blood_group": user.blood_group,
            "allergies": user.allergies,
            "conditions": user.conditions,
            "contacts": [contact.to_dict() for contact in list_emergency_contacts(user.id)],
            "medical_records": [
                {"id": document.id, "title": document.title} for document in medical
            ],
        }
    )


@vault_bp.route("/delete-account", methods=["POST"])
@login_required
def delete_account(session, user):
    """Remove the account and everything it owns after a password check."""

    password = request.form.get("password") or (request.get_json(silent=True) or {}).get(
        "password"
    )
    auth_flow = current_app.extensions["auth_flow"]
    if not password or not auth_flow.hasher.verify(password, user.password_hash):
        raise Forbidden("Password is incorrect.")

    for document in Document.query.filter_by(user_id=user.id).all():
        delete_document(document)
    Folder.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    Contact.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.commit()

    store: AbstractCredentialStore = current_app.extensions["credential_store"]
    store.delete_by_id(user.id)
    upload_storage().delete_owner(user.id)
    current_app.logger.info("Account %s deleted", session.email)

    response = redirect(url_for("auth.login_page", message="Account deleted."))
    unset_jwt_cookies(response)
    return response
