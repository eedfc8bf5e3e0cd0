"""Emergency contacts blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.contact import Contact
from utils.guards import login_required
from utils.request_validation import parse_json_request

contacts_bp = Blueprint("contacts", __name__)

EDITABLE_FIELDS = ("name", "relationship", "phone")


def _parse_bool(value: object) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return None


def _get_owned_contact(user_id: int, contact_id: int) -> Contact:
    contact = db.session.get(Contact, contact_id)
    if contact is None or contact.user_id != user_id:
        raise NotFound("Contact not found.")
    return contact


def list_emergency_contacts(user_id: int) -> list[Contact]:
    """Emergency services first, then personal contacts by name."""

    return (
        Contact.query.filter_by(user_id=user_id)
        .order_by(Contact.is_emergency_service.desc(), Contact.name.asc())
        .all()
    )


@contacts_bp.route("", methods=["POST"])
@login_required
def create_contact(session, user):
    payload = parse_json_request(request, required_keys=("name", "phone"))

    flag = _parse_bool(payload.get("is_emergency_service", False))
    if flag is None:
        raise BadRequest("is_emergency_service must be a boolean value.")

    contact = Contact(
        user_id=user.id,
        name=str(payload["name"]).strip(),
        relationship=(str(payload.get("relationship") or "").strip() or None),
        phone=str(payload["phone"]).strip(),
        is_emergency_service=flag,
    )
    db.session.add(contact)
    db.session.commit()
    return jsonify({"contact": contact.to_dict()}), 201


@contacts_bp.route("", methods=["GET"])
@login_required
def list_contacts(session, user):
    return jsonify([contact.to_dict() for contact in list_emergency_contacts(user.id)])


@contacts_bp.route("/<int:contact_id>", methods=["PATCH"])
@login_required
def update_contact(contact_id: int, session, user):
    contact = _get_owned_contact(user.id, contact_id)
    payload = parse_json_request(request)

    for field in EDITABLE_FIELDS:
        if field not in payload:
            continue
        value = str(payload[field] or "").strip()
        if field in {"name", "phone"} and not value:
            raise BadRequest(f"{field} must not be empty.")
        setattr(contact, field, value or None)

    if "is_emergency_service" in payload:
        flag = _parse_bool(payload["is_emergency_service"])
        if flag is None:
            raise BadRequest("is_emergency_service must be a boolean value.")
        contact.is_emergency_service = flag

    db.session.commit()
    return jsonify({"contact": contact.to_dict()})


@contacts_bp.route("/<int:contact_id>", methods=["DELETE"])
@login_required
def delete_contact(contact_id: int, session, user):
    contact = _get_owned_contact(user.id, contact_id)
    db.session.delete(contact)
    db.session.commit()
    return jsonify({"deleted": contact_id})
