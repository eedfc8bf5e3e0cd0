"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from typing import Iterable, TypeVar

from flask import Request
from werkzeug.exceptions import BadRequest

from services.errors import ValidationError
from services.results import Err

T = TypeVar("T")


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(", ".join(sorted(missing)))
            )

    return data


def parse_form_request(req: Request, request_cls: type[T], **extra) -> T | Err:
    """Build an auth request object from form (or JSON) fields.

    Missing fields come back as an ``Err`` so the caller can surface them the
    same way as any other controller failure.
    """

    data = req.form if req.form else req.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        return request_cls.from_mapping(data, **extra)  # type: ignore[attr-defined]
    except ValidationError as error:
        return Err(error)
