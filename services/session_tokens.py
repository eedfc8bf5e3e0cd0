"""Signed session tokens asserting ``{email, user_id}``."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionClaims:
    email: str
    user_id: int


class SessionTokenService:
    """Issues and verifies JWT session tokens.

    Signing key, algorithm and expiry come from the Flask-JWT-Extended
    configuration of the current application (``JWT_SECRET_KEY`` and
    ``JWT_ACCESS_TOKEN_EXPIRES``), so both methods need an app context.
    """

    def issue(self, claims: SessionClaims) -> str:
        return create_access_token(
            identity=str(claims.user_id),
            additional_claims={"email": claims.email},
        )

    def verify(self, token: str | None) -> SessionClaims | None:
        if not token:
            return None
        try:
            payload = decode_token(token)
        except (InvalidTokenError, JWTExtendedException) as exc:
            logger.info("Rejected session token: %s", type(exc).__name__)
            return None

        email = payload.get("email")
        subject = payload.get("sub")
        if not email or subject is None:
            return None
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            return None
        return SessionClaims(email=email, user_id=user_id)
