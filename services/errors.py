"""Error taxonomy for the authentication core."""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus


class ErrorKind(str, Enum):
    """Distinct, user-visible failure reasons."""

    MISSING_FIELDS = "missing_fields"
    WEAK_CREDENTIAL = "weak_credential"
    PASSWORD_MISMATCH = "password_mismatch"
    USER_NOT_FOUND = "user_not_found"
    ALREADY_EXISTS = "already_exists"
    NOT_VERIFIED = "not_verified"
    WRONG_PASSWORD = "wrong_password"
    INVALID_CODE = "invalid_code"
    CODE_EXPIRED = "code_expired"
    DELIVERY_FAILED = "delivery_failed"
    AUTH_REQUIRED = "auth_required"


class AuthError(Exception):
    """Base class for failures surfaced by the auth flow."""

    status_code = HTTPStatus.BAD_REQUEST
    default_kind = ErrorKind.MISSING_FIELDS

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<{type(self).__name__} kind={self.kind.value} message={self.message!r}>"


class ValidationError(AuthError):
    """Malformed or missing input, or a password that is too weak."""


class NotFoundError(AuthError):
    status_code = HTTPStatus.NOT_FOUND
    default_kind = ErrorKind.USER_NOT_FOUND


class ConflictError(AuthError):
    status_code = HTTPStatus.CONFLICT
    default_kind = ErrorKind.ALREADY_EXISTS


class DuplicateIdentity(ConflictError):
    """Raised by the credential store when an email is already taken."""


class CredentialError(AuthError):
    """Wrong password, wrong one-time code, or an unverified login."""

    status_code = HTTPStatus.UNAUTHORIZED
    default_kind = ErrorKind.WRONG_PASSWORD


class ExpiredError(AuthError):
    status_code = HTTPStatus.GONE
    default_kind = ErrorKind.CODE_EXPIRED


class DeliveryError(AuthError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_kind = ErrorKind.DELIVERY_FAILED


class AuthRequiredError(AuthError):
    status_code = HTTPStatus.UNAUTHORIZED
    default_kind = ErrorKind.AUTH_REQUIRED
