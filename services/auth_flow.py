"""Registration, verification, login and password lifecycle.

The controller owns the account state machine::

    Anonymous -> Unverified -> Verified -> Authenticated
                     |            |
                     |            +-> PasswordResetPending -> Verified
                     +-> Anonymous (code expired, record reclaimed)

Every public operation takes a request object and returns ``Ok`` or ``Err``;
domain errors never escape to the web layer. Collaborators are injected at
construction time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, ClassVar, Mapping

from storage.credential_store import AbstractCredentialStore

from .errors import (
    AuthError,
    AuthRequiredError,
    ConflictError,
    CredentialError,
    DuplicateIdentity,
    ErrorKind,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from .mailer import Mailer, build_otp_message
from .otp import OtpOutcome, OtpService
from .password_hasher import PasswordHasher
from .results import Err, Ok, Result
from .session_tokens import SessionClaims, SessionTokenService

logger = logging.getLogger(__name__)

PURPOSE_REGISTER = "register"
PURPOSE_RESET = "reset"

_CLEAR_OTP = {"otp_hash": None, "otp_expires_at": None}


class _FormRequest:
    """Builds a request object from submitted form fields."""

    REQUIRED: ClassVar[tuple[str, ...]] = ()
    # Values that keep surrounding whitespace.
    RAW: ClassVar[tuple[str, ...]] = ()
    # Attribute name -> submitted form field name.
    ALIASES: ClassVar[dict[str, str]] = {}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **extra: Any):
        values: dict[str, Any] = dict(extra)
        for item in fields(cls):  # type: ignore[arg-type]
            if item.name in values:
                continue
            raw = data.get(cls.ALIASES.get(item.name, item.name))
            if raw is None:
                values[item.name] = ""
            elif item.name in cls.RAW:
                values[item.name] = str(raw)
            else:
                values[item.name] = str(raw).strip()

        missing = [
            cls.ALIASES.get(name, name) for name in cls.REQUIRED if not values.get(name)
        ]
        if missing:
            raise ValidationError(
                "Missing required fields: {}.".format(", ".join(sorted(missing))),
                ErrorKind.MISSING_FIELDS,
            )
        return cls(**values)


@dataclass(frozen=True)
class RegisterRequest(_FormRequest):
    name: str
    email: str
    password: str

    REQUIRED = ("email", "password")
    RAW = ("password",)


@dataclass(frozen=True)
class VerifyOtpRequest(_FormRequest):
    email: str
    otp: str

    REQUIRED = ("email", "otp")


@dataclass(frozen=True)
class ResendOtpRequest(_FormRequest):
    email: str

    REQUIRED = ("email",)


@dataclass(frozen=True)
class LoginRequest(_FormRequest):
    email: str
    password: str

    REQUIRED = ("email", "password")
    RAW = ("password",)


@dataclass(frozen=True)
class ForgotPasswordRequest(_FormRequest):
    email: str

    REQUIRED = ("email",)


@dataclass(frozen=True)
class ResetPasswordRequest(_FormRequest):
    email: str
    otp: str
    new_password: str
    confirm_password: str

    REQUIRED = ("email", "otp", "new_password", "confirm_password")
    RAW = ("new_password", "confirm_password")
    ALIASES = {"new_password": "newPassword", "confirm_password": "confirmPassword"}


@dataclass(frozen=True)
class ChangePasswordRequest(_FormRequest):
    user_id: int
    current_password: str
    new_password: str
    confirm_password: str

    REQUIRED = ("current_password", "new_password", "confirm_password")
    RAW = ("current_password", "new_password", "confirm_password")
    ALIASES = {
        "current_password": "currentPassword",
        "new_password": "newPassword",
        "confirm_password": "confirmPassword",
    }


class AuthFlowController:
    """Orchestrates the credential store, hasher, OTP service, tokens and mail."""

    def __init__(
        self,
        store: AbstractCredentialStore,
        hasher: PasswordHasher,
        otp: OtpService,
        tokens: SessionTokenService,
        mailer: Mailer,
        min_password_length: int = 8,
    ):
        self.store = store
        self.hasher = hasher
        self.otp = otp
        self.tokens = tokens
        self.mailer = mailer
        self.min_password_length = min_password_length

    # Public operations -------------------------------------------------

    def register(self, request: RegisterRequest) -> Result:
        return self._attempt(self._register, request)

    def verify_registration(self, request: VerifyOtpRequest) -> Result:
        return self._attempt(self._verify_registration, request)

    def resend_otp(self, request: ResendOtpRequest) -> Result:
        return self._attempt(self._resend_otp, request)

    def login(self, request: LoginRequest) -> Result:
        return self._attempt(self._login, request)

    def request_password_reset(self, request: ForgotPasswordRequest) -> Result:
        return self._attempt(self._request_password_reset, request)

    def reset_password(self, request: ResetPasswordRequest) -> Result:
        return self._attempt(self._reset_password, request)

    def change_password(self, request: ChangePasswordRequest) -> Result:
        return self._attempt(self._change_password, request)

    def authenticate(self, token: str | None) -> Result:
        """Verify a session token presented by a client."""

        claims = self.tokens.verify(token)
        if claims is None:
            return Err(AuthRequiredError("Please log in to continue."))
        return Ok({"claims": claims})

    # Implementation ----------------------------------------------------

    def _attempt(self, operation: Callable[[Any], dict], request: Any) -> Result:
        try:
            return Ok(operation(request))
        except AuthError as error:
            logger.info(
                "%s failed: %s", operation.__name__.lstrip("_"), error.kind.value
            )
            return Err(error)

    def _check_new_password(self, password: str, confirm: str | None = None) -> None:
        if confirm is not None and password != confirm:
            raise ValidationError("Passwords do not match.", ErrorKind.PASSWORD_MISMATCH)
        if len(password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters.",
                ErrorKind.WEAK_CREDENTIAL,
            )

    def _send_code(self, email: str, code: str, purpose: str) -> None:
        minutes = int(self.otp.ttl.total_seconds() // 60)
        self.mailer.send(build_otp_message(email, code, purpose, minutes))

    def _register(self, request: RegisterRequest) -> dict:
        self._check_new_password(request.password)

        user = self.store.find_by_email(request.email)
        if user is not None and user.is_verified:
            raise ConflictError("Email already exists", ErrorKind.ALREADY_EXISTS)

        password_hash = self.hasher.hash(request.password)
        issued = self.otp.issue()
        pending = {
            "password_hash": password_hash,
            "otp_hash": issued.hash,
            "otp_expires_at": issued.expires_at,
        }

        if user is not None:
            self.store.update_by_id(user.id, pending)
        else:
            try:
                user = self.store.create(
                    {"name": request.name or None, "email": request.email, **pending}
                )
            except DuplicateIdentity:
                # Lost a race with a concurrent registration; last write wins
                # unless that one already verified.
                user = self.store.find_by_email(request.email)
                if user is None or user.is_verified:
                    raise
                self.store.update_by_id(user.id, pending)

        logger.info("Registration code issued for %s", request.email)
        self._send_code(request.email, issued.code, PURPOSE_REGISTER)
        return {"email": request.email, "user_id": user.id}

    def _verify_registration(self, request: VerifyOtpRequest) -> dict:
        user = self.store.find_by_email(request.email)
        if user is None:
            raise NotFoundError("User not found.")
        if user.is_verified:
            raise ConflictError(
                "Account already verified. Please log in.", ErrorKind.ALREADY_EXISTS
            )

        outcome = self.otp.verify(request.otp, user.otp_hash, user.otp_expires_at)
        if outcome is OtpOutcome.EXPIRED:
            self.store.delete_by_id(user.id)
            logger.info("Expired registration reclaimed for %s", request.email)
            raise ExpiredError("OTP expired. Please register again.")
        if outcome is OtpOutcome.MISMATCH:
            raise CredentialError("Invalid code. Check your email.", ErrorKind.INVALID_CODE)

        self.store.update_by_id(user.id, {"is_verified": True, **_CLEAR_OTP})
        logger.info("%s is now verified", request.email)
        return {"email": request.email, "user_id": user.id}

    def _resend_otp(self, request: ResendOtpRequest) -> dict:
        user = self.store.find_by_email(request.email)
        if user is None:
            raise NotFoundError("User not found.")

        purpose = PURPOSE_RESET if user.is_verified else PURPOSE_REGISTER
        issued = self.otp.issue()
        self.store.update_by_id(
            user.id, {"otp_hash": issued.hash, "otp_expires_at": issued.expires_at}
        )
        logger.info("Code re-issued for %s (%s)", request.email, purpose)
        self._send_code(request.email, issued.code, purpose)
        return {"email": request.email, "purpose": purpose}

    def _login(self, request: LoginRequest) -> dict:
        user = self.store.find_by_email(request.email)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_verified:
            raise CredentialError(
                "Please verify your account first.", ErrorKind.NOT_VERIFIED
            )
        if not self.hasher.verify(request.password, user.password_hash):
            raise CredentialError("Wrong password", ErrorKind.WRONG_PASSWORD)

        claims = SessionClaims(email=user.email, user_id=user.id)
        token = self.tokens.issue(claims)
        logger.info("Session issued for %s", user.email)
        return {"token": token, "claims": claims}

    def _request_password_reset(self, request: ForgotPasswordRequest) -> dict:
        user = self.store.find_by_email(request.email)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_verified:
            raise CredentialError(
                "Please verify your account first.", ErrorKind.NOT_VERIFIED
            )

        issued = self.otp.issue()
        self.store.update_by_id(
            user.id, {"otp_hash": issued.hash, "otp_expires_at": issued.expires_at}
        )
        logger.info("Password reset code issued for %s", request.email)
        self._send_code(request.email, issued.code, PURPOSE_RESET)
        return {"email": request.email}

    def _reset_password(self, request: ResetPasswordRequest) -> dict:
        self._check_new_password(request.new_password, request.confirm_password)

        user = self.store.find_by_email(request.email)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_verified:
            raise CredentialError(
                "Please verify your account first.", ErrorKind.NOT_VERIFIED
            )

        outcome = self.otp.verify(request.otp, user.otp_hash, user.otp_expires_at)
        if outcome is OtpOutcome.EXPIRED:
            # Verified identities keep their record; only the code is dropped.
            self.store.update_by_id(user.id, dict(_CLEAR_OTP))
            raise ExpiredError("Code expired. Please request a new one.")
        if outcome is OtpOutcome.MISMATCH:
            raise CredentialError("Invalid or expired code.", ErrorKind.INVALID_CODE)

        self.store.update_by_id(
            user.id,
            {"password_hash": self.hasher.hash(request.new_password), **_CLEAR_OTP},
        )
        logger.info("Password reset completed for %s", request.email)
        return {"email": request.email}

    def _change_password(self, request: ChangePasswordRequest) -> dict:
        user = self.store.find_by_id(request.user_id)
        if user is None:
            raise AuthRequiredError("Please log in to continue.")
        if not self.hasher.verify(request.current_password, user.password_hash):
            raise CredentialError("Current password is incorrect.", ErrorKind.WRONG_PASSWORD)
        self._check_new_password(request.new_password, request.confirm_password)

        self.store.update_by_id(
            user.id, {"password_hash": self.hasher.hash(request.new_password)}
        )
        logger.info("Password changed for %s", user.email)
        return {"user_id": user.id}
