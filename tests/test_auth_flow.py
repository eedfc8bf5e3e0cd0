"""Tests for the auth flow controller state machine."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask_jwt_extended import decode_token

from services.auth_flow import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from services.errors import (
    ConflictError,
    CredentialError,
    DeliveryError,
    ErrorKind,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from services.otp import utcnow

EMAIL = "a@x.com"
PASSWORD = "password1"


@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def flow(ctx):
    return ctx.extensions["auth_flow"]


@pytest.fixture()
def store(ctx):
    return ctx.extensions["credential_store"]


def _register(flow, email=EMAIL, password=PASSWORD, name="A"):
    return flow.register(RegisterRequest(name=name, email=email, password=password))


def _verify(flow, code, email=EMAIL):
    return flow.verify_registration(VerifyOtpRequest(email=email, otp=code))


def _login(flow, email=EMAIL, password=PASSWORD):
    return flow.login(LoginRequest(email=email, password=password))


def _registered_and_verified(flow, mailer):
    assert _register(flow).ok
    assert _verify(flow, mailer.last_code(EMAIL)).ok


def _expire_code(store, email=EMAIL):
    user = store.find_by_email(email)
    store.update_by_id(user.id, {"otp_expires_at": utcnow() - timedelta(seconds=1)})


def test_registration_creates_unverified_user_with_pending_code(flow, store, mailer):
    before = utcnow()
    result = _register(flow)

    assert result.ok
    user = store.find_by_email(EMAIL)
    assert user.is_verified is False
    assert user.name == "A"
    assert user.otp_hash
    window = user.otp_expires_at - before
    assert timedelta(minutes=9, seconds=55) <= window <= timedelta(minutes=10, seconds=5)
    assert user.password_hash != PASSWORD

    assert len(mailer.outbox) == 1
    message = mailer.outbox[0]
    assert message.to == EMAIL
    assert message.code in message.html
    assert "10 minutes" in message.html


def test_weak_password_is_rejected_before_anything_is_stored(flow, store, mailer):
    result = _register(flow, password="short")

    assert not result.ok
    assert result.kind is ErrorKind.WEAK_CREDENTIAL
    assert isinstance(result.error, ValidationError)
    assert store.find_by_email(EMAIL) is None
    assert mailer.outbox == []


def test_second_registration_reuses_unverified_record(flow, store, mailer):
    _register(flow)
    first = store.find_by_email(EMAIL)
    first_id, first_otp, first_password = first.id, first.otp_hash, first.password_hash

    assert _register(flow, password="different1").ok

    second = store.find_by_email(EMAIL)
    assert second.id == first_id
    assert second.otp_hash != first_otp
    assert second.password_hash != first_password
    assert len(mailer.outbox) == 2


def test_registration_for_verified_email_conflicts(flow, mailer):
    _registered_and_verified(flow, mailer)

    result = _register(flow)

    assert not result.ok
    assert result.kind is ErrorKind.ALREADY_EXISTS
    assert isinstance(result.error, ConflictError)


def test_correct_code_verifies_and_clears_code_state(flow, store, mailer):
    _register(flow)

    result = _verify(flow, mailer.last_code(EMAIL))

    assert result.ok
    user = store.find_by_email(EMAIL)
    assert user.is_verified is True
    assert user.otp_hash is None
    assert user.otp_expires_at is None


def test_wrong_code_leaves_user_unverified(flow, store, mailer):
    _register(flow)
    code = mailer.last_code(EMAIL)
    wrong = "000000" if code != "000000" else "111111"

    result = _verify(flow, wrong)

    assert not result.ok
    assert result.kind is ErrorKind.INVALID_CODE
    assert isinstance(result.error, CredentialError)
    user = store.find_by_email(EMAIL)
    assert user.is_verified is False
    assert user.otp_hash is not None


def test_expired_registration_code_deletes_the_user(flow, store, mailer):
    _register(flow)
    code = mailer.last_code(EMAIL)
    _expire_code(store)

    result = _verify(flow, code)

    assert not result.ok
    assert result.kind is ErrorKind.CODE_EXPIRED
    assert isinstance(result.error, ExpiredError)
    assert store.find_by_email(EMAIL) is None

    login = _login(flow)
    assert isinstance(login.error, NotFoundError)


def test_verify_unknown_email_is_not_found(flow):
    result = _verify(flow, "123456", email="ghost@x.com")

    assert result.kind is ErrorKind.USER_NOT_FOUND


@pytest.mark.parametrize("password", [PASSWORD, "wrong-password"])
def test_login_before_verification_is_refused(flow, password):
    _register(flow)

    result = _login(flow, password=password)

    assert not result.ok
    assert result.kind is ErrorKind.NOT_VERIFIED


def test_login_issues_token_with_stored_claims(flow, store, mailer):
    _registered_and_verified(flow, mailer)
    user = store.find_by_email(EMAIL)

    result = _login(flow)

    assert result.ok
    claims = result.data["claims"]
    assert (claims.email, claims.user_id) == (user.email, user.id)
    decoded = decode_token(result.data["token"])
    assert decoded["email"] == user.email
    assert decoded["sub"] == str(user.id)

    authenticated = flow.authenticate(result.data["token"])
    assert authenticated.ok
    assert authenticated.data["claims"] == claims


def test_login_with_wrong_password(flow, mailer):
    _registered_and_verified(flow, mailer)

    result = _login(flow, password="nope-nope")

    assert result.kind is ErrorKind.WRONG_PASSWORD
    assert isinstance(result.error, CredentialError)


@pytest.mark.parametrize("token", [None, "", "not.a.token", "abc"])
def test_authenticate_rejects_bad_tokens(flow, token):
    result = flow.authenticate(token)

    assert not result.ok
    assert result.kind is ErrorKind.AUTH_REQUIRED


def test_new_reset_code_overwrites_the_previous_one(flow, store, mailer):
    _registered_and_verified(flow, mailer)

    assert flow.request_password_reset(ForgotPasswordRequest(email=EMAIL)).ok
    stale = mailer.last_code(EMAIL)
    stale_hash = store.find_by_email(EMAIL).otp_hash
    assert flow.request_password_reset(ForgotPasswordRequest(email=EMAIL)).ok
    fresh = mailer.last_code(EMAIL)
    assert store.find_by_email(EMAIL).otp_hash != stale_hash

    if stale != fresh:
        result = flow.reset_password(
            ResetPasswordRequest(
                email=EMAIL, otp=stale, new_password="newpassword", confirm_password="newpassword"
            )
        )
        assert isinstance(result.error, CredentialError)

    result = flow.reset_password(
        ResetPasswordRequest(
            email=EMAIL, otp=fresh, new_password="newpassword", confirm_password="newpassword"
        )
    )
    assert result.ok
    user = store.find_by_email(EMAIL)
    assert user.otp_hash is None
    assert user.otp_expires_at is None
    assert _login(flow, password="newpassword").ok
    assert _login(flow).kind is ErrorKind.WRONG_PASSWORD


def test_expired_reset_code_keeps_verified_user(flow, store, mailer):
    _registered_and_verified(flow, mailer)
    flow.request_password_reset(ForgotPasswordRequest(email=EMAIL))
    code = mailer.last_code(EMAIL)
    _expire_code(store)

    result = flow.reset_password(
        ResetPasswordRequest(
            email=EMAIL, otp=code, new_password="newpassword", confirm_password="newpassword"
        )
    )

    assert result.kind is ErrorKind.CODE_EXPIRED
    user = store.find_by_email(EMAIL)
    assert user is not None
    assert user.is_verified is True
    assert user.otp_hash is None
    assert user.otp_expires_at is None


def test_reset_requires_matching_confirmation(flow, mailer):
    _registered_and_verified(flow, mailer)
    flow.request_password_reset(ForgotPasswordRequest(email=EMAIL))

    result = flow.reset_password(
        ResetPasswordRequest(
            email=EMAIL,
            otp=mailer.last_code(EMAIL),
            new_password="newpassword",
            confirm_password="newpassw0rd",
        )
    )

    assert result.kind is ErrorKind.PASSWORD_MISMATCH


def test_password_reset_for_unknown_or_unverified_email(flow):
    assert flow.request_password_reset(ForgotPasswordRequest(email="ghost@x.com")).kind is (
        ErrorKind.USER_NOT_FOUND
    )
    _register(flow)
    assert flow.request_password_reset(ForgotPasswordRequest(email=EMAIL)).kind is (
        ErrorKind.NOT_VERIFIED
    )


def test_reset_with_registration_code_is_refused_for_unverified_user(flow, store, mailer):
    _register(flow)
    code = mailer.last_code(EMAIL)
    original_hash = store.find_by_email(EMAIL).password_hash

    result = flow.reset_password(
        ResetPasswordRequest(
            email=EMAIL, otp=code, new_password="newpassword1", confirm_password="newpassword1"
        )
    )

    assert result.kind is ErrorKind.NOT_VERIFIED
    user = store.find_by_email(EMAIL)
    assert user.password_hash == original_hash
    assert user.otp_hash is not None
    assert _verify(flow, code).ok


def test_reset_with_expired_registration_code_leaves_expiry_to_verification(flow, store, mailer):
    _register(flow)
    code = mailer.last_code(EMAIL)
    _expire_code(store)

    result = flow.reset_password(
        ResetPasswordRequest(
            email=EMAIL, otp=code, new_password="newpassword1", confirm_password="newpassword1"
        )
    )

    assert result.kind is ErrorKind.NOT_VERIFIED
    assert _verify(flow, code).kind is ErrorKind.CODE_EXPIRED
    assert store.find_by_email(EMAIL) is None


def test_resend_issues_a_fresh_code_for_the_right_purpose(flow, store, mailer):
    _register(flow)
    first_hash = store.find_by_email(EMAIL).otp_hash

    result = flow.resend_otp(ResendOtpRequest(email=EMAIL))

    assert result.ok
    assert result.data["purpose"] == "register"
    assert store.find_by_email(EMAIL).otp_hash != first_hash
    assert _verify(flow, mailer.last_code(EMAIL)).ok

    assert flow.resend_otp(ResendOtpRequest(email=EMAIL)).data["purpose"] == "reset"
    assert flow.resend_otp(ResendOtpRequest(email="ghost@x.com")).kind is (
        ErrorKind.USER_NOT_FOUND
    )


def test_change_password_with_wrong_current_does_not_mutate(flow, store, mailer):
    _registered_and_verified(flow, mailer)
    user = store.find_by_email(EMAIL)
    original_hash = user.password_hash

    result = flow.change_password(
        ChangePasswordRequest(
            user_id=user.id,
            current_password="not-it-at-all",
            new_password="newpassword",
            confirm_password="newpassword",
        )
    )

    assert result.kind is ErrorKind.WRONG_PASSWORD
    assert store.find_by_email(EMAIL).password_hash == original_hash


def test_change_password_success(flow, store, mailer):
    _registered_and_verified(flow, mailer)
    user = store.find_by_email(EMAIL)

    result = flow.change_password(
        ChangePasswordRequest(
            user_id=user.id,
            current_password=PASSWORD,
            new_password="newpassword",
            confirm_password="newpassword",
        )
    )

    assert result.ok
    assert _login(flow, password="newpassword").ok


def test_delivery_failure_keeps_persisted_code(flow, store, mailer):
    mailer.fail_next = True

    result = _register(flow)

    assert result.kind is ErrorKind.DELIVERY_FAILED
    assert isinstance(result.error, DeliveryError)
    user = store.find_by_email(EMAIL)
    assert user is not None
    assert user.otp_hash is not None


def test_request_objects_report_missing_fields():
    with pytest.raises(ValidationError) as excinfo:
        ResetPasswordRequest.from_mapping({"email": EMAIL, "otp": "123456"})

    assert excinfo.value.kind is ErrorKind.MISSING_FIELDS
    assert "confirmPassword" in excinfo.value.message
    assert "newPassword" in excinfo.value.message


def test_request_objects_trim_everything_but_passwords():
    request = LoginRequest.from_mapping({"email": "  a@x.com ", "password": " spaced "})

    assert request.email == "a@x.com"
    assert request.password == " spaced "
