"""Authentication blueprint: registration, verification, login and passwords."""

from __future__ import annotations

from http import HTTPStatus
from typing import Callable, Mapping

from flask import Blueprint, current_app, redirect, render_template, request, url_for
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies

from extensions import limiter, otp_rate_limit
from services.auth_flow import (
    PURPOSE_RESET,
    AuthFlowController,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from services.errors import ErrorKind
from services.results import Err, Result
from utils.guards import Rejection, is_authenticated, login_required
from utils.request_validation import parse_form_request

auth_bp = Blueprint("auth", __name__)

ErrorHandlers = Mapping[ErrorKind, Callable[[Err], object]]


def _controller() -> AuthFlowController:
    return current_app.extensions["auth_flow"]


def _redirect_with_message(endpoint: str, message: str):
    return redirect(url_for(endpoint, message=message))


def _status_page(message: str, status: int, link: str | None = None, link_text: str | None = None):
    return (
        render_template("status.html", status_message=message, link=link, link_text=link_text),
        status,
    )


def _respond(result: Result, on_ok: Callable[[dict], object], handlers: ErrorHandlers):
    """Map a controller result to an HTTP response.

    Kinds without a handler fall through to a generic status page using the
    error's own message and status.
    """

    if result.ok:
        return on_ok(result.data)
    handler = handlers.get(result.kind)
    if handler is not None:
        return handler(result)
    return _status_page(result.message, int(result.error.status_code))


def _run(request_cls, operation: Callable[..., Result], **extra) -> Result:
    parsed = parse_form_request(request, request_cls, **extra)
    if isinstance(parsed, Err):
        return parsed
    return operation(parsed)


def _already_signed_in() -> bool:
    return not isinstance(is_authenticated(request), Rejection)


# Pages ------------------------------------------------------------------


@auth_bp.route("/", methods=["GET"])
def landing():
    return render_template("landing.html")


@auth_bp.route("/register", methods=["GET"])
def register_page():
    if _already_signed_in():
        return redirect(url_for("vault.profile"))
    return render_template(
        "register.html",
        message=request.args.get("message"),
        min_password_length=current_app.config["PASSWORD_MIN_LENGTH"],
    )


@auth_bp.route("/login", methods=["GET"])
def login_page():
    if _already_signed_in():
        return redirect(url_for("vault.profile"))
    return render_template("login.html", message=request.args.get("message"))


@auth_bp.route("/forgot-password", methods=["GET"])
def forgot_password_page():
    return render_template("forgot_password.html", message=request.args.get("message"))


# Registration -----------------------------------------------------------


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create or refresh an unverified account and email it a code."""

    result = _run(RegisterRequest, _controller().register)
    return _respond(
        result,
        lambda data: render_template("verify_otp.html", email=data["email"]),
        {
            ErrorKind.ALREADY_EXISTS: lambda err: _redirect_with_message(
                "auth.login_page", err.message
            ),
            ErrorKind.MISSING_FIELDS: lambda err: _redirect_with_message(
                "auth.register_page", err.message
            ),
            ErrorKind.WEAK_CREDENTIAL: lambda err: _redirect_with_message(
                "auth.register_page", err.message
            ),
            ErrorKind.DELIVERY_FAILED: lambda err: _status_page(
                "Registration Error", HTTPStatus.INTERNAL_SERVER_ERROR
            ),
        },
    )


@auth_bp.route("/verify-otp", methods=["POST"])
@limiter.limit(otp_rate_limit)
def verify_otp():
    """Confirm the registration code."""

    email = (request.form.get("email") or "").strip()
    result = _run(VerifyOtpRequest, _controller().verify_registration)

    def _retry(err: Err):
        return (
            render_template("verify_otp.html", email=email, message=err.message),
            HTTPStatus.BAD_REQUEST,
        )

    return _respond(
        result,
        lambda data: _redirect_with_message(
            "auth.login_page", "Verified! You can now login."
        ),
        {
            ErrorKind.INVALID_CODE: _retry,
            ErrorKind.MISSING_FIELDS: _retry,
            ErrorKind.CODE_EXPIRED: lambda err: _status_page(
                err.message, HTTPStatus.GONE, url_for("auth.register_page"), "Register again"
            ),
            ErrorKind.ALREADY_EXISTS: lambda err: _redirect_with_message(
                "auth.login_page", err.message
            ),
        },
    )


@auth_bp.route("/resend-otp", methods=["POST"])
@limiter.limit(otp_rate_limit)
def resend_otp():
    """Issue a fresh code, replacing any outstanding one."""

    result = _run(ResendOtpRequest, _controller().resend_otp)

    def _next_form(data: dict):
        template = "reset_password.html" if data["purpose"] == PURPOSE_RESET else "verify_otp.html"
        return render_template(template, email=data["email"], message="A new code is on its way.")

    return _respond(
        result,
        _next_form,
        {
            ErrorKind.USER_NOT_FOUND: lambda err: _redirect_with_message(
                "auth.register_page", err.message
            ),
        },
    )


# Sessions ---------------------------------------------------------------


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(otp_rate_limit)
def login():
    """Check credentials and hand the client a session cookie."""

    result = _run(LoginRequest, _controller().login)

    def _signed_in(data: dict):
        response = redirect(url_for("vault.overview"))
        set_access_cookies(response, data["token"])
        return response

    def _back_to_login(err: Err):
        return _redirect_with_message("auth.login_page", err.message)

    return _respond(
        result,
        _signed_in,
        {
            ErrorKind.USER_NOT_FOUND: _back_to_login,
            ErrorKind.WRONG_PASSWORD: _back_to_login,
            ErrorKind.MISSING_FIELDS: _back_to_login,
            ErrorKind.NOT_VERIFIED: lambda err: _status_page(
                err.message, HTTPStatus.FORBIDDEN
            ),
        },
    )


@auth_bp.route("/logout", methods=["GET"])
def logout():
    response = redirect(url_for("auth.login_page"))
    unset_jwt_cookies(response)
    return response


# Passwords --------------------------------------------------------------


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit(otp_rate_limit)
def forgot_password():
    """Email a reset code to a verified account."""

    result = _run(ForgotPasswordRequest, _controller().request_password_reset)
    return _respond(
        result,
        lambda data: render_template("reset_password.html", email=data["email"]),
        {
            ErrorKind.USER_NOT_FOUND: lambda err: _redirect_with_message(
                "auth.forgot_password_page", err.message
            ),
            ErrorKind.MISSING_FIELDS: lambda err: _redirect_with_message(
                "auth.forgot_password_page", err.message
            ),
            ErrorKind.NOT_VERIFIED: lambda err: _status_page(
                err.message, HTTPStatus.FORBIDDEN
            ),
        },
    )


@auth_bp.route("/update-password", methods=["POST"])
@limiter.limit(otp_rate_limit)
def update_password():
    """Complete a password reset with the emailed code."""

    email = (request.form.get("email") or "").strip()
    result = _run(ResetPasswordRequest, _controller().reset_password)

    def _retry(err: Err):
        return (
            render_template("reset_password.html", email=email, message=err.message),
            HTTPStatus.BAD_REQUEST,
        )

    return _respond(
        result,
        lambda data: _redirect_with_message(
            "auth.login_page", "Password updated. You can now login."
        ),
        {
            ErrorKind.INVALID_CODE: _retry,
            ErrorKind.PASSWORD_MISMATCH: _retry,
            ErrorKind.WEAK_CREDENTIAL: _retry,
            ErrorKind.MISSING_FIELDS: _retry,
            ErrorKind.USER_NOT_FOUND: lambda err: _redirect_with_message(
                "auth.forgot_password_page", err.message
            ),
            ErrorKind.NOT_VERIFIED: lambda err: _status_page(
                err.message, HTTPStatus.FORBIDDEN
            ),
            ErrorKind.CODE_EXPIRED: lambda err: _status_page(
                err.message,
                HTTPStatus.GONE,
                url_for("auth.forgot_password_page"),
                "Request a new code",
            ),
        },
    )


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password(session, user):
    """Change the signed-in user's password after re-checking the current one."""

    result = _run(ChangePasswordRequest, _controller().change_password, user_id=user.id)

    def _back_to_profile(err: Err):
        return _redirect_with_message("vault.profile", err.message)

    return _respond(
        result,
        lambda data: _redirect_with_message("vault.profile", "Password changed."),
        {
            ErrorKind.WRONG_PASSWORD: _back_to_profile,
            ErrorKind.PASSWORD_MISMATCH: _back_to_profile,
            ErrorKind.WEAK_CREDENTIAL: _back_to_profile,
            ErrorKind.MISSING_FIELDS: _back_to_profile,
            ErrorKind.AUTH_REQUIRED: lambda err: Rejection().to_response(),
        },
    )
