"""Request guards for protected vault routes.

A guard is a function ``(request, context) -> context | Rejection``. Guards
run in order; each returns a new context dict instead of decorating the
request, and the first rejection short-circuits the chain. The final context
is passed to the view as keyword arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Callable, Mapping, Union
from urllib.parse import urlencode

from flask import Request, current_app, redirect, request
from flask_jwt_extended import unset_jwt_cookies

from services.session_tokens import SessionClaims
from storage.credential_store import AbstractCredentialStore


@dataclass(frozen=True)
class Rejection:
    location: str = "/login"
    message: str | None = None
    clear_session: bool = True

    def to_response(self):
        target = self.location
        if self.message:
            target = f"{target}?{urlencode({'message': self.message})}"
        response = redirect(target)
        if self.clear_session:
            unset_jwt_cookies(response)
        return response


GuardOutcome = Union[dict, Rejection]
Guard = Callable[[Request, Mapping], GuardOutcome]


def session_cookie(req: Request) -> str | None:
    return req.cookies.get(current_app.config.get("JWT_ACCESS_COOKIE_NAME", "token"))


def is_authenticated(req: Request) -> SessionClaims | Rejection:
    """Return the session claims carried by ``req`` or a rejection."""

    result = current_app.extensions["auth_flow"].authenticate(session_cookie(req))
    if not result.ok:
        return Rejection()
    return result.data["claims"]


def require_session(req: Request, context: Mapping) -> GuardOutcome:
    outcome = is_authenticated(req)
    if isinstance(outcome, Rejection):
        return outcome
    return {**context, "session": outcome}


def require_account(req: Request, context: Mapping) -> GuardOutcome:
    """Reject tokens whose account has since been deleted."""

    store: AbstractCredentialStore = current_app.extensions["credential_store"]
    session: SessionClaims = context["session"]
    user = store.find_by_id(session.user_id)
    if user is None or user.email != session.email:
        return Rejection()
    return {**context, "user": user}


def guarded(*guards: Guard):
    """Run ``guards`` in order before the wrapped view."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            context: Mapping = {}
            for guard in guards:
                outcome = guard(request, context)
                if isinstance(outcome, Rejection):
                    return outcome.to_response()
                context = outcome
            return view(*args, **{**kwargs, **context})

        return wrapper

    return decorator


login_required = guarded(require_session, require_account)
