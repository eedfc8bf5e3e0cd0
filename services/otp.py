"""Issue and check six-digit one-time codes."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Callable

from .password_hasher import PasswordHasher

OTP_MIN = 100000
OTP_MAX = 999999


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the models store datetimes."""

    return datetime.now(UTC).replace(tzinfo=None)


class OtpOutcome(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class IssuedOtp:
    code: str
    hash: str
    expires_at: datetime


class OtpService:
    """Generates codes uniformly in 100000-999999 and stores only their hash."""

    def __init__(
        self,
        hasher: PasswordHasher,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.hasher = hasher
        self.ttl = ttl
        self.clock = clock

    def generate_code(self) -> str:
        return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))

    def issue(self) -> IssuedOtp:
        code = self.generate_code()
        return IssuedOtp(
            code=code,
            hash=self.hasher.hash(code),
            expires_at=self.clock() + self.ttl,
        )

    def verify(self, code: str, hashed: str | None, expires_at: datetime | None) -> OtpOutcome:
        """Expiry is checked before the hash, so a stale code never matches."""

        if not hashed or expires_at is None:
            return OtpOutcome.MISMATCH
        if expires_at < self.clock():
            return OtpOutcome.EXPIRED
        if not self.hasher.verify((code or "").strip(), hashed):
            return OtpOutcome.MISMATCH
        return OtpOutcome.VALID
