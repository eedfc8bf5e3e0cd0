"""Tests for one-time code generation and checking."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from services import otp as otp_module
from services.otp import OtpOutcome, OtpService
from services.password_hasher import PasswordHasher

NOW = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture()
def service() -> OtpService:
    return OtpService(PasswordHasher(method="pbkdf2:sha256:1000"), clock=lambda: NOW)


def test_issue_returns_six_digit_code_with_ten_minute_expiry(service):
    issued = service.issue()

    assert len(issued.code) == 6
    assert issued.code.isdigit()
    assert 100000 <= int(issued.code) <= 999999
    assert issued.hash != issued.code
    assert issued.expires_at == NOW + timedelta(minutes=10)


@pytest.mark.parametrize("draw, expected", [(0, "100000"), (899999, "999999")])
def test_code_range_is_inclusive(service, monkeypatch, draw, expected):
    monkeypatch.setattr(otp_module.secrets, "randbelow", lambda bound: draw)

    assert service.generate_code() == expected


def test_verify_outcomes(service):
    issued = service.issue()

    assert service.verify(issued.code, issued.hash, issued.expires_at) is OtpOutcome.VALID
    assert service.verify(" " + issued.code + " ", issued.hash, issued.expires_at) is OtpOutcome.VALID
    assert service.verify("000000", issued.hash, issued.expires_at) is OtpOutcome.MISMATCH


def test_expired_code_is_reported_even_when_correct(service):
    issued = service.issue()
    service.clock = lambda: NOW + timedelta(minutes=11)

    assert service.verify(issued.code, issued.hash, issued.expires_at) is OtpOutcome.EXPIRED


def test_missing_code_state_never_matches(service):
    assert service.verify("123456", None, None) is OtpOutcome.MISMATCH
    assert service.verify("123456", "hash", None) is OtpOutcome.MISMATCH


def test_custom_ttl():
    service = OtpService(
        PasswordHasher(method="pbkdf2:sha256:1000"),
        ttl=timedelta(minutes=60),
        clock=lambda: NOW,
    )

    assert service.issue().expires_at == NOW + timedelta(hours=1)
