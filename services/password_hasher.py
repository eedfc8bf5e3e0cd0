"""One-way salted hashing for passwords and one-time codes."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

DEFAULT_METHOD = "pbkdf2:sha256:600000"


class PasswordHasher:
    """Thin wrapper over werkzeug's salted key-derivation helpers.

    ``method`` is passed straight to :func:`generate_password_hash`, so the
    work factor is part of the configured method string
    (``pbkdf2:sha256:<iterations>`` or ``scrypt:<n>:<r>:<p>``).
    """

    def __init__(self, method: str = DEFAULT_METHOD, salt_length: int = 16):
        self.method = method
        self.salt_length = salt_length

    def hash(self, plaintext: str) -> str:
        return generate_password_hash(
            plaintext, method=self.method, salt_length=self.salt_length
        )

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        if not hashed or plaintext is None:
            return False
        try:
            return check_password_hash(hashed, plaintext)
        except ValueError:
            # Unknown or corrupted hash format.
            return False
