"""
Password hashing and strength checks.

bcrypt with a per-password salt and a tunable work factor. Plaintext
passwords and hashes must never be logged from here or from callers.
"""

import re
from dataclasses import dataclass

import bcrypt

DEFAULT_BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of input
_BCRYPT_MAX_BYTES = 72

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128

_LOWERCASE = re.compile(r"[a-z]")
_UPPERCASE = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9\s]")


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """
    Hash a password with a freshly generated salt.

    Args:
        password: Plaintext password
        rounds: bcrypt cost factor (log2 of the iteration count)

    Returns:
        The encoded hash, salt and cost included
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored hash.

    A malformed hash is treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except (ValueError, TypeError):
        return False


@dataclass
class PasswordStrength:
    """Which strength requirements a password meets."""

    length: bool
    has_lowercase: bool
    has_uppercase: bool
    has_number: bool
    has_symbol: bool

    @property
    def is_strong(self) -> bool:
        return all((
            self.length,
            self.has_lowercase,
            self.has_uppercase,
            self.has_number,
            self.has_symbol,
        ))

    def to_dict(self) -> dict:
        return {
            "is_strong": self.is_strong,
            "requirements": {
                "length": self.length,
                "has_lowercase": self.has_lowercase,
                "has_uppercase": self.has_uppercase,
                "has_number": self.has_number,
                "has_symbol": self.has_symbol,
            },
        }


def check_password_strength(password: str) -> PasswordStrength:
    """Report every strength requirement for a password."""
    return PasswordStrength(
        length=MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH,
        has_lowercase=bool(_LOWERCASE.search(password)),
        has_uppercase=bool(_UPPERCASE.search(password)),
        has_number=bool(_DIGIT.search(password)),
        has_symbol=bool(_SYMBOL.search(password)),
    )
