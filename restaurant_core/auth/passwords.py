"""Password hashing, strength rules and random tokens"""

import hashlib
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import List

from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 12

SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

COMMON_PASSWORDS = frozenset({
    "password123",
    "password123!",
    "admin123!",
    "welcome123!",
    "qwerty123!",
    "letmein123!",
    "changeme123!",
})

TOKEN_ALPHABET = string.ascii_letters + string.digits

_SYMBOL_RE = re.compile("[" + re.escape(SYMBOLS) + "]")


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    errors: List[str] = field(default_factory=list)


def hash_token(token: str) -> str:
    """sha256 digest used to store bearer, reset and invitation tokens"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PasswordPolicy:
    """bcrypt hashing plus the admin password rules"""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash password"""
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify password against hash; malformed input is simply a mismatch"""
        if not password or not hashed_password:
            return False
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> None:
        """Spend one verification so unknown emails cost the same as wrong passwords"""
        self._context.dummy_verify()

    def validate_strength(self, password: str) -> PasswordCheck:
        """Return every violated rule, not only the first"""
        errors: List[str] = []
        password = password or ""

        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if not re.search(r"[A-Z]", password):
            errors.append("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", password):
            errors.append("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", password):
            errors.append("Password must contain at least one number")
        if not _SYMBOL_RE.search(password):
            errors.append("Password must contain at least one special character")
        if password.lower() in COMMON_PASSWORDS:
            errors.append("Password is too common")

        return PasswordCheck(valid=not errors, errors=errors)

    @staticmethod
    def generate_token(length: int = 32) -> str:
        if length <= 0:
            raise ValueError("Token length must be positive")
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
