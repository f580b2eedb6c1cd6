# sales_tracker/passwords.py
"""
Password hashing and policy

Version: 1.0.0
Features:
- bcrypt hashing with configurable cost factor (default 12)
- Timing-safe verification
- Strength scoring with human-readable feedback
- Temporary password generation
"""

import logging
import re
import secrets
import string
from typing import List, Optional, Tuple

import bcrypt

from .config import config

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MIN_STRENGTH_SCORE = 3
SPECIAL_CHARACTERS = "!@#$%^&*(),.?\":{}|<>"
TEMPORARY_PASSWORD_CHARSET = string.ascii_letters + string.digits + "!@#$%^&*"


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, feedback: List[str]):
        self.feedback = feedback
        super().__init__("; ".join(feedback) or "Password is too weak")


class PasswordHasher:
    """
    Thin wrapper around bcrypt.

    Usage:
        hasher = PasswordHasher()
        stored = hasher.hash("S3cret!pass")
        hasher.verify("S3cret!pass", stored)  # True
    """

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or config.get_app_setting("BCRYPT_ROUNDS", 12)

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def verify(self, password: str, password_hash: str) -> bool:
        """bcrypt.checkpw is timing-safe; malformed hashes count as a mismatch"""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification failed on malformed input: {type(e).__name__}")
            return False


# ==================== STRENGTH ====================

def password_strength(password: str) -> Tuple[int, List[str]]:
    """
    Score a password from 0 to 5.

    Returns:
        Tuple of (score, feedback messages for each failed rule)
    """
    feedback = []
    score = 0

    if len(password) < MIN_PASSWORD_LENGTH:
        feedback.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    else:
        score += 1

    if not re.search(r'[a-z]', password):
        feedback.append("Add at least one lowercase letter")
    else:
        score += 1

    if not re.search(r'[A-Z]', password):
        feedback.append("Add at least one uppercase letter")
    else:
        score += 1

    if not re.search(r'\d', password):
        feedback.append("Add at least one digit")
    else:
        score += 1

    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        feedback.append("Add at least one special character")
    else:
        score += 1

    return score, feedback


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Minimum length is mandatory; beyond that at least
    MIN_STRENGTH_SCORE rules must pass.

    Raises PasswordValidationError if requirements not met.
    """
    score, feedback = password_strength(password or "")
    if len(password or "") < MIN_PASSWORD_LENGTH or score < MIN_STRENGTH_SCORE:
        raise PasswordValidationError(feedback)


def generate_temporary_password(length: int = 12) -> str:
    """Random password that always satisfies validate_password_strength"""
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Temporary passwords need at least {MIN_PASSWORD_LENGTH} characters")

    while True:
        candidate = ''.join(secrets.choice(TEMPORARY_PASSWORD_CHARSET) for _ in range(length))
        score, _ = password_strength(candidate)
        if score >= MIN_STRENGTH_SCORE:
            return candidate


__all__ = [
    'PasswordValidationError',
    'PasswordHasher',
    'password_strength',
    'validate_password_strength',
    'generate_temporary_password',
]
