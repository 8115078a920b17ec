"""
Credential helpers - hashing, comparison and code generation.

Shared by the applicant lifecycle and authentication flows so that every
password and code passes through the same constant-time primitives.
"""

import secrets

import bcrypt

DEFAULT_BCRYPT_ROUNDS = 10

# bcrypt only considers the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72

# Pre-computed hash compared against when no stored hash exists, so that
# unknown usernames cost the same bcrypt work as known ones.
DUMMY_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, credential_hash: str | None) -> bool:
    """
    Constant-time password check.

    bcrypt always runs: an empty or missing hash is replaced by
    DUMMY_HASH and the result forced to False.
    """
    candidate = credential_hash or DUMMY_HASH
    try:
        matched = bcrypt.checkpw(_password_bytes(password), candidate.encode())
    except ValueError:
        # malformed stored hash
        return False
    return matched and bool(credential_hash)


def codes_match(stored: str | None, submitted: str) -> bool:
    """Constant-time comparison of a stored code with user input."""
    return secrets.compare_digest((stored or "").encode(), submitted.encode()) and bool(stored)


def generate_numeric_code(length: int = 6) -> str:
    """
    Generate a cryptographically secure numeric code.

    Returns string to preserve leading zeros.
    """
    return "".join(secrets.choice("0123456789") for _ in range(length))
