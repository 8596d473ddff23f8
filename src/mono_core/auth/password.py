"""Password hashing with argon2id and temporary password generation."""

import secrets
import string

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from mono_core.exceptions import InvalidCredentialsError

# Argon2id parameters (OWASP recommendations)
_hasher = PasswordHasher(
    time_cost=3,        # iterations
    memory_cost=65536,  # 64 MB
    parallelism=4,      # threads
    hash_len=32,        # output length
)

_TEMP_SPECIALS = "!@#$%^&*"


def hash_password(password: str) -> str:
    """Hash a password using argon2id.

    Returns:
        The encoded hash (includes salt and parameters)
    """
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash.

    Raises:
        InvalidCredentialsError: If the password doesn't match
    """
    try:
        _hasher.verify(password_hash, password)
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError) as e:
        raise InvalidCredentialsError("Invalid password") from e


def needs_rehash(password_hash: str) -> bool:
    """Check if a hash was produced with outdated parameters."""
    return _hasher.check_needs_rehash(password_hash)


def generate_temporary_password(length: int = 20) -> str:
    """Generate a random password handed to newly provisioned admins.

    Always contains a lowercase letter, an uppercase letter, a digit and
    one of !@#$%^&* so it passes the default password policy.
    """
    if length < 8:
        raise ValueError("Temporary passwords must be at least 8 characters")

    alphabet = string.ascii_letters + string.digits + _TEMP_SPECIALS
    required = [
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.digits),
        secrets.choice(_TEMP_SPECIALS),
    ]
    rest = [secrets.choice(alphabet) for _ in range(length - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
