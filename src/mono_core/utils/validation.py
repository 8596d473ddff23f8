"""Input validation utilities."""

import re

# Safe identifier pattern: alphanumeric, underscores, hyphens
# Must start with letter or number
SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")

# Subdomain label: lowercase letters, digits and inner hyphens
SUBDOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")

# Email pattern (simplified, RFC 5322 compliant for most cases)
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

RESERVED_SUBDOMAINS = frozenset({"www", "api", "admin", "app", "mail", "static"})


def validate_identifier(value: str, name: str = "identifier", max_length: int = 64) -> str:
    """Validate a safe identifier (entity type, feature flag, role code, etc).

    Raises:
        ValueError: If the identifier is invalid
    """
    if not value:
        raise ValueError(f"{name} cannot be empty")

    if len(value) > max_length:
        raise ValueError(f"{name} exceeds maximum length of {max_length}")

    if not SAFE_IDENTIFIER_RE.match(value):
        raise ValueError(
            f"Invalid {name}: must start with alphanumeric and contain only "
            "alphanumeric characters, underscores, and hyphens"
        )

    return value


def validate_subdomain(value: str) -> str:
    """Validate and normalize a tenant subdomain.

    Returns:
        The lowercased subdomain

    Raises:
        ValueError: If the subdomain is malformed or reserved
    """
    if not value:
        raise ValueError("Subdomain cannot be empty")

    value = value.strip().lower()
    if len(value) < 3 or len(value) > 63:
        raise ValueError("Subdomain must be between 3 and 63 characters")

    if not SUBDOMAIN_RE.match(value):
        raise ValueError(
            "Invalid subdomain: use lowercase letters, digits and hyphens, "
            "not starting or ending with a hyphen"
        )

    if value in RESERVED_SUBDOMAINS:
        raise ValueError(f"Subdomain is reserved: {value}")

    return value


def validate_email(email: str) -> str:
    """Validate an email address.

    Returns:
        The normalized (lowercased) email

    Raises:
        ValueError: If the email is invalid
    """
    if not email:
        raise ValueError("Email cannot be empty")

    email = email.strip().lower()

    if len(email) > 254:
        raise ValueError("Email exceeds maximum length")

    if not EMAIL_RE.match(email):
        raise ValueError("Invalid email format")

    return email


def validate_password(
    password: str,
    min_length: int = 12,
    require_special: bool = True,
) -> str:
    """Validate a password meets security requirements.

    Raises:
        ValueError: If the password doesn't meet requirements
    """
    if not password:
        raise ValueError("Password cannot be empty")

    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")

    if require_special:
        if not re.search(r"[!@#$%^&*(),.?\":{}|<>]", password):
            raise ValueError("Password must contain at least one special character")

    return password
