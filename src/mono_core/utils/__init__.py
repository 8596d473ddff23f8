"""Utility modules."""

from mono_core.utils.validation import (
    validate_email,
    validate_identifier,
    validate_password,
    validate_subdomain,
)

__all__ = ["validate_email", "validate_identifier", "validate_password", "validate_subdomain"]
