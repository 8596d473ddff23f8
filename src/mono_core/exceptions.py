"""Mono Core exceptions."""


class MonoError(Exception):
    """Base exception for mono-core."""

    pass


class ConfigError(MonoError):
    """Configuration error."""

    pass


class AuthError(MonoError):
    """Authentication error."""

    pass


class InvalidCredentialsError(AuthError):
    """Invalid username or password."""

    pass


class TokenExpiredError(AuthError):
    """Token has expired."""

    pass


class TokenInvalidError(AuthError):
    """Token is invalid or malformed."""

    pass


class PermissionDeniedError(MonoError):
    """Permission denied for the requested operation."""

    pass


class InvalidPermissionError(MonoError, ValueError):
    """Permission string does not follow resource.action.scope."""

    pass


class NotFoundError(MonoError):
    """Resource not found."""

    pass


class UserNotFoundError(NotFoundError):
    """User not found."""

    pass


class RoleNotFoundError(NotFoundError):
    """Role not found."""

    pass


class PermissionNotFoundError(NotFoundError):
    """Permission definition not found."""

    pass


class ConflictError(MonoError):
    """Resource already exists or violates a uniqueness rule."""

    pass


class TenantError(MonoError):
    """Tenant-related error."""

    pass


class TenantNotFoundError(TenantError, NotFoundError):
    """Tenant not found."""

    pass


class TenantConflictError(TenantError, ConflictError):
    """Tenant name or subdomain already in use."""

    pass


class SavedSearchError(MonoError):
    """Saved search error."""

    pass


class SavedSearchNotFoundError(SavedSearchError, NotFoundError):
    """Saved search not found or not accessible."""

    pass


class SavedSearchConflictError(SavedSearchError, ConflictError):
    """A saved search with the same name already exists."""

    pass
