"""Permission string grammar and wildcard matching.

Permissions are dotted triples, ``resource.action.scope``. Any segment
of a granted pattern may be ``*``. Scopes form a hierarchy from broadest
to narrowest (global > tenant > account > own); with scope inheritance
enabled a broader granted scope covers a narrower required one.
Scopes outside the hierarchy (``team``, ``managed``) only match exactly.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from mono_core.exceptions import InvalidPermissionError

WILDCARD = "*"
SCOPE_HIERARCHY: tuple[str, ...] = ("global", "tenant", "account", "own")

SEGMENT_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


@dataclass(frozen=True)
class PermissionPattern:
    """A parsed resource.action.scope permission."""

    resource: str
    action: str
    scope: str

    def __str__(self) -> str:
        return format_permission(self.resource, self.action, self.scope)

    @property
    def is_wildcard(self) -> bool:
        """True if any segment is the wildcard."""
        return WILDCARD in (self.resource, self.action, self.scope)

    def covers(self, required: "PermissionPattern", scope_inheritance: bool = True) -> bool:
        """Check whether this granted pattern satisfies a required one.

        Args:
            required: The permission being checked
            scope_inheritance: Let broader scopes cover narrower ones

        Returns:
            True if every segment matches
        """
        if not _segment_matches(self.resource, required.resource):
            return False
        if not _segment_matches(self.action, required.action):
            return False
        if _segment_matches(self.scope, required.scope):
            return True
        return scope_inheritance and scope_covers(self.scope, required.scope)


def _segment_matches(granted: str, required: str) -> bool:
    return granted == WILDCARD or granted == required


def scope_covers(granted: str, required: str) -> bool:
    """True if granted is strictly broader than required in SCOPE_HIERARCHY."""
    if granted not in SCOPE_HIERARCHY or required not in SCOPE_HIERARCHY:
        return False
    return SCOPE_HIERARCHY.index(granted) < SCOPE_HIERARCHY.index(required)


def format_permission(resource: str, action: str, scope: str) -> str:
    """Join segments into a permission string."""
    return f"{resource}.{action}.{scope}"


def parse_permission(text: str) -> PermissionPattern:
    """Parse a permission string.

    Args:
        text: Permission such as "users.read.tenant" or "content.*.tenant"

    Returns:
        The parsed pattern (segments lowercased)

    Raises:
        InvalidPermissionError: If the string is not a valid triple
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidPermissionError("Permission cannot be empty")

    parts = text.strip().lower().split(".")
    if len(parts) != 3:
        raise InvalidPermissionError(
            f"Invalid permission '{text}': expected resource.action.scope"
        )

    for part in parts:
        if part != WILDCARD and not SEGMENT_RE.match(part):
            raise InvalidPermissionError(
                f"Invalid permission '{text}': bad segment '{part}'"
            )

    return PermissionPattern(resource=parts[0], action=parts[1], scope=parts[2])


def normalize_permission(text: str) -> str:
    """Parse and re-format a permission string."""
    return str(parse_permission(text))


def is_valid_permission(text: str) -> bool:
    """True if text parses as a permission."""
    try:
        parse_permission(text)
    except InvalidPermissionError:
        return False
    return True


def matches(granted: str, required: str, scope_inheritance: bool = True) -> bool:
    """Check a granted pattern string against a required permission string.

    Invalid strings never match.
    """
    try:
        granted_pattern = parse_permission(granted)
        required_pattern = parse_permission(required)
    except InvalidPermissionError:
        return False
    return granted_pattern.covers(required_pattern, scope_inheritance)


def find_match(
    granted: Iterable[str],
    required: str,
    scope_inheritance: bool = True,
) -> str | None:
    """Return the first granted pattern that covers required, or None."""
    try:
        required_pattern = parse_permission(required)
    except InvalidPermissionError:
        return None

    for pattern in granted:
        try:
            candidate = parse_permission(pattern)
        except InvalidPermissionError:
            continue
        if candidate.covers(required_pattern, scope_inheritance):
            return pattern
    return None
