"""Authentication module."""

from mono_core.auth.jwt_utils import (
    JWTKeyPair,
    TokenPayload,
    create_access_token,
    create_jwks,
    create_refresh_token,
    decode_token,
    generate_key_pair,
    load_key_pair,
)
from mono_core.auth.manager import AuthManager, AuthTokens, User
from mono_core.auth.password import (
    generate_temporary_password,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "AuthManager",
    "AuthTokens",
    "JWTKeyPair",
    "TokenPayload",
    "User",
    "create_access_token",
    "create_jwks",
    "create_refresh_token",
    "decode_token",
    "generate_key_pair",
    "generate_temporary_password",
    "hash_password",
    "load_key_pair",
    "needs_rehash",
    "verify_password",
]
