"""User accounts, password login and token issuance."""

import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mono_core.auth.jwt_utils import (
    JWTKeyPair,
    TokenPayload,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from mono_core.auth.password import hash_password, needs_rehash, verify_password
from mono_core.config import AuthConfig
from mono_core.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    TokenInvalidError,
    UserNotFoundError,
)
from mono_core.observability import emit_counter, get_logger
from mono_core.permissions.manager import PermissionManager
from mono_core.protocols import Database
from mono_core.utils.validation import validate_email, validate_password

logger = get_logger(__name__)


@dataclass
class User:
    """A user account."""

    id: str
    tenant_id: str | None
    email: str
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True
    must_change_password: bool = False
    created_at: float = 0.0
    last_login_at: float | None = None

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (never includes the password hash)."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_active": self.is_active,
            "must_change_password": self.must_change_password,
            "created_at": self.created_at,
            "last_login_at": self.last_login_at,
        }

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create from database row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            is_active=bool(row.is_active),
            must_change_password=bool(row.must_change_password),
            created_at=row.created_at,
            last_login_at=row.last_login_at,
        )


@dataclass
class AuthTokens:
    """Authentication tokens."""

    access_token: str
    refresh_token: str | None
    expires_in: int

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": "Bearer",
            "expires_in": self.expires_in,
        }
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        return data


class AuthManager:
    """Manages user accounts and RS256 token issuance.

    Access tokens carry the role codes the user holds in the token's
    tenant context, so coarse role gates need no database round trip.
    """

    def __init__(
        self,
        config: AuthConfig,
        database: Database,
        key_pair: JWTKeyPair,
        permissions: PermissionManager,
    ) -> None:
        """Initialize authentication manager.

        Args:
            config: Authentication configuration
            database: Database backend for user storage
            key_pair: RSA keys for signing and verification
            permissions: Used to resolve role claims
        """
        self.config = config
        self.database = database
        self.key_pair = key_pair
        self.permissions = permissions

    async def initialize_schema(self) -> None:
        """Initialize the users schema in the database."""
        schema = (Path(__file__).parent / "schema.sql").read_text()
        for statement in schema.split(";"):
            statement = statement.strip()
            if statement:
                await self.database.execute(statement)

    async def create_user(
        self,
        email: str,
        password: str,
        tenant_id: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        must_change_password: bool = False,
    ) -> User:
        """Create a user account.

        Args:
            email: Login email (unique per tenant)
            password: Plaintext password, checked against the password policy
            tenant_id: Owning tenant (None for platform users)
            first_name: Optional first name
            last_name: Optional last name
            must_change_password: Flag for temporary passwords

        Returns:
            The created user

        Raises:
            ValueError: If the email or password is invalid
            ConflictError: If the email is taken in this tenant
        """
        email = validate_email(email)
        validate_password(
            password,
            min_length=self.config.password.min_length,
            require_special=self.config.password.require_special,
        )

        if await self.find_user_by_email(email, tenant_id) is not None:
            raise ConflictError(f"User already exists: {email}")

        now = time.time()
        user = User(
            id=f"user-{uuid.uuid4().hex[:16]}",
            tenant_id=tenant_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            must_change_password=must_change_password,
            created_at=now,
        )
        await self.database.execute(
            """
            INSERT INTO users
            (id, tenant_id, email, password_hash, first_name, last_name, is_active,
             must_change_password, created_at, updated_at)
            VALUES (:id, :tenant_id, :email, :password_hash, :first_name, :last_name, 1,
                    :must_change_password, :created_at, :updated_at)
            """,
            {
                "id": user.id,
                "tenant_id": tenant_id,
                "email": email,
                "password_hash": hash_password(password),
                "first_name": first_name,
                "last_name": last_name,
                "must_change_password": int(must_change_password),
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("User created", context={"new_user_id": user.id, "tenant": tenant_id})
        return user

    async def get_user(self, user_id: str) -> User:
        """Get a user by ID.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        rows = await self.database.execute(
            "SELECT * FROM users WHERE id = :id",
            {"id": user_id},
        )
        if not rows:
            raise UserNotFoundError(f"User not found: {user_id}")
        return User.from_row(rows[0])

    async def find_user_by_email(self, email: str, tenant_id: str | None = None) -> User | None:
        rows = await self.database.execute(
            "SELECT * FROM users WHERE email = :email AND tenant_id IS :tenant_id",
            {"email": email.strip().lower(), "tenant_id": tenant_id},
        )
        return User.from_row(rows[0]) if rows else None

    async def count_users(self, tenant_id: str) -> int:
        """Count active users belonging to a tenant."""
        rows = await self.database.execute(
            "SELECT COUNT(*) AS total FROM users WHERE tenant_id = :tenant_id AND is_active = 1",
            {"tenant_id": tenant_id},
        )
        return rows[0].total if rows else 0

    async def deactivate_tenant_users(self, tenant_id: str) -> None:
        """Disable login for every user of a tenant."""
        await self.database.execute(
            "UPDATE users SET is_active = 0, updated_at = :now WHERE tenant_id = :tenant_id",
            {"now": time.time(), "tenant_id": tenant_id},
        )

    async def login(
        self,
        email: str,
        password: str,
        tenant_id: str | None = None,
    ) -> AuthTokens:
        """Login with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid or the user is disabled
        """
        try:
            email = validate_email(email)
        except ValueError as e:
            raise InvalidCredentialsError("Invalid email or password") from e

        rows = await self.database.execute(
            "SELECT * FROM users WHERE email = :email AND tenant_id IS :tenant_id",
            {"email": email, "tenant_id": tenant_id},
        )
        if not rows or not rows[0].is_active:
            emit_counter("auth.login.failed")
            raise InvalidCredentialsError("Invalid email or password")

        row = rows[0]
        try:
            verify_password(password, row.password_hash)
        except InvalidCredentialsError:
            emit_counter("auth.login.failed")
            logger.warning("Login failed", context={"tenant": tenant_id})
            raise InvalidCredentialsError("Invalid email or password") from None

        now = time.time()
        if needs_rehash(row.password_hash):
            await self.database.execute(
                "UPDATE users SET password_hash = :hash, updated_at = :now WHERE id = :id",
                {"hash": hash_password(password), "now": now, "id": row.id},
            )
        await self.database.execute(
            "UPDATE users SET last_login_at = :now WHERE id = :id",
            {"now": now, "id": row.id},
        )

        user = User.from_row(row)
        emit_counter("auth.login.succeeded")
        return await self.issue_tokens(user)

    async def issue_tokens(self, user: User, include_refresh: bool = True) -> AuthTokens:
        """Issue access (and refresh) tokens for a user."""
        jwt_config = self.config.jwt
        roles = await self.permissions.get_user_roles(user.id, user.tenant_id)

        access_token = create_access_token(
            user_id=user.id,
            tenant_id=user.tenant_id,
            private_key=self.key_pair.private_key,
            key_id=self.key_pair.key_id,
            issuer=jwt_config.issuer,
            expiry_minutes=jwt_config.expiry_minutes,
            email=user.email,
            roles=roles,
        )
        refresh_token = None
        if include_refresh:
            refresh_token = create_refresh_token(
                user_id=user.id,
                tenant_id=user.tenant_id,
                private_key=self.key_pair.private_key,
                key_id=self.key_pair.key_id,
                issuer=jwt_config.issuer,
                expiry_days=jwt_config.refresh_expiry_days,
            )

        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=jwt_config.expiry_minutes * 60,
        )

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new access token.

        Raises:
            TokenExpiredError: If refresh token has expired
            TokenInvalidError: If the token is not a refresh token or the user is gone
        """
        payload = decode_token(
            refresh_token,
            self.key_pair.public_key,
            issuer=self.config.jwt.issuer,
        )
        if payload.token_type != "refresh":
            raise TokenInvalidError("Not a refresh token")

        try:
            user = await self.get_user(payload.user_id)
        except UserNotFoundError as e:
            raise TokenInvalidError("Unknown user") from e
        if not user.is_active:
            raise TokenInvalidError("User is disabled")

        # Don't issue new refresh token
        return await self.issue_tokens(user, include_refresh=False)

    def validate_token(self, token: str) -> TokenPayload:
        """Validate an access token.

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid or not an access token
        """
        payload = decode_token(
            token,
            self.key_pair.public_key,
            issuer=self.config.jwt.issuer,
        )
        if payload.token_type != "access":
            raise TokenInvalidError("Not an access token")
        return payload
