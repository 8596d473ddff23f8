"""Configuration loading with environment variable substitution."""

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class PasswordAuthConfig(BaseModel):
    """Password policy for user accounts."""

    min_length: int = 12
    require_special: bool = True


class JWTConfig(BaseModel):
    """RS256 signing settings."""

    private_key_path: str | None = None
    public_key_path: str | None = None
    key_id: str = "mono-core-1"
    issuer: str = "mono-core"
    expiry_minutes: int = 15
    refresh_expiry_days: int = 30


class AuthConfig(BaseModel):
    """Authentication configuration."""

    password: PasswordAuthConfig = Field(default_factory=PasswordAuthConfig)
    jwt: JWTConfig = Field(default_factory=JWTConfig)


class RBACConfig(BaseModel):
    """Permission system configuration."""

    cache_ttl_seconds: int = 300
    cache_prefix: str = "permissions"
    scope_inheritance: bool = True
    seed_on_startup: bool = True
    admin_roles: list[str] = Field(
        default_factory=lambda: ["super_admin", "tenant_admin", "content_moderator"]
    )


class KVStorageConfig(BaseModel):
    """KV storage backend configuration."""

    backend: str = "memory"
    # Backend-specific settings
    redis_url: str | None = None
    key_prefix: str = "mono"


class DatabaseStorageConfig(BaseModel):
    """Database backend configuration."""

    backend: str = "sqlite"
    path: str | None = None  # For SQLite


class StorageConfig(BaseModel):
    """Storage backends configuration."""

    kv: KVStorageConfig = Field(default_factory=KVStorageConfig)
    database: DatabaseStorageConfig = Field(default_factory=DatabaseStorageConfig)


class TenantDefaultsConfig(BaseModel):
    """Defaults applied to newly created tenants."""

    status: str = "trial"
    tenant_type: str = "standard"
    admin_role: str = "tenant_admin"
    settings: dict[str, Any] = Field(default_factory=dict)
    limits: dict[str, Any] = Field(default_factory=dict)


class TenantsConfig(BaseModel):
    """Tenant management configuration."""

    cache_ttl_seconds: int = 300
    defaults: TenantDefaultsConfig = Field(default_factory=TenantDefaultsConfig)


class SavedSearchesConfig(BaseModel):
    """Saved search configuration."""

    cache_ttl_seconds: int = 300
    default_page_size: int = 20


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    level: str = "INFO"
    format: str = "json"  # json | text


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=list)


class Config(BaseModel):
    """Main configuration for mono-core."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    rbac: RBACConfig = Field(default_factory=RBACConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    tenants: TenantsConfig = Field(default_factory=TenantsConfig)
    saved_searches: SavedSearchesConfig = Field(default_factory=SavedSearchesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        # Substitute environment variables
        data = substitute_env_vars(data or {})
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
