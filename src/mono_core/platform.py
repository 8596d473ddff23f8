"""Main Platform class for mono-core."""

import argparse
import asyncio
from pathlib import Path
from typing import Any

from mono_core.auth.jwt_utils import JWTKeyPair, load_key_pair
from mono_core.auth.manager import AuthManager
from mono_core.config import Config
from mono_core.observability import Timer, configure_logging, emit_timer, get_logger
from mono_core.permissions.manager import PermissionManager
from mono_core.permissions.seeder import SeedReport, seed_permissions
from mono_core.permissions.service import PermissionService, UserContext
from mono_core.plugins import create_database, create_kv_store
from mono_core.protocols import Database, KVStore
from mono_core.saved_searches.service import SavedSearchService
from mono_core.tenants.manager import TenantManager

logger = get_logger(__name__)

NOT_INITIALIZED = "Platform not initialized. Use async context manager or call initialize() first."


class Platform:
    """Wires backends, managers and services together.

    Example usage:
        # Load from config file
        platform = Platform.from_config("config.yaml")

        # Start HTTP server
        platform.serve(port=8080)

        # Or use directly
        async with Platform.from_dict({}) as platform:
            tenant = await platform.tenants.create_tenant("Acme", "acme", "ops@acme.io")
    """

    def __init__(self, config: Config) -> None:
        """Initialize the platform with configuration.

        Use `Platform.from_config()` for convenience.
        """
        self.config = config
        self._kv: KVStore | None = None
        self._db: Database | None = None
        self._key_pair: JWTKeyPair | None = None
        self._permission_manager: PermissionManager | None = None
        self._permissions: PermissionService | None = None
        self._auth: AuthManager | None = None
        self._tenants: TenantManager | None = None
        self._saved_searches: SavedSearchService | None = None
        self._seed_report: SeedReport | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, path: str | Path) -> "Platform":
        """Create a Platform from a configuration file.

        Args:
            path: Path to YAML or JSON configuration file

        Returns:
            Configured Platform instance
        """
        config = Config.from_file(path)
        return cls(config)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Platform":
        """Create a Platform from a configuration dictionary."""
        config = Config.from_dict(config_dict)
        return cls(config)

    async def initialize(self) -> None:
        """Build backends, create schemas and seed permissions."""
        await self._ensure_initialized()

    async def _ensure_initialized(self) -> None:
        """Lazily initialize backends on first use.

        Uses lock to prevent concurrent initialization.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            await self._do_initialize()

    async def _do_initialize(self) -> None:
        """Perform actual initialization (called under lock)."""
        with Timer() as timer:
            logger.info("Initializing platform backends")

            kv_config = self.config.storage.kv
            self._kv = create_kv_store(
                kv_config.backend,
                redis_url=kv_config.redis_url,
                key_prefix=kv_config.key_prefix,
            )

            db_config = self.config.storage.database
            self._db = create_database(db_config.backend, path=db_config.path)

            rbac = self.config.rbac
            self._permission_manager = PermissionManager(self._db)
            self._permissions = PermissionService(
                self._permission_manager,
                self._kv,
                ttl_seconds=rbac.cache_ttl_seconds,
                scope_inheritance=rbac.scope_inheritance,
                cache_prefix=rbac.cache_prefix,
            )
            self._auth = AuthManager(
                self.config.auth,
                self._db,
                self.key_pair,
                self._permission_manager,
            )
            self._tenants = TenantManager(
                self._db,
                permissions=self._permission_manager,
                auth=self._auth,
                cache_ttl_seconds=self.config.tenants.cache_ttl_seconds,
                defaults=self.config.tenants.defaults,
            )
            self._saved_searches = SavedSearchService(
                self._db,
                cache_ttl_seconds=self.config.saved_searches.cache_ttl_seconds,
            )

            await self._permission_manager.initialize_schema()
            await self._auth.initialize_schema()
            await self._tenants.initialize_schema()
            await self._saved_searches.initialize_schema()

            if rbac.seed_on_startup:
                self._seed_report = await seed_permissions(self._permission_manager)

            self._initialized = True

        logger.info(
            "Platform backends initialized",
            context={"seeded": self._seed_report is not None},
            duration_ms=timer.duration_ms,
        )
        emit_timer("platform.init", timer.duration_ms)

    @property
    def key_pair(self) -> JWTKeyPair:
        """Get the RS256 key pair, loading or generating it on first use."""
        if self._key_pair is None:
            jwt_config = self.config.auth.jwt
            self._key_pair = load_key_pair(
                private_key_path=jwt_config.private_key_path,
                public_key_path=jwt_config.public_key_path,
                key_id=jwt_config.key_id,
            )
        return self._key_pair

    @property
    def kv(self) -> KVStore:
        """Get the KV storage backend."""
        if self._kv is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._kv

    @property
    def db(self) -> Database:
        """Get the database backend."""
        if self._db is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._db

    @property
    def permission_manager(self) -> PermissionManager:
        """Get the RBAC persistence layer."""
        if self._permission_manager is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._permission_manager

    @property
    def permissions(self) -> PermissionService:
        """Get the permission checker."""
        if self._permissions is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._permissions

    @property
    def auth(self) -> AuthManager:
        if self._auth is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._auth

    @property
    def tenants(self) -> TenantManager:
        if self._tenants is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._tenants

    @property
    def saved_searches(self) -> SavedSearchService:
        if self._saved_searches is None:
            raise RuntimeError(NOT_INITIALIZED)
        return self._saved_searches

    @property
    def seed_report(self) -> SeedReport | None:
        """Report from the startup seed, if one ran."""
        return self._seed_report

    async def has_permission(
        self,
        user: UserContext,
        permission: str,
        tenant_id: str | None = None,
    ) -> bool:
        """Check a permission, initializing the platform if needed."""
        await self._ensure_initialized()
        return await self.permissions.has_permission(user, permission, tenant_id)

    async def seed(self) -> SeedReport:
        """Run the permission seeder against the configured database."""
        await self._ensure_initialized()
        report = await seed_permissions(self.permission_manager)
        await self.permissions.clear_all()
        return report

    def serve(
        self,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """Start the HTTP server.

        Args:
            host: Host to bind to (defaults to config value)
            port: Port to bind to (defaults to config value)
        """
        import uvicorn

        from mono_core.server.app import create_app

        app = create_app(self)
        uvicorn.run(
            app,
            host=host or self.config.server.host,
            port=port or self.config.server.port,
        )

    async def close(self) -> None:
        """Release backend connections."""
        if self._kv is not None:
            await self._kv.close()
        if self._db is not None:
            await self._db.close()

    async def __aenter__(self) -> "Platform":
        """Async context manager entry."""
        await self._ensure_initialized()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - cleanup resources."""
        await self.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mono-core", description="mono-core platform")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to a YAML or JSON configuration file",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")

    subparsers.add_parser("seed", help="Seed permissions, roles and permission sets")
    return parser


async def _run_seed(platform: Platform) -> SeedReport:
    async with platform:
        return await platform.seed()


def main(argv: list[str] | None = None) -> None:
    """Command line entry point."""
    args = build_parser().parse_args(argv)
    platform = Platform.from_config(args.config) if args.config else Platform(Config())

    configure_logging(platform.config.logging.level, platform.config.logging.format)

    if args.command == "serve":
        platform.serve(host=args.host, port=args.port)
    elif args.command == "seed":
        report = asyncio.run(_run_seed(platform))
        logger.info("Seed complete", context=report.to_dict())


if __name__ == "__main__":
    main()
