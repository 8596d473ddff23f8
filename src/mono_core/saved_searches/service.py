"""Saved list views with system, tenant and user layers.

A user sees their own searches, their tenant's searches and system
searches for an entity type. When two layers define a search with the
same name, the more specific layer wins, but only if the less specific
search allows overriding.
"""

import json
import math
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any
from uuid import uuid4

from mono_core.caching import TTLCache
from mono_core.exceptions import (
    PermissionDeniedError,
    SavedSearchConflictError,
    SavedSearchNotFoundError,
)
from mono_core.observability import emit_counter, get_logger
from mono_core.protocols import Database
from mono_core.utils.validation import validate_identifier

logger = get_logger(__name__)

SCOPES = ("system", "tenant", "user")
SCOPE_PRIORITY = {"system": 1, "tenant": 2, "user": 3}
SORT_ORDERS = ("asc", "desc")
ADMIN_SORT_COLUMNS = ("name", "updated_at", "created_at", "entity_type")

UPDATABLE_FIELDS = frozenset({
    "name",
    "description",
    "filters",
    "sort_by",
    "sort_order",
    "column_config",
    "search_value",
    "pagination_limit",
    "is_default",
    "is_public",
})

_JSON_FIELDS = ("filters", "column_config")
_BOOL_FIELDS = ("is_default", "is_public")


@dataclass
class ViewState:
    """What a list page needs to restore a saved search."""

    filters: dict[str, list[str]] = field(default_factory=dict)
    sort_config: dict[str, str] | None = None
    column_visibility: dict[str, bool] = field(default_factory=dict)
    search_value: str | None = None
    pagination_limit: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filters": self.filters,
            "sort_config": self.sort_config,
            "column_visibility": self.column_visibility,
            "search_value": self.search_value,
            "pagination_limit": self.pagination_limit,
        }


@dataclass
class SavedSearch:
    """A saved list view."""

    id: int
    uuid: str
    user_id: str | None
    tenant_id: str | None
    scope: str
    name: str
    entity_type: str
    created_at: float
    updated_at: float
    parent_search_id: int | None = None
    is_inherited: bool = False
    can_override: bool = True
    is_template: bool = False
    description: str | None = None
    filters: dict[str, Any] = field(default_factory=dict)
    sort_by: str | None = None
    sort_order: str | None = None
    column_config: dict[str, bool] | None = None
    search_value: str | None = None
    pagination_limit: int | None = None
    is_default: bool = False
    is_public: bool = False
    is_active: bool = True
    created_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "uuid": self.uuid,
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "scope": self.scope,
            "parent_search_id": self.parent_search_id,
            "is_inherited": self.is_inherited,
            "can_override": self.can_override,
            "is_template": self.is_template,
            "name": self.name,
            "description": self.description,
            "entity_type": self.entity_type,
            "filters": self.filters,
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
            "column_config": self.column_config,
            "search_value": self.search_value,
            "pagination_limit": self.pagination_limit,
            "is_default": self.is_default,
            "is_public": self.is_public,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: Any) -> "SavedSearch":
        """Create from database row."""
        return cls(
            id=row.id,
            uuid=row.uuid,
            user_id=row.user_id,
            tenant_id=row.tenant_id,
            scope=row.scope,
            parent_search_id=row.parent_search_id,
            is_inherited=bool(row.is_inherited),
            can_override=bool(row.can_override),
            is_template=bool(row.is_template),
            name=row.name,
            description=row.description,
            entity_type=row.entity_type,
            filters=json.loads(row.filters) if row.filters else {},
            sort_by=row.sort_by,
            sort_order=row.sort_order,
            column_config=json.loads(row.column_config) if row.column_config else None,
            search_value=row.search_value,
            pagination_limit=row.pagination_limit,
            is_default=bool(row.is_default),
            is_public=bool(row.is_public),
            is_active=bool(row.is_active),
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_view_state(self) -> ViewState:
        """Convert into the state a list page applies.

        Filter values are normalized to lists of strings and null values
        are dropped.
        """
        filters: dict[str, list[str]] = {}
        for key, value in (self.filters or {}).items():
            if isinstance(value, list):
                filters[key] = [str(v) for v in value]
            elif value is not None:
                filters[key] = [str(value)]

        sort_config = None
        if self.sort_by:
            sort_config = {"column": self.sort_by, "direction": self.sort_order or "asc"}

        return ViewState(
            filters=filters,
            sort_config=sort_config,
            column_visibility=dict(self.column_config or {}),
            search_value=self.search_value,
            pagination_limit=self.pagination_limit,
        )


@dataclass
class SavedSearchList:
    """Resolved searches for one user and entity type."""

    searches: list[SavedSearch]
    default_search: SavedSearch | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "searches": [s.to_dict() for s in self.searches],
            "default_search": self.default_search.to_dict() if self.default_search else None,
        }


@dataclass
class SavedSearchPage:
    """One page of the admin listing."""

    items: list[SavedSearch]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [s.to_dict() for s in self.items],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "total_pages": self.total_pages,
                "has_more": self.has_more,
            },
        }


def _sort_key(search: SavedSearch) -> tuple[int, bool, str]:
    return (SCOPE_PRIORITY.get(search.scope, 0), not search.is_default, search.name.lower())


def resolve_inheritance(searches: list[SavedSearch], user_id: str) -> list[SavedSearch]:
    """Collapse same-named searches so user beats tenant beats system.

    A more specific search only replaces a less specific one when the
    less specific one allows overriding. Between two searches of the
    same scope, the user's own search wins.
    """
    resolved: dict[str, SavedSearch] = {}

    for search in sorted(searches, key=_sort_key):
        key = f"{search.entity_type}:{search.name.lower()}"
        existing = resolved.get(key)
        if existing is None:
            resolved[key] = search
            continue

        priority = SCOPE_PRIORITY.get(search.scope, 0)
        existing_priority = SCOPE_PRIORITY.get(existing.scope, 0)
        if priority > existing_priority:
            if existing.can_override:
                resolved[key] = replace(
                    search,
                    is_inherited=search.scope != "user" or search.user_id != user_id,
                )
        elif priority == existing_priority and search.user_id == user_id:
            resolved[key] = search

    return sorted(resolved.values(), key=_sort_key)


class SavedSearchService:
    """Stores and resolves saved searches.

    Example:
        service = SavedSearchService(db)
        await service.create("user-1", "tenant-1", "users", "Active", {"status": "active"})
        listing = await service.list_available("user-1", "tenant-1", "users")
    """

    def __init__(self, db: Database, cache_ttl_seconds: int = 300) -> None:
        self.db = db
        self._cache: TTLCache[SavedSearchList] = TTLCache(ttl_seconds=cache_ttl_seconds)

    async def initialize_schema(self) -> None:
        """Initialize the saved searches schema in the database."""
        schema = (Path(__file__).parent / "schema.sql").read_text()
        for statement in schema.split(";"):
            statement = statement.strip()
            if statement:
                await self.db.execute(statement)

    async def _invalidate(self, search: SavedSearch) -> None:
        if search.scope == "system":
            await self._cache.invalidate_tag(f"entity:{search.entity_type}")
        elif search.tenant_id is not None:
            await self._cache.invalidate_tag(f"tenant:{search.tenant_id}")
        if search.user_id is not None:
            await self._cache.invalidate_tag(f"user:{search.user_id}")

    async def _fetch(self, search_id: int) -> SavedSearch | None:
        rows = await self.db.execute(
            "SELECT * FROM saved_searches WHERE id = :id",
            {"id": search_id},
        )
        return SavedSearch.from_row(rows[0]) if rows else None

    async def list_available(
        self,
        user_id: str,
        tenant_id: str | None,
        entity_type: str,
        scope: str = "all",
        include_public: bool = False,
        include_inherited: bool = True,
    ) -> SavedSearchList:
        """Resolve every search a user can apply to an entity type.

        Args:
            user_id: Acting user
            tenant_id: User's tenant
            entity_type: List the searches apply to (e.g. "users")
            scope: "all", "user", "tenant" or "system"
            include_public: Also include other users' public searches in the tenant
            include_inherited: Include tenant and system searches

        Returns:
            Resolved searches ordered system, tenant, user; default first, then name
        """
        if scope != "all" and scope not in SCOPES:
            raise ValueError(f"Invalid scope: {scope}")

        cache_key = (
            f"saved_searches:{tenant_id or 'global'}:{user_id}:{entity_type}:"
            f"{scope}:{int(include_public)}:{int(include_inherited)}"
        )

        async def load() -> SavedSearchList:
            return await self._load_available(
                user_id, tenant_id, entity_type, scope, include_public, include_inherited
            )

        tags = [f"user:{user_id}", f"entity:{entity_type}"]
        if tenant_id is not None:
            tags.append(f"tenant:{tenant_id}")
        return await self._cache.get_or_set(cache_key, load, tags=tags)

    async def _load_available(
        self,
        user_id: str,
        tenant_id: str | None,
        entity_type: str,
        scope: str,
        include_public: bool,
        include_inherited: bool,
    ) -> SavedSearchList:
        conditions: list[tuple[str, str]] = [
            ("user", "(scope = 'user' AND user_id = :user_id AND tenant_id IS :tenant_id)"),
        ]
        if include_inherited and scope != "user":
            conditions.append(("tenant", "(scope = 'tenant' AND tenant_id = :tenant_id)"))
        if include_inherited and scope not in ("user", "tenant"):
            conditions.append(("system", "(scope = 'system')"))
        if include_public:
            conditions.append(
                ("user", "(scope = 'user' AND tenant_id = :tenant_id AND is_public = 1)")
            )
        if scope != "all":
            conditions = [c for c in conditions if c[0] == scope]
        if not conditions:
            return SavedSearchList(searches=[])

        rows = await self.db.execute(
            f"""
            SELECT * FROM saved_searches
            WHERE entity_type = :entity_type AND is_active = 1
              AND ({' OR '.join(sql for _, sql in conditions)})
            """,
            {"entity_type": entity_type, "user_id": user_id, "tenant_id": tenant_id},
        )
        searches = resolve_inheritance([SavedSearch.from_row(r) for r in rows], user_id)
        default = next(
            (s for s in searches if s.is_default and (s.user_id == user_id or s.scope != "user")),
            None,
        )

        logger.debug(
            "Saved searches resolved",
            context={"entity_type": entity_type, "count": len(searches), "has_default": default is not None},
        )
        return SavedSearchList(searches=searches, default_search=default)

    async def _ensure_unique_name(
        self,
        owner_user: str | None,
        owner_tenant: str | None,
        scope: str,
        entity_type: str,
        name: str,
        exclude_id: int | None = None,
    ) -> None:
        rows = await self.db.execute(
            """
            SELECT id FROM saved_searches
            WHERE user_id IS :user_id AND tenant_id IS :tenant_id AND scope = :scope
              AND entity_type = :entity_type AND LOWER(name) = LOWER(:name)
              AND is_active = 1 AND id IS NOT :exclude_id
            """,
            {
                "user_id": owner_user,
                "tenant_id": owner_tenant,
                "scope": scope,
                "entity_type": entity_type,
                "name": name,
                "exclude_id": exclude_id,
            },
        )
        if rows:
            raise SavedSearchConflictError(
                f'A saved search with name "{name}" already exists for {entity_type}'
            )

    async def _clear_default(
        self,
        owner_user: str | None,
        owner_tenant: str | None,
        scope: str,
        entity_type: str,
        exclude_id: int | None = None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE saved_searches SET is_default = 0, updated_at = :now
            WHERE user_id IS :user_id AND tenant_id IS :tenant_id AND scope = :scope
              AND entity_type = :entity_type AND is_default = 1 AND id IS NOT :exclude_id
            """,
            {
                "now": time.time(),
                "user_id": owner_user,
                "tenant_id": owner_tenant,
                "scope": scope,
                "entity_type": entity_type,
                "exclude_id": exclude_id,
            },
        )

    @staticmethod
    def _validate_fields(values: dict[str, Any]) -> None:
        if "name" in values and not (values["name"] or "").strip():
            raise ValueError("Saved search name cannot be empty")
        sort_order = values.get("sort_order")
        if sort_order is not None and sort_order not in SORT_ORDERS:
            raise ValueError(f"Invalid sort order: {sort_order}")
        limit = values.get("pagination_limit")
        if limit is not None and (not isinstance(limit, int) or limit < 1):
            raise ValueError("pagination_limit must be a positive integer")
        if "filters" in values and not isinstance(values["filters"], dict):
            raise ValueError("filters must be an object")

    async def create(
        self,
        user_id: str,
        tenant_id: str | None,
        entity_type: str,
        name: str,
        filters: dict[str, Any],
        description: str | None = None,
        scope: str = "user",
        sort_by: str | None = None,
        sort_order: str | None = None,
        column_config: dict[str, bool] | None = None,
        search_value: str | None = None,
        pagination_limit: int | None = None,
        is_default: bool = False,
        is_public: bool = False,
        can_override: bool = True,
        is_template: bool = False,
        parent_search_id: int | None = None,
        created_by: str | None = None,
    ) -> SavedSearch:
        """Create a saved search.

        The scope decides ownership: user searches belong to the user and
        tenant, tenant searches to the tenant, system searches to nobody.
        created_by defaults to user_id.

        Raises:
            ValueError: If any field is invalid
            SavedSearchConflictError: If the owner already has an active search with this name
        """
        if scope not in SCOPES:
            raise ValueError(f"Invalid scope: {scope}")
        entity_type = validate_identifier(entity_type, "entity type")
        self._validate_fields({
            "name": name,
            "filters": filters,
            "sort_order": sort_order,
            "pagination_limit": pagination_limit,
        })
        name = name.strip()

        owner_user = user_id if scope == "user" else None
        owner_tenant = None if scope == "system" else tenant_id

        await self._ensure_unique_name(owner_user, owner_tenant, scope, entity_type, name)
        if is_default:
            await self._clear_default(owner_user, owner_tenant, scope, entity_type)

        now = time.time()
        search_uuid = str(uuid4())
        await self.db.execute(
            """
            INSERT INTO saved_searches
            (uuid, user_id, tenant_id, scope, parent_search_id, is_inherited, can_override,
             is_template, name, description, entity_type, filters, sort_by, sort_order,
             column_config, search_value, pagination_limit, is_default, is_public, is_active,
             created_by, created_at, updated_at)
            VALUES (:uuid, :user_id, :tenant_id, :scope, :parent_search_id, :is_inherited,
                    :can_override, :is_template, :name, :description, :entity_type, :filters,
                    :sort_by, :sort_order, :column_config, :search_value, :pagination_limit,
                    :is_default, :is_public, 1, :created_by, :created_at, :updated_at)
            """,
            {
                "uuid": search_uuid,
                "user_id": owner_user,
                "tenant_id": owner_tenant,
                "scope": scope,
                "parent_search_id": parent_search_id,
                "is_inherited": int(parent_search_id is not None),
                "can_override": int(can_override),
                "is_template": int(is_template),
                "name": name,
                "description": description.strip() if description else None,
                "entity_type": entity_type,
                "filters": json.dumps(filters),
                "sort_by": sort_by,
                "sort_order": sort_order,
                "column_config": json.dumps(column_config) if column_config is not None else None,
                "search_value": search_value,
                "pagination_limit": pagination_limit,
                "is_default": int(is_default),
                "is_public": int(is_public),
                "created_by": created_by or user_id,
                "created_at": now,
                "updated_at": now,
            },
        )

        rows = await self.db.execute(
            "SELECT * FROM saved_searches WHERE uuid = :uuid",
            {"uuid": search_uuid},
        )
        search = SavedSearch.from_row(rows[0])
        await self._invalidate(search)

        logger.info(
            "Saved search created",
            context={"search_id": search.id, "scope": scope, "entity_type": entity_type},
        )
        emit_counter("saved_searches.created", {"scope": scope})
        return search

    async def _get_owned(self, user_id: str, tenant_id: str | None, search_id: int) -> SavedSearch:
        rows = await self.db.execute(
            """
            SELECT * FROM saved_searches
            WHERE id = :id AND is_active = 1 AND tenant_id IS :tenant_id
              AND (user_id = :user_id OR (user_id IS NULL AND created_by = :user_id))
            """,
            {"id": search_id, "tenant_id": tenant_id, "user_id": user_id},
        )
        if not rows:
            raise SavedSearchNotFoundError("Saved search not found or access denied")
        return SavedSearch.from_row(rows[0])

    async def update(
        self,
        user_id: str,
        tenant_id: str | None,
        search_id: int,
        **changes: Any,
    ) -> SavedSearch:
        """Update a search the user owns.

        Raises:
            ValueError: If a field is unknown or invalid
            SavedSearchNotFoundError: If not found or not owned by the user
            SavedSearchConflictError: If renamed onto another active search
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        self._validate_fields(changes)

        search = await self._get_owned(user_id, tenant_id, search_id)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if changes["name"].lower() != search.name.lower():
                await self._ensure_unique_name(
                    search.user_id, search.tenant_id, search.scope,
                    search.entity_type, changes["name"], exclude_id=search_id,
                )
        if changes.get("is_default"):
            await self._clear_default(
                search.user_id, search.tenant_id, search.scope,
                search.entity_type, exclude_id=search_id,
            )
        if not changes:
            return search

        params: dict[str, Any] = {"id": search_id, "updated_at": time.time()}
        for key, value in changes.items():
            if key in _JSON_FIELDS:
                value = json.dumps(value) if value is not None else None
            elif key in _BOOL_FIELDS:
                value = int(bool(value))
            params[key] = value
        assignments = ", ".join(f"{key} = :{key}" for key in changes)

        await self.db.execute(
            f"UPDATE saved_searches SET {assignments}, updated_at = :updated_at WHERE id = :id",
            params,
        )
        updated = await self._fetch(search_id)
        await self._invalidate(updated)
        logger.info("Saved search updated", context={"search_id": search_id, "fields": sorted(changes)})
        return updated

    async def delete(self, user_id: str, tenant_id: str | None, search_id: int) -> None:
        """Soft-delete a search the user owns.

        Raises:
            SavedSearchNotFoundError: If not found or not owned by the user
        """
        search = await self._get_owned(user_id, tenant_id, search_id)
        await self.db.execute(
            """
            UPDATE saved_searches SET is_active = 0, is_default = 0, updated_at = :now
            WHERE id = :id
            """,
            {"now": time.time(), "id": search_id},
        )
        await self._invalidate(search)
        logger.info("Saved search deleted", context={"search_id": search_id})
        emit_counter("saved_searches.deleted")

    async def get(self, user_id: str, tenant_id: str | None, search_id: int) -> SavedSearch:
        """Get a search visible to the user.

        Visible means the user's own search, a tenant search of the user's
        tenant, a system search, or a public search in the same tenant.

        Raises:
            SavedSearchNotFoundError: If missing or not visible
        """
        rows = await self.db.execute(
            """
            SELECT * FROM saved_searches
            WHERE id = :id AND is_active = 1
              AND (user_id = :user_id
                   OR scope = 'system'
                   OR (scope = 'tenant' AND tenant_id = :tenant_id)
                   OR (is_public = 1 AND tenant_id = :tenant_id))
            """,
            {"id": search_id, "user_id": user_id, "tenant_id": tenant_id},
        )
        if not rows:
            raise SavedSearchNotFoundError(f"Saved search not found: {search_id}")
        return SavedSearch.from_row(rows[0])

    async def create_override(
        self,
        user_id: str,
        tenant_id: str | None,
        parent_id: int,
        **modifications: Any,
    ) -> SavedSearch:
        """Create a user-scoped copy of a visible search.

        Unspecified fields are inherited from the parent. The copy keeps a
        link to its parent.

        Raises:
            SavedSearchNotFoundError: If the parent is not visible
            PermissionDeniedError: If the parent does not allow overriding
        """
        unknown = set(modifications) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot override fields: {', '.join(sorted(unknown))}")

        parent = await self.get(user_id, tenant_id, parent_id)
        if not parent.can_override:
            raise PermissionDeniedError("This search cannot be overridden")

        def pick(key: str) -> Any:
            value = modifications.get(key)
            return value if value is not None else getattr(parent, key)

        return await self.create(
            user_id,
            tenant_id,
            parent.entity_type,
            modifications.get("name") or f"{parent.name} (Custom)",
            pick("filters"),
            description=pick("description"),
            scope="user",
            sort_by=pick("sort_by"),
            sort_order=pick("sort_order"),
            column_config=pick("column_config"),
            search_value=pick("search_value"),
            pagination_limit=pick("pagination_limit"),
            is_default=bool(modifications.get("is_default", False)),
            is_public=bool(modifications.get("is_public", False)),
            parent_search_id=parent.id,
        )

    async def promote_to_tenant(
        self,
        search_id: int,
        admin_user_id: str,
        tenant_id: str,
    ) -> SavedSearch:
        """Turn a user search into a public tenant search.

        The promoted search loses its user owner and its default flag,
        and records the promoting admin as creator.

        Raises:
            SavedSearchNotFoundError: If no active user search exists in the tenant
            SavedSearchConflictError: If the tenant already has a search with this name
        """
        rows = await self.db.execute(
            """
            SELECT * FROM saved_searches
            WHERE id = :id AND scope = 'user' AND tenant_id = :tenant_id AND is_active = 1
            """,
            {"id": search_id, "tenant_id": tenant_id},
        )
        if not rows:
            raise SavedSearchNotFoundError("User search not found or cannot be promoted")
        original = SavedSearch.from_row(rows[0])

        await self._ensure_unique_name(
            None, tenant_id, "tenant", original.entity_type, original.name, exclude_id=search_id
        )
        await self.db.execute(
            """
            UPDATE saved_searches
            SET scope = 'tenant', user_id = NULL, is_public = 1, is_default = 0,
                created_by = :created_by, updated_at = :now
            WHERE id = :id
            """,
            {"created_by": admin_user_id, "now": time.time(), "id": search_id},
        )

        await self._invalidate(original)
        promoted = await self._fetch(search_id)
        await self._invalidate(promoted)

        logger.info(
            "Saved search promoted to tenant",
            context={"search_id": search_id, "tenant": tenant_id, "previous_owner": original.user_id},
        )
        return promoted

    async def admin_create(
        self,
        admin_user_id: str,
        user_id: str,
        tenant_id: str | None,
        entity_type: str,
        name: str,
        filters: dict[str, Any],
        description: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        column_config: dict[str, bool] | None = None,
        is_default: bool = False,
        is_public: bool = False,
    ) -> SavedSearch:
        """Create a user search on behalf of another user.

        The search belongs to user_id in tenant_id and records the admin
        as its creator. Duplicate names and defaults are handled as in
        create().

        Raises:
            ValueError: If the user, tenant or any field is missing or invalid
            SavedSearchConflictError: If the user already has an active search with this name
        """
        if not user_id:
            raise ValueError("User ID is required")
        if not tenant_id:
            raise ValueError("Tenant ID is required")

        search = await self.create(
            user_id,
            tenant_id,
            entity_type,
            name,
            filters,
            description=description,
            sort_by=sort_by,
            sort_order=sort_order,
            column_config=column_config,
            is_default=is_default,
            is_public=is_public,
            created_by=admin_user_id,
        )
        logger.info(
            "Saved search created by admin",
            context={"search_id": search.id, "owner": user_id, "admin": admin_user_id},
        )
        return search

    async def admin_list(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        entity_type: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        tenant_id: str | None = None,
    ) -> SavedSearchPage:
        """Paginated listing of active searches for administrators.

        Args:
            page: 1-based page number
            limit: Page size (1-100)
            search: Case-insensitive substring of name or description
            entity_type: Entity type filter
            sort_by: name, updated_at, created_at or entity_type
            sort_order: asc or desc
            tenant_id: Restrict to one tenant (None lists every tenant)

        Raises:
            ValueError: If sort_by or sort_order is not allowed
        """
        if sort_by not in ADMIN_SORT_COLUMNS:
            raise ValueError(
                f"Invalid sort_by parameter. Allowed values: {', '.join(ADMIN_SORT_COLUMNS)}"
            )
        if sort_order not in SORT_ORDERS:
            raise ValueError("Invalid sort_order parameter. Allowed values: asc, desc")
        page = max(1, page)
        limit = min(max(1, limit), 100)

        conditions = ["is_active = 1"]
        params: dict[str, Any] = {}
        if search and search.strip():
            conditions.append(
                "(LOWER(name) LIKE :search OR LOWER(COALESCE(description, '')) LIKE :search)"
            )
            params["search"] = f"%{search.strip().lower()}%"
        if entity_type:
            conditions.append("entity_type = :entity_type")
            params["entity_type"] = entity_type
        if tenant_id is not None:
            conditions.append("tenant_id = :tenant_id")
            params["tenant_id"] = tenant_id
        where = " AND ".join(conditions)

        count_rows = await self.db.execute(
            f"SELECT COUNT(*) AS total FROM saved_searches WHERE {where}", params
        )
        total = count_rows[0].total if count_rows else 0

        rows = await self.db.execute(
            f"""
            SELECT * FROM saved_searches WHERE {where}
            ORDER BY {sort_by} {sort_order.upper()}, id
            LIMIT :limit OFFSET :offset
            """,
            params | {"limit": limit, "offset": (page - 1) * limit},
        )
        return SavedSearchPage(
            items=[SavedSearch.from_row(r) for r in rows],
            page=page,
            limit=limit,
            total=total,
        )
