"""Protocol interfaces for pluggable backends."""

from mono_core.protocols.database import Database, Row
from mono_core.protocols.kv_store import KVStore

__all__ = [
    "Database",
    "KVStore",
    "Row",
]
