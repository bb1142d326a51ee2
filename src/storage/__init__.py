"""Storage layer: connection pool and schema management."""

from src.storage.database import Database, storage_operation
from src.storage.schema import create_tables

__all__ = ["Database", "create_tables", "storage_operation"]
