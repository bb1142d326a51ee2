"""Read-only access to principals in the ``users`` table."""

import logging
from typing import Any

from src.auth.schemas import Principal, Role
from src.storage.database import Database, storage_operation

logger = logging.getLogger(__name__)

_COLUMNS = "user_id, username, email, role, created_at"


class PrincipalRepository:
    """Looks up principals for authorization and recipient resolution."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_by_id(self, principal_id: str) -> Principal | None:
        """Get a principal by ID, or None if the account no longer exists."""
        sql = f"SELECT {_COLUMNS} FROM users WHERE user_id = $1"
        async with storage_operation("principal_select"):
            row = await self._db.fetchrow(sql, principal_id)
        return _row_to_principal(row) if row else None

    async def first_admin(self) -> Principal | None:
        """Get the longest-standing admin account, if any."""
        sql = f"""
            SELECT {_COLUMNS} FROM users
            WHERE role = 'admin'
            ORDER BY created_at ASC, user_id ASC
            LIMIT 1
        """
        async with storage_operation("principal_select"):
            row = await self._db.fetchrow(sql)
        return _row_to_principal(row) if row else None


def _row_to_principal(row: Any) -> Principal:
    """Convert an asyncpg Record to a Principal."""
    return Principal(
        principal_id=row["user_id"],
        username=row["username"],
        email=row["email"] or None,
        role=Role(row["role"]),
        created_at=row.get("created_at"),
    )
