"""Principal records consumed from the ``users`` table.

The monitoring service does not manage accounts; it reads identity and
contact details for authorization and alert delivery.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Access level of an authenticated principal."""

    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """An authenticated caller or alert recipient.

    Attributes:
        principal_id: Stable identifier (``users.user_id``).
        username: Display name.
        email: Delivery address; None when the user has no address.
        role: Access level.
        created_at: Account creation time, if known.
    """

    principal_id: str
    username: str
    email: str | None = None
    role: Role = Role.USER
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {
            "principal_id": self.principal_id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
        }
