"""Recipient resolution for alert dispatch.

A resolver maps a reading to the principal who should be notified, or
None when nobody should be. The API path notifies the authenticated
caller; the device stream has no caller and uses a configured fallback.
"""

import logging
from typing import Protocol

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.auth.repository import PrincipalRepository
from src.auth.schemas import Principal
from src.readings.schemas import Reading

logger = logging.getLogger(__name__)


class AlertRoutingConfig(BaseSettings):
    """Who receives alerts raised by device-originated readings."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        case_sensitive=False,
        extra="ignore",
    )

    fallback_principal_id: str | None = Field(
        default=None,
        description="Recipient for stream alerts; first admin when unset",
    )


class RecipientResolver(Protocol):
    async def __call__(self, reading: Reading) -> Principal | None: ...


class CallerResolver:
    """Resolves to the authenticated caller.

    Re-reads the principal so a deleted account fails closed.
    """

    def __init__(self, principals: PrincipalRepository, principal_id: str) -> None:
        self._principals = principals
        self._principal_id = principal_id

    async def __call__(self, reading: Reading) -> Principal | None:
        principal = await self._principals.get_by_id(self._principal_id)
        if principal is None:
            logger.warning(
                "Caller %s no longer exists; alert for reading %s has no recipient",
                self._principal_id,
                reading.reading_id,
            )
        return principal


class FallbackRecipientResolver:
    """Resolves device alerts to a configured principal, else the first admin."""

    def __init__(
        self,
        principals: PrincipalRepository,
        config: AlertRoutingConfig | None = None,
    ) -> None:
        self._principals = principals
        self._config = config or AlertRoutingConfig()

    async def __call__(self, reading: Reading) -> Principal | None:
        principal_id = self._config.fallback_principal_id
        if principal_id:
            principal = await self._principals.get_by_id(principal_id)
            if principal is not None:
                return principal
            logger.warning(
                "Configured alert recipient %s not found; falling back to first admin",
                principal_id,
            )
        return await self._principals.first_admin()
