"""
API authentication using ``Authorization: Bearer <JWT>``.

Tokens are issued by the account service and only verified here. The
subject claim names the principal, which is then loaded from the users
table so role changes and deletions take effect immediately.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.api.dependencies import get_principal_repository
from src.auth.repository import PrincipalRepository
from src.auth.schemas import Principal
from src.config.settings import Settings, get_settings
from src.observability.logging import bind_context

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def create_access_token(
    subject: str,
    expires_minutes: int = 60,
    settings: Settings | None = None,
) -> str:
    """Issue a signed token for ``subject`` (used by tooling and tests)."""
    settings = settings or get_settings()
    claims: dict[str, Any] = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_subject(token: str, settings: Settings | None = None) -> str:
    """
    Verify a token and return its subject.

    Tokens from the legacy account service carry ``userId`` instead of
    ``sub``; both are accepted.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or has no subject.
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info("Rejected bearer token", reason=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=_UNAUTHORIZED_HEADERS,
        )

    subject = claims.get("sub") or claims.get("userId")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return str(subject)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    principals: PrincipalRepository = Depends(get_principal_repository),
) -> Principal:
    """
    Resolve the authenticated caller.

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the
            principal no longer exists.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token. Provide Authorization: Bearer <token>.",
            headers=_UNAUTHORIZED_HEADERS,
        )

    principal_id = decode_subject(credentials.credentials)
    principal = await principals.get_by_id(principal_id)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown principal",
            headers=_UNAUTHORIZED_HEADERS,
        )

    bind_context(principal_id=principal.principal_id)
    return principal


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Require the caller to hold the admin role.

    Raises:
        HTTPException: 403 for non-admin callers.
    """
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return principal
