"""Principals consumed from the account store."""

from src.auth.repository import PrincipalRepository
from src.auth.schemas import Principal, Role

__all__ = ["Principal", "PrincipalRepository", "Role"]
