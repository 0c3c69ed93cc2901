"""
Role lookup for the signed-in user and the command guard built on it.

A user linked to a row in ``centers`` is a center user scoped to that row's
lead vendor; every other signed-in user is an admin.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from ..adapters.query import QueryResult, TableQuery
from ..domain.exceptions import AccessDeniedError, DataStoreError
from ..domain.records import CENTERS_TABLE

logger = logging.getLogger(__name__)


class AccessRole(str, Enum):
    UNKNOWN = "unknown"
    ADMIN = "admin"
    CENTER = "center"


class RoleLookupClientProtocol(Protocol):
    """Protocol describing the client calls needed to resolve a role."""

    def execute(self, query: TableQuery) -> QueryResult:
        """Run a select query."""

    def get_user(self) -> Optional[Dict[str, Any]]:
        """Return the signed-in user, if any."""


class AccessRoleResolver:
    """
    Resolves and caches the access role of the signed-in user.

    One resolver lives for the whole process; ``reset`` forgets the role,
    for example after signing out.
    """

    def __init__(self, client: RoleLookupClientProtocol) -> None:
        self._client = client
        self._role = AccessRole.UNKNOWN
        self._lead_vendor: Optional[str] = None
        self._loading = False

    @property
    def role(self) -> AccessRole:
        return self._role

    @property
    def lead_vendor(self) -> Optional[str]:
        return self._lead_vendor

    @property
    def loading(self) -> bool:
        return self._loading

    def reset(self) -> None:
        self._role = AccessRole.UNKNOWN
        self._lead_vendor = None
        self._loading = False

    async def ensure_resolved(self) -> AccessRole:
        """Resolve the role unless it is already known or being resolved."""
        if self._role is AccessRole.UNKNOWN and not self._loading:
            await self.refresh()
        return self._role

    async def refresh(self) -> None:
        """
        Look up the signed-in user's center.

        A failed center lookup does not block the user: they are treated as
        admin and a warning is logged.
        """
        self._loading = True
        try:
            user = await asyncio.to_thread(self._client.get_user)

            if not user or not user.get("id"):
                self.reset()
                return

            query = (
                TableQuery(CENTERS_TABLE)
                .select("lead_vendor")
                .eq("user_id", user["id"])
                .maybe_single()
            )
            try:
                result = await asyncio.to_thread(self._client.execute, query)
            except DataStoreError as exc:
                logger.warning("Center lookup failed, treating user as admin: %s", exc)
                self._role = AccessRole.ADMIN
                self._lead_vendor = None
                return

            center = result.data
            if center and center.get("lead_vendor"):
                self._role = AccessRole.CENTER
                self._lead_vendor = center["lead_vendor"]
                return

            self._role = AccessRole.ADMIN
            self._lead_vendor = None
        finally:
            self._loading = False


# Commands a center user may run; everything else is admin-only.
CENTER_ALLOWED_COMMANDS = frozenset({"deals", "whoami", "login", "clear-cache", "version"})


class AccessGuard:
    """Keeps center users on the deal flow listing."""

    def __init__(self, resolver: AccessRoleResolver) -> None:
        self._resolver = resolver

    async def check(self, command: str) -> AccessRole:
        """
        Allow or refuse a command for the resolved role.

        Raises:
            AccessDeniedError: If a center user runs an admin-only command
        """
        role = await self._resolver.ensure_resolved()

        if role is AccessRole.CENTER and command not in CENTER_ALLOWED_COMMANDS:
            raise AccessDeniedError(
                f"Center users can only view the daily deal flow (tried '{command}')."
            )
        return role
