"""
Reads from and pushes deal flow rows to the separate agent portal project.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Sequence

from ..adapters.query import TableQuery
from ..domain.records import DEAL_FLOW_TABLE
from .deal_flow_service import DataStoreClientProtocol

logger = logging.getLogger(__name__)

AGENTS_TABLE = "agents"

# Columns the portal assigns itself.
SERVER_COLUMNS = ("id", "created_at", "updated_at")


class AgentPortalService:
    """Agent roster lookups and deal flow sync against the agent portal."""

    def __init__(self, client: DataStoreClientProtocol) -> None:
        self._client = client

    async def fetch_agents(self) -> List[Dict[str, Any]]:
        result = await asyncio.to_thread(self._client.execute, TableQuery(AGENTS_TABLE).select("*"))
        return result.data or []

    async def sync_entries(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Copy deal flow rows into the portal's ``daily_deal_flow`` table.

        Raises:
            DataStoreError: If the portal rejects the insert
        """
        if not rows:
            return []

        payload = [
            {key: value for key, value in row.items() if key not in SERVER_COLUMNS}
            for row in rows
        ]
        stored = await asyncio.to_thread(self._client.insert, DEAL_FLOW_TABLE, payload)
        logger.info("Synced %d rows to the agent portal", len(stored))
        return stored
