"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .access_role import AccessGuard, AccessRole, AccessRoleResolver
from .chunked_fetcher import fetch_by_contiguous_ranges
from .deal_flow_service import DataStoreClientProtocol, DealFlowService

__all__ = [
    "AccessGuard",
    "AccessRole",
    "AccessRoleResolver",
    "DataStoreClientProtocol",
    "DealFlowService",
    "fetch_by_contiguous_ranges",
]
