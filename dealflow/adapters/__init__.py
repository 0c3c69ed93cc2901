"""
Adapters layer - External integrations (Supabase REST/auth, report files).
"""

from .mock_supabase_client import MockSupabaseAuthenticator, MockSupabaseClient
from .query import QueryResult, TableQuery
from .supabase_authenticator import SupabaseAuthenticator
from .supabase_client import SupabaseClient

__all__ = [
    "MockSupabaseAuthenticator",
    "MockSupabaseClient",
    "QueryResult",
    "SupabaseAuthenticator",
    "SupabaseClient",
    "TableQuery",
]
