"""
Supabase REST client for reading and writing deal flow tables.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

import requests

from ..domain.exceptions import DataStoreError
from .query import MAYBE_SINGLE, SINGLE, QueryResult, TableQuery, match_params

logger = logging.getLogger(__name__)

_CONTENT_RANGE = re.compile(r"^(?:\d+-\d+|\*)/(\d+|\*)$")


class SupabaseClient:
    """
    Client for the Supabase PostgREST and auth endpoints.

    Built once by the application's composition root and passed to the
    services that need it. Row filters go in the query string, paging in the
    ``Range`` header, and the exact count comes back in ``Content-Range``.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: int = 30,
    ):
        """
        Initialize the client.

        Args:
            url: Project URL, e.g. ``https://xyz.supabase.co``
            api_key: Project anon or service key
            access_token: Signed-in user's JWT; row-level security applies to it
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.rest_url = f"{self.url}/rest/v1"
        self.timeout = timeout
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Content-Type": "application/json",
        }
        self._authenticated = access_token is not None

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise DataStoreError(f"Request to Supabase failed: {e}") from e

        if not response.ok:
            raise DataStoreError(
                f"Supabase returned {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason
        if isinstance(body, dict):
            return body.get("message") or body.get("msg") or body.get("error_description") or str(body)
        return str(body)

    @staticmethod
    def _parse_count(response: requests.Response) -> Optional[int]:
        match = _CONTENT_RANGE.match(response.headers.get("Content-Range", ""))
        if not match or match.group(1) == "*":
            return None
        return int(match.group(1))

    def execute(self, query: TableQuery) -> QueryResult:
        """
        Run a select query.

        Raises:
            DataStoreError: If the request fails, or a single-row query does
                not match exactly one row (``maybe_single``: more than one)
        """
        headers: Dict[str, str] = {}
        if query.count_mode:
            headers["Prefer"] = f"count={query.count_mode}"
        range_header = query.range_header()
        if range_header:
            headers["Range-Unit"] = "items"
            headers["Range"] = range_header
        if query.cardinality == SINGLE:
            headers["Accept"] = "application/vnd.pgrst.object+json"

        response = self._request(
            "GET",
            f"{self.rest_url}/{query.table}",
            params=query.to_params(),
            headers=headers,
        )
        data = response.json()
        count = self._parse_count(response)

        if query.cardinality == MAYBE_SINGLE:
            if len(data) > 1:
                raise DataStoreError(f"Expected at most one row from {query.table}, got {len(data)}")
            data = data[0] if data else None

        logger.debug("%r returned %s rows (count=%s)", query, 1 if isinstance(data, dict) else len(data or []), count)
        return QueryResult(data=data, count=count)

    def insert(self, table: str, rows: Any) -> List[Dict[str, Any]]:
        """Insert one row or a list of rows and return what was stored."""
        response = self._request(
            "POST",
            f"{self.rest_url}/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update rows matching every ``match`` column and return them."""
        response = self._request(
            "PATCH",
            f"{self.rest_url}/{table}",
            params=match_params(match),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    def delete(self, table: str, match: Dict[str, Any]) -> None:
        self._request("DELETE", f"{self.rest_url}/{table}", params=match_params(match))

    def get_user(self) -> Optional[Dict[str, Any]]:
        """
        Return the signed-in user, or None without a session.

        Raises:
            DataStoreError: If the auth endpoint fails for another reason
        """
        if not self._authenticated:
            return None
        try:
            response = self._request("GET", f"{self.url}/auth/v1/user")
        except DataStoreError as e:
            if e.status_code in (401, 403):
                return None
            raise
        return response.json()

    def subscribe(self, table: str, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        """
        Register a change callback for ``table``.

        Raises:
            DataStoreError: Always. The change feed needs the realtime
                websocket, which this REST client does not open.
        """
        raise DataStoreError(f"Change notifications for {table} are not available over REST")

    def test_connection(self, table: str) -> Optional[int]:
        """Count the rows of ``table`` without fetching them."""
        query = TableQuery(table).select("id", count="exact").range(0, 0)
        return self.execute(query).count
