"""
Tests for the Supabase REST client request handling.
"""

import pytest
import requests

from dealflow.adapters import supabase_client
from dealflow.adapters.query import TableQuery
from dealflow.adapters.supabase_client import SupabaseClient
from dealflow.domain.exceptions import DataStoreError


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self.headers = headers or {}
        self.text = ""
        self.reason = "Error"

    def json(self):
        return self._body


class RecordingRequests:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def client():
    return SupabaseClient(url="https://x.supabase.co/", api_key="anon", access_token="jwt")


class TestExecute:
    """Tests for SupabaseClient.execute."""

    def test_sends_filters_range_and_count(self, client, monkeypatch):
        fake = RecordingRequests(FakeResponse(body=[{"id": "1"}], headers={"Content-Range": "0-0/42"}))
        monkeypatch.setattr(supabase_client.requests, "request", fake)
        query = TableQuery("daily_deal_flow").select("*", count="exact").eq("status", "DQ").range(0, 999)

        result = client.execute(query)

        call = fake.calls[0]
        assert call["url"] == "https://x.supabase.co/rest/v1/daily_deal_flow"
        assert ("status", "eq.DQ") in call["params"]
        assert call["headers"]["Range"] == "0-999"
        assert call["headers"]["Prefer"] == "count=exact"
        assert call["headers"]["Authorization"] == "Bearer jwt"
        assert result.data == [{"id": "1"}]
        assert result.count == 42

    def test_maybe_single_unwraps_row(self, client, monkeypatch):
        monkeypatch.setattr(supabase_client.requests, "request", RecordingRequests(FakeResponse(body=[])))

        result = client.execute(TableQuery("centers").maybe_single())

        assert result.data is None
        assert result.count is None

    def test_error_status_raises(self, client, monkeypatch):
        fake = RecordingRequests(FakeResponse(status_code=400, body={"message": "bad filter"}))
        monkeypatch.setattr(supabase_client.requests, "request", fake)

        with pytest.raises(DataStoreError, match="bad filter") as excinfo:
            client.execute(TableQuery("daily_deal_flow"))

        assert excinfo.value.status_code == 400

    def test_transport_error_raises(self, client, monkeypatch):
        fake = RecordingRequests(requests.exceptions.ConnectionError("refused"))
        monkeypatch.setattr(supabase_client.requests, "request", fake)

        with pytest.raises(DataStoreError, match="refused"):
            client.execute(TableQuery("daily_deal_flow"))


class TestUser:
    """Tests for SupabaseClient.get_user."""

    def test_without_session(self):
        assert SupabaseClient(url="https://x.supabase.co", api_key="anon").get_user() is None

    def test_expired_session(self, client, monkeypatch):
        fake = RecordingRequests(FakeResponse(status_code=401, body={"msg": "expired"}))
        monkeypatch.setattr(supabase_client.requests, "request", fake)

        assert client.get_user() is None
