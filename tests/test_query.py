"""
Tests for the table query builder.
"""

import pytest

from dealflow.adapters.query import MAYBE_SINGLE, TableQuery, encode_value, match_params


class TestTableQuery:
    """Tests for TableQuery rendering."""

    def test_renders_filters_and_ordering(self):
        query = (
            TableQuery("daily_deal_flow")
            .select("*", count="exact")
            .eq("status", "Pending Approval")
            .gte("date", "2024-01-08")
            .lte("date", "2024-01-13")
            .order("created_at", ascending=False)
        )

        assert query.to_params() == [
            ("select", "*"),
            ("status", "eq.Pending Approval"),
            ("date", "gte.2024-01-08"),
            ("date", "lte.2024-01-13"),
            ("order", "created_at.desc"),
        ]
        assert query.count_mode == "exact"

    def test_ilike_uses_rest_wildcard(self):
        query = TableQuery("daily_deal_flow").ilike("insured_name", "%smith%")

        assert ("insured_name", "ilike.*smith*") in query.to_params()

    def test_range_header(self):
        query = TableQuery("daily_deal_flow").range(0, 999)

        assert query.range_header() == "0-999"
        assert TableQuery("daily_deal_flow").range_header() is None

    @pytest.mark.parametrize("start,end", [(-1, 5), (10, 9)])
    def test_invalid_range(self, start, end):
        with pytest.raises(ValueError):
            TableQuery("daily_deal_flow").range(start, end)

    def test_maybe_single(self):
        assert TableQuery("centers").maybe_single().cardinality == MAYBE_SINGLE


class TestEncoding:
    """Tests for value encoding helpers."""

    def test_encode_value(self):
        assert encode_value(True) == "true"
        assert encode_value(None) == "null"
        assert encode_value(12) == "12"

    def test_match_params(self):
        assert match_params({"id": "abc"}) == [("id", "eq.abc")]
