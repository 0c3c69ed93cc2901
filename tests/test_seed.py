"""
Tests for the seed data generator.
"""

import random

import pytest

from dealflow.domain.models import civil_date
from dealflow.seed import SeedGenerator, render_sql, sql_literal


def _entries(seed=7, days=5):
    generator = SeedGenerator(random.Random(seed))
    return generator.generate(days=days, min_per_day=8, max_per_day=20, today=civil_date(2024, 1, 15))


class TestSeedGenerator:
    """Tests for SeedGenerator."""

    def test_rows_per_day_within_bounds(self):
        entries = _entries()

        per_day = {}
        for entry in entries:
            per_day[entry.date] = per_day.get(entry.date, 0) + 1

        assert sorted(per_day) == ["2024-01-11", "2024-01-12", "2024-01-13", "2024-01-14", "2024-01-15"]
        assert all(8 <= n <= 20 for n in per_day.values())

    def test_pending_approvals_carry_policy_details(self):
        for entry in _entries(days=10):
            if entry.status == "Pending Approval":
                assert entry.call_result in ("Underwriting", "Submitted")
                assert entry.carrier is not None
                assert 50 <= entry.monthly_premium <= 500
                assert entry.draft_date > entry.date
            else:
                assert entry.call_result == "Not Submitted"
                assert entry.carrier is None
                assert entry.face_amount is None
                assert entry.draft_date is None

    def test_same_seed_same_rows(self):
        assert [e.submission_id for e in _entries(seed=3)] == [e.submission_id for e in _entries(seed=3)]

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            SeedGenerator().generate(days=1, min_per_day=5, max_per_day=2, today=civil_date(2024, 1, 15))


class TestRenderSql:
    """Tests for SQL rendering."""

    def test_literals(self):
        assert sql_literal(None) == "NULL"
        assert sql_literal(True) == "true"
        assert sql_literal(120) == "120"
        assert sql_literal("DQ'd Can't be sold") == "'DQ''d Can''t be sold'"

    def test_insert_statement(self):
        sql = render_sql(_entries(days=1))

        assert sql.startswith("INSERT INTO public.daily_deal_flow (")
        assert sql.rstrip().endswith(";")

    def test_no_entries(self):
        assert render_sql([]) == ""
