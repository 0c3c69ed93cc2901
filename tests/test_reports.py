"""
Tests for weekly report builders.
"""

from dealflow.domain.models import civil_date
from dealflow.domain.reports import (
    CenterFeedback,
    build_agency_report,
    build_center_reports,
    format_delta_percent,
    week_label,
)


def row(vendor, status="Needs BPO Callback", call_result="Not Submitted", is_callback=False):
    return {"lead_vendor": vendor, "status": status, "call_result": call_result, "is_callback": is_callback}


THIS_WEEK = [
    row("Ark Tech", "Pending Approval", "Submitted"),
    row("Ark Tech", "Pending Approval", "Underwriting"),
    row("Ark Tech"),
    row("Maverick", "Pending Approval", "Submitted"),
    row("Maverick", is_callback=True),
    row(None),
]

LAST_WEEK = [
    row("Ark Tech"),
    row("Ark Tech"),
    row("Ark Tech"),
    row("Maverick"),
]


class TestFormatting:
    """Tests for report formatting helpers."""

    def test_format_delta_percent(self):
        assert format_delta_percent(12) == "+12%"
        assert format_delta_percent(0) == "0%"
        assert format_delta_percent(-5) == "-5%"

    def test_week_label(self):
        dates = [civil_date(2024, 1, 13), civil_date(2024, 1, 8)]

        assert week_label(dates) == "Jan 08, 2024 - Jan 13, 2024"
        assert week_label([]) == ""


class TestAgencyReport:
    """Tests for the agency-wide report."""

    def test_executive_summary(self):
        report = build_agency_report(THIS_WEEK, LAST_WEEK, "label")

        total = report.executive_summary[0]
        assert total.metric == "Total Transfers"
        assert (total.this_week, total.last_week, total.delta_percent) == (6, 4, "+50%")

    def test_performance_rates(self):
        report = build_agency_report(THIS_WEEK, LAST_WEEK, "label")

        rates = {r.kpi: r.rate for r in report.performance_rates}
        assert rates == {"Approval Rate": "50.0%", "Callback Rate": "16.7%", "DQ Rate": "0.0%"}

    def test_top_performers(self):
        top = build_agency_report(THIS_WEEK, LAST_WEEK, "label").top_performers

        assert (top.highest_transfer.name, top.highest_transfer.value) == ("Ark Tech", "3 transfers")
        assert (top.highest_sales.name, top.highest_sales.value) == ("Ark Tech", "2 sales")
        # Maverick +1, Unassigned +1, Ark Tech 0; the tie breaks alphabetically.
        assert (top.most_improved.name, top.most_improved.value) == ("Maverick", "+1 transfers")

    def test_empty_week(self):
        report = build_agency_report([], [], "label")

        assert report.top_performers.highest_transfer.name == "N/A"
        assert report.top_performers.most_improved.value == "0"
        assert report.executive_summary[0].delta_percent == "0%"


class TestCenterReports:
    """Tests for the per-center report."""

    def test_centers_ordered_by_transfers(self):
        report = build_center_reports(THIS_WEEK, LAST_WEEK, "label")

        assert [c.center_name for c in report.centers] == ["Ark Tech", "Maverick", "Unassigned"]
        ark = report.centers[0].metrics[0]
        assert (ark.this_week, ark.last_week, ark.delta_percent) == (3, 3, "0%")

    def test_center_only_in_last_week_is_listed(self):
        report = build_center_reports([], [row("Vize BPO")], "label")

        assert [c.center_name for c in report.centers] == ["Vize BPO"]
        assert report.centers[0].metrics[0].delta_percent == "-100%"

    def test_feedback_is_attached(self):
        feedback = {"Maverick": [CenterFeedback(title="Great week", description="Keep it up")]}

        report = build_center_reports(THIS_WEEK, LAST_WEEK, "label", feedback)

        maverick = next(c for c in report.centers if c.center_name == "Maverick")
        assert maverick.feedbacks[0].title == "Great week"
        assert maverick.feedbacks[0].feedback_by == "admin"

    def test_no_rows(self):
        assert build_center_reports([], [], "label").centers == []
