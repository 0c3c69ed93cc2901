"""
Tests for PDF and HTML report rendering.
"""

from dealflow.adapters.report_export import (
    NO_CENTER_DATA,
    build_agency_report_html,
    build_center_report_html,
    write_agency_report_pdf,
    write_center_report_pdf,
    write_html_report,
)
from dealflow.domain.reports import CenterFeedback, build_agency_report, build_center_reports

THIS_WEEK = [
    {"lead_vendor": "Ark Tech", "status": "Pending Approval", "call_result": "Submitted"},
    {"lead_vendor": "<Maverick>", "status": "DQ", "call_result": "Not Submitted"},
]


class TestPdfExport:
    """Tests for the reportlab writers."""

    def test_agency_pdf(self, tmp_path):
        report = build_agency_report(THIS_WEEK, [], "Jan 08, 2024 - Jan 13, 2024")

        path = write_agency_report_pdf(report, tmp_path / "out" / "agency.pdf")

        assert path.read_bytes().startswith(b"%PDF")

    def test_center_pdf_with_feedback(self, tmp_path):
        feedback = {"Ark Tech": [CenterFeedback(title="Good & steady", description="", created_at="2024-01-12")]}
        report = build_center_reports(THIS_WEEK, [], "label", feedback)

        path = write_center_report_pdf(report, tmp_path / "centers.pdf")

        assert path.read_bytes().startswith(b"%PDF")

    def test_center_pdf_without_centers(self, tmp_path):
        report = build_center_reports([], [], "label")

        path = write_center_report_pdf(report, tmp_path / "empty.pdf")

        assert path.stat().st_size > 0


class TestHtmlExport:
    """Tests for the jinja2 templates."""

    def test_agency_html(self):
        html = build_agency_report_html(build_agency_report(THIS_WEEK, [], "Jan 08, 2024 - Jan 13, 2024"))

        assert "WEEKLY AGENCY PERFORMANCE REPORT" in html
        assert "Jan 08, 2024 - Jan 13, 2024" in html
        assert "Approval Rate" in html
        assert "Highest Sales: Ark Tech - 1 sales" in html

    def test_center_html_escapes_names(self):
        html = build_center_report_html(build_center_reports(THIS_WEEK, [], "label"))

        assert "&lt;Maverick&gt;" in html
        assert "<Maverick>" not in html

    def test_center_html_without_centers(self):
        html = build_center_report_html(build_center_reports([], [], "label"))

        assert NO_CENTER_DATA in html

    def test_write_html_report(self, tmp_path):
        path = write_html_report(tmp_path / "nested" / "report.html", "<p>ok</p>")

        assert path.read_text(encoding="utf-8") == "<p>ok</p>"
