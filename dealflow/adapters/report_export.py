"""
Render weekly performance reports as PDF (reportlab) or HTML (jinja2).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence
from xml.sax.saxutils import escape

import jinja2
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..domain.reports import AgencyReport, CenterPerformanceReport, ExecutiveSummaryRow

logger = logging.getLogger(__name__)

AGENCY_TITLE = "WEEKLY AGENCY PERFORMANCE REPORT"
CENTERS_TITLE = "WEEKLY CALL CENTER PERFORMANCE REPORT"
NO_CENTER_DATA = "No call center data available for the selected range."

SUMMARY_HEADER = ["Metric", "This Week", "Last Week", "Change %"]
RATES_HEADER = ["KPI", "Rate", "Formula", "Interpretation"]

HEADER_BG = colors.HexColor("#F9FAFB")
HEADER_TEXT = colors.HexColor("#111827")

GRID_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
    ("TEXTCOLOR", (0, 0), (-1, 0), HEADER_TEXT),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ("TOPPADDING", (0, 0), (-1, -1), 4),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
])


def _styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=12,
            fontName="Helvetica-Bold",
            spaceAfter=4,
        ),
        "label": ParagraphStyle("WeekLabel", parent=styles["Normal"], fontSize=10, spaceAfter=12),
        "heading": ParagraphStyle(
            "SectionHeading",
            parent=styles["Heading2"],
            fontSize=11,
            fontName="Helvetica-Bold",
            spaceBefore=10,
            spaceAfter=6,
        ),
        "body": ParagraphStyle("ReportBody", parent=styles["Normal"], fontSize=10, spaceAfter=6),
        "cell": ParagraphStyle("Cell", parent=styles["Normal"], fontSize=9, leading=11),
        "centered": ParagraphStyle(
            "Centered", parent=styles["Normal"], fontSize=10, alignment=TA_CENTER, spaceAfter=6
        ),
    }


def _document(path: Path) -> SimpleDocTemplate:
    path.parent.mkdir(parents=True, exist_ok=True)
    return SimpleDocTemplate(
        str(path),
        pagesize=A4,
        rightMargin=0.55 * inch,
        leftMargin=0.55 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
    )


def _grid(rows: List[list], col_widths: Sequence[float]) -> Table:
    table = Table(rows, colWidths=list(col_widths), repeatRows=1)
    table.setStyle(GRID_STYLE)
    return table


def _summary_table(rows: Sequence[ExecutiveSummaryRow]) -> Table:
    data = [SUMMARY_HEADER] + [
        [row.metric, str(row.this_week), str(row.last_week), row.delta_percent]
        for row in rows
    ]
    return _grid(data, [2.6 * inch, 1.3 * inch, 1.3 * inch, 1.3 * inch])


def write_agency_report_pdf(report: AgencyReport, path: Path) -> Path:
    """Write the agency report to ``path`` and return it."""
    styles = _styles()
    story = [
        Paragraph(AGENCY_TITLE, styles["title"]),
        Paragraph(escape(report.week_label), styles["label"]),
        Paragraph("1. EXECUTIVE SUMMARY", styles["heading"]),
        Paragraph("A quick overview of the agency's weekly performance.", styles["body"]),
        _summary_table(report.executive_summary),
        Spacer(1, 0.25 * inch),
        Paragraph("2. PERFORMANCE RATES", styles["heading"]),
    ]

    # Wrap the long text columns.
    rate_rows = [RATES_HEADER] + [
        [
            row.kpi,
            row.rate,
            Paragraph(escape(row.formula), styles["cell"]),
            Paragraph(escape(row.interpretation), styles["cell"]),
        ]
        for row in report.performance_rates
    ]
    story.append(_grid(rate_rows, [1.2 * inch, 0.8 * inch, 2.2 * inch, 2.6 * inch]))
    story.append(Spacer(1, 0.3 * inch))

    top = report.top_performers
    story.append(Paragraph("TOP PERFORMERS OF THE WEEK", styles["heading"]))
    story.append(Paragraph("Highlighting individuals or teams boosts morale.", styles["centered"]))
    for label, performer in (
        ("Highest Transfer", top.highest_transfer),
        ("Highest Sales", top.highest_sales),
        ("Most Improved center", top.most_improved),
    ):
        story.append(
            Paragraph(f"{label}: {escape(performer.name)} - {escape(performer.value)}", styles["body"])
        )

    _document(path).build(story)
    logger.info("Wrote agency report to %s", path)
    return path


def write_center_report_pdf(report: CenterPerformanceReport, path: Path) -> Path:
    """Write one section per call center; a single notice when there are none."""
    styles = _styles()
    story = [
        Paragraph(CENTERS_TITLE, styles["title"]),
        Paragraph(escape(report.week_label), styles["label"]),
    ]

    if not report.centers:
        story.append(Paragraph(NO_CENTER_DATA, styles["body"]))

    for index, center in enumerate(report.centers, start=1):
        story.append(Paragraph(f"{index}. {escape(center.center_name)}", styles["heading"]))
        story.append(_summary_table(center.metrics))

        if center.feedbacks:
            story.append(Spacer(1, 0.1 * inch))
            story.append(Paragraph("LA Feedback:", styles["heading"]))
            for feedback in center.feedbacks:
                by = f"Feedback by {escape(feedback.feedback_by or 'admin')}"
                if feedback.created_at:
                    by += f" ({escape(feedback.created_at)})"
                story.append(Paragraph(f"<b>{by}:</b> {escape(feedback.title)}", styles["body"]))
                if feedback.description:
                    story.append(Paragraph(escape(feedback.description), styles["body"]))

        story.append(Spacer(1, 0.2 * inch))

    _document(path).build(story)
    logger.info("Wrote call center report to %s", path)
    return path


_TEMPLATES = {
    "base.html": """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font-family: Helvetica, Arial, sans-serif; font-size: 14px; color: #111827; margin: 40px; }
  header { display: flex; justify-content: space-between; align-items: baseline; }
  h1 { font-size: 16px; }
  h2 { font-size: 14px; margin-top: 24px; }
  table { border-collapse: collapse; width: 100%; margin-top: 8px; }
  th, td { border: 1px solid #9ca3af; padding: 4px 8px; text-align: left; font-size: 12px; }
  th { background: #f9fafb; }
  .centered { text-align: center; }
</style>
</head>
<body>
<header><h1>{{ title }}</h1><span>{{ week_label }}</span></header>
{% block content %}{% endblock %}
</body>
</html>
""",
    "summary_table.html": """<table>
<thead><tr>{% for h in summary_header %}<th>{{ h }}</th>{% endfor %}</tr></thead>
<tbody>
{% for row in rows %}<tr><td>{{ row.metric }}</td><td>{{ row.this_week }}</td><td>{{ row.last_week }}</td><td>{{ row.delta_percent }}</td></tr>
{% endfor %}</tbody>
</table>
""",
    "agency.html": """{% extends "base.html" %}
{% block content %}
<h2>1. EXECUTIVE SUMMARY</h2>
<p>A quick overview of the agency's weekly performance.</p>
{% with rows = report.executive_summary %}{% include "summary_table.html" %}{% endwith %}
<h2>2. PERFORMANCE RATES</h2>
<table>
<thead><tr>{% for h in rates_header %}<th>{{ h }}</th>{% endfor %}</tr></thead>
<tbody>
{% for row in report.performance_rates %}<tr><td>{{ row.kpi }}</td><td>{{ row.rate }}</td><td>{{ row.formula }}</td><td>{{ row.interpretation }}</td></tr>
{% endfor %}</tbody>
</table>
<h2 class="centered">TOP PERFORMERS OF THE WEEK</h2>
<p class="centered">Highlighting individuals or teams boosts morale.</p>
<ul>
  <li>Highest Transfer: {{ report.top_performers.highest_transfer.name }} - {{ report.top_performers.highest_transfer.value }}</li>
  <li>Highest Sales: {{ report.top_performers.highest_sales.name }} - {{ report.top_performers.highest_sales.value }}</li>
  <li>Most Improved center: {{ report.top_performers.most_improved.name }} - {{ report.top_performers.most_improved.value }}</li>
</ul>
{% endblock %}
""",
    "centers.html": """{% extends "base.html" %}
{% block content %}
{% for center in report.centers %}
<section>
<h2>{{ loop.index }}. {{ center.center_name }}</h2>
{% with rows = center.metrics %}{% include "summary_table.html" %}{% endwith %}
{% if center.feedbacks %}
<h3>LA Feedback:</h3>
<ul>
{% for fb in center.feedbacks %}<li><strong>Feedback by {{ fb.feedback_by or "admin" }}{% if fb.created_at %} ({{ fb.created_at }}){% endif %}:</strong> {{ fb.title }}{% if fb.description %}<br>{{ fb.description }}{% endif %}</li>
{% endfor %}</ul>
{% endif %}
</section>
{% else %}
<p>{{ no_data }}</p>
{% endfor %}
{% endblock %}
""",
}

_environment = jinja2.Environment(
    loader=jinja2.DictLoader(_TEMPLATES),
    autoescape=True,
)


def build_agency_report_html(report: AgencyReport) -> str:
    return _environment.get_template("agency.html").render(
        title=AGENCY_TITLE,
        week_label=report.week_label,
        report=report,
        summary_header=SUMMARY_HEADER,
        rates_header=RATES_HEADER,
    )


def build_center_report_html(report: CenterPerformanceReport) -> str:
    return _environment.get_template("centers.html").render(
        title=CENTERS_TITLE,
        week_label=report.week_label,
        report=report,
        summary_header=SUMMARY_HEADER,
        no_data=NO_CENTER_DATA,
    )


def write_html_report(path: Path, html: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    logger.info("Wrote HTML report to %s", path)
    return path
