"""
Weekly performance report models and the builders that fill them.

Builders take two row sets, this week and the comparison week, and produce
plain row objects. Rendering to PDF/HTML lives in the report export adapter.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from pendulum import Date

from .metrics import (
    STAT_TILES,
    Row,
    calculate_daily_rates,
    calculate_metrics_from_data,
    calculate_percentage_change,
)

UNKNOWN_CENTER = "Unassigned"


@dataclass(frozen=True)
class ExecutiveSummaryRow:
    metric: str
    this_week: int
    last_week: int
    delta_percent: str


@dataclass(frozen=True)
class PerformanceRateRow:
    kpi: str
    rate: str
    formula: str
    interpretation: str


@dataclass(frozen=True)
class TopPerformer:
    name: str
    value: str


@dataclass(frozen=True)
class TopPerformers:
    highest_transfer: TopPerformer
    highest_sales: TopPerformer
    most_improved: TopPerformer


@dataclass(frozen=True)
class CenterFeedback:
    title: str
    description: str
    feedback_by: str = "admin"
    created_at: str = ""


@dataclass(frozen=True)
class CenterReport:
    center_name: str
    metrics: List[ExecutiveSummaryRow]
    feedbacks: List[CenterFeedback] = field(default_factory=list)


@dataclass(frozen=True)
class AgencyReport:
    week_label: str
    executive_summary: List[ExecutiveSummaryRow]
    performance_rates: List[PerformanceRateRow]
    top_performers: TopPerformers


@dataclass(frozen=True)
class CenterPerformanceReport:
    week_label: str
    centers: List[CenterReport]


def format_delta_percent(change: int) -> str:
    if change > 0:
        return f"+{change}%"
    return f"{change}%"


def week_label(dates: Sequence[Date]) -> str:
    """Describe a report period, e.g. ``Jan 08, 2024 - Jan 13, 2024``."""
    if not dates:
        return ""
    first, last = min(dates), max(dates)
    return f"{first.format('MMM DD, YYYY', locale='en')} - {last.format('MMM DD, YYYY', locale='en')}"


def _summary_rows(this_week: Sequence[Row], last_week: Sequence[Row]) -> List[ExecutiveSummaryRow]:
    current = calculate_metrics_from_data(this_week, len(this_week))
    previous = calculate_metrics_from_data(last_week, len(last_week))

    rows: List[ExecutiveSummaryRow] = []
    for name, title, _icon, _color in STAT_TILES:
        current_value = getattr(current, name)
        previous_value = getattr(previous, name)
        rows.append(
            ExecutiveSummaryRow(
                metric=title,
                this_week=current_value,
                last_week=previous_value,
                delta_percent=format_delta_percent(
                    calculate_percentage_change(current_value, previous_value)
                ),
            )
        )
    return rows


def _performance_rates(rows: Sequence[Row]) -> List[PerformanceRateRow]:
    rates = calculate_daily_rates(rows)
    return [
        PerformanceRateRow(
            kpi="Approval Rate",
            rate=f"{rates.approval_rate:.1f}%",
            formula="Pending Approval / Total Transfers",
            interpretation="Share of transfers that reached a submitted application.",
        ),
        PerformanceRateRow(
            kpi="Callback Rate",
            rate=f"{rates.callback_rate:.1f}%",
            formula="Callbacks / Total Transfers",
            interpretation="Share of transfers that needed a callback.",
        ),
        PerformanceRateRow(
            kpi="DQ Rate",
            rate=f"{rates.dq_rate:.1f}%",
            formula="DQ, Quality Issue or Failed Quality Check / Total Transfers",
            interpretation="Share of transfers lost to disqualification or quality checks.",
        ),
    ]


def group_by_center(rows: Sequence[Row]) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = defaultdict(list)
    for row in rows:
        grouped[row.get("lead_vendor") or UNKNOWN_CENTER].append(row)
    return dict(grouped)


def _top_performers(this_week: Sequence[Row], last_week: Sequence[Row]) -> TopPerformers:
    current = group_by_center(this_week)
    previous = group_by_center(last_week)

    if not current:
        empty = TopPerformer(name="N/A", value="0")
        return TopPerformers(highest_transfer=empty, highest_sales=empty, most_improved=empty)

    # Ties break alphabetically so reports are stable.
    def best(score):
        name = min(current, key=lambda center: (-score(center), center))
        return name, score(name)

    transfer_name, transfers = best(lambda c: len(current[c]))
    sales_name, sales = best(
        lambda c: calculate_metrics_from_data(current[c], len(current[c])).pending_approval
    )
    improved_name, improvement = best(
        lambda c: len(current[c]) - len(previous.get(c, []))
    )

    return TopPerformers(
        highest_transfer=TopPerformer(name=transfer_name, value=f"{transfers} transfers"),
        highest_sales=TopPerformer(name=sales_name, value=f"{sales} sales"),
        most_improved=TopPerformer(name=improved_name, value=f"{improvement:+d} transfers"),
    )


def build_agency_report(
    this_week: Sequence[Row],
    last_week: Sequence[Row],
    label: str,
) -> AgencyReport:
    """Build the agency-wide weekly report."""
    return AgencyReport(
        week_label=label,
        executive_summary=_summary_rows(this_week, last_week),
        performance_rates=_performance_rates(this_week),
        top_performers=_top_performers(this_week, last_week),
    )


def build_center_reports(
    this_week: Sequence[Row],
    last_week: Sequence[Row],
    label: str,
    feedbacks: Optional[Mapping[str, List[CenterFeedback]]] = None,
) -> CenterPerformanceReport:
    """
    Build one section per call center seen in either week.

    Centers are ordered by this week's transfers, busiest first.
    """
    current = group_by_center(this_week)
    previous = group_by_center(last_week)
    feedbacks = feedbacks or {}

    names = sorted(set(current) | set(previous), key=lambda c: (-len(current.get(c, [])), c))

    centers = [
        CenterReport(
            center_name=name,
            metrics=_summary_rows(current.get(name, []), previous.get(name, [])),
            feedbacks=list(feedbacks.get(name, [])),
        )
        for name in names
    ]
    return CenterPerformanceReport(week_label=label, centers=centers)
