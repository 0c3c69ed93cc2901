"""
Aggregate metrics computed from deal flow rows.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence

PENDING_APPROVAL = "Pending Approval"
UNDERWRITING = "Underwriting"
GI_CURRENTLY_DQ = "GI - Currently DQ"
DQ_STATUSES = ("DQ", "Quality Issue", "Failed Quality Check")

Row = Mapping[str, Any]


@dataclass(frozen=True)
class DailyDealFlowMetrics:
    total_transfers: int = 0
    pending_approval: int = 0
    underwriting: int = 0
    approved: int = 0
    gi_currently_dq: int = 0


@dataclass(frozen=True)
class StatResult:
    """One dashboard tile: a value and its change against the previous period."""
    title: str
    icon: str
    value: int
    variation: int
    color: str


@dataclass(frozen=True)
class DailyRates:
    """Daily counts and the derived percentage rates."""
    total_transfers: int
    total_sales: int
    total_underwriting: int
    approval_rate: float
    callback_rate: float
    dq_rate: float


# (metric field, tile title, icon, color)
STAT_TILES = (
    ("total_transfers", "Total Transfers", "i-lucide-send", "primary"),
    ("pending_approval", "Pending Approval", "i-lucide-clock", "warning"),
    ("underwriting", "Underwriting", "i-lucide-file-text", "info"),
    ("approved", "Approved", "i-lucide-check-circle", "success"),
    ("gi_currently_dq", "GI - Currently DQ", "i-lucide-alert-triangle", "error"),
)


def _count(rows: Optional[Sequence[Row]], predicate) -> int:
    if not rows:
        return 0
    return sum(1 for row in rows if predicate(row))


def calculate_metrics_from_data(
    data: Optional[Sequence[Row]],
    count: Optional[int],
) -> DailyDealFlowMetrics:
    """
    Build the tile metrics for one period.

    ``count`` is the exact row count reported by the data store, which can be
    larger than ``len(data)`` when the listing was paged. Approved is the
    pending approvals that are not still in underwriting.
    """
    pending = _count(data, lambda r: r.get("status") == PENDING_APPROVAL)
    underwriting = _count(data, lambda r: r.get("call_result") == UNDERWRITING)

    return DailyDealFlowMetrics(
        total_transfers=count or 0,
        pending_approval=pending,
        underwriting=underwriting,
        approved=pending - underwriting,
        gi_currently_dq=_count(data, lambda r: r.get("status") == GI_CURRENTLY_DQ),
    )


def calculate_percentage_change(current: float, previous: float) -> int:
    """Whole-number percentage change; growth from zero counts as 100%."""
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100)


def calculate_changes(
    current: DailyDealFlowMetrics,
    previous: DailyDealFlowMetrics,
) -> Dict[str, int]:
    return {
        field.name: calculate_percentage_change(
            getattr(current, field.name), getattr(previous, field.name)
        )
        for field in fields(DailyDealFlowMetrics)
    }


def calculate_metrics_with_comparison(
    current_data: Optional[Sequence[Row]],
    current_count: Optional[int],
    previous_data: Optional[Sequence[Row]],
    previous_count: Optional[int],
) -> tuple[DailyDealFlowMetrics, Dict[str, int]]:
    """Return the current metrics and the percentage change of each field."""
    current = calculate_metrics_from_data(current_data, current_count)
    previous = calculate_metrics_from_data(previous_data, previous_count)
    return current, calculate_changes(current, previous)


def zero_changes() -> Dict[str, int]:
    return {field.name: 0 for field in fields(DailyDealFlowMetrics)}


def build_stats_from_metrics(
    metrics: DailyDealFlowMetrics,
    changes: Mapping[str, int],
) -> List[StatResult]:
    return [
        StatResult(
            title=title,
            icon=icon,
            value=getattr(metrics, name),
            variation=changes.get(name, 0),
            color=color,
        )
        for name, title, icon, color in STAT_TILES
    ]


def get_default_stats() -> List[StatResult]:
    """Zeroed tiles shown when data could not be loaded."""
    return build_stats_from_metrics(DailyDealFlowMetrics(), zero_changes())


def _rate(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return part / total * 100


def calculate_daily_rates(rows: Sequence[Row]) -> DailyRates:
    """
    Compute the daily approval, callback and DQ rates.

    Sales are pending approvals; underwriting counts only pending approvals
    whose call result is still underwriting.
    """
    total = len(rows)
    sales = _count(rows, lambda r: r.get("status") == PENDING_APPROVAL)
    underwriting = _count(
        rows,
        lambda r: r.get("status") == PENDING_APPROVAL and r.get("call_result") == UNDERWRITING,
    )
    callbacks = _count(rows, lambda r: bool(r.get("is_callback")))
    dq = _count(rows, lambda r: (r.get("status") or "") in DQ_STATUSES)

    return DailyRates(
        total_transfers=total,
        total_sales=sales,
        total_underwriting=underwriting,
        approval_rate=_rate(sales, total),
        callback_rate=_rate(callbacks, total),
        dq_rate=_rate(dq, total),
    )
