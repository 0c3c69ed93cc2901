"""
Row models for the ``daily_deal_flow`` table and the listing filters.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

DEAL_FLOW_TABLE = "daily_deal_flow"
CENTERS_TABLE = "centers"

ALL = "all"


class DailyDealFlowInsert(BaseModel):
    """Columns accepted when creating a deal flow entry."""
    model_config = ConfigDict(extra="ignore")

    submission_id: str
    client_phone_number: Optional[str] = None
    lead_vendor: Optional[str] = None
    date: Optional[str] = None
    insured_name: Optional[str] = None
    buffer_agent: Optional[str] = None
    agent: Optional[str] = None
    licensed_agent_account: Optional[str] = None
    status: Optional[str] = None
    call_result: Optional[str] = None
    carrier: Optional[str] = None
    product_type: Optional[str] = None
    draft_date: Optional[str] = None
    monthly_premium: Optional[float] = None
    face_amount: Optional[float] = None
    from_callback: Optional[bool] = None
    notes: Optional[str] = None
    policy_number: Optional[str] = None
    carrier_audit: Optional[str] = None
    product_type_carrier: Optional[str] = None
    level_or_gi: Optional[str] = None
    is_callback: Optional[bool] = None
    is_retention_call: Optional[bool] = None
    placement_status: Optional[str] = None
    ghl_location_id: Optional[str] = None
    ghl_opportunity_id: Optional[str] = None
    ghlcontactid: Optional[str] = None
    sync_status: Optional[str] = None
    retention_agent: Optional[str] = None
    retention_agent_id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DailyDealFlow(DailyDealFlowInsert):
    """A stored deal flow row."""
    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class DealFlowFilters:
    """
    Listing filters for deal flow rows.

    Equality filters set to ``"all"`` (or left empty) are not applied.
    ``insured_name`` is a case-insensitive substring match.
    """
    date: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    agent: Optional[str] = None
    status: Optional[str] = None
    carrier: Optional[str] = None
    call_result: Optional[str] = None
    lead_vendor: Optional[str] = None
    insured_name: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def with_bounds(
        self,
        date_from: Optional[str],
        date_to: Optional[str],
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> "DealFlowFilters":
        """Return a copy restricted to a date window and page."""
        return replace(self, date=None, date_from=date_from, date_to=date_to, limit=limit, offset=offset)

    def equality_filters(self) -> Dict[str, str]:
        """Column -> value for every equality filter that is in effect."""
        candidates = {
            "status": self.status,
            "agent": self.agent,
            "carrier": self.carrier,
            "call_result": self.call_result,
            "lead_vendor": self.lead_vendor,
        }
        return {
            column: value for column, value in candidates.items()
            if value and value != ALL
        }
