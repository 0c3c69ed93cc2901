"""
Random but plausible deal flow rows for demos and the mock client.
"""

from __future__ import annotations

import random
from typing import Any, Iterable, List, Optional

from pendulum import Date

from .domain.metrics import PENDING_APPROVAL, UNDERWRITING
from .domain.records import DEAL_FLOW_TABLE, DailyDealFlowInsert

STATUS_OPTIONS = [
    PENDING_APPROVAL,
    "Fulfilled carrier requirements",
    "GI - Currently DQ",
    "Needs BPO Callback",
    "Returned To Center - DQ",
    "Incomplete Transfer",
    "Pending Failed Payment Fix",
    "DQ'd Can't be sold",
    "Application Withdrawn",
]

CARRIER_OPTIONS = [
    "Liberty", "SBLI", "Corebridge", "MOH", "Transamerica", "RNA",
    "AMAM", "GTL", "Aetna", "Americo", "CICA", "N/A",
]

PRODUCT_TYPE_OPTIONS = [
    "Preferred", "Standard", "Graded", "Modified", "GI",
    "Immediate", "Level", "ROP", "N/A",
]

BUFFER_AGENT_OPTIONS = [
    "Justine", "Nicole Mejia", "Laiza Batain", "Aqib Afridi", "Qasim Raja",
    "Molli Reynolds", "Noah Akins", "Hussain Khan", "N/A",
]

AGENT_OPTIONS = [
    "Claudia", "Lydia", "Zack", "Tatumn", "Benjamin", "N/A", "Kaye",
    "Isaac", "Abdul", "Nicole Mejia", "Precy Lou", "Laiza Batain",
]

LICENSED_ACCOUNT_OPTIONS = [
    "Claudia", "Lydia", "Isaac", "Abdul", "Trinity", "Benjamin",
    "Tatumn", "Noah", "N/A",
]

LEAD_VENDOR_OPTIONS = [
    "Ark Tech", "GrowthOnics BPO", "Maverick", "Omnitalk BPO", "Vize BPO",
    "Corebiz", "Digicon", "Ambition", "Benchmark", "Poshenee", "Plexi",
    "Gigabite", "Everline solution", "Progressive BPO", "Cerberus BPO",
    "NanoTech", "Optimum BPO", "Ethos BPO", "Trust Link", "Crown Connect BPO",
    "Quotes BPO", "Zupax Marketing", "Argon Comm", "Care Solutions",
    "Cutting Edge", "Next Era", "Rock BPO", "Avenue Consultancy", "AJ BPO",
    "Pro Solutions BPO", "Emperor BPO", "Networkize", "LightVerse BPO",
    "Leads BPO", "Helix BPO", "CrossNotch", "StratiX BPO", "Exito BPO",
    "Lumenix BPO", "All-Star BPO", "DownTown BPO", "TechPlanet", "Livik BPO",
    "NexGen BPO", "Quoted-Leads BPO", "SellerZ BPO", "Venom BPO",
    "Core Marketing", "WinBPO",
]

FIRST_NAMES = [
    "John", "Jane", "Michael", "Emily", "David", "Sarah", "Robert", "Lisa",
    "William", "Jennifer", "James", "Linda", "Richard", "Patricia", "Thomas",
    "Barbara", "Charles", "Elizabeth", "Daniel", "Susan", "Matthew", "Jessica",
    "Anthony", "Karen", "Mark", "Nancy", "Donald", "Betty", "Steven", "Helen",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
    "Davis", "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez",
    "Wilson", "Anderson", "Thomas", "Taylor", "Moore", "Jackson", "Martin",
    "Lee", "Perez", "Thompson", "White", "Harris", "Sanchez", "Clark",
    "Ramirez", "Lewis", "Robinson",
]

SQL_COLUMNS = [
    "submission_id", "client_phone_number", "lead_vendor", "date", "insured_name",
    "buffer_agent", "agent", "licensed_agent_account", "status", "call_result",
    "carrier", "product_type", "draft_date", "monthly_premium", "face_amount",
    "from_callback", "notes", "is_callback",
]


class SeedGenerator:
    """
    Generates deal flow rows following the call-center business rules.

    Only pending approvals carry policy details (carrier, product, premium,
    face amount, draft date) and a submitted call result; every other status
    is "Not Submitted".
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _phone(self) -> str:
        r = self.rng
        return f"({r.randint(200, 999)}) {r.randint(200, 999)}-{r.randint(1000, 9999)}"

    def _name(self) -> str:
        return f"{self.rng.choice(FIRST_NAMES)} {self.rng.choice(LAST_NAMES)}"

    def generate_entry(self, date: Date) -> DailyDealFlowInsert:
        r = self.rng
        status = r.choice(STATUS_OPTIONS)
        pending = status == PENDING_APPROVAL

        call_result = r.choice([UNDERWRITING, "Submitted"]) if pending else "Not Submitted"
        carrier = r.choice(CARRIER_OPTIONS) if pending else None
        product_type = r.choice(PRODUCT_TYPE_OPTIONS) if pending else None
        monthly_premium = r.randint(50, 500) if pending else None
        face_amount = r.randint(10000, 1000000) if pending else None
        draft_date = date.add(days=r.randint(7, 60)).to_date_string() if pending else None

        if pending:
            notes = (
                f"Application submitted for {carrier} {product_type} policy. "
                f"Premium: ${monthly_premium}/mo, Coverage: ${face_amount:,}"
            )
        else:
            notes = f"Status: {status}. {call_result}."

        return DailyDealFlowInsert(
            submission_id=str(r.randint(10 ** 15, 10 ** 16 - 1)),
            client_phone_number=self._phone(),
            lead_vendor=r.choice(LEAD_VENDOR_OPTIONS),
            date=date.to_date_string(),
            insured_name=self._name(),
            buffer_agent=r.choice(BUFFER_AGENT_OPTIONS),
            agent=r.choice(AGENT_OPTIONS),
            licensed_agent_account=r.choice(LICENSED_ACCOUNT_OPTIONS),
            status=status,
            call_result=call_result,
            carrier=carrier,
            product_type=product_type,
            draft_date=draft_date,
            monthly_premium=monthly_premium,
            face_amount=face_amount,
            from_callback=r.random() < 0.1,
            is_callback=r.random() < 0.15,
            notes=notes,
        )

    def generate(
        self,
        days: int,
        min_per_day: int,
        max_per_day: int,
        today: Date,
    ) -> List[DailyDealFlowInsert]:
        """Generate rows for ``days`` calendar days ending at ``today``."""
        if min_per_day < 0 or max_per_day < min_per_day:
            raise ValueError(f"Invalid rows-per-day bounds {min_per_day}..{max_per_day}")

        entries: List[DailyDealFlowInsert] = []
        for offset in range(days):
            day = today.subtract(days=offset)
            for _ in range(self.rng.randint(min_per_day, max_per_day)):
                entries.append(self.generate_entry(day))
        return entries


def sql_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def render_sql(entries: Iterable[DailyDealFlowInsert]) -> str:
    """Render an ``INSERT`` statement for ``entries``."""
    rows = []
    for entry in entries:
        values = entry.model_dump()
        rows.append("  (" + ", ".join(sql_literal(values.get(c)) for c in SQL_COLUMNS) + ")")

    if not rows:
        return ""

    return (
        f"INSERT INTO public.{DEAL_FLOW_TABLE} (\n  {', '.join(SQL_COLUMNS)}\n) VALUES\n"
        + ",\n".join(rows)
        + ";\n"
    )
