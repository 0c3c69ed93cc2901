"""
Main CLI application using Typer.
"""

import asyncio
import csv
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.mock_supabase_client import MockSupabaseAuthenticator, MockSupabaseClient
from ..adapters.report_export import (
    build_agency_report_html,
    build_center_report_html,
    write_agency_report_pdf,
    write_center_report_pdf,
    write_html_report,
)
from ..adapters.supabase_authenticator import SupabaseAuthenticator
from ..adapters.supabase_client import SupabaseClient
from ..config import AppConfig, SupabaseConfig, get_default_config_path
from ..domain.exceptions import AuthenticationError, DealFlowError
from ..domain.metrics import StatResult
from ..domain.models import DateRange
from ..domain.records import CENTERS_TABLE, DEAL_FLOW_TABLE, DealFlowFilters
from ..domain.reports import CenterFeedback, build_agency_report, build_center_reports, week_label
from ..domain.working_days import last_n_working_days, to_date_strings, today
from ..seed import SeedGenerator, render_sql
from ..services.access_role import AccessGuard, AccessRole, AccessRoleResolver
from ..services.agent_portal import AGENTS_TABLE, AgentPortalService
from ..services.deal_flow_service import DealFlowService

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="dealflow",
    help="Browse daily deal flow records and build weekly performance reports",
    add_completion=False,
)
report_app = typer.Typer(help="Build weekly performance reports", add_completion=False)
app.add_typer(report_app, name="report")

console = Console()

MOCK_USER = {"id": "mock-user", "email": "mock.user@example.com"}
MOCK_SEED = 42
MOCK_DAYS = 28

LISTING_COLUMNS = [
    ("date", "Date"),
    ("insured_name", "Insured"),
    ("lead_vendor", "Center"),
    ("agent", "Agent"),
    ("status", "Status"),
    ("call_result", "Call Result"),
    ("carrier", "Carrier"),
]


@dataclass
class CliState:
    config_file: Optional[Path] = None
    mock: bool = False
    mock_center: Optional[str] = None


@dataclass
class Runtime:
    config: AppConfig
    client: object
    resolver: AccessRoleResolver
    service: DealFlowService


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _load_config(state: CliState) -> AppConfig:
    config_path = state.config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except FileNotFoundError:
        if not state.mock:
            raise
        logger.debug("No config at %s, using placeholder settings for mock mode", config_path)
        return AppConfig(supabase=SupabaseConfig(url="http://mock.local", key="mock"))


def _authenticator(state: CliState, config: AppConfig):
    if state.mock:
        return MockSupabaseAuthenticator()
    return SupabaseAuthenticator(url=config.supabase.url, api_key=config.supabase.key)


def _mock_client(state: CliState, config: AppConfig) -> MockSupabaseClient:
    centers = []
    if state.mock_center:
        centers.append({"user_id": MOCK_USER["id"], "lead_vendor": state.mock_center})

    client = MockSupabaseClient(tables={CENTERS_TABLE: centers}, user=MOCK_USER)
    generator = SeedGenerator(random.Random(MOCK_SEED))
    entries = generator.generate(
        days=MOCK_DAYS, min_per_day=8, max_per_day=20, today=today(config.timezone)
    )
    client.insert(DEAL_FLOW_TABLE, [entry.to_row() for entry in entries])
    return client


def _build_client(state: CliState, config: AppConfig, require_session: bool = True):
    if state.mock:
        return _mock_client(state, config)

    access_token = None
    authenticator = _authenticator(state, config)
    try:
        access_token = authenticator.get_access_token()
    except AuthenticationError:
        if require_session:
            raise
        logger.info("No session, connecting with the project key only")

    return SupabaseClient(
        url=config.supabase.url,
        api_key=config.supabase.key,
        access_token=access_token,
    )


def _runtime(ctx: typer.Context, command: str) -> Runtime:
    """Load config, build the client and check ``command`` against the user's role."""
    state = _state(ctx)
    config = _load_config(state)
    client = _build_client(state, config)
    resolver = AccessRoleResolver(client)

    asyncio.run(AccessGuard(resolver).check(command))

    service = DealFlowService(
        client,
        access=resolver,
        timezone=config.timezone,
        policy=config.policy,
        page_size=config.query.page_size,
        list_limit=config.query.list_limit,
    )
    return Runtime(config=config, client=client, resolver=resolver, service=service)


def _parse_date(value: Optional[str], tz: str) -> Optional[pendulum.Date]:
    if value is None:
        return None
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        raise typer.BadParameter(f"Expected a date as YYYY-MM-DD, got {value!r}") from e


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _records_table(rows: List[dict], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for _, header in LISTING_COLUMNS:
        table.add_column(header)
    for row in rows:
        table.add_row(*[str(row.get(column) or "") for column, _ in LISTING_COLUMNS])
    return table


def _stats_table(stats: List[StatResult], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Change", justify="right")
    for stat in stats:
        color = "green" if stat.variation > 0 else "red" if stat.variation < 0 else "dim"
        table.add_row(stat.title, str(stat.value), f"[{color}]{stat.variation:+d}%[/{color}]")
    return table


def _write_csv(rows: List[dict], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = sorted({key for row in rows for key in row})
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def _load_feedback(path: Path) -> dict:
    """Read ``center name -> [feedback]`` from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("Feedback file must map center names to lists of feedback entries.")
    return {
        center: [CenterFeedback(**entry) for entry in (entries or [])]
        for center, entries in data.items()
    }


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    mock: Annotated[bool, typer.Option("--mock", help="Use generated in-memory data and skip sign-in.")] = False,
    mock_center: Annotated[Optional[str], typer.Option("--mock-center", help="In mock mode, sign in as a user of this center.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """Daily deal flow dashboard."""
    _configure_logging(verbose)
    ctx.obj = CliState(config_file=config_file, mock=mock, mock_center=mock_center)


@app.command()
def deals(
    ctx: typer.Context,
    date: Annotated[Optional[str], typer.Option("--date", help="Only this date (YYYY-MM-DD)")] = None,
    date_from: Annotated[Optional[str], typer.Option("--from", help="Start date (YYYY-MM-DD)")] = None,
    date_to: Annotated[Optional[str], typer.Option("--to", help="End date (YYYY-MM-DD)")] = None,
    agent: Annotated[Optional[str], typer.Option("--agent")] = None,
    status: Annotated[Optional[str], typer.Option("--status")] = None,
    carrier: Annotated[Optional[str], typer.Option("--carrier")] = None,
    call_result: Annotated[Optional[str], typer.Option("--call-result")] = None,
    vendor: Annotated[Optional[str], typer.Option("--vendor", help="Lead vendor (call center)")] = None,
    name: Annotated[Optional[str], typer.Option("--name", help="Part of the insured's name")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", min=1)] = None,
    offset: Annotated[int, typer.Option("--offset", min=0)] = 0,
    working_days: Annotated[Optional[int], typer.Option("--working-days", "-w", min=1, help="Fetch the last N working days instead of one page")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last day for --working-days (default today)")] = None,
    csv_path: Annotated[Optional[Path], typer.Option("--csv", help="Also write the rows to a CSV file")] = None,
):
    """
    List deal flow records.

    Examples:

        dealflow deals --date 2024-01-15 --status "Pending Approval"

        dealflow deals --working-days 5 --csv last_week.csv
    """
    try:
        runtime = _runtime(ctx, "deals")
        tz = runtime.config.timezone
        filters = DealFlowFilters(
            date=date,
            date_from=date_from,
            date_to=date_to,
            agent=agent,
            status=status,
            carrier=carrier,
            call_result=call_result,
            lead_vendor=vendor,
            insured_name=name,
            limit=limit,
            offset=offset,
        )

        if working_days:
            end_day = _parse_date(end, tz) or today(tz)
            dates = last_n_working_days(end_day, working_days, runtime.config.policy, tz)
            result = asyncio.run(runtime.service.fetch_all_by_working_dates(dates, filters))
            title = f"Deal flow for {len(dates)} working days ({', '.join(to_date_strings(dates, tz))})"
        else:
            result = asyncio.run(runtime.service.fetch_all(filters))
            title = "Deal flow"

        if result.error is not None:
            _fail(result.error)

        rows = result.data or []
        if runtime.resolver.role is AccessRole.CENTER:
            title += f" - {runtime.resolver.lead_vendor}"

        console.print()
        console.print(_records_table(rows, title))
        console.print(f"\n[bold]{len(rows)}[/bold] shown, [bold]{result.count}[/bold] total\n")

        if csv_path:
            _write_csv(rows, csv_path)
            console.print(f"[green]✓ Wrote {len(rows)} rows to {csv_path}[/green]")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def metrics(
    ctx: typer.Context,
    date: Annotated[Optional[str], typer.Option("--date", help="Business date (default today)")] = None,
    working_days: Annotated[Optional[int], typer.Option("--working-days", "-w", min=1, help="Compare the last N working days with the N before them")] = None,
    date_from: Annotated[Optional[str], typer.Option("--from", help="Period start for analytics tiles")] = None,
    date_to: Annotated[Optional[str], typer.Option("--to", help="Period end for analytics tiles")] = None,
):
    """
    Show daily rates, a working-day comparison or period analytics.
    """
    try:
        runtime = _runtime(ctx, "metrics")
        tz = runtime.config.timezone

        if date_from or date_to:
            start = _parse_date(date_from, tz) or _parse_date(date_to, tz)
            stop = _parse_date(date_to, tz) or start
            period = DateRange(start=start, end=stop)
            stats = asyncio.run(runtime.service.fetch_analytics_stats(period))
            console.print()
            console.print(_stats_table(stats, f"Analytics {period} vs previous period"))
            console.print()
            return

        if working_days:
            comparison = asyncio.run(
                runtime.service.fetch_working_day_comparison(_parse_date(date, tz), working_days)
            )
            current = to_date_strings(comparison.current_dates, tz)
            previous = to_date_strings(comparison.previous_dates, tz)
            console.print()
            console.print(_stats_table(comparison.stats, f"Last {working_days} working days"))
            console.print(f"[dim]Current: {', '.join(current)}[/dim]")
            console.print(f"[dim]Compared with: {', '.join(previous)}[/dim]\n")
            return

        target = _parse_date(date, tz) or today(tz)
        rates = asyncio.run(runtime.service.get_metrics(target))
        console.print(Panel.fit(
            f"[bold]Total transfers:[/bold] {rates.total_transfers}\n"
            f"[bold]Total sales:[/bold] {rates.total_sales}\n"
            f"[bold]Underwriting:[/bold] {rates.total_underwriting}\n"
            f"[bold]Approval rate:[/bold] {rates.approval_rate:.1f}%\n"
            f"[bold]Callback rate:[/bold] {rates.callback_rate:.1f}%\n"
            f"[bold]DQ rate:[/bold] {rates.dq_rate:.1f}%",
            title=f"Metrics for {target.to_date_string()}",
        ))

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


def _report_path(output: Optional[Path], config: AppConfig, stem: str, fmt: str) -> Path:
    return output or config.reports.output_dir / f"{stem}.{fmt}"


@report_app.command("agency")
def report_agency(
    ctx: typer.Context,
    week_of: Annotated[Optional[str], typer.Option("--week-of", help="Any date in the report week (default today)")] = None,
    fmt: Annotated[str, typer.Option("--format", "-f", help="pdf or html")] = "pdf",
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output file")] = None,
):
    """Agency-wide weekly performance report."""
    try:
        if fmt not in ("pdf", "html"):
            raise typer.BadParameter("--format must be pdf or html")

        runtime = _runtime(ctx, "report")
        tz = runtime.config.timezone
        weekly = asyncio.run(runtime.service.fetch_weekly_records(_parse_date(week_of, tz)))
        label = week_label(weekly.this_week_dates)
        report = build_agency_report(weekly.this_week, weekly.last_week, label)

        anchor = weekly.this_week_dates[0] if weekly.this_week_dates else today(tz)
        path = _report_path(output, runtime.config, f"agency-report-{anchor.to_date_string()}", fmt)

        if fmt == "pdf":
            write_agency_report_pdf(report, path)
        else:
            write_html_report(path, build_agency_report_html(report))

        console.print(f"[green]✓ Agency report for {label} written to {path}[/green]")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@report_app.command("centers")
def report_centers(
    ctx: typer.Context,
    week_of: Annotated[Optional[str], typer.Option("--week-of", help="Any date in the report week (default today)")] = None,
    fmt: Annotated[str, typer.Option("--format", "-f", help="pdf or html")] = "pdf",
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output file")] = None,
    feedback: Annotated[Optional[Path], typer.Option("--feedback", help="YAML file with feedback per center")] = None,
):
    """Weekly report with one section per call center."""
    try:
        if fmt not in ("pdf", "html"):
            raise typer.BadParameter("--format must be pdf or html")

        runtime = _runtime(ctx, "report")
        tz = runtime.config.timezone
        feedbacks = _load_feedback(feedback) if feedback else None

        weekly = asyncio.run(runtime.service.fetch_weekly_records(_parse_date(week_of, tz)))
        label = week_label(weekly.this_week_dates)
        report = build_center_reports(weekly.this_week, weekly.last_week, label, feedbacks)

        anchor = weekly.this_week_dates[0] if weekly.this_week_dates else today(tz)
        path = _report_path(output, runtime.config, f"center-report-{anchor.to_date_string()}", fmt)

        if fmt == "pdf":
            write_center_report_pdf(report, path)
        else:
            write_html_report(path, build_center_report_html(report))

        console.print(
            f"[green]✓ Call center report for {label} ({len(report.centers)} centers) written to {path}[/green]"
        )

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def seed(
    ctx: typer.Context,
    days: Annotated[int, typer.Option("--days", min=1, help="Calendar days ending today")] = 7,
    min_per_day: Annotated[int, typer.Option("--min", min=0)] = 8,
    max_per_day: Annotated[int, typer.Option("--max", min=0)] = 20,
    insert: Annotated[bool, typer.Option("--insert", help="Insert the rows instead of printing SQL")] = False,
    random_seed: Annotated[Optional[int], typer.Option("--seed", help="Random seed for repeatable data")] = None,
):
    """
    Generate sample deal flow rows as SQL, or insert them directly.
    """
    try:
        state = _state(ctx)
        config = _load_config(state)
        generator = SeedGenerator(random.Random(random_seed))
        entries = generator.generate(days, min_per_day, max_per_day, today(config.timezone))

        if not insert:
            typer.echo(render_sql(entries))
            typer.echo(f"-- Generated {len(entries)} entries across {days} days")
            return

        runtime = _runtime(ctx, "seed")
        stored = asyncio.run(runtime.service.create_many(entries))
        console.print(f"[green]✓ Inserted {len(stored)} entries across {days} days[/green]")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def whoami(ctx: typer.Context):
    """
    Show the signed-in user and their access role.
    """
    try:
        state = _state(ctx)
        config = _load_config(state)
        client = _build_client(state, config, require_session=False)
        resolver = AccessRoleResolver(client)
        asyncio.run(resolver.refresh())
        user = client.get_user() or {}

        lines = [
            f"[bold]User:[/bold] {user.get('email', 'not signed in')}",
            f"[bold]Role:[/bold] {resolver.role.value}",
        ]
        if resolver.lead_vendor:
            lines.append(f"[bold]Center:[/bold] {resolver.lead_vendor}")
        console.print(Panel.fit("\n".join(lines), title="Access"))

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


def _portal_client(state: CliState, config: AppConfig):
    if state.mock:
        return MockSupabaseClient(tables={AGENTS_TABLE: [{"id": "1", "name": "Claudia"}], DEAL_FLOW_TABLE: []})
    if config.agent_portal is None:
        raise ValueError("No agent_portal section in the config file.")
    return SupabaseClient(url=config.agent_portal.url, api_key=config.agent_portal.key)


@app.command()
def test_connection(
    ctx: typer.Context,
    agent_portal: Annotated[bool, typer.Option("--agent-portal", help="Test the agent portal project instead")] = False,
):
    """
    Test the connection to the data store.
    """
    try:
        state = _state(ctx)
        config = _load_config(state)

        if agent_portal:
            client = _portal_client(state, config)
            project = "Agent Portal"
        else:
            client = _build_client(state, config, require_session=False)
            project = "Deal Flow"

        count = client.test_connection(DEAL_FLOW_TABLE)
        console.print(Panel.fit(
            f"[bold green]✓ Connected to the {project} project[/bold green]\n\n"
            f"[bold]{DEAL_FLOW_TABLE} rows:[/bold] {count if count is not None else 'unknown'}",
            title="✓ Connection test",
        ))

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)


@app.command()
def agents(ctx: typer.Context):
    """
    List the agents registered in the agent portal.
    """
    try:
        runtime = _runtime(ctx, "agents")
        portal = AgentPortalService(_portal_client(_state(ctx), runtime.config))
        rows = asyncio.run(portal.fetch_agents())

        columns = sorted({key for row in rows for key in row}) or ["id"]
        table = Table(title="Agent portal agents", show_header=True, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*[str(row.get(column, "")) for column in columns])
        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def sync_portal(
    ctx: typer.Context,
    date: Annotated[Optional[str], typer.Option("--date", help="Business date to copy (default today)")] = None,
):
    """
    Copy one day of deal flow rows into the agent portal.
    """
    try:
        runtime = _runtime(ctx, "sync-portal")
        tz = runtime.config.timezone
        target = _parse_date(date, tz) or today(tz)

        result = asyncio.run(runtime.service.fetch_all_by_working_dates([target]))
        if result.error is not None:
            _fail(result.error)

        portal = AgentPortalService(_portal_client(_state(ctx), runtime.config))
        stored = asyncio.run(portal.sync_entries(result.data or []))
        console.print(f"[green]✓ Synced {len(stored)} rows for {target.to_date_string()}[/green]")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def login(
    ctx: typer.Context,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Account email (default from config)")] = None,
):
    """
    Sign in and cache the session.
    """
    try:
        state = _state(ctx)
        config = _load_config(state)
        email = email or config.user_email or typer.prompt("Email")
        password = typer.prompt("Password", hide_input=True)

        authenticator = _authenticator(state, config)
        authenticator.sign_in(email, password)

        warning = getattr(authenticator, "insecure_storage_warning", None)
        if warning:
            console.print(f"[yellow]⚠ {warning}[/yellow]")
        console.print(f"\n[green]✓ Signed in as {email}.[/green]\n")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def clear_cache(ctx: typer.Context):
    """
    Clear the cached session.
    """
    try:
        state = _state(ctx)
        config = _load_config(state)
        _authenticator(state, config).clear_cache()
        console.print("\n[green]✓ Session cache cleared.[/green]")
        console.print("Run `dealflow login` to sign in again.\n")

    except (FileNotFoundError, DealFlowError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]dealflow[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
