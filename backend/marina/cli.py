"""Marina CLI: berth occupancy and inspections for marina staff.

Commands:
  init     - create the database and seed berths from config/berths.yaml
  board    - berth status table for a day
  status   - counts and data-integrity warnings
  open     - run the API server
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="marina",
    help="Marina operations: berths, bookings, inspections.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_STATUS_STYLE = {"free": "green", "reserved": "yellow", "occupied": "red"}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init")
def init(
    demo: bool = typer.Option(False, "--demo", help="Add sample bookings around today"),
    config: Optional[str] = typer.Option(None, "--config", help="Seed file (default: BERTHS_CONFIG)"),
):
    """Create the schema and seed pontoons, berths and staff profiles."""
    from marina.config import settings
    from marina.database import SessionLocal, init_db
    from marina.modules.seed import find_config, load_demo_bookings, load_seed_config, seed_marina

    config_path = find_config(config or settings.BERTHS_CONFIG)
    if config_path is None:
        console.print(f"[red]Seed file not found: {config or settings.BERTHS_CONFIG}[/red]")
        raise typer.Exit(1)

    try:
        with console.status("[bold]Creating database..."):
            init_db()
    except Exception as e:
        console.print(f"[red]Setup failed: {e}[/red]")
        raise typer.Exit(1)

    db = SessionLocal()
    try:
        with console.status("[bold]Seeding berths..."):
            counts = seed_marina(db, load_seed_config(config_path))
        console.print(
            f"  Pontoons: {counts['pontoons']}  |  Berths: {counts['berths']}  |  Profiles: {counts['profiles']}"
        )
        if demo:
            with console.status("[bold]Loading demo bookings..."):
                created = load_demo_bookings(db)
            console.print(f"  Demo bookings: {created}")
        db.commit()
    except Exception as e:
        db.rollback()
        console.print(f"[red]Setup failed: {e}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    console.print("[green]Setup complete![/green]")
    console.print("\n[bold]What to do next:[/bold]")
    console.print("  [cyan]marina board[/cyan]    - today's berth status")
    console.print("  [cyan]marina open[/cyan]     - start the API")


@app.command("board")
def board(
    day: Optional[str] = typer.Option(None, "--date", help="Day to resolve (YYYY-MM-DD, default today)"),
    pontoon: Optional[str] = typer.Option(None, "--pontoon", help="Only berths of this pontoon"),
):
    """Show the resolved status of every berth."""
    from marina.database import SessionLocal
    from marina.models.berth import Berth
    from marina.models.boat_placement import BoatPlacement
    from marina.modules.berth_status import build_berth_board, summarize_board
    from marina.modules.bookings import bookings_for_day
    from marina.utils.clock import utc_today

    try:
        as_of = date.fromisoformat(day) if day else utc_today()
    except ValueError:
        console.print(f"[red]Invalid date: {day}[/red]")
        raise typer.Exit(1)

    db = SessionLocal()
    try:
        q = db.query(Berth).order_by(Berth.code)
        if pontoon:
            q = q.filter(Berth.code.like(f"{pontoon.upper()}-%"))
        rows = build_berth_board(
            q.all(), bookings_for_day(db, as_of), as_of,
            placements=db.query(BoatPlacement).all(),
        )
    finally:
        db.close()

    if not rows:
        console.print("[yellow]No berths. Run [cyan]marina init[/cyan] first.[/yellow]")
        return

    table = Table(title=f"Berth board {as_of.isoformat()}")
    table.add_column("Berth", style="cyan")
    table.add_column("Status")
    table.add_column("Guest")
    table.add_column("Expected vessel")
    table.add_column("Stay")
    for row in rows:
        style = _STATUS_STYLE[row["status"]]
        booking = row["covering_booking"]
        vessel = row["expected_vessel"]
        status_text = f"[{style}]{row['label']}[/{style}]"
        if row["has_conflict"]:
            status_text += " [red]![/red]"
        table.add_row(
            row["code"],
            status_text,
            booking["guest_name"] if booking else "",
            " ".join(filter(None, [vessel["name"], vessel["registration"]])) if vessel else "",
            f"{booking['check_in_date']} → {booking['check_out_date']}" if booking else "",
        )
    console.print(table)

    summary = summarize_board(rows)
    console.print(
        f"  [green]{summary['free']} free[/green]  "
        f"[yellow]{summary['reserved']} reserved[/yellow]  "
        f"[red]{summary['occupied']} occupied[/red]  of {summary['total']}"
    )
    if summary["conflicts"]:
        console.print(f"[red]Overlapping bookings on: {', '.join(summary['conflicts'])}[/red]")


@app.command("status")
def status():
    """Show counts and data-integrity warnings."""
    from sqlalchemy import func
    from marina.database import SessionLocal
    from marina.models.base import (
        ACTIVE_BOOKING_STATUSES, DamageStatusEnum, PaymentStatusEnum, ViolationStatusEnum,
    )
    from marina.models.berth import Berth
    from marina.models.booking import Booking
    from marina.models.damage_report import DamageReport
    from marina.models.inspection import Inspection
    from marina.models.violation import Violation
    from marina.modules.berth_status import build_berth_board, summarize_board
    from marina.modules.bookings import bookings_for_day
    from marina.utils.clock import utc_today

    db = SessionLocal()
    try:
        today = utc_today()
        berths = db.query(Berth).order_by(Berth.code).all()
        console.print("[bold]Marina[/bold]")
        console.print(f"  Database: [green]OK[/green]")
        if not berths:
            console.print("  Berths: [yellow]none[/yellow]")
            console.print("\n[yellow]Not set up yet. Run [cyan]marina init[/cyan] to begin.[/yellow]")
            return

        summary = summarize_board(build_berth_board(berths, bookings_for_day(db, today), today))
        console.print(f"  Berths: {summary['total']}")
        console.print(
            f"  Today: [green]{summary['free']} free[/green]  "
            f"[yellow]{summary['reserved']} reserved[/yellow]  "
            f"[red]{summary['occupied']} occupied[/red]"
        )

        console.print("\n[bold]Operations[/bold]")
        active = db.query(Booking).filter(Booking.status.in_(list(ACTIVE_BOOKING_STATUSES))).count()
        unpaid = db.query(Booking).filter(
            Booking.status.in_(list(ACTIVE_BOOKING_STATUSES)),
            Booking.payment_status != PaymentStatusEnum.PAID,
        ).count()
        start = datetime.combine(today, datetime.min.time())
        inspected = db.query(func.count(func.distinct(Inspection.berth_id))).filter(
            Inspection.inspected_at >= start,
        ).scalar() or 0
        open_violations = db.query(Violation).filter(
            Violation.status.in_([ViolationStatusEnum.OPEN, ViolationStatusEnum.IN_PROGRESS])
        ).count()
        open_damage = db.query(DamageReport).filter(
            DamageReport.status.notin_([DamageStatusEnum.COMPLETED, DamageStatusEnum.CANCELLED])
        ).count()
        console.print(f"  Active bookings: {active:,} ({unpaid:,} not fully paid)")
        console.print(f"  Inspected today: {inspected} of {summary['total']} berths")
        console.print(f"  Open violations: {open_violations}")
        console.print(f"  Open damage reports: {open_damage}")

        if summary["conflicts"]:
            console.print(
                f"\n[red]Warning: overlapping active bookings on {', '.join(summary['conflicts'])}.[/red]"
            )
    finally:
        db.close()


@app.command("open")
def open_api(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API."""
    import uvicorn

    url = f"http://{host}:{port}"
    console.print(f"API running at [cyan]{url}/docs[/cyan], press Ctrl+C to stop")
    uvicorn.run("marina.main:app", host=host, port=port)
