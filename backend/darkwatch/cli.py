"""DarkWatch CLI — vessel situational picture from the command line.

Commands:
  serve     — run the API with both background loops
  snapshot  — one ingest cycle: vessels, dark flags, alerts
  render    — one ingest cycle, then the clustered render set for a viewport
  hubs      — list coverage hubs
"""
from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="darkwatch",
    help="Dead reckoning, blackout detection and clustered rendering for vessel telemetry.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the API server."""
    import uvicorn

    console.print(f"DarkWatch API at [cyan]http://{host}:{port}[/cyan] (Ctrl+C to stop)")
    uvicorn.run("darkwatch.main:app", host=host, port=port)


@app.command("snapshot")
def snapshot(
    demo: bool = typer.Option(False, "--demo", help="Use the demo fleet instead of the configured source"),
    dark_only: bool = typer.Option(False, "--dark-only", help="Only list dark vessels"),
):
    """Run one ingest cycle and print the enriched vessel set."""
    from darkwatch.modules.ingest import count_by_type

    store, alert_manager, source_name = _run_single_cycle(demo)

    vessels = [v for v in store.vessels if v.is_dark] if dark_only else store.vessels
    table = Table(title=f"Vessels ({source_name})")
    table.add_column("MMSI", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Reported")
    table.add_column("Estimated")
    table.add_column("Gap (m)", justify="right")
    table.add_column("Status")
    for v in vessels:
        status = _status_label(v.is_dark, v.in_coverage)
        table.add_row(
            str(v.mmsi),
            v.name or "—",
            v.ship_type.value,
            f"{v.latitude:.4f}, {v.longitude:.4f}",
            f"{v.estimated_lat:.4f}, {v.estimated_lon:.4f}" if v.estimated_lat is not None else "—",
            str(v.gap_minutes) if v.gap_minutes is not None else "—",
            status,
        )
    console.print(table)
    counts = count_by_type(store.vessels)
    console.print("  ".join(f"{ship_type}: {n}" for ship_type, n in counts.items()))

    if alert_manager.alerts:
        console.print("\n[bold]Alerts[/bold]")
        for alert in alert_manager.alerts:
            color = "red" if alert.type.value == "suspicious" else "yellow"
            console.print(f"  [{color}]{alert.type.value}[/{color}]  {alert.message}")
    else:
        console.print("\n[dim]No alerts this cycle.[/dim]")


@app.command("render")
def render(
    lat: float = typer.Option(..., "--lat", help="Viewport center latitude"),
    lon: float = typer.Option(..., "--lon", help="Viewport center longitude"),
    zoom: float = typer.Option(..., "--zoom", help="Map zoom level (0-24)"),
    demo: bool = typer.Option(False, "--demo", help="Use the demo fleet instead of the configured source"),
):
    """Run one ingest cycle and print the render set for a viewport."""
    from pydantic import ValidationError

    from darkwatch.modules.cluster_engine import ClusterEngine
    from darkwatch.schemas.render import Viewport

    try:
        viewport = Viewport(latitude=lat, longitude=lon, zoom=zoom)
    except ValidationError as exc:
        console.print(f"[red]Invalid viewport:[/red] {exc.errors()[0]['msg']}")
        raise typer.Exit(1)

    store, _, source_name = _run_single_cycle(demo)
    engine = ClusterEngine()
    records = engine.reduce(store.vessels, viewport)

    console.print(
        f"Detail level: [bold]{engine.detail_level(zoom).value}[/bold]  "
        f"Vessels: {len(store.vessels)} ({source_name})  Render records: {len(records)}"
    )
    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Icon")
    table.add_column("Position (lon, lat)")
    table.add_column("Radius", justify="right")
    table.add_column("Cluster", justify="right")
    table.add_column("Visible")
    for r in records:
        table.add_row(
            r.id,
            r.icon,
            f"{r.position[0]:.4f}, {r.position[1]:.4f}",
            f"{r.radius:,.0f}",
            str(r.cluster_size) if r.cluster_size else "",
            "[green]yes[/green]" if r.visible else "[dim]no[/dim]",
        )
    console.print(table)


@app.command("hubs")
def hubs():
    """List the coverage hubs in effect."""
    from darkwatch.config import settings
    from darkwatch.modules.coverage_classifier import load_coverage_hubs

    table = Table(title=f"Coverage hubs (radius {settings.COVERAGE_RADIUS_DEG}°)")
    table.add_column("Name", style="cyan")
    table.add_column("Lat", justify="right")
    table.add_column("Lon", justify="right")
    for hub in load_coverage_hubs():
        table.add_row(hub.name, f"{hub.lat:.2f}", f"{hub.lon:.2f}")
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _status_label(is_dark: bool, in_coverage: bool) -> str:
    if is_dark and in_coverage:
        return "[red]DARK (in coverage)[/red]"
    if is_dark:
        return "[yellow]DARK[/yellow]"
    return "[green]live[/green]"


def _run_single_cycle(demo: bool):
    """Build a scheduler against the configured (or demo) source and run one cycle."""
    from darkwatch.modules.alert_manager import AlertManager
    from darkwatch.modules.coverage_classifier import load_coverage_hubs
    from darkwatch.modules.demo_data import DemoVesselSource
    from darkwatch.modules.scheduler import UpdateScheduler
    from darkwatch.modules.vessel_source import build_vessel_source
    from darkwatch.modules.vessel_store import VesselStore

    source = DemoVesselSource() if demo else build_vessel_source()
    store = VesselStore()
    alert_manager = AlertManager()
    scheduler = UpdateScheduler(
        source, alert_manager, store, hubs=load_coverage_hubs(), demo_alert_probability=0.0,
    )
    with console.status("[bold]Fetching vessel snapshot..."):
        asyncio.run(scheduler.run_cycle())
    return store, alert_manager, store.source_name or source.name()


if __name__ == "__main__":
    app()
