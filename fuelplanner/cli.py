"""
Command-line interface for the fueling planner.

Provides commands for:
- Hourly target calculation
- Product catalog browsing and import
- Viewing a saved plan hour by hour
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fuelplanner.catalog import ProductBrowser, load_products_file
from fuelplanner.config import configure_logging, get_settings
from fuelplanner.database import ProductCatalogRepository, SqlPlanStorage, init_database
from fuelplanner.export import build_packing_list, build_sticker_hours
from fuelplanner.persistence import apply_saved_plan
from fuelplanner.schemas import (
    AthleteContext,
    GutTrainingLevel,
    ProductCategory,
    RaceContext,
    RaceNutritionPlan,
    SweatRate,
    WeatherContext,
)
from fuelplanner.targets import calculate_race_nutrition_plan
from fuelplanner.timeline import NutritionTimeline

# Initialize Typer app and Rich console
app = typer.Typer(
    help="Race-Day Fueling Planner - hourly carbohydrate, fluid and sodium planning"
)
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (defaults to FUELPLANNER_LOG_LEVEL or INFO)",
    ),
):
    """Race-day fueling planner."""
    configure_logging(log_level)


# ===== DISPLAY HELPER FUNCTIONS =====


def _display_targets(plan: RaceNutritionPlan, duration_hours: int):
    """
    Display hourly and whole-race targets with condition advice.

    Args:
        plan: RaceNutritionPlan from the calculator
        duration_hours: Race duration used for the totals column
    """
    hourly = plan.hourly_targets
    if not hourly.is_configured:
        console.print("[yellow]Targets not configured - check duration, weight and humidity.[/yellow]")
        return

    totals = plan.total_targets

    table = Table(title=f"Fueling Targets ({duration_hours}h race)", box=box.ROUNDED)
    table.add_column("Nutrient", style="cyan")
    table.add_column("Min / hr", justify="right")
    table.add_column("Target / hr", justify="right", style="green")
    table.add_column("Max / hr", justify="right")
    table.add_column("Race Total", justify="right", style="yellow")

    table.add_row(
        "Carbs (g)",
        f"{hourly.carbs_grams_min:.0f}",
        f"{hourly.carbs_grams_target:.0f}",
        f"{hourly.carbs_grams_max:.0f}",
        f"{totals.carbs:.0f}",
    )
    table.add_row(
        "Fluid (ml)",
        f"{hourly.fluid_ml_min:.0f}",
        f"{hourly.fluid_ml_target:.0f}",
        f"{hourly.fluid_ml_max:.0f}",
        f"{totals.fluid:.0f}",
    )
    table.add_row(
        "Sodium (mg)",
        f"{hourly.sodium_mg_min:.0f}",
        f"{hourly.sodium_mg_target:.0f}",
        f"{hourly.sodium_mg_max:.0f}",
        f"{totals.sodium:.0f}",
    )
    table.add_row("Calories", "", f"{hourly.calories_target:.0f}", "", f"{totals.calories:.0f}")
    console.print(table)

    if plan.warnings:
        console.print("\n[bold red]Warnings:[/bold red]")
        for warning in plan.warnings:
            console.print(f"  ⚠ {warning}")

    if plan.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for rec in plan.recommendations:
            console.print(f"  • {rec}")


def _display_timeline(timeline: NutritionTimeline):
    """Display a saved timeline hour by hour."""
    table = Table(title="Nutrition Timeline", box=box.ROUNDED)
    table.add_column("Hour", justify="right", style="cyan")
    table.add_column("Elapsed")
    table.add_column("Clock")
    table.add_column("Products")
    table.add_column("Carbs", justify="right")
    table.add_column("Fluid", justify="right")
    table.add_column("Sodium", justify="right")
    table.add_column("Caffeine", justify="right")

    for sticker in build_sticker_hours(timeline):
        products = ", ".join(
            f"{line.quantity}× {line.brand} {line.name}".strip() for line in sticker.products
        )
        if sticker.water_ml:
            products = f"{products}, {sticker.water_ml:.0f}ml water" if products else f"{sticker.water_ml:.0f}ml water"
        table.add_row(
            str(sticker.hour_number),
            sticker.elapsed_time,
            sticker.start_time,
            products or "[dim]-[/dim]",
            f"{sticker.totals.carbs:.0f}g",
            f"{sticker.totals.fluid:.0f}ml",
            f"{sticker.totals.sodium:.0f}mg",
            f"{sticker.totals.caffeine:.0f}mg",
        )

    console.print(table)


def _open_database(database_url: Optional[str]):
    return init_database(database_url or get_settings().database_url)


# ===== COMMANDS =====


@app.command()
def targets(
    duration_hours: int = typer.Option(..., "--duration", "-d", help="Race duration in hours"),
    weight_kg: float = typer.Option(..., "--weight", "-w", help="Body weight in kg"),
    temperature_f: float = typer.Option(70.0, "--temp", "-t", help="Expected temperature (°F)"),
    humidity: float = typer.Option(50.0, "--humidity", help="Relative humidity (0-100)"),
    elevation_ft: float = typer.Option(0.0, "--elevation", "-e", help="Highest point on course (ft)"),
    sweat_rate: SweatRate = typer.Option(SweatRate.MEDIUM, "--sweat-rate", help="Sweat rate"),
    gut_training: GutTrainingLevel = typer.Option(
        GutTrainingLevel.MODERATE, "--gut-training", help="Gut training level"
    ),
    known_sweat_rate: Optional[float] = typer.Option(
        None, "--known-sweat-rate", help="Tested sweat rate in ml/hr"
    ),
):
    """
    Calculate hourly fueling targets for a race.
    """
    try:
        race = RaceContext(duration_hours=duration_hours, max_elevation_ft=elevation_ft)
        athlete = AthleteContext(
            weight_kg=weight_kg,
            sweat_rate=sweat_rate,
            gut_training_level=gut_training,
            known_sweat_rate_ml_per_hour=known_sweat_rate,
        )
    except ValueError as e:
        console.print(f"[red]✗ Invalid input: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    weather = WeatherContext(temperature_f=temperature_f, humidity_percent=humidity)
    plan = calculate_race_nutrition_plan(race, athlete, weather)
    _display_targets(plan, duration_hours)


@app.command()
def products(
    search: str = typer.Option("", "--search", "-s", help="Match on name or brand"),
    category: Optional[List[ProductCategory]] = typer.Option(
        None, "--category", "-c", help="Restrict to category (repeatable)"
    ),
    caffeine_only: bool = typer.Option(False, "--caffeine-only", help="Only caffeinated products"),
    caffeine_free: bool = typer.Option(False, "--caffeine-free", help="Only caffeine-free products"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Database URL"),
):
    """
    List catalog products.
    """
    catalog = ProductCatalogRepository(_open_database(database_url))
    browser = ProductBrowser(catalog.list_active_products())
    browser.set_filters(
        search=search,
        categories=category or [],
        caffeine_only=caffeine_only,
        caffeine_free=caffeine_free,
    )

    matches = browser.filtered_products
    if not matches:
        console.print("[yellow]No products match.[/yellow]")
        return

    table = Table(title=f"Products ({len(matches)})", box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Brand", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Carbs", justify="right")
    table.add_column("Sodium", justify="right")
    table.add_column("Caffeine", justify="right")

    for product in matches:
        table.add_row(
            product.id,
            product.brand,
            product.name,
            product.category.value,
            f"{product.carbs_grams:.0f}g",
            f"{product.sodium_mg:.0f}mg",
            f"{product.caffeine_mg:.0f}mg" if product.caffeine_mg else "-",
        )

    console.print(table)


@app.command("import-products")
def import_products(
    path: Path = typer.Argument(..., help="JSON file with a list of products", exists=True),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Database URL"),
):
    """
    Import or update catalog products from a JSON file.
    """
    try:
        items = load_products_file(path)
    except ValueError as e:
        console.print(f"[red]✗ Failed to load products: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    catalog = ProductCatalogRepository(_open_database(database_url))
    count = catalog.upsert_products(items)
    console.print(f"✓ Imported [green]{count}[/green] products from [cyan]{path}[/cyan]")


@app.command("show-plan")
def show_plan(
    race_plan_id: str = typer.Argument(..., help="Race plan id"),
    duration_hours: Optional[int] = typer.Option(
        None, "--duration", "-d", help="Race duration in hours (defaults to last planned hour)"
    ),
    start_time: Optional[str] = typer.Option(None, "--start", help="Race start as HH:MM"),
    packing: bool = typer.Option(False, "--packing", help="Also show the packing list"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Database URL"),
):
    """
    Show a saved nutrition plan hour by hour.
    """
    factory = _open_database(database_url)
    saved = SqlPlanStorage(factory).load_plan(race_plan_id)
    if saved is None:
        console.print(f"[red]✗ No nutrition plan for race plan {race_plan_id}[/red]")
        raise typer.Exit(1)

    if duration_hours is None:
        hour_numbers = [row.hour_number for row in saved.items] + [row.hour_number for row in saved.water]
        duration_hours = max(hour_numbers, default=0)

    lookup = {p.id: p for p in ProductCatalogRepository(factory).list_active_products()}
    timeline = NutritionTimeline(products=lookup)
    try:
        timeline.initialize(duration_hours, start_time or get_settings().default_start_time)
    except ValueError as e:
        console.print(f"[red]✗ Invalid start time: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    apply_saved_plan(timeline, saved)

    console.print(Panel(f"Plan [cyan]{saved.id}[/cyan] for race plan [cyan]{race_plan_id}[/cyan]"))
    _display_timeline(timeline)

    if packing:
        for group in build_packing_list(timeline):
            title = group.source.value.replace("_", " ").title()
            if group.location_name:
                title = f"{title} - {group.location_name}"
            console.print(f"\n[bold]{title}[/bold] ({group.totals.items} items, {group.totals.carbs:.0f}g carbs)")
            for item in group.items:
                console.print(f"  • {item.quantity}× {item.product.brand} {item.product.name}")


if __name__ == "__main__":
    app()
