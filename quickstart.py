#!/usr/bin/env python3
"""
Quick start script to demonstrate the Race-Day Fueling Planner.

This script shows the complete workflow:
1. Seed an in-memory product catalog
2. Calculate hourly targets for a hot 8-hour race
3. Build a plan in a planner session and save it
4. Reopen the plan in a new session (hydration)
5. Export sticker rows and a packing list
"""

import asyncio
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fuelplanner.catalog import load_products_file
from fuelplanner.config import Settings, configure_logging
from fuelplanner.database import ProductCatalogRepository, SqlPlanStorage, init_database
from fuelplanner.export import build_packing_list, build_sticker_hours
from fuelplanner.intents import AddProduct, SetWater, UpdateQuantity
from fuelplanner.schemas import AthleteContext, ProductSource, RaceContext, WeatherContext
from fuelplanner.session import PlannerSession

console = Console()

RACE_PLAN_ID = "demo-race-plan"
USER_ID = "demo-athlete"


def print_header(title: str):
    """Print a formatted header."""
    console.print(f"\n[bold cyan]{title}[/bold cyan]")
    console.print("=" * len(title))


async def run_demo():
    """Run the complete demonstration workflow."""
    console.print("\n[bold magenta]Race-Day Fueling Planner[/bold magenta]")
    console.print("[dim]Demonstration of complete workflow[/dim]\n")

    configure_logging("WARNING")
    settings = Settings(database_url="sqlite://", save_debounce_seconds=0.2)

    # ===== STEP 1: Seed Catalog =====
    print_header("Step 1: Seed Product Catalog")

    factory = init_database(settings.database_url)
    catalog = ProductCatalogRepository(factory)
    storage = SqlPlanStorage(factory)
    count = catalog.upsert_products(load_products_file(Path("data/sample_products.json")))
    console.print(f"✓ Loaded [green]{count}[/green] products")

    # ===== STEP 2: Targets =====
    print_header("Step 2: Calculate Targets")

    race = RaceContext(race_plan_id=RACE_PLAN_ID, duration_hours=8, max_elevation_ft=6500)
    athlete = AthleteContext(weight_kg=75)
    weather = WeatherContext(temperature_f=90, humidity_percent=70)

    session = PlannerSession(
        race, athlete, weather, storage=storage, catalog=catalog, user_id=USER_ID, settings=settings
    )
    await session.start()

    hourly = session.hourly_targets
    console.print(f"  Carbs:  {hourly.carbs_grams_target:.0f} g/hr ({session.total_targets.carbs:.0f} g total)")
    console.print(f"  Fluid:  {hourly.fluid_ml_target:.0f} ml/hr ({session.total_targets.fluid:.0f} ml total)")
    console.print(f"  Sodium: {hourly.sodium_mg_target:.0f} mg/hr ({session.total_targets.sodium:.0f} mg total)")

    # ===== STEP 3: Build Plan =====
    print_header("Step 3: Build Plan")

    lookup = session.browser.product_lookup
    for hour_index in range(len(session.hours)):
        session.dispatch(AddProduct(hour_index=hour_index, product=lookup["tailwind-endurance"]))
        gel = "maurten-gel-100-caf" if hour_index == 5 else "maurten-gel-100"
        session.dispatch(AddProduct(hour_index=hour_index, product=lookup[gel]))
        session.dispatch(UpdateQuantity(hour_index=hour_index, entry_index=1, quantity=2))
        session.dispatch(SetWater(hour_index=hour_index, water_ml=400))
    session.dispatch(
        AddProduct(hour_index=4, product=lookup["saltstick-caps"], source=ProductSource.DROP_BAG)
    )

    # Let the debounced save fire once
    await asyncio.sleep(settings.save_debounce_seconds + 0.1)
    console.print(f"✓ Saved plan [green]{session.synchronizer.plan_id}[/green] "
                  f"({session.synchronizer.save_count} save)")

    table = Table(title="Running Totals", box=box.ROUNDED)
    table.add_column("Nutrient", style="cyan")
    table.add_column("Planned", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Progress", justify="right")
    for name, progress in session.running_totals.as_dict().items():
        color = {"low": "yellow", "good": "green", "high": "red"}[progress.status]
        table.add_row(
            name.title(),
            f"{progress.current:.0f}",
            f"{progress.target:.0f}",
            f"[{color}]{progress.percent}%[/{color}]",
        )
    console.print(table)

    for warning in session.warnings:
        console.print(f"  ⚠ {warning}")
    session.teardown()

    # ===== STEP 4: Reopen =====
    print_header("Step 4: Reopen Plan")

    reopened = PlannerSession(
        race, athlete, weather, storage=storage, catalog=catalog, user_id=USER_ID, settings=settings
    )
    await reopened.start()
    entries = sum(len(hour.products) for hour in reopened.hours)
    console.print(f"✓ Hydrated {entries} entries across {len(reopened.hours)} hours")

    # ===== STEP 5: Export =====
    print_header("Step 5: Export")

    for sticker in build_sticker_hours(reopened.timeline)[:3]:
        lines = ", ".join(f"{p.quantity}× {p.name}" for p in sticker.products)
        console.print(f"  {sticker.elapsed_time} ({sticker.start_time}): {lines} - {sticker.totals.carbs:.0f}g")

    for group in build_packing_list(reopened.timeline):
        console.print(f"  {group.source.value}: {group.totals.items} items")
    reopened.teardown()

    # ===== COMPLETION =====
    console.print("\n")
    panel = Panel(
        "[green]✓[/green] Demonstration complete!\n\n"
        "The system successfully:\n"
        "  1. Calculated hourly targets from race conditions\n"
        "  2. Built and validated an hour-by-hour plan\n"
        "  3. Auto-saved the plan after edits went quiet\n"
        "  4. Hydrated the saved plan in a new session",
        title="[bold green]Success[/bold green]",
        border_style="green"
    )
    console.print(panel)

    console.print("\n[bold cyan]Next Steps:[/bold cyan]")
    console.print("  • Run CLI: fuelplanner targets --duration 8 --weight 75 --temp 90")
    console.print("  • Start the API: uvicorn fuelplanner.api.main:app --reload")
    console.print("  • Run tests: python3 -m pytest\n")


def main():
    asyncio.run(run_demo())


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        console.print("\n[dim]Make sure you're in the project root[/dim]")
        console.print("[dim]and have installed dependencies: pip install -e .[/dim]")
        raise
