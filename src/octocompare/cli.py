"""Command-line interface for Octopus tariff comparison."""

import logging
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .buckets import DEFAULT_PERIOD, parse_period
from .charges import NoTariffForRegion, TooManyMissingRates
from .collectors import consumption_csv
from .collectors.octopus import OctopusClient, OctopusError, filter_products
from .compare import compare
from .config import ConfigError, load_config
from .models import parse_timestamp
from .reports.comparison import comparison_to_dict, format_comparison_text
from .reports.products import format_product

console = Console()
logger = logging.getLogger(__name__)


def configure_logging(level: int, debug: bool = False) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if debug else level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=debug)],
        force=True,
    )


def parse_datetime_option(ctx, param, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not an ISO 8601 date/time")


def fail(ctx: click.Context, message: str, fatal: bool = False) -> NoReturn:
    """Report an error and exit with status 1."""
    if fatal:
        logger.critical(message)
    console.print(f"[red]Error: {escape(message)}[/red]", soft_wrap=True)
    ctx.exit(1)


def open_client(ctx: click.Context) -> OctopusClient:
    try:
        return OctopusClient(ctx.obj["config"].require_api_key())
    except ConfigError as e:
        fail(ctx, str(e))


from_option = click.option(
    "--from", "from_time", callback=parse_datetime_option, help="Start at this date/time (ISO 8601)"
)
to_option = click.option(
    "--to", "to_time", callback=parse_datetime_option, help="Stop at this date/time (ISO 8601)"
)
at_option = click.option(
    "--at", callback=parse_datetime_option, help="Select products available at this date/time"
)
postcode_option = click.option("--postcode", help="Installation postcode (selects the region)")
match_option = click.option("-m", "--match", help="Only products whose display name matches this pattern")
brand_option = click.option("-b", "--brand", help="Only products whose brand matches this pattern")
export_option = click.option("--export", is_flag=True, help="Select export products instead of import")


@click.group()
@click.option("-s", "--secrets", "secrets_path", type=click.Path(), help="Secrets YAML file (default: secrets.yml)")
@click.option("-d", "--debug", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, secrets_path, debug):
    """Compare Octopus Energy tariffs against your own consumption."""
    ctx.ensure_object(dict)
    try:
        config = load_config(Path(secrets_path) if secrets_path else None)
        level = config.log_level
    except ConfigError as e:
        fail(ctx, str(e))
    configure_logging(level, debug)
    ctx.obj["config"] = config


@cli.command()
@click.argument("mpan")
@click.pass_context
def emps(ctx, mpan):
    """Show the grid supply point and profile class of a meter point."""
    try:
        with open_client(ctx) as client:
            emp = client.electricity_meter_point(mpan)
    except OctopusError as e:
        fail(ctx, str(e))

    console.print(
        f"mpan: {emp.get('mpan')}: GSP: {emp.get('gsp')}, profile class: {emp.get('profile_class')}"
    )


@cli.command()
@from_option
@to_option
@click.option("--csv", "csv_path", type=click.Path(), help="Write consumption to this file as a day grid")
@click.pass_context
def consumption(ctx, from_time, to_time, csv_path):
    """Fetch half-hourly consumption for the configured meter."""
    try:
        mpan, serial = ctx.obj["config"].require_meter()
        with open_client(ctx) as client:
            slots = client.consumption(mpan, serial, from_time, to_time)
    except (ConfigError, OctopusError) as e:
        fail(ctx, str(e))

    if not slots:
        console.print("[yellow]No consumption data found[/yellow]")
        return

    daily = defaultdict(lambda: [0, 0.0])
    for slot in slots:
        day = daily[slot.interval_start.date()]
        day[0] += 1
        day[1] += slot.consumption

    table = Table(title=f"Consumption for {mpan}")
    table.add_column("Date", style="cyan")
    table.add_column("Slots", justify="right")
    table.add_column("kWh", justify="right")
    for day, (count, kwh) in sorted(daily.items()):
        table.add_row(day.isoformat(), str(count), f"{kwh:.2f}")
    console.print(table)

    if csv_path:
        days = consumption_csv.write_consumption_grid(Path(csv_path), slots)
        console.print(f"[green]Wrote {days} day(s) to {csv_path}[/green]")


@cli.command()
@at_option
@match_option
@brand_option
@export_option
@postcode_option
@click.pass_context
def products(ctx, at, match, brand, export, postcode):
    """List available products and their tariffs."""
    config = ctx.obj["config"]
    try:
        with open_client(ctx) as client:
            region = client.resolve_region(postcode or config.postcode)
            selected = filter_products(client.products(at), match, brand or config.brand, export)
            if not selected:
                console.print("[yellow]No matching products[/yellow]")
                return
            for p in selected:
                product = client.product(p["code"], region, tariffs_active_at=at)
                console.print(format_product(product), markup=False, highlight=False, soft_wrap=True)
    except OctopusError as e:
        fail(ctx, str(e))


@cli.command()
@click.argument("code")
@at_option
@from_option
@to_option
@postcode_option
@click.pass_context
def product(ctx, code, at, from_time, to_time, postcode):
    """Show one product, with rate history when --from and a postcode are given."""
    config = ctx.obj["config"]
    try:
        with open_client(ctx) as client:
            region = client.resolve_region(postcode or config.postcode)
            result = client.product(code, region, at or from_time, from_time, to_time)
    except OctopusError as e:
        fail(ctx, str(e))

    console.print(format_product(result), markup=False, highlight=False, soft_wrap=True)


@cli.command("compare")
@click.argument("code")
@from_option
@to_option
@at_option
@click.option("--period", help="Reporting bucket length, such as 2.weeks (default: 1.week)")
@match_option
@brand_option
@export_option
@postcode_option
@click.option(
    "--consumption-csv",
    "consumption_csv_path",
    type=click.Path(exists=True),
    help="Read consumption from a CSV export instead of the API",
)
@click.option("--payment-model", help="Only price tariffs with this payment model, such as direct_debit_monthly")
@click.option("-j", "--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("-v", "--verbose", is_flag=True, help="List all comparison results")
@click.pass_context
def compare_cmd(
    ctx, code, from_time, to_time, at, period, match, brand, export, postcode, consumption_csv_path,
    payment_model, as_json, verbose,
):
    """Compare product CODE with matching products over your consumption."""
    config = ctx.obj["config"]
    if from_time is None:
        fail(ctx, "must specify --from <fromtime> with compare")

    try:
        period_text = period or config.period
        bucket_length = parse_period(period_text) if period_text else DEFAULT_PERIOD
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--period")
    at = at or from_time
    logger.debug("from: %s; to: %s; at: %s; period: %s", from_time, to_time, at, bucket_length)

    try:
        with open_client(ctx) as client:
            region = client.resolve_region(postcode or config.postcode)

            if consumption_csv_path:
                slots = [
                    s
                    for s in consumption_csv.parse_csv(Path(consumption_csv_path))
                    if s.interval_start >= from_time and (to_time is None or s.interval_start < to_time)
                ]
            else:
                mpan, serial = config.require_meter()
                slots = client.consumption(mpan, serial, from_time, to_time)
            if not slots:
                fail(ctx, "no consumption data available")

            if not as_json:
                console.print(f"Comparator tariff: {code}", markup=False, highlight=False)
            comparator = client.product(code, region, at, from_time, to_time)
            candidates = [
                client.product(p["code"], region, at, from_time, to_time)
                for p in filter_products(client.products(at), match, brand or config.brand, export)
                if p["code"] != code
            ]
    except (ConfigError, OctopusError, ValueError) as e:
        fail(ctx, str(e))

    try:
        result = compare(
            comparator, candidates, from_time, bucket_length, slots, to_time,
            payment_model or config.payment_model,
        )
    except (NoTariffForRegion, TooManyMissingRates) as e:
        fail(ctx, str(e), fatal=True)

    if as_json:
        console.print_json(data=comparison_to_dict(result))
    else:
        console.print(format_comparison_text(result, verbose), markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    cli()
