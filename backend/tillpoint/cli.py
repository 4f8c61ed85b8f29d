# Overview: Flask CLI command groups for database setup, catalog tooling and reports.

# backend/tillpoint/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask db-tools create
#   Create all tables that do not exist yet.
# - python -m flask db-tools reset --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog validate-barcode 4006381333931
#   Check a barcode's length, digits and check digit.
# - python -m flask catalog seed-demo
#   Create a few sellable demo products with stock.
#
# Reports:
# - python -m flask reports daily --date 2026-10-19
#   Print the day's sales summary and hourly series.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service, sales_service
from .services.barcode_service import validate_barcode, symbology_for
from .time_utils import parse_day, utcnow
from .validation import ConflictError


DEMO_PRODUCTS = [
    {"product_id": "COF-1KG", "product_name": "Coffee beans 1kg", "list_price": "18.50",
     "barcode": "4006381333931", "stock_level": 20, "purchase_price": "9.75"},
    {"product_id": "TEA-GRN", "product_name": "Green tea 50 bags", "list_price": "4.20",
     "barcode": "40123455", "stock_level": 40, "purchase_price": "1.90"},
    {"product_id": "MUG-WHT", "product_name": "White mug", "list_price": "7.00",
     "barcode": "036000291452", "stock_level": 12, "purchase_price": "2.40"},
]


@click.group('db-tools')
def db_group():
    """Database setup commands."""


@db_group.command('create')
@with_appcontext
def create_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@db_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('catalog')
def catalog_group():
    """Catalog tooling."""


@catalog_group.command('validate-barcode')
@click.argument('code')
def validate_barcode_cli(code):
    """Validate a barcode (EAN-8, UPC-A, EAN-13 check digits)."""
    result = validate_barcode(code)
    if result.valid:
        fmt = symbology_for(code.strip())
        click.echo(f"PASS {code.strip()} is valid" + (f" ({fmt})" if fmt else " (no check digit format)"))
    else:
        click.echo(f"FAIL {result.error}")
        raise SystemExit(1)


@catalog_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo products with stock. Existing product ids are skipped."""
    for demo in DEMO_PRODUCTS:
        product_fields = {k: demo[k] for k in ("product_id", "product_name", "list_price", "barcode")}
        product_fields["is_sellable"] = True
        try:
            catalog_service.create_product(product_fields)
        except ConflictError:
            click.echo(f"SKIP {demo['product_id']} already exists")
            continue
        catalog_service.set_stock(demo["product_id"], {
            "stock_level": demo["stock_level"],
            "purchase_price": demo["purchase_price"],
        })
        click.echo(f"PASS Created {demo['product_id']} with {demo['stock_level']} in stock")


@click.group('reports')
def reports_group():
    """Sales reports."""


@reports_group.command('daily')
@click.option('--date', 'day_str', help='Local day as YYYY-MM-DD (defaults to today, UTC)')
@with_appcontext
def daily_report(day_str):
    """Print the sales summary and hourly series for one day."""
    try:
        day = parse_day(day_str) if day_str else utcnow().date()
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD", param_hint="--date")

    report = sales_service.get_dashboard(day)
    summary = report["summary"]

    click.echo("\n" + "=" * 48)
    click.echo(f"SALES {report['date']} ({report['timezone']})")
    click.echo("=" * 48)
    click.echo(f"Total sales:         {summary['total_sales']:>12.2f}")
    click.echo(f"Orders:              {summary['total_orders']:>12}")
    click.echo(f"Average order value: {summary['average_order_value']:>12.2f}")
    click.echo(f"Profit:              {summary['total_profit']:>12.2f}")
    click.echo("-" * 48)
    for bucket in report["hourly"]:
        if bucket["total_sales"]:
            click.echo(f"{bucket['label']}  {bucket['total_sales']:>12.2f}")
    if report.get("note"):
        click.echo("-" * 48)
        click.echo(f"Note: {report['note']['note_text']}")
    click.echo("=" * 48 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
