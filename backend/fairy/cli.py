# Overview: Flask CLI command groups for bootstrap, catalog seeding, and settings.

# backend/fairy/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and seeds default settings rows.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog bootstrap:
# - python -m flask catalog seed [--store "Fairy 本店"] [--tables 8]
#   Create a store, its floor tables, the standard menu, one manager and sample casts.
# - python -m flask catalog products [--category drinks]
#   List products with price, backs and points.
#
# Settings inspection/repair:
# - python -m flask settings list
#   Show every setting with its effective value.
# - python -m flask settings set bonus_threshold_weekday 450000
#   Change one setting.

import click
from flask.cli import with_appcontext

from .extensions import db
from .engine import drink_units_for_size
from .models import Store, FloorTable, Product, CastMember, StaffMember
from .services import settings_service
from .services.settings_service import SettingsValidationError


# name, category, price, tax_applicable, back_free, back_designated, points, drink_size, extension minutes, extension tier
STANDARD_MENU = [
    ("セット料金 60分", "set", 4000, True, 0, 0, 0, None, None, None),
    ("フリー延長 20分", "extension", 1500, True, 0, 0, 0, None, 20, "free"),
    ("フリー延長 40分", "extension", 3000, True, 0, 0, 0, None, 40, "free"),
    ("場内延長 20分", "extension", 2000, True, 500, 500, 0, None, 20, "inhouse"),
    ("場内延長 40分", "extension", 4000, True, 1000, 1000, 0, None, 40, "inhouse"),
    ("本指名延長 20分", "extension", 2500, True, 1000, 1000, 0, None, 20, "designated"),
    ("本指名延長 40分", "extension", 5000, True, 2000, 2000, 0, None, 40, "designated"),
    ("本指名", "nomination", 3000, True, 1500, 1500, 0, None, None, None),
    ("場内指名", "nomination", 2000, True, 1000, 1000, 0, None, None, None),
    ("同伴", "companion", 3000, True, 2000, 2000, 0, None, None, None),
    ("キャストドリンク S", "drinks", 1000, True, 500, 500, 0, "S", None, None),
    ("キャストドリンク M", "drinks", 2000, True, 1000, 1000, 0, "M", None, None),
    ("キャストドリンク L", "drinks", 3000, True, 1500, 1500, 0, "L", None, None),
    ("ショット", "drinks", 2000, True, 1000, 1000, 0, "shot", None, None),
    ("シャンパン (スタンダード)", "bottles", 20000, True, 2000, 4000, 10, None, None, None),
    ("シャンパン (プレミアム)", "bottles", 50000, True, 5000, 10000, 25, None, None, None),
    ("ミネラルウォーター", "drinks", 500, False, 0, 0, 0, None, None, None),
]

SAMPLE_CASTS = [
    ("あい", 4000, 1000),
    ("みく", 3500, 1000),
    ("れな", 3000, 0),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the fairy backend: create tables and seed default settings.

    Safe to run repeatedly; existing settings rows are left untouched.
    """
    click.echo("START Initializing fairy backend...")

    db.create_all()
    click.echo("PASS Tables ensured")

    added = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS Seeded {added} default settings")

    click.echo("\nDONE Run 'flask catalog seed' to create a store and menu.")


@system_group.command('reset-db')
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

    click.echo("PASS Database reset complete")


# =============================================================================
# CATALOG COMMANDS
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Store, floor and menu bootstrap commands."""


def _seed_menu() -> int:
    created = 0
    for sort_order, row in enumerate(STANDARD_MENU, start=1):
        name, category, price, taxed, back_free, back_designated, points, size, minutes, tier = row
        if db.session.query(Product).filter_by(name_jp=name).first():
            continue
        db.session.add(Product(
            name_jp=name,
            category=category,
            price=price,
            tax_applicable=taxed,
            back_free=back_free,
            back_designated=back_designated,
            points=points,
            drink_size=size,
            drink_units=drink_units_for_size(size) if size else 0,
            extension_minutes=minutes,
            extension_tier=tier,
            sort_order=sort_order,
        ))
        created += 1
    return created


@catalog_group.command('seed')
@click.option('--store', 'store_name', default='Fairy 本店', help='Store name')
@click.option('--tables', 'table_count', type=int, default=8, help='Number of floor tables')
@with_appcontext
def seed_catalog(store_name, table_count):
    """
    Create a store with floor tables, the standard menu, a manager and sample casts.

    Idempotent: rows that already exist (by name/label) are skipped.
    """
    store = db.session.query(Store).filter_by(name=store_name).first()
    if not store:
        store = Store(name=store_name)
        db.session.add(store)
        db.session.flush()
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    existing_labels = {t.label for t in db.session.query(FloorTable).filter_by(store_id=store.id)}
    new_tables = 0
    for n in range(1, table_count + 1):
        label = f"T{n}"
        if label in existing_labels:
            continue
        db.session.add(FloorTable(store_id=store.id, label=label, seats=4))
        new_tables += 1
    click.echo(f"PASS Floor tables created: {new_tables}")

    click.echo(f"PASS Menu items created: {_seed_menu()}")

    if not db.session.query(StaffMember).filter_by(store_id=store.id, is_manager=True).first():
        manager = StaffMember(name="店長", store_id=store.id, is_manager=True)
        db.session.add(manager)
        db.session.flush()
        click.echo(f"PASS Created manager: {manager.name} (ID: {manager.id})")

    for name, hourly_rate, transport_fee in SAMPLE_CASTS:
        if db.session.query(CastMember).filter_by(name=name).first():
            click.echo(f"WARN  Cast '{name}' already exists, skipping...")
            continue
        db.session.add(CastMember(
            name=name,
            home_store_id=store.id,
            hourly_rate=hourly_rate,
            transport_fee=transport_fee,
        ))
        click.echo(f"PASS Created cast: {name} (hourly {hourly_rate})")

    settings_service.ensure_defaults_seeded()
    db.session.commit()
    click.echo("\nDONE Catalog seeded")


@catalog_group.command('products')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_products(category):
    """List products with their price, backs and points."""
    query = db.session.query(Product)
    if category:
        query = query.filter_by(category=category)
    products = query.order_by(Product.sort_order.asc(), Product.id.asc()).all()

    if not products:
        click.echo("No products found")
        return

    click.echo(f"\n{'ID':<5} {'Name':<28} {'Category':<11} {'Price':>7} {'Back F/D':>12} {'Pts':>4} {'Active':<6}")
    click.echo("-" * 80)
    for p in products:
        backs = f"{p.back_free}/{p.back_designated}"
        click.echo(
            f"{p.id:<5} {p.name_jp:<28} {p.category:<11} {p.price:>7} {backs:>12} {p.points:>4} "
            f"{'yes' if p.is_active else 'no':<6}"
        )
    click.echo(f"\nTotal: {len(products)} products")


# =============================================================================
# SETTINGS COMMANDS
# =============================================================================

@click.group('settings')
def settings_group():
    """Store setting inspection and repair commands."""


@settings_group.command('list')
@with_appcontext
def list_settings_cli():
    """Show every setting with its effective value."""
    for item in settings_service.list_settings():
        marker = "(default)" if item["is_default"] else ""
        click.echo(f"{item['key']:<26} {item['value']:>10} {marker:<10} {item['label']}")


@settings_group.command('set')
@click.argument('key')
@click.argument('value', type=int)
@with_appcontext
def set_setting_cli(key, value):
    """Change one setting."""
    try:
        row = settings_service.update_setting(key=key, value=value)
    except SettingsValidationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS {row.key} = {row.value}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(settings_group)
