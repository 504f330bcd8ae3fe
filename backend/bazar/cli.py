# Overview: Flask CLI command groups for database bootstrap, users and demo data.

# backend/bazar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Shop Owner" --email owner@bazar.local
# - python -m flask users issue-token --email owner@bazar.local
#   Print a new bearer token (shown once).
#
# Catalog:
# - python -m flask catalog seed-demo
#   Create demo products, motorcycles and customers (idempotent by SKU).

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Motorcycle, Product, User
from .services.session_service import create_session


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Existing data is kept."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """Staff user commands."""


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@with_appcontext
def create_user_cli(name, email):
    """Create a staff user."""
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        raise click.ClickException(f"User {email} already exists")

    user = User(name=name.strip(), email=email, is_active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('issue-token')
@click.option('--email', prompt=True)
@with_appcontext
def issue_token_cli(email):
    """Issue a bearer session token for a user."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"User {email} not found")
    try:
        session, token = create_session(user.id)
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Token for {user.email} (expires {session.expires_at:%Y-%m-%d %H:%M} UTC):")
    click.echo(token)


DEMO_PRODUCTS = [
    # sku, name, name_ar, retail, wholesale, stock
    ("P-1001", "Engine Oil 1L", "زيت محرك ١ لتر", "12000", "10000", 120),
    ("P-1002", "Brake Pads", "فحمات فرامل", "25000", "21000", 40),
    ("P-1003", "Spark Plug", "بلك", "5000", "4000", 300),
]

DEMO_MOTORCYCLES = [
    # sku, brand, model, usd retail, usd wholesale, stock
    ("M-2001", "Honda", "CG125", "1450", "1300", 6),
    ("M-2002", "Yamaha", "YBR125", "1650", "1500", 4),
]

DEMO_CUSTOMERS = [
    # sku, name, phone, city
    ("100001", "Ahmed Garage", "+9647501234567", "Erbil"),
    ("100002", "Slemani Spare Parts", "+9647701234567", "Sulaymaniyah"),
]


@click.group('catalog')
def catalog_group():
    """Catalog and customer seed commands."""


@catalog_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo products, motorcycles and customers. Existing SKUs are skipped."""
    created = 0

    for sku, name, name_ar, retail, wholesale, stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            name_ar=name_ar,
            retail_price=Decimal(retail),
            wholesale_price=Decimal(wholesale),
            stock_quantity=stock,
        ))
        created += 1

    for sku, brand, model, retail, wholesale, stock in DEMO_MOTORCYCLES:
        if db.session.query(Motorcycle).filter_by(sku=sku).first():
            continue
        db.session.add(Motorcycle(
            sku=sku,
            brand=brand,
            model=model,
            usd_retail_price=Decimal(retail),
            usd_wholesale_price=Decimal(wholesale),
            stock_quantity=stock,
        ))
        created += 1

    for sku, name, phone, city in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(sku=sku).first():
            continue
        db.session.add(Customer(sku=sku, name=name, phone=phone, city=city))
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} demo records.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
