# Overview: Flask CLI command groups for bootstrap, sample data, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP=storefront:create_app
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Load sample products and promo codes (skips anything already present).
#
# Maintenance:
# - python -m flask carts purge-expired
#   Delete carts whose expiry has passed.

from datetime import timedelta
from decimal import Decimal

import click
from flask.cli import with_appcontext

from .errors import ConflictError
from .extensions import db
from .models import Product, Promo
from .services import cart_service, catalog_service, promotions_service
from .time_utils import utcnow

SAMPLE_PRODUCTS = [
    {
        "name": "Wireless Bluetooth Headphones",
        "description": "High-quality wireless headphones with noise cancellation and 30-hour battery life.",
        "category": "Electronics",
        "base_price": Decimal("199.99"),
        "images": ["https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=500"],
        "variants": [
            {"variant_key": "headphones-black", "name": "Black", "price": Decimal("199.99"),
             "sku": "WBH-BLACK-001", "inventory": 50, "attributes": {"color": "black"}},
            {"variant_key": "headphones-white", "name": "White", "price": Decimal("199.99"),
             "sku": "WBH-WHITE-001", "inventory": 30, "attributes": {"color": "white"}},
            {"variant_key": "headphones-blue", "name": "Blue", "price": Decimal("219.99"),
             "sku": "WBH-BLUE-001", "inventory": 25, "attributes": {"color": "blue"}},
        ],
    },
    {
        "name": "Premium Cotton T-Shirt",
        "description": "Soft, comfortable cotton t-shirt made from 100% organic cotton.",
        "category": "Clothing",
        "base_price": Decimal("29.99"),
        "images": [],
        "variants": [
            {"variant_key": "tshirt-red-s", "name": "Red - Small", "price": Decimal("29.99"),
             "sku": "PCT-RED-S", "inventory": 100, "attributes": {"color": "red", "size": "S"}},
            {"variant_key": "tshirt-red-m", "name": "Red - Medium", "price": Decimal("29.99"),
             "sku": "PCT-RED-M", "inventory": 150, "attributes": {"color": "red", "size": "M"}},
            {"variant_key": "tshirt-blue-m", "name": "Blue - Medium", "price": Decimal("29.99"),
             "sku": "PCT-BLUE-M", "inventory": 120, "attributes": {"color": "blue", "size": "M"}},
        ],
    },
]


def _sample_promos(now):
    return [
        {"code": "WELCOME10", "name": "Welcome 10% off", "type": "percentage", "value": Decimal("10"),
         "max_discount_amount": Decimal("20.00"), "minimum_order_amount": None, "usage_limit": None},
        {"code": "SAVE20", "name": "$20 off orders over $100", "type": "fixed", "value": Decimal("20.00"),
         "max_discount_amount": None, "minimum_order_amount": Decimal("100.00"), "usage_limit": 100},
    ], now - timedelta(days=1), now + timedelta(days=90)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('catalog')
def catalog_group():
    """Catalog sample data."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load sample products and promo codes; existing SKUs and codes are skipped."""
    for entry in SAMPLE_PRODUCTS:
        try:
            product = catalog_service.create_product(patch=entry)
            click.echo(f"PASS Created product: {product.name} (ID: {product.id})")
        except ConflictError:
            db.session.rollback()
            click.echo(f"WARN  Product '{entry['name']}' already seeded, skipping...")

    promos, valid_from, valid_until = _sample_promos(utcnow())
    for entry in promos:
        if db.session.query(Promo.id).filter_by(code=entry["code"]).first():
            click.echo(f"WARN  Promo '{entry['code']}' already exists, skipping...")
            continue
        promo = promotions_service.create_promo({**entry, "valid_from": valid_from, "valid_until": valid_until})
        click.echo(f"PASS Created promo: {promo.code}")

    click.echo(f"DONE {db.session.query(Product).count()} products, {db.session.query(Promo).count()} promos")


@click.group('carts')
def carts_group():
    """Cart maintenance."""


@carts_group.command('purge-expired')
@with_appcontext
def purge_expired():
    """Delete carts past their expiry."""
    removed = cart_service.purge_expired_carts()
    click.echo(f"PASS Purged {removed} expired carts")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(carts_group)
