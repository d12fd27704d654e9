# Overview: Flask CLI command groups for bootstrap, catalog seeding, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the PIN-login system administrator.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed [--force]
#   Insert the demo catalog (products with color/size variants).
#
# Admin access:
# - python -m flask admin create --email a@b.com --password "secret1" --full-name "Ann Admin" --role manager
#   Create (or promote) a verified account with admin access.
# - python -m flask admin list
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens and old login attempts.
# - python -m flask maintenance reconcile-stock
#   Re-apply stock decrements that failed after order placement.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, ProductVariant, User, AdminUser, ADMIN_ROLES, slugify
from .services import auth_service
from .services import session_service
from .services import login_throttle_service
from .services import order_service
from .validation import ValidationError, ConflictError, validate_registration


# name, category, base price (paise), description
DEMO_PRODUCTS = [
    ("Premium Cotton T-Shirt", "T-Shirts", 129900, "Comfortable and stylish cotton t-shirt perfect for everyday wear."),
    ("Designer Jeans", "Jeans", 249900, "High-quality denim jeans with modern fit and style."),
    ("Casual Hoodie", "Hoodies", 189900, "Warm and comfortable hoodie for casual outings."),
    ("Formal Shirt", "Shirts", 179900, "Professional formal shirt for office and business meetings."),
    ("Sports Jacket", "Jackets", 329900, "Lightweight sports jacket for active lifestyle."),
    ("Summer Dress", "Dresses", 219900, "Elegant summer dress perfect for special occasions."),
]
DEMO_COLORS = ["black", "white"]
DEMO_SIZES = ["S", "M", "L", "XL"]
DEMO_VARIANT_STOCK = 25


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables (if missing) and the system administrator behind PIN login.

    Safe to run repeatedly.
    """
    click.echo("START Initializing storefront...")
    db.create_all()
    click.echo("PASS Tables ready")

    user, admin = auth_service.get_or_create_system_admin()
    click.echo(f"PASS System administrator: {user.email} (role: {admin.role})")
    click.echo("DONE Sign in to the dashboard with the configured ADMIN_PIN.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('catalog')
def catalog_group():
    """Catalog seeding commands."""


@catalog_group.command('seed')
@click.option('--force', is_flag=True, help='Seed even if products already exist')
@with_appcontext
def seed_catalog(force):
    """Insert the demo catalog: every product in two colors and four sizes."""
    existing = db.session.query(Product).count()
    if existing and not force:
        click.echo(f"SKIP Catalog already has {existing} products (use --force to add the demo set anyway)")
        return

    created = 0
    for name, category, price_cents, description in DEMO_PRODUCTS:
        product = Product(
            name=name,
            slug=slugify(name),
            description=description,
            base_price_cents=price_cents,
            category=category,
            image_url="/api/placeholder/400/500",
            stock_quantity=DEMO_VARIANT_STOCK * len(DEMO_COLORS) * len(DEMO_SIZES),
            is_active=True,
        )
        for color in DEMO_COLORS:
            for size in DEMO_SIZES:
                product.variants.append(ProductVariant(
                    color=color,
                    size=size,
                    stock_quantity=DEMO_VARIANT_STOCK,
                    price_adjustment_cents=10000 if size == "XL" else 0,
                    is_active=True,
                ))
        db.session.add(product)
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} products")


@click.group('admin')
def admin_group():
    """Admin access management."""


@admin_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--phone', default='0000000000', show_default=True, help='Phone number')
@click.option('--role', type=click.Choice(sorted(ADMIN_ROLES)), default='admin', show_default=True, help='Role')
@with_appcontext
def create_admin_cli(email, password, full_name, phone, role):
    """Create a verified account with admin access, or promote an existing one."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()

    if user is None:
        try:
            cleaned = validate_registration({
                "email": email, "password": password, "full_name": full_name, "phone": phone,
            })
            user = auth_service.register_user(**cleaned)
        except ValidationError as e:
            details = "; ".join(f"{k}: {v}" for k, v in e.errors.items()) or str(e)
            click.echo(f"FAIL {details}")
            raise SystemExit(1)
        except ConflictError as e:
            click.echo(f"FAIL {e}")
            raise SystemExit(1)
        click.echo(f"PASS Created user {user.email} (ID: {user.id})")
    else:
        click.echo(f"PASS Using existing user {user.email} (ID: {user.id})")

    auth_service.confirm_email(user.email)
    admin = auth_service.grant_admin(user, role=role)
    click.echo(f"PASS Granted {admin.role} access")


@admin_group.command('list')
@with_appcontext
def list_admins():
    admins = db.session.query(AdminUser).order_by(AdminUser.id.asc()).all()
    if not admins:
        click.echo("No admin users.")
        return
    for admin in admins:
        status = "active" if admin.is_active else "inactive"
        click.echo(f"{admin.id:>4}  {admin.user.email:<40} {admin.role:<12} {status}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True, help='Keep records newer than this')
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired or revoked session tokens and old login attempts."""
    sessions = session_service.cleanup_expired_sessions(retention_days=retention_days)
    attempts = login_throttle_service.cleanup_old_attempts(retention_days=retention_days)
    click.echo(f"PASS Deleted {sessions} sessions and {attempts} login attempts")


@maintenance_group.command('reconcile-stock')
@with_appcontext
def reconcile_stock():
    """Re-apply PENDING stock decrements left behind by failed post-order updates."""
    result = order_service.apply_stock_adjustments()
    click.echo(f"PASS Applied {result['applied']} stock adjustments")
    if result["failed"]:
        click.echo(f"WARN {result['failed']} adjustments still pending (see logs)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(admin_group)
    app.cli.add_command(maintenance_group)
