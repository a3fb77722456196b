# Overview: Flask CLI command groups for bootstrap and user administration.

# backend/posadmin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--with-demo-data]
#   Idempotent bootstrap: creates tables, one user per role and a default warehouse.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Jane Doe" --email jane@pos.local --password secret1 --role cashier
#   Create a user (prompts if options are omitted).
# - python -m flask users set-role jane@pos.local inventory
#   Change a user's role.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, InventoryRecord, Product, User, Warehouse
from .permissions import Role
from .services.auth_service import create_user, normalize_email, PasswordValidationError
from .validation import ConflictError, ValidationError

DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("Administrator", "admin@pos.local", Role.ADMIN),
    ("Cashier", "cashier@pos.local", Role.CASHIER),
    ("Inventory Clerk", "inventory@pos.local", Role.INVENTORY),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--with-demo-data', is_flag=True, help='Also add sample categories and products')
@with_appcontext
def init_system(with_demo_data):
    """
    Initialize the POS admin database.

    Creates:
    - All tables (if missing)
    - Users: admin@pos.local, cashier@pos.local, inventory@pos.local
    - Warehouse: "Main Warehouse"
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing POS admin...")

    db.create_all()
    click.echo("PASS Tables ready")

    for name, email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"SKIP User {email} already exists")
            continue
        create_user(name=name, email=email, password=DEFAULT_PASSWORD, role=role)
        click.echo(f"PASS Created user {email} ({role.value})")

    warehouse = db.session.query(Warehouse).order_by(Warehouse.id.asc()).first()
    if not warehouse:
        warehouse = Warehouse(name="Main Warehouse", location="Head Office")
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {warehouse.name} (ID: {warehouse.id})")

    if with_demo_data and not db.session.query(Product).first():
        _seed_demo_catalog(warehouse)
        click.echo("PASS Added demo catalog")

    click.echo(f"DONE Default password for new users: {DEFAULT_PASSWORD}")


def _seed_demo_catalog(warehouse: Warehouse) -> None:
    electronics = Category(name="Electronics", description="Devices and accessories")
    stationery = Category(name="Stationery", description="Office supplies")
    db.session.add_all([electronics, stationery])
    db.session.flush()

    demo = [
        ("LAP-001", "Laptop", 89999, electronics, 15),
        ("MOU-001", "Wireless Mouse", 2499, electronics, 40),
        ("NOTE-001", "Notebook A5", 399, stationery, 8),
        ("PEN-001", "Gel Pen", 199, stationery, 0),
    ]
    for sku, name, price, category, stock in demo:
        product = Product(sku=sku, name=name, price_cents=price, category_id=category.id)
        db.session.add(product)
        db.session.flush()
        db.session.add(InventoryRecord(product_id=product.id, warehouse_id=warehouse.id, stock_level=stock))
    db.session.commit()


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
    db.create_all()
    click.echo("PASS Database reset. Run 'python -m flask system init' to bootstrap.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found. Run 'python -m flask system init' first.")
        return
    for user in users:
        status = "active" if user.is_active else "disabled"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<10} {status:<8} {user.name}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a new user. Passwords need at least 6 characters."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice([r.value for r in Role]))
@with_appcontext
def set_role_cli(email, role):
    """Change the role of an existing user."""
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        raise click.ClickException(f"User {email} not found")
    user.role = role
    db.session.commit()
    click.echo(f"PASS {user.email} is now '{role}'")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
