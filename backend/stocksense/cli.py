# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stocksense/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables if missing and the default users.
# - python -m flask system seed [--no-sales]
#   Load the demo catalog and sample sales (through the stock ledger).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --id-number MGR002 --full-name "Night Manager" --role Manager
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list [--role Manager]
#   List operations, optionally only those a role may perform.
# - python -m flask perms check MGR001 view-analytics-advanced
#   Check whether a user's role allows an operation.
#
# Ledger:
# - python -m flask ledger verify
#   Check quantity == initial_quantity - units sold for every product.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import LedgerError, ValidationError
from .extensions import db, get_services
from .models import User
from .permissions import (
    Actor,
    PermissionCategory,
    Role,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    validate_permission_code,
)
from .seed import DEFAULT_PASSWORD, seed_catalog, seed_sales, seed_users
from .services.auth_service import register_user
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, show_default=True, help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Initialize StockSense: schema (if missing) and default users.

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing StockSense...")
    db.create_all()

    admin_id = current_app.config["DEFAULT_ADMIN_ID_NUMBER"]
    try:
        results = seed_users(admin_id, password=password)
    except ValidationError as e:
        raise click.ClickException(f"Password validation failed: {e.message}")

    for id_number, created in results:
        if created:
            click.echo(f"PASS Created user: {id_number}")
        else:
            click.echo(f"WARN  User '{id_number}' already exists, skipping...")

    click.echo("\nDONE StockSense initialized.")
    click.echo("Default Credentials (CHANGE IN PRODUCTION!):")
    for id_number, _ in results:
        click.echo(f"   {id_number:<10} / {password}")


@system_group.command('seed')
@click.option('--no-sales', is_flag=True, help='Load the catalog only')
@with_appcontext
def seed_system(no_sales):
    """Load the demo catalog and sample sales. Run 'system init' first."""
    services = get_services()

    manager_user = db.session.query(User).filter_by(role=Role.MANAGER.value).order_by(User.id.asc()).first()
    if manager_user is None:
        raise click.ClickException("No Manager user found. Run 'python -m flask system init' first.")

    actor = Actor.of(manager_user.id, manager_user.role)
    try:
        created = seed_catalog(services["store"], services["policy"], actor)
        click.echo(f"PASS Created {created} products")

        if not no_sales:
            recorded = seed_sales(services["sales"], now=utcnow())
            click.echo(f"PASS Recorded {recorded} sample sales")
    except LedgerError as e:
        raise click.ClickException(f"Seeding failed: {e.message}")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--id-number', prompt=True, help='Login id (e.g. MGR002)')
@click.option('--full-name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@with_appcontext
def create_user_cli(id_number, full_name, password, role):
    """Create a user (no policy check; for bootstrap)."""
    try:
        user = register_user(id_number=id_number, password=password, role=role, full_name=full_name)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.id_number} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'ID Number':<15} {'Full Name':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.id_number:<15} {user.full_name:<30} {user.role:<10} {active_str}")

    click.echo("="*80 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Only operations this role may perform')
@click.option('--category', help='Only operations in this category (e.g. ANALYTICS)')
@with_appcontext
def list_permissions_cli(role, category):
    """List operations grouped by category, as the active access policy sees them."""
    policy = get_services()["policy"]

    known = [v for k, v in vars(PermissionCategory).items() if not k.startswith("_")]
    if category:
        category = category.upper()
        if category not in known:
            raise click.ClickException(f"Category '{category}' not found (known: {', '.join(known)})")
    definitions = [d for c in ([category] if category else known) for d in get_permissions_by_category(c)]
    title = f"Operations in {category}" if category else "All Operations"

    if role:
        try:
            role_obj = Role.parse(role)
        except ValueError:
            raise click.ClickException(f"Role '{role}' not found")
        allowed_codes = policy.operations_for(role_obj)
        definitions = [d for d in definitions if d[0] in allowed_codes]
        title = f"{title} for role: {role_obj.value}"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")

    current_category = None
    for code, name, _description, category in sorted(definitions, key=lambda d: (d[3], d[0])):
        if category != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {category}")
            click.echo("-"*80)
            current_category = category
        roles = ", ".join(r.value for r in Role if policy.allowed(r, code))
        click.echo(f"  {code:<28} {name:<28} {roles}")

    click.echo(f"\n Total: {len(definitions)} operations\n")


@perms_group.command('check')
@click.argument('id_number')
@click.argument('operation')
@with_appcontext
def check_permission_cli(id_number, operation):
    """Check if a user's role allows an operation."""
    if not validate_permission_code(operation):
        raise click.ClickException(
            f"Unknown operation '{operation}' (known: {', '.join(get_all_permission_codes())})"
        )
    definition = get_permission_definition(operation)

    user = db.session.query(User).filter_by(id_number=id_number).first()
    if not user:
        raise click.ClickException(f"User '{id_number}' not found")

    policy = get_services()["policy"]
    if policy.allowed(user.role, operation):
        click.echo(f"PASS User '{id_number}' ({user.role}) MAY perform '{operation}' ({definition['name']})")
    else:
        click.echo(f"FAIL User '{id_number}' ({user.role}) MAY NOT perform '{operation}' ({definition['name']})")

    click.echo(f"\nAllowed operations: {', '.join(sorted(policy.operations_for(user.role))) or 'none'}")


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance commands."""


@ledger_group.command('verify')
@with_appcontext
def verify_ledger_cli():
    """Audit quantity == initial_quantity - units sold for every product."""
    mismatches = get_services()["store"].audit_stock()

    if not mismatches:
        click.echo("PASS Ledger consistent: every product quantity matches its sales history.")
        return

    click.echo(f"FAIL {len(mismatches)} product(s) out of balance:")
    click.echo(f"{'ID':<6} {'SKU':<12} {'Quantity':<10} {'Expected':<10} {'Units sold'}")
    for row in mismatches:
        click.echo(
            f"{row['product_id']:<6} {row['sku']:<12} {row['quantity']:<10} "
            f"{row['expected_quantity']:<10} {row['units_sold']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(ledger_group)
