# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/schoolhub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to schoolhub (PowerShell: $env:FLASK_APP="schoolhub").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create a small demo catalogue: product categories, products, images.
#
# Inspection:
# - python -m flask owners types
#   List registered owner types and the tables generated for them.
# - python -m flask categories tree product
#   Print one owner type's category tree with member counts.
# - python -m flask media orphans image
#   List live media rows that no live attachment references.
#
# Maintenance:
# - python -m flask integrity audit [--owner-type product]
#   Scan for broken trees, dead media links, stray defaults; exit 1 on findings.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import OWNER_TYPES
from .services import (
    owner_service,
    category_service,
    media_service,
    membership_service,
    integrity_service,
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table, including the per-owner-type ones."""
    db.create_all()
    click.echo(f"PASS Tables ready for {len(OWNER_TYPES)} owner types")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@click.option('--actor', default='system', help='Actor id recorded in audit columns')
@with_appcontext
def seed_demo(actor):
    """Small demo catalogue: Sport > Soccer/Rugby, two products, one image each."""
    db.create_all()

    sport = category_service.create_category("product", "Sport", actor=actor)
    soccer = category_service.create_category("product", "Soccer", parent_id=sport.id, actor=actor)
    rugby = category_service.create_category("product", "Rugby", parent_id=sport.id, actor=actor)
    click.echo(f"PASS Created categories: {sport.name} > {soccer.name}, {rugby.name}")

    for sku, name, category in (
        ("BALL-SOC-5", "Soccer Ball Size 5", soccer),
        ("BALL-RUG-5", "Rugby Ball Size 5", rugby),
    ):
        product = owner_service.create_owner(
            "product", {"sku": sku, "name": name, "price_cents": 29900}, actor=actor
        )
        image = media_service.create_media(
            "image",
            {"file_name": f"{sku.lower()}.jpg", "relative_path": f"products/{sku.lower()}.jpg",
             "content_type": "image/jpeg"},
            actor=actor,
        )
        media_service.attach_media("product", "image", product.id, image.id, selector="cover", actor=actor)
        membership_service.add_membership("product", product.id, category.id, actor=actor)
        click.echo(f"PASS Created product {sku} in {category.name}")


@click.group('owners')
def owners_group():
    """Owner type inspection."""


@owners_group.command('types')
@with_appcontext
def list_types():
    """List registered owner types."""
    for info in owner_service.list_owner_types():
        extras = []
        if info["sub_records"]:
            extras.append("records=" + ",".join(info["sub_records"]))
        if info["media"]:
            extras.append("media=" + ",".join(info["media"]))
        if info["categories"]:
            extras.append("categories")
        if info["tree_of"]:
            extras.append(f"tree_of={info['tree_of']}")
        click.echo(f"{info['owner_type']:<28} {info['table']:<28} {' '.join(extras)}")


@click.group('categories')
def categories_group():
    """Category tree inspection."""


def _echo_tree(owner_type: str, parent_id, depth: int) -> None:
    for node in category_service.list_categories(owner_type, parent_id=parent_id):
        info = category_service.category_to_dict(owner_type, node)
        click.echo(f"{'  ' * depth}- {node.name} (members={info['entity_count']}, id={node.id})")
        _echo_tree(owner_type, node.id, depth + 1)


@categories_group.command('tree')
@click.argument('owner_type')
@with_appcontext
def print_tree(owner_type):
    """Print the category tree for OWNER_TYPE."""
    bundle = OWNER_TYPES.get(owner_type)
    if bundle is None or bundle.category is None:
        raise click.ClickException(f"'{owner_type}' has no category tree")
    click.echo(f"{owner_type} categories:")
    _echo_tree(owner_type, None, 1)


@click.group('media')
def media_group():
    """Shared media inspection."""


@media_group.command('orphans')
@click.argument('kind', type=click.Choice(['document', 'image', 'video']))
@with_appcontext
def list_orphans(kind):
    """List live KIND rows with no live attachment."""
    rows = media_service.list_unreferenced_media(kind)
    for media in rows:
        click.echo(f"{media.id}  {media.relative_path}")
    click.echo(f"{len(rows)} unreferenced {kind} row(s)")


@click.group('integrity')
def integrity_group():
    """Data integrity checks."""


@integrity_group.command('audit')
@click.option('--owner-type', 'owner_types', multiple=True, help='Limit to these owner types')
@with_appcontext
def audit(owner_types):
    """Report invariant violations; exits 1 when any are found."""
    unknown = [t for t in owner_types if t not in OWNER_TYPES]
    if unknown:
        raise click.ClickException(f"Unknown owner type(s): {', '.join(unknown)}")

    report = integrity_service.run_integrity_audit(list(owner_types) or None)
    for issue in report["issues"]:
        click.echo(f"FAIL [{issue['check']}] {issue['table']} {issue['id']}: {issue['detail']}")

    if report["ok"]:
        click.echo(f"PASS {len(report['checked'])} owner types checked, no issues")
    else:
        click.echo(f"FAIL {len(report['issues'])} issue(s) found")
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(owners_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(media_group)
    app.cli.add_command(integrity_group)
