"""
Flask CLI command groups.
"""

from schoolhub.models import OWNER_TYPES
from schoolhub.services import category_service


def test_seed_demo_then_tree_and_audit(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo", "--actor", "cli-test"])
    assert result.exit_code == 0, result.output
    assert "PASS Created product BALL-SOC-5 in Soccer" in result.output

    result = runner.invoke(args=["categories", "tree", "product"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "product categories:"
    assert lines[1].strip().startswith("- Sport")
    assert any(line.strip().startswith("- Soccer (members=1") for line in lines)

    result = runner.invoke(args=["integrity", "audit"])
    assert result.exit_code == 0, result.output
    assert f"PASS {len(OWNER_TYPES)} owner types checked" in result.output

    result = runner.invoke(args=["media", "orphans", "image"])
    assert result.exit_code == 0
    assert "0 unreferenced image row(s)" in result.output


def test_owner_types_listing(app, db_session):
    result = app.test_cli_runner().invoke(args=["owners", "types"])

    assert result.exit_code == 0
    assert "product_categories" in result.output
    assert "tree_of=product" in result.output


def test_tree_for_type_without_categories(app, db_session):
    result = app.test_cli_runner().invoke(args=["categories", "tree", "teacher"])

    assert result.exit_code != 0
    assert "has no category tree" in result.output


def test_audit_fails_on_cycle(app, db_session):
    a = category_service.create_category("product", "A")
    b = category_service.create_category("product", "B", parent_id=a.id)
    a.parent_category_id = b.id
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["integrity", "audit", "--owner-type", "product"])

    assert result.exit_code == 1
    assert "FAIL [category_cycle]" in result.output


def test_audit_unknown_owner_type(app, db_session):
    result = app.test_cli_runner().invoke(args=["integrity", "audit", "--owner-type", "spaceship"])

    assert result.exit_code != 0
    assert "Unknown owner type" in result.output
