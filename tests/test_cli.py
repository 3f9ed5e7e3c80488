"""Tests for the Flask CLI commands."""
from app.services import catalog_service

from conftest import wig_record


def test_quote_command(app, db):
    with app.app_context():
        wig = catalog_service.save_product(wig_record(), "tester")
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "quote", str(wig.id), "--length", "18", "--density", "200%", "--lace-size", "13x4",
    ])
    assert result.exit_code == 0
    assert "Bone Straight Frontal - 18 - 200% - 13x4 Frontal" in result.output
    assert "NGN 50,000" in result.output
    assert "NGN 56,000 (11% off)" in result.output


def test_quote_unknown_product(app, db):
    result = app.test_cli_runner().invoke(args=["quote", "999"])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_seed_demo_is_idempotent(app, db):
    runner = app.test_cli_runner()
    assert "Seeded 3" in runner.invoke(args=["seed-demo"]).output
    assert "skipping" in runner.invoke(args=["seed-demo"]).output
    result = runner.invoke(args=["stats"])
    assert "Total products: 3" in result.output
