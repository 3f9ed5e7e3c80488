"""Flask CLI commands for catalog and cart operations."""
import click


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        from app.extensions import db

        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed demo wigs with length, lace and density options (idempotent)."""
        from app.models.product import Product
        from app.services.catalog_service import save_product

        # Only seed if no products exist yet
        if Product.query.first():
            click.echo("Products already exist — skipping demo seed.")
            return

        lace = [
            {"value": "4x4", "label": "4x4 Closure", "price_multiplier": 0},
            {"value": "13x4", "label": "13x4 Frontal", "price_multiplier": 15000},
            {"value": "13x6", "label": "13x6 Frontal", "price_multiplier": 25000},
        ]
        demo_products = [
            {
                "name": "Bone Straight Frontal Wig",
                "category": "Wigs",
                "length_options_enabled": True,
                "length_options": [
                    {"value": "14", "price": 95000, "original_price": 120000},
                    {"value": "18", "price": 130000, "original_price": 160000},
                    {"value": "22", "price": 175000, "original_price": 210000},
                ],
                "lace_size_options": lace,
                "density_options": [
                    {"value": "180%"},
                    {"value": "200%", "additional_price": 20000},
                    {"value": "250%", "additional_price": 45000},
                ],
            },
            {
                "name": "Body Wave Closure Wig",
                "category": "Wigs",
                "length_options_enabled": True,
                "length_options": [
                    {"value": "16", "price": 85000},
                    {"value": "20", "price": 115000},
                ],
                "lace_size_options": lace[:2],
            },
            {
                "name": "Edge Control Gel",
                "category": "Care",
                "price": 6500,
                "original_price": 8000,
                "length_options_enabled": False,
            },
        ]
        for payload in demo_products:
            save_product(payload, admin_id="seed")
        click.echo(f"Seeded {len(demo_products)} demo products.")

    @app.cli.command("quote")
    @click.argument("product_id", type=int)
    @click.option("--length", default="")
    @click.option("--density", default="")
    @click.option("--lace-size", default="")
    def quote(product_id, length, density, lace_size):
        """Print the price of a product for an option selection."""
        from app.pricing.composition import (
            compute_price,
            customer_pays,
            full_product_name,
            resolve_selection,
        )
        from app.services.catalog_service import get_product

        product = get_product(product_id)
        if product is None:
            raise click.ClickException(f"Product {product_id} not found")

        selection = resolve_selection(product, length, density, lace_size)
        result = compute_price(product, selection)
        click.echo(full_product_name(product, selection))
        click.echo(f"  Price: NGN {result.price:,}")
        if result.original_price:
            click.echo(
                f"  Original: NGN {result.original_price:,} "
                f"({result.discount_percentage}% off)"
            )
        click.echo(f"  Customer pays (with gateway fees): NGN {customer_pays(result.price):,}")

    @app.cli.command("sync-carts")
    def sync_carts():
        """Reconcile every stored cart against the catalog now."""
        from app.workers.cart_sync import sync_persisted_carts

        changed = sync_persisted_carts()
        click.echo(f"Updated {changed} cart(s).")

    @app.cli.command("watch-catalog")
    def watch_catalog():
        """Re-sync stored carts on every catalog change until interrupted."""
        import threading
        from app import extensions
        from app.workers.cart_sync import sync_persisted_carts

        flask_app = app

        def _on_change(event):
            with flask_app.app_context():
                changed = sync_persisted_carts()
            click.echo(f"Catalog changed — updated {changed} cart(s).")

        subscription = extensions.catalog_feed.subscribe(_on_change)
        click.echo("Watching catalog changes (Ctrl+C to stop)...")
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass
        finally:
            subscription.close()
            click.echo("Stopped.")

    @app.cli.command("stats")
    def stats():
        """Show product statistics."""
        from app.services.catalog_service import get_stats

        s = get_stats()
        total = sum(s.values())
        click.echo(f"Total products: {total}")
        for state, count in sorted(s.items()):
            click.echo(f"  {state}: {count}")
