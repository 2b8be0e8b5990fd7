# storefront/cli.py
import click
from werkzeug.security import generate_password_hash
from .extensions import db
from .model import ShippingRate, User

@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    u = User.query.filter_by(email=email).first()
    if u:
        if u.role == "admin":
            click.echo("Email already exists"); return
        u.role = "admin"
        db.session.commit()
        click.echo(f"Promoted to admin: {u.id} {u.email}")
        return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")

# (name, description, rate_cents, min_order_cents, max_order_cents, days_min, days_max)
DEFAULT_RATES = [
    ("Standard Shipping", "5-7 business days", 599, 0, 4999, 5, 7),
    ("Free Shipping", "Orders of $50 or more", 0, 5000, None, 5, 7),
    ("Express Shipping", "2-3 business days", 1499, 0, None, 2, 3),
]

@click.command("seed-shipping")
def seed_shipping():
    """Insert the default shipping rates when none exist."""
    if ShippingRate.query.first():
        click.echo("Shipping rates already configured"); return
    for order, (name, desc, cents, lo, hi, dmin, dmax) in enumerate(DEFAULT_RATES):
        db.session.add(ShippingRate(
            name=name, description=desc, rate_cents=cents,
            min_order_cents=lo, max_order_cents=hi,
            estimated_days_min=dmin, estimated_days_max=dmax,
            display_order=order, is_active=True,
        ))
    db.session.commit()
    click.echo(f"Seeded {len(DEFAULT_RATES)} shipping rates")

def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(seed_shipping)
