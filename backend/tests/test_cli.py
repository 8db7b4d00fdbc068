from datetime import timedelta

from storefront.extensions import db
from storefront.models import Cart, Product, Promo
from storefront.services import cart_service
from storefront.time_utils import utcnow


def test_seed_is_repeatable(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["catalog", "seed"])
    assert first.exit_code == 0, first.output
    assert "PASS Created promo: WELCOME10" in first.output

    second = runner.invoke(args=["catalog", "seed"])
    assert second.exit_code == 0, second.output
    assert "already seeded" in second.output

    assert db.session.query(Product).count() == 2
    assert db.session.query(Promo).count() == 2


def test_purge_expired(app, db_session, guest_token):
    cart_service.create_cart(guest_token)
    cart = cart_service.get_cart(guest_token)
    cart.expires_at = utcnow() - timedelta(minutes=1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["carts", "purge-expired"])

    assert result.exit_code == 0, result.output
    assert "Purged 1 expired carts" in result.output
    assert db.session.query(Cart).count() == 0


def test_reset_db_requires_confirmation(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])
    assert result.exit_code == 1
    assert "Refusing" in result.output
