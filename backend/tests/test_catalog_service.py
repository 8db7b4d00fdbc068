from decimal import Decimal

import pytest

from storefront.errors import ConflictError, InsufficientInventoryError, NotFoundError
from storefront.extensions import db
from storefront.models import Variant
from storefront.services import catalog_service


def _variant(key, sku, inventory=5, price="10.00", **attributes):
    return {
        "variant_key": key,
        "name": key.title(),
        "price": Decimal(price),
        "sku": sku,
        "inventory": inventory,
        "attributes": attributes,
    }


def test_create_product_stores_variants_in_order(make_product):
    product = make_product(variants=[
        _variant("red-s", "TEE-RED-S", color="red", size="S"),
        _variant("red-m", "TEE-RED-M", color="red", size="M"),
    ])

    assert [v.variant_key for v in product.variants] == ["red-s", "red-m"]
    assert product.variants[1].attributes == {"size": "M", "color": "red"}
    assert product.to_dict()["base_price"] == "10.00"


def test_duplicate_sku_across_products_is_conflict(make_product):
    make_product(variants=[_variant("a", "DUP-1")])
    with pytest.raises(ConflictError) as exc:
        make_product(variants=[_variant("b", "DUP-1")])
    assert exc.value.details == {"skus": ["DUP-1"]}


def test_update_replaces_variants_and_keeps_own_skus(make_product):
    product = make_product(variants=[_variant("a", "KEEP-1", inventory=2)])

    updated = catalog_service.update_product(
        product_id=product.id,
        patch={"name": "Renamed", "variants": [_variant("a", "KEEP-1", inventory=9), _variant("b", "NEW-2")]},
    )

    assert updated.name == "Renamed"
    assert [v.variant_key for v in updated.variants] == ["a", "b"]
    assert updated.find_variant("a").inventory == 9
    assert db.session.query(Variant).count() == 2


def test_update_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        catalog_service.update_product(product_id=999, patch={"name": "x"})


def test_deactivate_hides_from_browse_but_keeps_lookup(make_product):
    product = make_product(name="Gone")
    catalog_service.deactivate(product.id)

    assert catalog_service.get_product(product.id).is_active is False
    with pytest.raises(NotFoundError):
        catalog_service.find_active_product(product.id)
    assert catalog_service.list_products()["pagination"]["total"] == 0


def test_reserve_decrements_and_returns_remaining(make_product):
    product = make_product(inventory=5)
    key = product.variants[0].variant_key

    remaining = catalog_service.reserve(product, key, 3)
    db.session.commit()

    assert remaining == 2
    assert product.find_variant(key).inventory == 2


def test_reserve_never_goes_negative(make_product):
    product = make_product(inventory=3)
    key = product.variants[0].variant_key

    catalog_service.reserve(product, key, 2)
    with pytest.raises(InsufficientInventoryError) as exc:
        catalog_service.reserve(product, key, 2)
    db.session.commit()

    assert exc.value.details["available"] == 1
    assert product.find_variant(key).inventory == 1


def test_reserve_exact_remaining_reaches_zero(make_product):
    product = make_product(inventory=4)
    key = product.variants[0].variant_key

    for _ in range(4):
        catalog_service.reserve(product, key, 1)
    db.session.commit()

    assert product.find_variant(key).inventory == 0
    with pytest.raises(InsufficientInventoryError):
        catalog_service.reserve(product, key, 1)


def test_reserve_unknown_variant(make_product):
    product = make_product()
    with pytest.raises(NotFoundError):
        catalog_service.reserve(product, "nope", 1)


def test_check_available(make_product):
    variant = make_product(inventory=2).variants[0]
    assert catalog_service.check_available(variant, 2)
    assert not catalog_service.check_available(variant, 3)


def test_list_products_filters_and_paginates(make_product):
    make_product(name="Blue Hoodie", category="Clothing", price="45.00")
    make_product(name="Red Scarf", category="Clothing", price="15.00")
    make_product(name="Desk Lamp", category="Home", price="30.00")

    clothing = catalog_service.list_products(category="Clothing")
    assert {p["name"] for p in clothing["products"]} == {"Blue Hoodie", "Red Scarf"}

    searched = catalog_service.list_products(search="hoodie")
    assert [p["name"] for p in searched["products"]] == ["Blue Hoodie"]

    priced = catalog_service.list_products(min_price=Decimal("20"), max_price=Decimal("40"))
    assert [p["name"] for p in priced["products"]] == ["Desk Lamp"]

    page = catalog_service.list_products(page=2, limit=2)
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert len(page["products"]) == 1


def test_list_categories_counts_active_products(make_product):
    make_product(category="Clothing")
    make_product(category="Clothing")
    hidden = make_product(category="Home")
    catalog_service.deactivate(hidden.id)

    assert catalog_service.list_categories() == [{"name": "Clothing", "product_count": 2}]
