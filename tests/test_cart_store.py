import json

import pytest

from storefront.services.cart_store import CartLine, CartStore, cart_totals


def line(pid="1", price=1000, qty=1, name="Mug"):
    return CartLine(product_id=pid, name=name, unit_price_cents=price, quantity=qty)


def test_add_merges_quantities():
    cart = CartStore()
    cart.add(line("1", qty=2))
    cart.add(line("1", qty=3))
    assert len(cart) == 1
    assert cart.get("1").quantity == 5


def test_product_ids_compare_as_strings():
    cart = CartStore()
    cart.add(line(7))
    assert 7 in cart
    assert "7" in cart
    cart.remove(7)
    assert len(cart) == 0


def test_set_quantity():
    cart = CartStore([line("1", qty=1), line("2", qty=1)])
    cart.set_quantity("1", 4)
    assert cart.get("1").quantity == 4

    cart.set_quantity("2", 0)
    assert "2" not in cart

    # unknown product is a no-op
    cart.set_quantity("99", 3)
    assert "99" not in cart


def test_totals():
    cart = CartStore([line("1", price=1250, qty=2), line("2", price=99, qty=3)])
    assert cart.subtotal_cents == 2797
    assert cart.item_count == 5
    assert cart_totals([]) == {"subtotal_cents": 0, "item_count": 0}


def test_clear():
    cart = CartStore([line("1"), line("2")])
    cart.clear()
    assert cart.lines == []
    assert cart.subtotal_cents == 0


def test_line_validation():
    with pytest.raises(ValueError):
        line(price=-1)
    with pytest.raises(ValueError):
        line(qty=0)


def test_serialize_restores_cart():
    cart = CartStore([line("1", price=500, qty=2, name="Pen"), line("2", price=300)])
    restored = CartStore.deserialize(cart.serialize())
    assert restored.as_api() == cart.as_api()
    assert json.loads(cart.serialize())["version"] == 1


@pytest.mark.parametrize("raw", [None, "", "not json", "[]", '{"items": "nope"}'])
def test_deserialize_bad_input_gives_empty_cart(raw):
    assert len(CartStore.deserialize(raw)) == 0


def test_deserialize_skips_bad_items():
    raw = json.dumps({"version": 1, "items": [
        {"product_id": "1", "name": "Pen", "unit_price_cents": 100, "quantity": 2},
        {"product_id": "2", "name": "Broken", "unit_price_cents": -5, "quantity": 1},
        {"name": "No id"},
    ]})
    cart = CartStore.deserialize(raw)
    assert [l.product_id for l in cart.lines] == ["1"]


def test_as_api():
    cart = CartStore([line("1", price=250, qty=4)])
    data = cart.as_api()
    assert data["subtotalCents"] == 1000
    assert data["itemCount"] == 4
    assert data["items"][0] == {
        "productId": "1", "name": "Mug", "price": 250, "quantity": 4, "image": None, "lineTotal": 1000,
    }
