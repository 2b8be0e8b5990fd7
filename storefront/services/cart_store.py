# storefront/services/cart_store.py
"""
Cart state as an owned value object.

The store is pure: no database, no network. Persistence goes through
``serialize`` / ``deserialize`` so the caller decides where the cart lives
(browser storage, a session, a file, the server-side mirror).
"""
from __future__ import annotations
import json
from dataclasses import dataclass, asdict, replace
from typing import Optional

STORAGE_VERSION = 1


@dataclass(frozen=True)
class CartLine:
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    image: Optional[str] = None

    def __post_init__(self):
        if self.unit_price_cents < 0:
            raise ValueError("unit_price_cents must be >= 0")
        if self.quantity <= 0:
            raise ValueError("quantity must be > 0")

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class CartStore:
    def __init__(self, lines=None):
        self._lines: dict[str, CartLine] = {}
        for line in lines or ():
            self.add(line)

    # ---- actions -----------------------------------------------------------

    def add(self, line: CartLine):
        """Add a line, merging quantity into an existing line for the same product."""
        key = str(line.product_id)
        existing = self._lines.get(key)
        if existing:
            self._lines[key] = replace(existing, quantity=existing.quantity + line.quantity)
        else:
            self._lines[key] = replace(line, product_id=key)

    def remove(self, product_id):
        self._lines.pop(str(product_id), None)

    def set_quantity(self, product_id, quantity: int):
        key = str(product_id)
        if key not in self._lines:
            return
        if quantity <= 0:
            del self._lines[key]
        else:
            self._lines[key] = replace(self._lines[key], quantity=quantity)

    def clear(self):
        self._lines.clear()

    # ---- derived values ----------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def get(self, product_id) -> CartLine | None:
        return self._lines.get(str(product_id))

    @property
    def subtotal_cents(self) -> int:
        return cart_totals(self.lines)["subtotal_cents"]

    @property
    def item_count(self) -> int:
        return cart_totals(self.lines)["item_count"]

    def __len__(self):
        return len(self._lines)

    def __contains__(self, product_id):
        return str(product_id) in self._lines

    # ---- persistence boundary ---------------------------------------------

    def serialize(self) -> str:
        return json.dumps({"version": STORAGE_VERSION, "items": [asdict(l) for l in self.lines]})

    @classmethod
    def deserialize(cls, raw: str | None) -> "CartStore":
        """Rebuild a cart from ``serialize`` output; unreadable input yields an empty cart."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except ValueError:
            return cls()
        store = cls()
        for item in (data.get("items") if isinstance(data, dict) else None) or []:
            try:
                store.add(CartLine(
                    product_id=str(item["product_id"]),
                    name=str(item.get("name") or ""),
                    unit_price_cents=int(item["unit_price_cents"]),
                    quantity=int(item["quantity"]),
                    image=item.get("image"),
                ))
            except (KeyError, TypeError, ValueError):
                continue
        return store

    def as_api(self):
        totals = cart_totals(self.lines)
        return {
            "items": [
                {
                    "productId": l.product_id,
                    "name": l.name,
                    "price": l.unit_price_cents,
                    "quantity": l.quantity,
                    "image": l.image,
                    "lineTotal": l.line_total_cents,
                }
                for l in self.lines
            ],
            "subtotalCents": totals["subtotal_cents"],
            "itemCount": totals["item_count"],
        }


def cart_totals(lines) -> dict:
    return {
        "subtotal_cents": sum(l.unit_price_cents * l.quantity for l in lines),
        "item_count": sum(l.quantity for l in lines),
    }
