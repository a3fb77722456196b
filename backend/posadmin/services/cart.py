# Overview: In-memory cart built by the sales terminal before checkout.

"""
Cart Aggregator

An ordered collection of lines keyed by product id. Adding a product that
is already present bumps its quantity instead of adding a second line.
Nothing here touches the database; checkout persists the cart.

Money is integer cents. Tax is subtotal * rate rounded half-up to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_TAX_RATE = Decimal("0.08")


class CartError(ValueError):
    """Raised when a product cannot be put in the cart."""


@dataclass(frozen=True)
class CartProduct:
    """Snapshot of a catalog product at the time it was selected."""
    id: int
    name: str
    sku: str
    price_cents: int
    stock: int = 0

    @classmethod
    def from_entry(cls, entry) -> "CartProduct":
        p = entry.product
        return cls(id=p.id, name=p.name, sku=p.sku, price_cents=p.price_cents, stock=entry.total_stock)


@dataclass
class CartLine:
    product: CartProduct
    quantity: int

    @property
    def line_total_cents(self) -> int:
        return self.product.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "name": self.product.name,
            "sku": self.product.sku,
            "unit_price_cents": self.product.price_cents,
            "quantity": self.quantity,
            "total_price_cents": self.line_total_cents,
        }


def compute_tax_cents(subtotal_cents: int, rate) -> int:
    tax = (Decimal(subtotal_cents) * Decimal(str(rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(tax)


class Cart:
    def __init__(self, tax_rate=DEFAULT_TAX_RATE):
        self.tax_rate = Decimal(str(tax_rate))
        self._lines: dict[int, CartLine] = {}

    def add(self, product: CartProduct) -> CartLine:
        """Add one unit. Products with no stock cannot be added."""
        line = self._lines.get(product.id)
        if line is not None:
            line.quantity += 1
            return line
        if product.stock <= 0:
            raise CartError(f"{product.name} is out of stock")
        line = CartLine(product=product, quantity=1)
        self._lines[product.id] = line
        return line

    def set_quantity(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        line = self._lines.get(product_id)
        if line is None:
            raise CartError("Product not in cart")
        line.quantity = quantity

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def quantity_of(self, product_id: int) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    def subtotal(self) -> int:
        return sum(line.line_total_cents for line in self._lines.values())

    def tax(self, rate=None) -> int:
        return compute_tax_cents(self.subtotal(), self.tax_rate if rate is None else rate)

    def total(self, rate=None) -> int:
        return self.subtotal() + self.tax(rate)

    def __iter__(self):
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines.values()],
            "subtotal_cents": self.subtotal(),
            "tax_cents": self.tax(),
            "total_cents": self.total(),
        }
