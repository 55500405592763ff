"""Record builders shared by the test modules."""

from __future__ import annotations

import itertools
from typing import Any

from commercial_invoice.models import (
    Contact,
    Invoice,
    LineItem,
    Package,
    Product,
    ProductCombination,
    Salesorder,
)

_product_ids = itertools.count(1000)


def make_contact(**overrides: Any) -> Contact:
    fields: dict[str, Any] = {
        "name": "Terra Ashley Bilderback",
        "addr1": "Beautiful Winds, inc",
        "addr2": "3365 Sunrise",
        "city": "Ariea",
        "state": "Sky",
        "zip": "33655",
        "phone": "+15558765309",
        "email": "example@example.com",
    }
    fields.update(overrides)
    return Contact(**fields)


def make_product(**overrides: Any) -> Product:
    number = next(_product_ids)
    fields: dict[str, Any] = {
        "id": str(number),
        "name": f"Super-awesome product #{number}",
        "weight_ounces": 2,
        "country_of_origin": "USA",
        "schedule_b_code": "8471.50.0150",
    }
    fields.update(overrides)
    return Product(**fields)


def make_discount(**overrides: Any) -> Product:
    fields: dict[str, Any] = {
        "name": "Super-awesome discount",
        "weight_ounces": 0,
        "not_physical_item": True,
        "is_discount": True,
        "schedule_b_code": "",
    }
    fields.update(overrides)
    return make_product(**fields)


def make_combination(constituents: list[tuple[Product, int]], **overrides: Any) -> Product:
    fields: dict[str, Any] = {
        "name": "Super-awesome product combination",
        "weight_ounces": 6,
        "schedule_b_code": "",
        "constituents": [ProductCombination(product=p, quantity=q) for p, q in constituents],
    }
    fields.update(overrides)
    return make_product(**fields)


def make_line_item(product: Product, quantity: int = 1, unit_price: float = 5.0, **overrides: Any) -> LineItem:
    fields: dict[str, Any] = {
        "name": product.name,
        "quantity": quantity,
        "unit_price": unit_price,
        "extended_price": round(quantity * unit_price, 2),
        "product": product,
    }
    fields.update(overrides)
    return LineItem(**fields)


def make_invoice(pkstring: str, line_items: list[LineItem], **overrides: Any) -> Invoice:
    fields: dict[str, Any] = {
        "pkstring": pkstring,
        "salesorder": Salesorder(pkstring="SO-5001", tax_id="1234567890"),
        "packages": [Package(id=f"PKG-{pkstring}", tracking_number="794612345678", weight_ounces=52, group_id="GRP-1")],
        "line_items": line_items,
        "shipping_contact": make_contact(),
        "subtotal": 45,
        "shipping": 6,
        "total": 51,
        "shipping_service": "FedEx International Economy",
    }
    fields.update(overrides)
    return Invoice(**fields)


def linked_invoice_items() -> list[LineItem]:
    """5 normal lines, 1 customs-excluded line, 1 two-part combo and 2 discounts."""
    items = [make_line_item(make_product(), quantity=2) for _ in range(5)]
    items.append(make_line_item(make_product(exclude_from_customs=True), quantity=2))
    combo = make_combination([(make_product(), 1), (make_product(), 1)])
    items.append(make_line_item(combo, quantity=1))
    for _ in range(2):
        items.append(make_line_item(make_discount(), quantity=1, unit_price=-5))
    return items
