from __future__ import annotations

import re
from typing import Annotated, Iterator, Literal, Union
from xml.sax.saxutils import escape

from pydantic import BaseModel, ConfigDict, Field

from commercial_invoice.format_utils import format_money, format_ounces
from commercial_invoice.models import LineItem, Product, ProductCombination


TABLE_HEADER: tuple[str, ...] = (
    "#",
    "Quantity",
    "Item Number",
    "Item Description",
    "Ext. Weight",
    "Unit Price",
    "Extended Price",
    "Origin",
    "HS code",
)

SUBITEM_LABEL_RE = re.compile(r"[0-9]+[a-z]+")


def hs_code_for_product(product: Product) -> str:
    """International HS code from the product's schedule B code.

    The national code carries country-specific digits after the first six, so
    "1234.56.7890" becomes "123456". Products without an assembly have none.
    """
    if not product.has_assembly:
        return ""
    return (product.schedule_b_code or "").replace(".", "")[:6]


def _suffix(index: int) -> str:
    # 0 -> a, 25 -> z, 26 -> aa, 27 -> ab
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("a") + remainder) + letters
    return letters


def subitem_labels(line_number: int) -> Iterator[str]:
    """Labels for the constituents of one bundle: 3a, 3b, 3c, ..."""
    index = 0
    while True:
        yield f"{line_number}{_suffix(index)}"
        index += 1


def is_subitem_label(label: str) -> bool:
    return SUBITEM_LABEL_RE.fullmatch(label) is not None


def _extended_weight(quantity: int, product: Product) -> str:
    if product.not_physical_item:
        return "-"
    return format_ounces(quantity * product.weight_ounces)


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True)

    line_number: str
    product_id: str
    description: str
    origin: str = ""
    hs_code: str = ""


class NormalRow(_Row):
    kind: Literal["normal"] = "normal"

    quantity: str
    extended_weight: str
    unit_price: str
    extended_price: str

    @classmethod
    def from_line_item(cls, line_number: int, item: LineItem) -> "NormalRow":
        product = item.product
        return cls(
            line_number=str(line_number),
            quantity="-" if product.not_physical_item else str(item.quantity),
            product_id=product.id,
            description=escape(item.name),
            extended_weight=_extended_weight(item.quantity, product),
            unit_price=format_money(item.unit_price),
            extended_price=format_money(item.extended_price),
            origin=product.country_of_origin,
            hs_code=hs_code_for_product(product),
        )

    def cells(self) -> list[str]:
        return [
            self.line_number,
            self.quantity,
            self.product_id,
            self.description,
            self.extended_weight,
            self.unit_price,
            self.extended_price,
            self.origin,
            self.hs_code,
        ]


class CombinationRow(_Row):
    """Bundle header; the ordered quantity is printed in the description."""

    kind: Literal["combination"] = "combination"

    quantity: int
    extended_weight: str
    unit_price: str
    extended_price: str

    @classmethod
    def from_line_item(cls, line_number: int, item: LineItem) -> "CombinationRow":
        # Only positive quantities reach this point; the aggregation skips the rest.
        if item.quantity <= 0:
            raise ValueError(f"Combination quantity must be positive, got {item.quantity}")

        product = item.product
        contains = "This Combo contains" if item.quantity == 1 else "These collectively contain"
        description = (
            f"<b>{item.quantity}x Combo:</b>  {escape(item.name)}\n"
            f"<u><i>{contains}</i></u>:"
        )
        return cls(
            line_number=str(line_number),
            quantity=item.quantity,
            product_id=product.id,
            description=description,
            extended_weight=_extended_weight(item.quantity, product),
            unit_price=format_money(item.unit_price),
            extended_price=format_money(item.extended_price),
            origin=product.country_of_origin,
            hs_code=hs_code_for_product(product),
        )

    def cells(self) -> list[str]:
        return [
            self.line_number,
            "-",
            self.product_id,
            self.description,
            self.extended_weight,
            self.unit_price,
            self.extended_price,
            self.origin,
            self.hs_code,
        ]


class CombinationSubitemRow(_Row):
    """One constituent of a bundle. Pricing lives on the bundle header."""

    kind: Literal["subitem"] = "subitem"

    quantity: str

    @classmethod
    def from_constituent(
        cls, label: str, constituent: ProductCombination, bundle_quantity: int
    ) -> "CombinationSubitemRow":
        product = constituent.product
        quantity = "-" if product.not_physical_item else str(bundle_quantity * constituent.quantity)
        return cls(
            line_number=label,
            quantity=quantity,
            product_id=product.id,
            description=escape(product.name),
            origin=product.country_of_origin,
            hs_code=hs_code_for_product(product),
        )

    def cells(self) -> list[str]:
        return [
            self.line_number,
            self.quantity,
            self.product_id,
            self.description,
            "",
            "",
            "",
            self.origin,
            self.hs_code,
        ]


Row = Annotated[
    Union[NormalRow, CombinationRow, CombinationSubitemRow],
    Field(discriminator="kind"),
]
