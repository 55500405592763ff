# commercial_invoice/models.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from commercial_invoice.format_utils import parse_datetime, parse_money


def _coerce_money(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_money(value)
        if parsed is None:
            raise ValueError(f"Invalid amount: {value!r}")
        return parsed
    return value


class Record(BaseModel):
    """Read-only view of a row handed over by the data-access layer."""

    model_config = ConfigDict(frozen=True)


class Contact(Record):
    name: str = ""
    addr1: str = ""
    addr2: str = ""
    addr3: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    phone: str = ""
    email: str = ""


class ProductCombination(Record):
    product: Product
    quantity: int = Field(default=1, ge=0)


class Product(Record):
    id: str
    name: str
    weight_ounces: float = Field(default=0.0, ge=0)
    country_of_origin: str = ""

    not_physical_item: bool = False
    exclude_from_customs: bool = False
    is_discount: bool = False

    # Only set when the product has an assembly record; "" still counts as one.
    schedule_b_code: str | None = None

    constituents: list[ProductCombination] = []

    @property
    def has_assembly(self) -> bool:
        return self.schedule_b_code is not None

    @property
    def is_combination(self) -> bool:
        return bool(self.constituents)


class LineItem(Record):
    name: str
    quantity: int
    unit_price: float = 0.0
    extended_price: float = 0.0
    product: Product

    @field_validator("unit_price", "extended_price", mode="before")
    @classmethod
    def coerce_money(cls, value: Any) -> Any:
        return _coerce_money(value)


class Package(Record):
    id: str
    tracking_number: str = ""
    weight_ounces: float = 0.0
    group_id: str


class Salesorder(Record):
    pkstring: str
    po: str = ""
    tax_id: str = ""
    coupons: list[str] = []


class Invoice(Record):
    pkstring: str
    salesorder: Salesorder
    packages: list[Package] = []
    line_items: list[LineItem] = []
    shipping_contact: Contact | None = None

    tax: float = 0.0
    subtotal: float = 0.0
    shipping: float = 0.0
    total: float = 0.0

    shipping_account_number: str = ""
    shipping_service: str = ""
    ship_time: datetime | None = None

    @field_validator("tax", "subtotal", "shipping", "total", mode="before")
    @classmethod
    def coerce_money(cls, value: Any) -> Any:
        return _coerce_money(value)

    @field_validator("ship_time", mode="before")
    @classmethod
    def parse_ship_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return None
            parsed = parse_datetime(value)
            if parsed is None:
                raise ValueError(f"Invalid ship_time: {value!r}")
            return parsed
        return value


ProductCombination.model_rebuild()
