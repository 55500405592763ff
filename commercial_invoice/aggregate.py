from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict

from commercial_invoice.address import construct_address
from commercial_invoice.config import InvoiceSettings
from commercial_invoice.errors import InvoiceConsistencyError, InvoiceError
from commercial_invoice.format_utils import leading_int
from commercial_invoice.models import Invoice, LineItem
from commercial_invoice.rows import (
    TABLE_HEADER,
    CombinationRow,
    CombinationSubitemRow,
    NormalRow,
    Row,
    subitem_labels,
)
from commercial_invoice.store import InvoiceStore

logger = logging.getLogger(__name__)

SHIPPING_CHARGE = "Shipping charge"
HANDLING_FEE = "Handling Fee"


class AggregatedInvoice(BaseModel):
    """Everything the layout needs, with all business rules already applied."""

    model_config = ConfigDict(frozen=True)

    invoice: str
    salesorder: str
    addr_from: tuple[str, ...]
    addr_consignee: tuple[str, ...]
    addr_importer: tuple[str, ...]
    tax_id: str = ""

    ship_date: Optional[date] = None
    ship_method: str = ""
    tracking_number: str = ""
    po_number: str = ""
    shipping_charge_string: str
    incoterms: str

    header: tuple[str, ...] = TABLE_HEADER
    rows: tuple[Row, ...]

    prediscount_total: float
    discount: float
    subtotal: float
    tax: float
    shipping_handling: float
    total: float
    total_weight: float
    total_quantity: int
    coupons: str

    def table(self) -> list[list[str]]:
        return [list(self.header)] + [row.cells() for row in self.rows]


class _RowSequence:
    def __init__(self) -> None:
        self.rows: list[Row] = []
        self.prediscount_total = 0.0
        self.discount = 0.0
        # Differs from len(rows): combo subitems share their bundle's number (3a, 3b, ...).
        self.line_item_count = 0

    def add(self, item: LineItem) -> None:
        product = item.product

        if item.quantity <= 0:
            logger.debug("Skipping %s: non-positive quantity %s", product.id, item.quantity)
            return

        if item.extended_price < 0 or product.is_discount:
            self.line_item_count += 1
            self.rows.append(NormalRow.from_line_item(self.line_item_count, item))
            self.discount += item.extended_price
            return

        # Some discounts are also flagged exclude_from_customs, so this check
        # must come after discount handling.
        if product.exclude_from_customs:
            logger.debug("Skipping %s: excluded from customs", product.id)
            return

        self.line_item_count += 1

        if product.is_combination:
            self.rows.append(CombinationRow.from_line_item(self.line_item_count, item))
            labels = subitem_labels(self.line_item_count)
            for constituent in product.constituents:
                if constituent.product.exclude_from_customs:
                    continue
                self.rows.append(
                    CombinationSubitemRow.from_constituent(next(labels), constituent, item.quantity)
                )
            self.prediscount_total += item.extended_price
            return

        self.rows.append(NormalRow.from_line_item(self.line_item_count, item))
        self.prediscount_total += item.extended_price


def build_rows(invoices: list[Invoice]) -> tuple[list[Row], float, float]:
    """Return (rows, prediscount_total, discount) for every line item of *invoices*."""
    sequence = _RowSequence()
    for invoice in invoices:
        for item in invoice.line_items:
            sequence.add(item)
    return sequence.rows, round(sequence.prediscount_total, 2), round(sequence.discount, 2)


def collect_coupons(invoices: list[Invoice]) -> str:
    codes: list[str] = []
    for invoice in invoices:
        for code in invoice.salesorder.coupons:
            if code and code not in codes:
                codes.append(code)
    return ", ".join(codes) or "None"


def shipping_terms(invoices: list[Invoice], settings: InvoiceSettings) -> tuple[str, str]:
    """(charge label, incoterms) depending on whose carrier account pays."""
    if not invoices[0].shipping_account_number.strip():
        return SHIPPING_CHARGE, "CIP"
    return HANDLING_FEE, f"FCA {settings.origin_city}"


def aggregate_invoice(
    invoice: Invoice,
    store: InvoiceStore,
    settings: InvoiceSettings | None = None,
) -> AggregatedInvoice:
    settings = settings or InvoiceSettings()

    if len(invoice.packages) != 1:
        raise InvoiceError("Expected invoice to have exactly 1 package")
    package = invoice.packages[0]

    # Every invoice shipping in the same physical package.
    invoices = store.get_shipment_group(package)
    if not invoices:
        raise InvoiceError("Invoices array empty")
    if not any(member.line_items for member in invoices):
        raise InvoiceError("Invoice has no items")
    if invoice.shipping_contact is None:
        raise InvoiceError("Invoice has no shipping contact")
    if package.weight_ounces == 0:
        raise InvoiceError("Package weight is zero")

    addr_consignee = tuple(construct_address(invoice.shipping_contact))
    charge_label, incoterms = shipping_terms(invoices, settings)

    rows, prediscount_total, discount = build_rows(invoices)
    if discount > 0:
        raise InvoiceConsistencyError(
            f"Internal error: Invoice discount total is positive ({discount:.2f}); should always be <= 0"
        )

    aggregated = AggregatedInvoice(
        invoice=", ".join(member.pkstring for member in invoices),
        salesorder=invoice.salesorder.pkstring,
        addr_from=settings.sender_lines,
        addr_consignee=addr_consignee,
        # Consignee and importer are the same party for generated invoices.
        addr_importer=addr_consignee,
        tax_id=invoice.salesorder.tax_id,
        ship_date=invoice.ship_time.date() if invoice.ship_time else None,
        ship_method=invoice.shipping_service,
        tracking_number=package.tracking_number,
        po_number=invoice.salesorder.po,
        shipping_charge_string=charge_label,
        incoterms=incoterms,
        rows=tuple(rows),
        prediscount_total=prediscount_total,
        discount=discount,
        subtotal=round(sum(member.subtotal for member in invoices), 2),
        tax=round(sum(member.tax for member in invoices), 2),
        shipping_handling=round(sum(member.shipping for member in invoices), 2),
        total=round(sum(member.total for member in invoices), 2),
        # Linked invoices report the same package weight, so it is not summed.
        total_weight=package.weight_ounces,
        total_quantity=sum(leading_int(row.cells()[1]) for row in rows),
        coupons=collect_coupons(invoices),
    )

    logger.info(
        "Aggregated commercial invoice for %s: %d rows, %d items",
        aggregated.invoice,
        len(aggregated.rows),
        aggregated.total_quantity,
    )
    return aggregated
