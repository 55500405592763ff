from __future__ import annotations

from datetime import date
from typing import Optional

from commercial_invoice.aggregate import AggregatedInvoice, aggregate_invoice
from commercial_invoice.config import InvoiceSettings
from commercial_invoice.layout import render_pdf
from commercial_invoice.models import Invoice
from commercial_invoice.store import InvoiceStore


def generate_commercial_invoice(
    invoice: Invoice,
    store: InvoiceStore,
    settings: InvoiceSettings | None = None,
    today: Optional[date] = None,
) -> bytes:
    """Aggregate the invoice's shipment group and return the rendered PDF."""
    settings = settings or InvoiceSettings()
    aggregated: AggregatedInvoice = aggregate_invoice(invoice, store, settings)
    return render_pdf(aggregated, settings, today)
