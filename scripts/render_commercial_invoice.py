#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from commercial_invoice.config import InvoiceSettings
from commercial_invoice.errors import InvoiceError
from commercial_invoice.format_utils import parse_datetime
from commercial_invoice.pdf_text import extract_pages_from_pdf
from commercial_invoice.service import generate_commercial_invoice
from commercial_invoice.store import MemoryInvoiceStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a commercial invoice PDF from a JSON invoice export.")
    parser.add_argument("--input", required=True, help="JSON export: a list of invoices or {\"invoices\": [...]}")
    parser.add_argument("--invoice", required=True, help="Invoice pkstring to render, e.g. INV-10021")
    parser.add_argument("--output", required=True, help="Where to write the PDF")
    parser.add_argument("--today", default=None, help="Date used when the invoice has no ship date")
    parser.add_argument("--print-text", action="store_true", help="Print the text of each rendered page")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    today = None
    if args.today:
        parsed = parse_datetime(args.today)
        if parsed is None:
            raise SystemExit(f"Unsupported date format: {args.today}")
        today = parsed.date()

    store = MemoryInvoiceStore.from_json_file(args.input)
    invoice = store.get_invoice(args.invoice)
    if invoice is None:
        raise SystemExit(f"Invoice {args.invoice} not found in {args.input}")

    try:
        pdf = generate_commercial_invoice(invoice, store, InvoiceSettings.from_env(), today=today)
    except InvoiceError as exc:
        raise SystemExit(f"Cannot build commercial invoice: {exc}") from exc

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pdf)

    if args.print_text:
        for number, text in enumerate(extract_pages_from_pdf(pdf), start=1):
            print(f"--- page {number} ---")
            print(text)

    print(json.dumps({"invoice": invoice.pkstring, "output": str(output), "bytes": len(pdf)}, indent=2))


if __name__ == "__main__":
    main()
