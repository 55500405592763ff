from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from commercial_invoice.models import Invoice, Package


class InvoiceStore(Protocol):
    """Read-only access to invoice records."""

    def get_invoice(self, pkstring: str) -> Optional[Invoice]:
        ...

    def get_shipment_group(self, package: Package) -> list[Invoice]:
        """Every invoice travelling in the same physical package as *package*."""
        ...


class MemoryInvoiceStore:
    def __init__(self, invoices: Iterable[Invoice] = ()) -> None:
        self._invoices: dict[str, Invoice] = {}
        for invoice in invoices:
            self._invoices[invoice.pkstring] = invoice

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "MemoryInvoiceStore":
        return cls(Invoice.model_validate(record) for record in records)

    @classmethod
    def from_json_file(cls, path: Path | str) -> "MemoryInvoiceStore":
        payload = json.loads(Path(path).read_text())
        if isinstance(payload, dict):
            payload = payload.get("invoices") or []
        if not isinstance(payload, list):
            raise ValueError("JSON export must be a list of invoices or {\"invoices\": [...]}")
        return cls.from_records(payload)

    def get_invoice(self, pkstring: str) -> Optional[Invoice]:
        return self._invoices.get(pkstring)

    def get_shipment_group(self, package: Package) -> list[Invoice]:
        return [
            invoice
            for invoice in self._invoices.values()
            if any(p.group_id == package.group_id for p in invoice.packages)
        ]
