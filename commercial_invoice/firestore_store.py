from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from google.cloud import firestore

from commercial_invoice.models import Invoice, Package

logger = logging.getLogger(__name__)


def _get_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value else None


def _get_database() -> Optional[str]:
    value = _get_env("FIRESTORE_DATABASE")
    return value or None


def _get_collection(client: Optional[firestore.Client] = None):
    collection = _get_env("FIRESTORE_INVOICE_COLLECTION") or "invoices"
    client = client or firestore.Client(database=_get_database())
    return client.collection(collection)


def _invoice_from_snapshot(doc_id: str, data: Dict[str, Any]) -> Invoice:
    data = dict(data)
    data.setdefault("pkstring", doc_id)
    # Query-only field; the group ids are also on each package.
    data.pop("package_group_ids", None)
    return Invoice.model_validate(data)


class FirestoreInvoiceStore:
    """Read-only invoice lookups against the Firestore export collection.

    Each document is one invoice with its line items, products and packages
    embedded. ``package_group_ids`` mirrors ``packages[].group_id`` so that
    shipment groups can be found with a single ``array_contains`` query.
    """

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self._client = client

    def _collection(self):
        return _get_collection(self._client)

    def get_invoice(self, pkstring: str) -> Optional[Invoice]:
        if not pkstring:
            return None
        snapshot = self._collection().document(pkstring).get()
        if not snapshot.exists:
            return None
        return _invoice_from_snapshot(snapshot.id, snapshot.to_dict() or {})

    def get_shipment_group(self, package: Package) -> list[Invoice]:
        query = self._collection().where("package_group_ids", "array_contains", package.group_id)
        invoices = [_invoice_from_snapshot(doc.id, doc.to_dict() or {}) for doc in query.stream()]
        invoices.sort(key=lambda invoice: invoice.pkstring)
        logger.info("Package group %s has %d invoice(s)", package.group_id, len(invoices))
        return invoices

