"""Tests for the in-memory and Firestore invoice stores."""

import json
from unittest.mock import MagicMock

import pytest

from commercial_invoice.firestore_store import FirestoreInvoiceStore
from commercial_invoice.models import Package
from commercial_invoice.store import MemoryInvoiceStore
from invoice_records import linked_invoice_items, make_invoice


def _record(pkstring, group_id="GRP-1"):
    invoice = make_invoice(pkstring, linked_invoice_items())
    data = invoice.model_dump(mode="json")
    data["packages"][0]["group_id"] = group_id
    return data


# ---------------------------------------------------------------------------
# MemoryInvoiceStore
# ---------------------------------------------------------------------------

class TestMemoryInvoiceStore:
    @pytest.fixture(autouse=True)
    def store(self):
        self.store = MemoryInvoiceStore.from_records(
            [_record("INV-1"), _record("INV-2"), _record("INV-3", group_id="GRP-2")]
        )

    def test_get_invoice(self):
        invoice = self.store.get_invoice("INV-2")
        assert invoice is not None
        assert invoice.pkstring == "INV-2"
        assert len(invoice.line_items) == 9

    def test_unknown_invoice(self):
        assert self.store.get_invoice("INV-404") is None

    def test_shipment_group(self):
        package = self.store.get_invoice("INV-1").packages[0]
        group = self.store.get_shipment_group(package)
        assert [invoice.pkstring for invoice in group] == ["INV-1", "INV-2"]

    def test_unrelated_group(self):
        package = Package(id="PKG-X", group_id="GRP-404")
        assert self.store.get_shipment_group(package) == []


def test_from_json_file_list(tmp_path):
    path = tmp_path / "invoices.json"
    path.write_text(json.dumps([_record("INV-1")]))
    assert MemoryInvoiceStore.from_json_file(path).get_invoice("INV-1") is not None


def test_from_json_file_wrapped(tmp_path):
    path = tmp_path / "invoices.json"
    path.write_text(json.dumps({"invoices": [_record("INV-1"), _record("INV-2")]}))
    store = MemoryInvoiceStore.from_json_file(str(path))
    assert store.get_invoice("INV-2") is not None


def test_from_json_file_rejects_other_shapes(tmp_path):
    path = tmp_path / "invoices.json"
    path.write_text(json.dumps("INV-1"))
    with pytest.raises(ValueError):
        MemoryInvoiceStore.from_json_file(path)


def test_money_strings_are_parsed():
    record = _record("INV-1")
    record["total"] = "$1,024.50"
    record["line_items"][0]["extended_price"] = "(10.00)"
    record["line_items"][1]["unit_price"] = "1024.50"
    record["subtotal"] = "1234"
    invoice = MemoryInvoiceStore.from_records([record]).get_invoice("INV-1")
    assert invoice.total == 1024.5
    assert invoice.line_items[0].extended_price == -10.0
    assert invoice.line_items[1].unit_price == 1024.5
    assert invoice.subtotal == 1234.0


# ---------------------------------------------------------------------------
# FirestoreInvoiceStore
# ---------------------------------------------------------------------------

def _snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


class TestFirestoreInvoiceStore:
    @pytest.fixture(autouse=True)
    def client(self, monkeypatch):
        monkeypatch.delenv("FIRESTORE_INVOICE_COLLECTION", raising=False)
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.store = FirestoreInvoiceStore(client=self.client)

    def test_get_invoice(self):
        record = _record("INV-1")
        record.pop("pkstring")
        self.collection.document.return_value.get.return_value = _snapshot("INV-1", record)

        invoice = self.store.get_invoice("INV-1")

        self.client.collection.assert_called_with("invoices")
        self.collection.document.assert_called_with("INV-1")
        assert invoice.pkstring == "INV-1"

    def test_missing_document(self):
        self.collection.document.return_value.get.return_value = _snapshot("INV-404", None, exists=False)
        assert self.store.get_invoice("INV-404") is None

    def test_empty_id(self):
        assert self.store.get_invoice("") is None
        self.collection.document.assert_not_called()

    def test_collection_name_from_env(self, monkeypatch):
        monkeypatch.setenv("FIRESTORE_INVOICE_COLLECTION", "ci_invoices")
        self.collection.document.return_value.get.return_value = _snapshot("INV-1", None, exists=False)
        self.store.get_invoice("INV-1")
        self.client.collection.assert_called_with("ci_invoices")

    def test_shipment_group_query(self):
        second = _record("INV-2")
        second["package_group_ids"] = ["GRP-1"]
        first = _record("INV-1")
        first["package_group_ids"] = ["GRP-1"]
        query = self.collection.where.return_value
        query.stream.return_value = [_snapshot("INV-2", second), _snapshot("INV-1", first)]

        group = self.store.get_shipment_group(Package(id="PKG-INV-1", group_id="GRP-1"))

        self.collection.where.assert_called_with("package_group_ids", "array_contains", "GRP-1")
        assert [invoice.pkstring for invoice in group] == ["INV-1", "INV-2"]
