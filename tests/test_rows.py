"""Tests for row construction and HS-code derivation."""

from itertools import islice

import pytest

from commercial_invoice.models import ProductCombination
from commercial_invoice.rows import (
    CombinationRow,
    CombinationSubitemRow,
    NormalRow,
    hs_code_for_product,
    is_subitem_label,
    subitem_labels,
)
from invoice_records import make_line_item, make_product


# ---------------------------------------------------------------------------
# HS codes
# ---------------------------------------------------------------------------

def test_hs_code_strips_dots_and_country_suffix():
    assert hs_code_for_product(make_product(schedule_b_code="1234.56.7890")) == "123456"


def test_hs_code_empty_without_assembly():
    assert hs_code_for_product(make_product(schedule_b_code=None)) == ""


def test_hs_code_empty_for_blank_schedule_code():
    assert hs_code_for_product(make_product(schedule_b_code="")) == ""


def test_hs_code_shorter_than_six_digits_is_kept():
    assert hs_code_for_product(make_product(schedule_b_code="12.34")) == "1234"


# ---------------------------------------------------------------------------
# Normal rows
# ---------------------------------------------------------------------------

class TestNormalRow:
    @pytest.fixture(autouse=True)
    def build(self):
        product = make_product(id="2135", weight_ounces=2, country_of_origin="China", schedule_b_code="8501.10.4020")
        self.row = NormalRow.from_line_item(4, make_line_item(product, quantity=2, unit_price=5))

    def test_cells(self):
        assert self.row.cells() == ["4", "2", "2135", self.row.description, "4 oz", "5.00", "10.00", "China", "850110"]

    def test_kind(self):
        assert self.row.kind == "normal"


def test_non_physical_item_shows_dashes():
    product = make_product(not_physical_item=True, weight_ounces=0)
    row = NormalRow.from_line_item(1, make_line_item(product, quantity=3))
    assert row.quantity == "-"
    assert row.extended_weight == "-"


def test_fractional_weight_drops_trailing_zeros():
    product = make_product(weight_ounces=0.5)
    row = NormalRow.from_line_item(1, make_line_item(product, quantity=3))
    assert row.extended_weight == "1.5 oz"


def test_negative_price_formatting():
    row = NormalRow.from_line_item(1, make_line_item(make_product(), quantity=1, unit_price=-5))
    assert row.unit_price == "-5.00"
    assert row.extended_price == "-5.00"


def test_description_is_escaped_for_markup():
    product = make_product()
    row = NormalRow.from_line_item(1, make_line_item(product, name="Nuts & <Bolts>"))
    assert row.description == "Nuts &amp; &lt;Bolts&gt;"


# ---------------------------------------------------------------------------
# Combination rows
# ---------------------------------------------------------------------------

def test_single_combo_phrase():
    combo = make_product(name="Robot Kit", weight_ounces=6)
    row = CombinationRow.from_line_item(6, make_line_item(combo, quantity=1))
    assert row.description == "<b>1x Combo:</b>  Robot Kit\n<u><i>This Combo contains</i></u>:"


def test_plural_combo_phrase():
    combo = make_product(name="Robot Kit", weight_ounces=6)
    row = CombinationRow.from_line_item(6, make_line_item(combo, quantity=3))
    assert "<b>3x Combo:</b>" in row.description
    assert "These collectively contain" in row.description


def test_combo_quantity_cell_is_dash_but_weight_and_price_are_computed():
    combo = make_product(weight_ounces=6, schedule_b_code="9503.00.0073")
    cells = CombinationRow.from_line_item(6, make_line_item(combo, quantity=2, unit_price=7.5)).cells()
    assert cells[1] == "-"
    assert cells[4:7] == ["12 oz", "7.50", "15.00"]
    assert cells[8] == "950300"


def test_combo_requires_positive_quantity():
    combo = make_product()
    with pytest.raises(ValueError):
        CombinationRow.from_line_item(1, make_line_item(combo, quantity=0))


# ---------------------------------------------------------------------------
# Combination subitems
# ---------------------------------------------------------------------------

def test_subitem_quantity_is_bundle_times_per_bundle():
    part = make_product(name="Wheel", country_of_origin="Italy", schedule_b_code="8708.70.4530")
    row = CombinationSubitemRow.from_constituent("3a", ProductCombination(product=part, quantity=2), 3)
    assert row.cells() == ["3a", "6", part.id, "Wheel", "", "", "", "Italy", "870870"]


def test_non_physical_subitem_shows_dash():
    part = make_product(not_physical_item=True)
    row = CombinationSubitemRow.from_constituent("3a", ProductCombination(product=part, quantity=2), 3)
    assert row.quantity == "-"


def test_subitem_labels_start_at_a():
    assert list(islice(subitem_labels(3), 3)) == ["3a", "3b", "3c"]


def test_subitem_labels_roll_over_after_z():
    labels = list(islice(subitem_labels(7), 28))
    assert labels[25] == "7z"
    assert labels[26] == "7aa"
    assert labels[27] == "7ab"


@pytest.mark.parametrize(
    "label, expected",
    [("3a", True), ("12bc", True), ("3", False), ("#", False), ("a3", False), ("3a1", False)],
)
def test_is_subitem_label(label, expected):
    assert is_subitem_label(label) is expected
