from __future__ import annotations

import logging
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Iterable, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Flowable, Paragraph, Table, TableStyle

from commercial_invoice.aggregate import AggregatedInvoice
from commercial_invoice.config import InvoiceSettings
from commercial_invoice.errors import InvoiceAssetError, InvoiceConsistencyError
from commercial_invoice.format_utils import (
    format_currency,
    format_ship_date,
    ounces_to_pounds,
    pluralize,
)
from commercial_invoice.rows import is_subitem_label

logger = logging.getLogger(__name__)


# ===== Page geometry (points, LETTER 612 x 792) =====
PAGE_WIDTH, PAGE_HEIGHT = LETTER
MARGIN_LEFT = 36
MARGIN_RIGHT = 36
MARGIN_BOTTOM = 36
MARGIN_TOP = 106  # leaves room for the repeating header
CONTENT_WIDTH = PAGE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT
CONTENT_HEIGHT = PAGE_HEIGHT - MARGIN_TOP - MARGIN_BOTTOM

# Bottom edge of the header band, in page coordinates.
HEADER_BASE_Y = MARGIN_BOTTOM + CONTENT_HEIGHT + 5

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_ITALIC = "Helvetica-Oblique"

# Item table: #, Quantity, Item Number, Description, Weight, Unit, Extended, Origin, HS
COLUMN_WIDTHS = [32, 40, 37, 240, 36, 45, 45, 30, 35]
ROW_COLORS = [colors.white, colors.HexColor("#f0f0f0")]
SUBITEM_COLOR = colors.HexColor("#666666")

# Space budgets, measured from the cursor down to the bottom margin.
ADDRESS_BLOCK_HEIGHT = 230
COUPON_SPACE = 30
SUMMARY_HEIGHT = 45
DISCOUNT_SUMMARY_HEIGHT = 80
SUMMARY_MARGIN = 35
SIGNATURE_SPACE = 150

SUMMARY_RULE_X = (350, 514)
SUMMARY_LABEL_X = 360
SUMMARY_VALUE_X = 452

DECLARATION = "I declare all information in this invoice to be true and correct.\nSignature of shipper:"


def summary_height_budget(aggregated: AggregatedInvoice) -> float:
    """Space the totals summary needs; the discount lines make it taller."""
    height = DISCOUNT_SUMMARY_HEIGHT if aggregated.discount < 0 else SUMMARY_HEIGHT
    return height + SUMMARY_MARGIN


def shipping_info(aggregated: AggregatedInvoice, today: date | None = None) -> dict[str, str]:
    info = {
        "Ship Date": format_ship_date(aggregated.ship_date, today),
        "Ship Method": aggregated.ship_method,
        "Tracking #": aggregated.tracking_number,
        "Invoice" + ("s" if "," in aggregated.invoice else ""): aggregated.invoice,
    }
    if aggregated.po_number.strip():
        info["PO Number"] = aggregated.po_number

    return {label: (value if value.strip() else "none") for label, value in info.items()}


# ===== Canvas helpers =====
def _text_box(
    canvas: Canvas,
    text: str,
    x: float,
    top: float,
    width: float,
    size: float = 10,
    font: str = FONT,
    align: str = "left",
) -> None:
    """Draw *text* with its first line hanging from *top* (not a baseline)."""
    canvas.setFont(font, size)
    baseline = top - pdfmetrics.getAscent(font, size)
    for line in text.split("\n"):
        if align == "right":
            canvas.drawRightString(x + width, baseline, line)
        elif align == "center":
            canvas.drawCentredString(x + width / 2, baseline, line)
        else:
            canvas.drawString(x, baseline, line)
        baseline -= size * 1.2


def _draw_text_block(
    canvas: Canvas,
    strings: Iterable[str],
    x: float,
    y: float,
    size: float = 10,
    spacing: float | None = None,
    font: str = FONT,
) -> None:
    # spacing should normally be the same as font size.
    spacing = spacing or size
    canvas.setFont(font, size)
    for index, string in enumerate(strings):
        canvas.drawString(x, y - spacing * index, string)


def _image_size(path: Path, height: float) -> tuple[ImageReader, float]:
    reader = ImageReader(str(path))
    pixel_width, pixel_height = reader.getSize()
    return reader, height * pixel_width / pixel_height


class InvoiceCanvas(Canvas):
    """Canvas that holds finished pages back until the page count is known.

    Page chrome (the repeating header and "Page N of M") is drawn onto every
    page by ``decorate_page`` during ``save()``, so layout code never has to
    redraw it after a page break.
    """

    def __init__(self, *args: Any, decorate_page: Callable[["InvoiceCanvas", int, int], None], **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._decorate_page = decorate_page
        self._saved_page_states: list[dict[str, Any]] = []

    def showPage(self) -> None:
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_page_states)
        for page_number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self._decorate_page(self, page_number, page_count)
            super().showPage()
        super().save()


class PageFlow:
    """Vertical cursor over the content area of the current page.

    ``cursor`` is the distance from the bottom margin, so it doubles as the
    remaining space on the page.
    """

    def __init__(self, canvas: Canvas) -> None:
        self.canvas = canvas
        self.left = MARGIN_LEFT
        self.bottom = MARGIN_BOTTOM
        self.width = CONTENT_WIDTH
        self.height = CONTENT_HEIGHT
        self.cursor = float(self.height)
        self.page_number = 1

    def y(self, offset: float = 0.0) -> float:
        return self.bottom + self.cursor + offset

    def move_down(self, amount: float) -> None:
        self.cursor -= amount

    def move_cursor_to(self, cursor: float) -> None:
        self.cursor = cursor

    def start_new_page(self) -> None:
        self.canvas.showPage()
        self.page_number += 1
        self.cursor = float(self.height)
        logger.debug("Started page %d", self.page_number)

    def ensure_space(self, needed: float) -> bool:
        """Start a new page when less than *needed* points remain. Returns True if it did."""
        if self.cursor < needed:
            self.start_new_page()
            return True
        return False

    def draw_flowable(self, flowable: Flowable) -> None:
        """Draw at the cursor, splitting across pages when it does not fit."""
        pending = [flowable]
        while pending:
            current = pending.pop(0)
            _w, height = current.wrapOn(self.canvas, self.width, self.cursor)
            if height <= self.cursor:
                current.drawOn(self.canvas, self.left, self.y(-height))
                self.move_down(height)
                continue

            parts = current.split(self.width, self.cursor)
            if not parts:
                if self.cursor >= self.height:
                    raise InvoiceConsistencyError(
                        f"{type(current).__name__} does not fit on an empty page"
                    )
                self.start_new_page()
                pending.insert(0, current)
                continue

            head, rest = parts[0], parts[1:]
            _w, head_height = head.wrapOn(self.canvas, self.width, self.cursor)
            head.drawOn(self.canvas, self.left, self.y(-head_height))
            self.move_down(head_height)
            if rest:
                self.start_new_page()
                pending = list(rest) + pending


# ===== Item table =====
_DESCRIPTION_STYLE = ParagraphStyle("ItemDescription", fontName=FONT, fontSize=8, leading=9.5)
_SUBITEM_DESCRIPTION_STYLE = ParagraphStyle(
    "SubitemDescription",
    parent=_DESCRIPTION_STYLE,
    fontName=FONT_ITALIC,
    fontSize=7,
    leading=8.5,
    textColor=SUBITEM_COLOR,
)
_COUPON_STYLE = ParagraphStyle("Coupons", fontName=FONT, fontSize=6.5, leading=8)
_HEADER_STYLE = ParagraphStyle("ItemHeader", fontName=FONT_BOLD, fontSize=8, leading=9.5, alignment=1)


def item_table_style(table: list[list[str]]) -> list[tuple]:
    """TableStyle commands for the item table; ``table[0]`` is the header row."""
    commands: list[tuple] = [
        ("FONT", (0, 0), (-1, -1), FONT, 8),
        ("LEFTPADDING", (0, 0), (-1, -1), 3),
        ("RIGHTPADDING", (0, 0), (-1, -1), 3),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ROWBACKGROUNDS", (0, 0), (-1, -1), ROW_COLORS),
        ("LINEAFTER", (0, 0), (0, -1), 0.5, colors.black),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
        ("ALIGN", (0, 0), (0, -1), "LEFT"),
        ("ALIGN", (1, 0), (2, -1), "CENTER"),
        ("ALIGN", (4, 0), (6, -1), "RIGHT"),
        ("ALIGN", (7, 0), (8, -1), "CENTER"),
        ("FONT", (0, 0), (-1, 0), FONT_BOLD, 8),
    ]

    for index, cells in enumerate(table[1:], start=1):
        # Items without a listed weight get the weight column centered.
        if cells[4] == "-":
            commands.append(("ALIGN", (4, index), (4, index), "CENTER"))

        # Combo subitems: smaller gray text, "indented" quantity and product id.
        if is_subitem_label(cells[0]):
            commands.extend(
                [
                    ("FONTSIZE", (0, index), (-1, index), 7),
                    ("TEXTCOLOR", (0, index), (-1, index), SUBITEM_COLOR),
                    ("ALIGN", (1, index), (2, index), "RIGHT"),
                    ("LEFTPADDING", (3, index), (3, index), 30),
                    ("TOPPADDING", (3, index), (3, index), 0),
                    ("RIGHTPADDING", (3, index), (3, index), 0),
                    ("BOTTOMPADDING", (3, index), (3, index), 0),
                    ("TEXTCOLOR", (7, index), (8, index), colors.black),
                ]
            )
    return commands


def build_item_table(aggregated: AggregatedInvoice) -> Table:
    table = aggregated.table()
    # Header cells wrap inside their narrow columns.
    data: list[list[Any]] = [[Paragraph(escape(cell), _HEADER_STYLE) for cell in table[0]]]
    for cells in table[1:]:
        style = _SUBITEM_DESCRIPTION_STYLE if is_subitem_label(cells[0]) else _DESCRIPTION_STYLE
        row: list[Any] = list(cells)
        row[3] = Paragraph(cells[3].replace("\n", "<br/>"), style)
        data.append(row)

    item_table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1, hAlign="LEFT")
    item_table.setStyle(TableStyle(item_table_style(table)))
    return item_table


# ===== Document =====
def check_renderable(aggregated: AggregatedInvoice) -> None:
    if aggregated.total_weight <= 0:
        raise InvoiceConsistencyError("Argument missing or invalid: total_weight")
    if aggregated.total <= 0:
        raise InvoiceConsistencyError("Argument missing or invalid: total")
    # A zero subtotal is fine: free items exist.
    if aggregated.shipping_handling < 0:
        raise InvoiceConsistencyError("Argument missing or invalid: shipping_handling")
    if not aggregated.shipping_charge_string:
        raise InvoiceConsistencyError("Argument missing or invalid: shipping_charge_string")
    if not aggregated.incoterms:
        raise InvoiceConsistencyError("Argument missing or invalid: incoterms")
    if aggregated.discount > 0:
        raise InvoiceConsistencyError("Internal error: Invoice discount total is positive! (should always be <= 0)")


def _check_assets(settings: InvoiceSettings) -> None:
    for label, path in (("logo", settings.logo_file), ("signature", settings.signature_file)):
        if not path.is_file():
            raise InvoiceAssetError(f"Missing {label} image: {path}")


class CommercialInvoiceLayout:
    """Lays out one AggregatedInvoice; call ``render()`` once."""

    def __init__(
        self,
        aggregated: AggregatedInvoice,
        settings: InvoiceSettings | None = None,
        today: Optional[date] = None,
    ) -> None:
        self.aggregated = aggregated
        self.settings = settings or InvoiceSettings()
        self.today = today
        self._logo: tuple[ImageReader, float] | None = None
        self.flow: PageFlow | None = None

    # --- repeating page chrome -------------------------------------------
    def _decorate_page(self, canvas: InvoiceCanvas, page_number: int, page_count: int) -> None:
        canvas.saveState()
        base = HEADER_BASE_Y
        left = MARGIN_LEFT

        if self._logo is None:
            self._logo = _image_size(self.settings.logo_file, 50)
        logo, logo_width = self._logo
        canvas.drawImage(logo, left - 7, base + 15, width=logo_width, height=50, mask="auto")

        _draw_text_block(canvas, self.settings.header_lines, left + 40, base + 50, size=8)
        _text_box(canvas, "\n".join(self.settings.contact_lines), left + 430, base + 55, 100, size=8, align="right")

        _text_box(canvas, self.settings.title, left + 40, base + 52, 460, size=20, font=FONT_BOLD, align="center")
        salesorder = self.aggregated.salesorder
        if salesorder:
            label = "For Salesorder" + ("s " if "," in salesorder else " ") + salesorder
            _text_box(canvas, label, left + 40, base + 30, 460, size=14, align="center")

        canvas.setLineWidth(3)
        canvas.line(left + 40, base + 11, left + 500, base + 11)
        canvas.setLineWidth(1)

        _text_box(
            canvas,
            f"Page {page_number} of {page_count}",
            MARGIN_LEFT + CONTENT_WIDTH - 150,
            MARGIN_BOTTOM,
            150,
            size=10,
            align="right",
        )
        canvas.restoreState()

    # --- first-page blocks ----------------------------------------------
    def draw_shipping_info(self) -> None:
        info = shipping_info(self.aggregated, self.today)
        labels = [label + ":" for label in info]
        # The block grows upward when it has more than four lines.
        top = MARGIN_BOTTOM + 620 + 5 * (len(labels) - 4)
        canvas = self.flow.canvas
        _draw_text_block(canvas, labels, MARGIN_LEFT + 20, top, size=10, spacing=14, font=FONT_BOLD)
        _draw_text_block(canvas, list(info.values()), MARGIN_LEFT + 100, top, size=10, spacing=14)

    def _draw_address(self, title: str, lines: Iterable[str], x: float, y: float) -> None:
        canvas = self.flow.canvas
        canvas.setFont(FONT_BOLD, 14)
        canvas.drawString(MARGIN_LEFT + x, MARGIN_BOTTOM + y, title)
        _draw_text_block(canvas, lines, MARGIN_LEFT + x + 10, MARGIN_BOTTOM + y - 15, size=10)

    def draw_addresses(self) -> None:
        consignee = list(self.aggregated.addr_consignee)
        if self.aggregated.tax_id:
            consignee.append(f"Tax ID: {self.aggregated.tax_id}")
        self._draw_address("Shipped from:", self.aggregated.addr_from, 10, 530)
        self._draw_address("Consignee:", consignee, 300, 640)
        self._draw_address("Importer:", self.aggregated.addr_importer, 300, 530)
        self.flow.move_down(ADDRESS_BLOCK_HEIGHT)

    # --- flowing content --------------------------------------------------
    def draw_items(self) -> None:
        self.flow.draw_flowable(build_item_table(self.aggregated))

    def draw_coupons(self) -> None:
        if self.flow.ensure_space(COUPON_SPACE):
            self.flow.move_down(25)
        self.flow.move_down(4)
        text = "<b>Coupons used:</b>  " + escape(self.aggregated.coupons)
        self.flow.draw_flowable(Paragraph(text, _COUPON_STYLE))

    def _summary_text(
        self,
        label: str,
        value: str,
        x1: float,
        x2: float,
        bold: bool = False,
        value_width: float = 50,
        value_align: str = "right",
    ) -> None:
        canvas = self.flow.canvas
        font = FONT_BOLD if bold else FONT
        top = self.flow.y()
        _text_box(canvas, label, MARGIN_LEFT + x1, top, 100, size=10, font=font)
        _text_box(canvas, value, MARGIN_LEFT + x2, top, value_width, size=10, font=font, align=value_align)
        self.flow.move_down(11)

    def _summary_separator(self) -> None:
        self.flow.move_down(1)
        canvas = self.flow.canvas
        canvas.setLineWidth(1)
        canvas.line(MARGIN_LEFT + SUMMARY_RULE_X[0], self.flow.y(), MARGIN_LEFT + SUMMARY_RULE_X[1], self.flow.y())
        self.flow.move_down(3)

    def draw_summary(self) -> None:
        aggregated = self.aggregated

        # Never split the summary: if it does not fit, move it to a fresh page.
        if self.flow.ensure_space(summary_height_budget(aggregated)):
            self.flow.move_down(40)
        else:
            self._summary_separator()

        summary_start = self.flow.cursor

        if aggregated.discount < 0:
            self._summary_text("Before discounts:", format_currency(aggregated.prediscount_total), SUMMARY_LABEL_X, SUMMARY_VALUE_X)
            self._summary_text("Discounts:", format_currency(aggregated.discount), SUMMARY_LABEL_X, SUMMARY_VALUE_X)
            self._summary_separator()

        self._summary_text("Subtotal:", format_currency(aggregated.subtotal), SUMMARY_LABEL_X, SUMMARY_VALUE_X, bold=True)
        self._summary_text(
            f"{aggregated.shipping_charge_string}:",
            format_currency(aggregated.shipping_handling),
            SUMMARY_LABEL_X,
            SUMMARY_VALUE_X,
        )
        self._summary_separator()
        self._summary_text("Invoice Total:", format_currency(aggregated.total), SUMMARY_LABEL_X, SUMMARY_VALUE_X, bold=True)
        summary_end = self.flow.cursor

        self.flow.move_cursor_to(summary_start)
        for label, value in (
            ("Total quantity:", pluralize(aggregated.total_quantity, "item")),
            ("Shipment weight:", ounces_to_pounds(aggregated.total_weight)),
            ("Incoterms:", aggregated.incoterms),
        ):
            self._summary_text(label, value, 0, 120, bold=True, value_width=100, value_align="left")

        self.flow.move_cursor_to(min(summary_end, self.flow.cursor))

    def draw_signature(self) -> None:
        self.flow.ensure_space(SIGNATURE_SPACE)
        self.flow.move_down(50)

        canvas = self.flow.canvas
        # Image first so the text draws over it.
        signature, width = _image_size(self.settings.signature_file, 35)
        canvas.drawImage(signature, MARGIN_LEFT + 3, self.flow.y(-28 - 35), width=width, height=35, mask="auto")

        _text_box(canvas, DECLARATION, MARGIN_LEFT, self.flow.y(), 500, size=12)
        self.flow.move_down(52)

        canvas.setLineWidth(1)
        canvas.line(MARGIN_LEFT, self.flow.y(), MARGIN_LEFT + 150, self.flow.y())

        self.flow.move_down(6)
        _text_box(canvas, self.settings.signer_name, MARGIN_LEFT + 8, self.flow.y(), 500, size=12)
        self.flow.move_down(50)

    def render(self) -> bytes:
        check_renderable(self.aggregated)
        _check_assets(self.settings)

        buffer = BytesIO()
        canvas = InvoiceCanvas(buffer, decorate_page=self._decorate_page, pagesize=LETTER)
        canvas.setTitle(f"{self.settings.title} {self.aggregated.invoice}")
        canvas.setAuthor(self.settings.header_lines[0] if self.settings.header_lines else self.settings.title)
        self.flow = PageFlow(canvas)

        self.draw_shipping_info()
        self.draw_addresses()
        self.draw_items()
        self.draw_coupons()
        self.draw_summary()
        self.draw_signature()

        # The last page is still open; hand it over to the deferred page list.
        canvas.showPage()
        canvas.save()

        logger.info("Rendered commercial invoice %s: %d page(s)", self.aggregated.invoice, self.flow.page_number)
        return buffer.getvalue()


def render_pdf(
    aggregated: AggregatedInvoice,
    settings: InvoiceSettings | None = None,
    today: Optional[date] = None,
) -> bytes:
    return CommercialInvoiceLayout(aggregated, settings, today).render()
