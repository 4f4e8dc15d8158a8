# hourbook/utils/invoice_pdf.py

from __future__ import annotations

import io
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..services.invoice_renderer import format_date, format_hours, format_money, format_percent
from ..services.invoicing import InvoiceView, labels_for

ACCENT = colors.HexColor("#1f3a5f")
GRAY = colors.HexColor("#6b7280")
DARK = colors.HexColor("#111827")
RULE = colors.HexColor("#e5e7eb")

MARGIN = 18 * mm
HEADER_H = 28 * mm
FOOTER_H = 26 * mm


def _p(text: str, style: ParagraphStyle) -> Paragraph:
    # Paragraph parses mini-markup; user text must stay literal
    return Paragraph(escape(text or ""), style)


def _draw_lines(c, x, y, lines, step=4 * mm):
    for line in lines:
        c.drawString(x, y, line[:60])
        y -= step
    return y


def _page_decorator(view: InvoiceView, t: dict[str, str]):
    """Header bar and footer columns repeated on every page."""

    def draw(c, doc):
        width, height = doc.pagesize
        c.saveState()

        c.setFillColor(ACCENT)
        c.rect(0, height - HEADER_H, width, HEADER_H, stroke=0, fill=1)

        issuer = view.company_lines[0] if view.company_lines else ""
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(MARGIN, height - 16 * mm, issuer[:45])
        c.setFont("Helvetica-Bold", 12)
        c.drawRightString(width - MARGIN, height - 14 * mm, f"{t['invoice'].upper()} {view.invoice_no}")
        c.setFont("Helvetica", 9)
        c.drawRightString(width - MARGIN, height - 20 * mm, f"{t['date']}: {format_date(view.invoice_date)}")

        c.setFillColor(RULE)
        c.rect(0, 0, width, FOOTER_H, stroke=0, fill=1)
        c.setFillColor(colors.HexColor("#374151"))
        c.setFont("Helvetica", 8)
        column = (width - 2 * MARGIN) / 3
        for i, lines in enumerate((view.company_lines, view.contact_lines, view.bank_lines)):
            _draw_lines(c, MARGIN + i * column, 20 * mm, lines[:4])

        c.setFillColor(GRAY)
        c.drawString(MARGIN, 3 * mm, f"Generated: {format_date(date.today())}")
        c.drawRightString(width - MARGIN, 3 * mm, str(doc.page))

        c.restoreState()

    return draw


def _items_table(view: InvoiceView, t: dict[str, str], cell: ParagraphStyle, frame_width: float) -> Table:
    header = ([t["date"]] if view.has_any_date else []) + [t["task"], t["hours"]]
    if not view.is_fixed:
        header.append(t["cost"])

    data = [header]
    for line in view.lines:
        row = ([format_date(line.date)] if view.has_any_date else []) + [_p(line.name, cell), format_hours(line.hours)]
        if not view.is_fixed:
            row.append(format_money(line.cost))
        data.append(row)

    if len(data) == 1:
        data.append([t["noTasks"]] + [""] * (len(header) - 1))

    widths = {"date": 26 * mm, "hours": 22 * mm, "cost": 30 * mm}
    used = widths["hours"] + (widths["date"] if view.has_any_date else 0) + (0 if view.is_fixed else widths["cost"])

    col_widths = ([widths["date"]] if view.has_any_date else []) + [frame_width - used, widths["hours"]]
    if not view.is_fixed:
        col_widths.append(widths["cost"])

    # Header row repeats on every page the table spills onto
    table = Table(data, colWidths=col_widths, repeatRows=1, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
        ("TEXTCOLOR", (0, 0), (-1, 0), DARK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, RULE),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (-1 if view.is_fixed else -2, 0), (-1, -1), "RIGHT"),
        ("PADDING", (0, 0), (-1, -1), 6),
    ]))
    return table


def _totals_table(view: InvoiceView, t: dict[str, str]) -> Table:
    totals = view.totals
    vat_label = t["vat"].format(percent=format_percent(totals.vat_percent))
    vat_value = format_money(totals.vat_amount) if totals.vat_percent > 0 else "-"

    table = Table(
        [
            [t["subtotal"], format_money(totals.subtotal)],
            [vat_label, vat_value],
            [t["total"], format_money(totals.total)],
        ],
        colWidths=[45 * mm, 30 * mm],
        hAlign="RIGHT",
    )
    table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("TEXTCOLOR", (0, 0), (-1, 1), GRAY),
        ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
        ("FONTSIZE", (0, 2), (-1, 2), 10),
        ("TEXTCOLOR", (0, 2), (-1, 2), DARK),
        ("LINEABOVE", (0, 2), (-1, 2), 0.5, RULE),
    ]))
    return table


def render_invoice_pdf(view: InvoiceView) -> bytes:
    """
    Render an InvoiceView to PDF (no DB access).
    Long task lists flow onto further pages; header and footer are drawn on each.
    Returns PDF bytes.
    """
    t = labels_for(view.locale)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=HEADER_H + 10 * mm,
        bottomMargin=FOOTER_H + 8 * mm,
        title=f"{t['invoice']} {view.invoice_no}",
    )

    styles = getSampleStyleSheet()
    body = ParagraphStyle("InvoiceBody", parent=styles["Normal"], fontSize=9, leading=12, textColor=DARK)
    strong = ParagraphStyle("InvoiceStrong", parent=body, fontName="Helvetica-Bold", fontSize=10)
    heading = ParagraphStyle("InvoiceHeading", parent=strong, fontSize=11, leading=14, spaceBefore=6 * mm)
    muted = ParagraphStyle("InvoiceMuted", parent=body, textColor=GRAY)

    customer = view.customer
    elements = [_p(customer.company_name, strong)]
    for line in (
        customer.contact_person,
        " ".join(p for p in (customer.street, customer.number) if p),
        " ".join(p for p in (customer.postal_code, customer.city) if p),
        customer.country,
        f"{t['vatId']}: {customer.vat}" if customer.vat else "",
    ):
        if line:
            elements.append(_p(line, body))

    elements.append(_p(view.project_name, heading))
    if view.project_description:
        elements.append(_p(view.project_description, muted))
    elements.append(Spacer(1, 6 * mm))

    elements.append(_items_table(view, t, body, doc.width))
    elements.append(Spacer(1, 8 * mm))
    elements.append(KeepTogether([_totals_table(view, t)]))

    if view.notes:
        elements.append(Spacer(1, 8 * mm))
        elements.extend(_p(line, muted) for line in view.notes.splitlines())

    decorate = _page_decorator(view, t)
    doc.build(elements, onFirstPage=decorate, onLaterPages=decorate)

    pdf = buf.getvalue()
    buf.close()
    return pdf
