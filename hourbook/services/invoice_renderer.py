# hourbook/services/invoice_renderer.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import render_template

from .invoicing import InvoiceView, labels_for


def format_date(value: date | None) -> str:
    return value.strftime("%d.%m.%Y") if value else ""


def format_money(value: Decimal | None) -> str:
    if value is None:
        return "-"
    return f"€{value:.2f}"


def format_hours(value: Decimal) -> str:
    # 3.00 -> "3", 1.50 -> "1.5"
    text = f"{value:f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def format_percent(value: Decimal) -> str:
    return format_hours(value)


def render_invoice_html(view: InvoiceView) -> str:
    """Render the invoice markup for a computed view. No database access."""
    labels = labels_for(view.locale)
    columns = (3 if view.has_any_date else 2) + (0 if view.is_fixed else 1)

    return render_template(
        "invoices/invoice.html",
        view=view,
        t=labels,
        columns=columns,
        vat_label=labels["vat"].format(percent=format_percent(view.totals.vat_percent)),
        fmt_date=format_date,
        fmt_money=format_money,
        fmt_hours=format_hours,
    )
