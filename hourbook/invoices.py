# hourbook/invoices.py
from __future__ import annotations

from flask import Blueprint, jsonify, make_response
from flask_login import current_user, login_required

from .extensions import db
from .services.invoice_renderer import render_invoice_html
from .services.invoicing import InvoiceView, prepare_invoice
from .utils.encryption import get_field_cipher
from .utils.invoice_pdf import render_invoice_pdf

invoices = Blueprint("invoices", __name__)


def _view(customer_id: int, project_id: int) -> InvoiceView:
    # First preview freezes the project's invoice number and date
    return prepare_invoice(
        db.session,
        current_user._get_current_object(),
        customer_id,
        project_id,
        get_field_cipher(),
    )


@invoices.route("/customers/<int:customer_id>/projects/<int:project_id>/preview", methods=["POST"])
@login_required
def preview(customer_id: int, project_id: int):
    view = _view(customer_id, project_id)
    payload = view.to_dict()
    payload["html"] = render_invoice_html(view)
    return jsonify(payload)


@invoices.route("/customers/<int:customer_id>/projects/<int:project_id>/pdf", methods=["POST"])
@login_required
def pdf(customer_id: int, project_id: int):
    view = _view(customer_id, project_id)
    pdf_bytes = render_invoice_pdf(view)

    filename = f"invoice-{view.invoice_no or project_id}.pdf".replace("/", "-")
    resp = make_response(pdf_bytes)
    resp.headers["Content-Type"] = "application/pdf"
    resp.headers["Content-Disposition"] = f'inline; filename="{filename}"'
    return resp
