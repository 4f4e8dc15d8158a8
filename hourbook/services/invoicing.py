# hourbook/services/invoicing.py
"""
Invoice computation.

Turns a project and its ordered tasks into an InvoiceView: header identity,
line items, subtotal / VAT / total and the issuer footer blocks. Money is
Decimal throughout and quantized to cents only when a value leaves the
engine, so line costs and the subtotal never drift apart.

The invoice number and date are materialized lazily on the first preview
and then stay frozen on the project row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..errors import atomic
from ..models import TASK_ORDERING, Customer, PricingType, Project, Task, User, utcnow_naive
from ..utils.encryption import FieldCipher
from .invoice_numbers import allocate_invoice_number
from .ownership import OwnershipGuard

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

SUPPORTED_LOCALES = ("en", "de")

INVOICE_LABELS = {
    "en": {
        "invoice": "Invoice",
        "date": "Date",
        "task": "Task",
        "hours": "Hours",
        "cost": "Cost",
        "subtotal": "Subtotal",
        "vat": "VAT ({percent}%)",
        "total": "Total",
        "noTasks": "No tasks",
        "vatId": "VAT",
        "phone": "Phone",
        "email": "Email",
    },
    "de": {
        "invoice": "Rechnung",
        "date": "Datum",
        "task": "Aufgabe",
        "hours": "Stunden",
        "cost": "Kosten",
        "subtotal": "Zwischensumme",
        "vat": "MwSt. ({percent}%)",
        "total": "Gesamt",
        "noTasks": "Keine Aufgaben",
        "vatId": "USt-IdNr.",
        "phone": "Telefon",
        "email": "E-Mail",
    },
}


def resolve_locale(locale: str | None) -> str:
    return locale if locale in SUPPORTED_LOCALES else "en"


def labels_for(locale: str | None) -> dict[str, str]:
    return INVOICE_LABELS[resolve_locale(locale)]


def _dec(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


# =========================================================
# Totals
# =========================================================
@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    vat_percent: Decimal
    vat_amount: Decimal
    total: Decimal


def line_cost(hours: Any, hourly_rate: Any) -> Decimal:
    return to_cents(_dec(hours) * _dec(hourly_rate))


def compute_totals(
    pricing_type: PricingType,
    fixed_price: Any,
    hourly_rate: Any,
    tasks: Iterable[Any],
    vat_percent: Any,
) -> Totals:
    """
    FIXED bills the fixed price and ignores task hours; HOURLY bills the sum
    of hours x rate. VAT only applies when the rate is positive.
    """
    vat = _dec(vat_percent)

    if pricing_type == PricingType.FIXED:
        subtotal = to_cents(_dec(fixed_price))
    else:
        rate = _dec(hourly_rate)
        subtotal = to_cents(sum((_dec(t.estimated_hours) * rate for t in tasks), ZERO))

    if vat > 0:
        vat_amount = to_cents(subtotal * vat / HUNDRED)
        total = subtotal + vat_amount
    else:
        vat_amount = to_cents(ZERO)
        total = subtotal

    return Totals(subtotal=subtotal, vat_percent=vat, vat_amount=vat_amount, total=total)


# =========================================================
# View
# =========================================================
@dataclass(frozen=True)
class InvoiceLine:
    date: date | None
    name: str
    hours: Decimal
    cost: Decimal | None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat() if self.date else None,
            "name": self.name,
            "hours": float(self.hours),
            "cost": float(self.cost) if self.cost is not None else None,
        }


@dataclass(frozen=True)
class BillingBlock:
    company_name: str
    contact_person: str
    street: str
    number: str
    postal_code: str
    city: str
    country: str
    vat: str

    def to_dict(self) -> dict:
        return {
            "companyName": self.company_name,
            "contactPerson": self.contact_person,
            "street": self.street,
            "number": self.number,
            "postalCode": self.postal_code,
            "city": self.city,
            "country": self.country,
            "vat": self.vat,
        }


@dataclass(frozen=True)
class BankDetails:
    name: str
    iban: str
    bic: str

    def to_dict(self) -> dict:
        return {"name": self.name, "iban": self.iban, "bic": self.bic}


@dataclass(frozen=True)
class InvoiceView:
    invoice_no: str
    invoice_date: date | None
    locale: str
    customer: BillingBlock
    project_name: str
    project_description: str
    is_fixed: bool
    hourly_rate: Decimal
    lines: tuple[InvoiceLine, ...]
    totals: Totals
    notes: str
    company_lines: tuple[str, ...]
    contact_lines: tuple[str, ...]
    bank_lines: tuple[str, ...]
    bank: BankDetails

    @property
    def has_any_date(self) -> bool:
        return any(line.date for line in self.lines)

    def table_dict(self) -> dict:
        return {
            "isFixed": self.is_fixed,
            "hasAnyDate": self.has_any_date,
            "hourlyRate": float(self.hourly_rate),
            "items": [line.to_dict() for line in self.lines],
            "subtotal": float(self.totals.subtotal),
            "vatPercent": float(self.totals.vat_percent),
            "vatAmount": float(self.totals.vat_amount),
            "total": float(self.totals.total),
        }

    def to_dict(self) -> dict:
        return {
            "invoiceNo": self.invoice_no,
            "invoiceDate": self.invoice_date.isoformat() if self.invoice_date else None,
            "locale": self.locale,
            "project": {"name": self.project_name, "description": self.project_description},
            "notes": self.notes,
            "table": self.table_dict(),
            "footer": {
                "companyLines": list(self.company_lines),
                "contactLines": list(self.contact_lines),
                "bankLines": list(self.bank_lines),
            },
            "bank": self.bank.to_dict(),
            "customer": self.customer.to_dict(),
        }


def _join(parts: Sequence[str], sep: str = " ") -> str:
    return sep.join(p.strip() for p in parts if p and p.strip())


def _non_blank(lines: Iterable[str]) -> tuple[str, ...]:
    return tuple(line for line in lines if line and line.strip())


def company_lines(user: User) -> tuple[str, ...]:
    return _non_blank([
        user.company_name,
        _join([user.company_street, user.company_number]),
        _join([user.company_postal_code, user.company_city]),
        _join([user.company_state, user.company_country], ", "),
    ])


def contact_lines(user: User, labels: dict[str, str]) -> tuple[str, ...]:
    return _non_blank([
        f"{labels['vatId']}: {user.company_vat_id}" if (user.company_vat_id or "").strip() else "",
        f"{labels['phone']}: {user.company_phone}" if (user.company_phone or "").strip() else "",
        f"{labels['email']}: {user.email}" if (user.email or "").strip() else "",
    ])


def bank_lines(bank: BankDetails) -> tuple[str, ...]:
    return _non_blank([
        bank.name,
        f"IBAN: {bank.iban}" if bank.iban else "",
        f"BIC: {bank.bic}" if bank.bic.strip() else "",
    ])


def build_invoice_view(
    user: User,
    customer: Customer,
    project: Project,
    tasks: Sequence[Task],
    cipher: FieldCipher,
) -> InvoiceView:
    """Pure: everything persisted (number, date) must already be in place."""
    locale = resolve_locale(user.locale)
    labels = labels_for(locale)
    is_fixed = project.is_fixed

    lines = tuple(
        InvoiceLine(
            date=t.date,
            name=t.name,
            hours=_dec(t.estimated_hours),
            cost=None if is_fixed else line_cost(t.estimated_hours, project.hourly_rate),
        )
        for t in tasks
    )
    totals = compute_totals(
        project.pricing_type,
        project.fixed_price,
        project.hourly_rate,
        tasks,
        user.vat_percent,
    )

    # Full IBAN is shown to the owner only; callers never build this for anyone else
    iban = cipher.decrypt(user.bank_iban_cipher, user.bank_iban_iv, user.bank_iban_tag)
    bank = BankDetails(name=user.bank_name or "", iban=iban, bic=user.bank_bic or "")

    return InvoiceView(
        invoice_no=project.invoice_number or "",
        invoice_date=project.invoice_date,
        locale=locale,
        customer=BillingBlock(
            company_name=customer.name,
            contact_person=customer.contact_person or "",
            street=customer.billing_street or "",
            number=customer.billing_number or "",
            postal_code=customer.billing_postal_code or "",
            city=customer.billing_city or "",
            country=customer.billing_country or "",
            vat=customer.vat_number or "",
        ),
        project_name=project.name,
        project_description=project.description or "",
        is_fixed=is_fixed,
        hourly_rate=_dec(project.hourly_rate),
        lines=lines,
        totals=totals,
        notes=user.invoice_notes or "",
        company_lines=company_lines(user),
        contact_lines=contact_lines(user, labels),
        bank_lines=bank_lines(bank),
        bank=bank,
    )


# =========================================================
# Header materialization
# =========================================================
class _AlreadyNumbered(Exception):
    pass


def _assign_invoice_number(session: Session, user_id: int, project_id: int) -> None:
    try:
        with atomic(session, "Assign invoice number"):
            number = allocate_invoice_number(session, user_id)
            result = session.execute(
                update(Project)
                .where(
                    Project.id == project_id,
                    Project.user_id == user_id,
                    func.trim(Project.invoice_number) == "",
                )
                .values(invoice_number=number, updated_at=utcnow_naive())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # A concurrent preview numbered it first; roll back our allocation
                raise _AlreadyNumbered()
    except _AlreadyNumbered:
        pass


def materialize_invoice_header(session: Session, user_id: int, project: Project) -> Project:
    """
    Give the project an invoice number (when blank) and an invoice date
    (when unset). Both writes are conditional, so concurrent previews agree
    on one number and one date.
    """
    if not (project.invoice_number or "").strip():
        _assign_invoice_number(session, user_id, project.id)

    if project.invoice_date is None:
        with atomic(session, "Set invoice date"):
            session.execute(
                update(Project)
                .where(
                    Project.id == project.id,
                    Project.user_id == user_id,
                    Project.invoice_date.is_(None),
                )
                .values(invoice_date=date.today(), updated_at=utcnow_naive())
                .execution_options(synchronize_session=False)
            )

    session.refresh(project)
    return project


def prepare_invoice(
    session: Session,
    user: User,
    customer_id: int,
    project_id: int,
    cipher: FieldCipher,
) -> InvoiceView:
    guard = OwnershipGuard(session, user.id)
    customer = guard.customer(customer_id)
    project = materialize_invoice_header(session, user.id, guard.project(customer_id, project_id))

    tasks = session.execute(
        select(Task)
        .where(Task.project_id == project.id, Task.user_id == user.id)
        .order_by(*TASK_ORDERING)
    ).scalars().all()

    return build_invoice_view(user, customer, project, tasks, cipher)
