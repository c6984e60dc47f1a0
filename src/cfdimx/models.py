"""Data model for CFDI 4.0 invoice documents."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .utils import ZERO

DEFAULT_CURRENCY = "MXN"


class TaxKind(str, Enum):
    """Closed set of taxes a line item may carry."""

    IVA = "IVA"
    ISR = "ISR"
    IEPS = "IEPS"

    @property
    def authority_code(self) -> str:
        """Numeric tax-type code from the SAT ``c_Impuesto`` catalog."""

        return _AUTHORITY_CODES[self]


_AUTHORITY_CODES = {
    TaxKind.ISR: "001",
    TaxKind.IVA: "002",
    TaxKind.IEPS: "003",
}


class InvoiceState(str, Enum):
    DRAFT = "borrador"
    STAMPED = "timbrado"
    CANCELED = "cancelado"


@dataclass(frozen=True)
class Issuer:
    """Emisor of the invoice."""

    rfc: str
    name: str
    fiscal_regime: str
    postal_code: str


@dataclass(frozen=True)
class Recipient:
    """Receptor of the invoice."""

    rfc: str
    name: str
    cfdi_use: str
    fiscal_domicile: str | None = None
    fiscal_regime: str | None = None


@dataclass(frozen=True)
class TaxCharge:
    """One tax applied to a line item.

    ``rate`` is a percentage (``16`` means 16%). ``amount`` is filled in by
    :func:`cfdimx.calculator.compute_line`.
    """

    kind: TaxKind
    rate: Decimal
    amount: Decimal = ZERO


def _new_line_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class LineItem:
    """Concepto: one billable product or service entry."""

    product_code: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    charges: tuple[TaxCharge, ...] = ()
    amount: Decimal = ZERO
    id: str = field(default_factory=_new_line_id)


@dataclass(frozen=True)
class PaymentTerms:
    payment_method: str
    payment_form: str
    currency: str = DEFAULT_CURRENCY
    exchange_rate: Decimal | None = None

    @property
    def is_foreign_currency(self) -> bool:
        return self.currency != DEFAULT_CURRENCY


@dataclass(frozen=True)
class FiscalStamp:
    """TimbreFiscalDigital data assigned by the stamping authority."""

    uuid: str | None = None
    stamped_at: datetime | None = None
    cfd_seal: str | None = None
    sat_certificate: str | None = None
    sat_seal: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.uuid

    def missing_fields(self) -> list[str]:
        """Return the TimbreFiscalDigital attributes that have no value."""

        return [
            name
            for name, value in (
                ("UUID", self.uuid),
                ("FechaTimbrado", self.stamped_at),
                ("SelloCFD", self.cfd_seal),
                ("NoCertificadoSAT", self.sat_certificate),
                ("SelloSAT", self.sat_seal),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]


@dataclass(frozen=True)
class Invoice:
    """A CFDI document as handled by the engine.

    ``subtotal``, ``total_tax`` and ``total`` are derived values; call
    :func:`cfdimx.calculator.recompute` after changing the lines.
    """

    issuer: Issuer
    recipient: Recipient
    lines: tuple[LineItem, ...]
    payment: PaymentTerms
    stamp: FiscalStamp = field(default_factory=FiscalStamp)
    subtotal: Decimal = ZERO
    total_tax: Decimal = ZERO
    total: Decimal = ZERO
    state: InvoiceState = InvoiceState.DRAFT
    issued_at: datetime | None = None
    series: str | None = None
    folio: str | None = None
    id: str | None = None
    owner_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = [
    "DEFAULT_CURRENCY",
    "FiscalStamp",
    "Invoice",
    "InvoiceState",
    "Issuer",
    "LineItem",
    "PaymentTerms",
    "Recipient",
    "TaxCharge",
    "TaxKind",
]
