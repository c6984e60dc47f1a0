"""Validation rules a CFDI must satisfy before it can be stamped or exported.

Each check inspects one part of the document and returns the errors it found
keyed by field path. Every check runs on every call so a single result lists
all the corrections the user has to make.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from . import catalogs as cat
from .calculator import compute_document_totals, is_computable, recompute_line
from .catalogs import CatalogService
from .logging import ExcelErrorLog, ExcelErrorLogConfig
from .models import Invoice, LineItem
from .utils import ZERO, parse_decimal, q2

RFC_PATTERN = re.compile(r"[A-Z&Ñ]{3,4}[0-9]{6}(?:[A-Z0-9]{3})?")
POSTAL_CODE_PATTERN = re.compile(r"[0-9]{5}")


@dataclass(frozen=True)
class ValidationIssue:
    """One validation error, as a row of the Excel error log."""

    path: str
    message: str
    invoice_id: str | None = None

    def as_cells(self) -> list[str | None]:
        return [self.invoice_id, self.path, self.message]


@dataclass(frozen=True)
class ValidationResult:
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def issues(self, invoice_id: str | None = None) -> Iterator[ValidationIssue]:
        """Yield one issue per error, tagged with ``invoice_id``."""

        for path, message in self.errors.items():
            yield ValidationIssue(path, message, invoice_id)


def validate(invoice: Invoice, catalog: CatalogService | None = None) -> ValidationResult:
    """Run every validation check against ``invoice``.

    When ``catalog`` is given the codes are also looked up in the reference
    catalogs.
    """

    errors: dict[str, str] = {}
    errors.update(_check_header(invoice))
    errors.update(_check_issuer(invoice))
    errors.update(_check_recipient(invoice))
    errors.update(_check_lines(invoice))
    errors.update(_check_payment(invoice))
    errors.update(_check_totals(invoice))
    if catalog is not None:
        errors.update(_check_catalog_codes(invoice, catalog))
    return ValidationResult(errors=errors)


def export_report(
    result: ValidationResult, *, destination: Path, invoice_id: str | None = None
) -> Path:
    """Write the errors of ``result`` to an Excel error log at ``destination``."""

    log = ExcelErrorLog(ExcelErrorLogConfig(destination=Path(destination)))
    log.extend(result.issues(invoice_id))
    return log.save()


def is_valid_rfc(value: str | None) -> bool:
    return bool(value) and RFC_PATTERN.fullmatch(value) is not None


def _is_blank(value: object) -> bool:
    return value is None or not str(value).strip()


def _check_rfc(value: str | None, owner: str) -> str | None:
    if _is_blank(value):
        return f"El RFC del {owner} es obligatorio"
    if not is_valid_rfc(value):
        return f"El RFC del {owner} no tiene un formato válido"
    return None


def _check_header(invoice: Invoice) -> dict[str, str]:
    if invoice.issued_at is None:
        return {"fechaEmision": "La fecha de emisión es obligatoria"}
    return {}


def _check_issuer(invoice: Invoice) -> dict[str, str]:
    issuer = invoice.issuer
    errors: dict[str, str] = {}

    message = _check_rfc(issuer.rfc, "emisor")
    if message:
        errors["emisorRfc"] = message
    if _is_blank(issuer.name):
        errors["emisorNombre"] = "El nombre del emisor es obligatorio"
    if _is_blank(issuer.fiscal_regime):
        errors["emisorRegimenFiscal"] = "El régimen fiscal del emisor es obligatorio"
    if _is_blank(issuer.postal_code):
        errors["emisorCodigoPostal"] = "El código postal es obligatorio"
    elif not POSTAL_CODE_PATTERN.fullmatch(issuer.postal_code):
        errors["emisorCodigoPostal"] = "El código postal debe tener 5 dígitos"
    return errors


def _check_recipient(invoice: Invoice) -> dict[str, str]:
    recipient = invoice.recipient
    errors: dict[str, str] = {}

    message = _check_rfc(recipient.rfc, "receptor")
    if message:
        errors["receptorRfc"] = message
    if _is_blank(recipient.name):
        errors["receptorNombre"] = "El nombre del receptor es obligatorio"
    if _is_blank(recipient.cfdi_use):
        errors["receptorUsoCFDI"] = "El uso de CFDI es obligatorio"
    domicile = recipient.fiscal_domicile
    if not _is_blank(domicile) and not POSTAL_CODE_PATTERN.fullmatch(domicile):
        errors["receptorDomicilioFiscal"] = "El código postal debe tener 5 dígitos"
    return errors


def _check_lines(invoice: Invoice) -> dict[str, str]:
    if not invoice.lines:
        return {"conceptos": "Debe agregar al menos un concepto"}

    errors: dict[str, str] = {}
    for index, line in enumerate(invoice.lines):
        errors.update(_check_line(index, line))
    return errors


def _check_line(index: int, line: LineItem) -> dict[str, str]:
    prefix = f"concepto{index}"
    number = index + 1
    errors: dict[str, str] = {}

    if _is_blank(line.product_code):
        errors[f"{prefix}ClaveProductoServicio"] = (
            f"La clave de producto/servicio del concepto {number} es obligatoria"
        )
    if _is_blank(line.description):
        errors[f"{prefix}Descripcion"] = (
            f"La descripción del concepto {number} es obligatoria"
        )
    if not _is_positive(line.quantity):
        errors[f"{prefix}Cantidad"] = (
            f"La cantidad del concepto {number} debe ser mayor a cero"
        )
    if not _is_positive(line.unit_price):
        errors[f"{prefix}PrecioUnitario"] = (
            f"El precio unitario del concepto {number} debe ser mayor a cero"
        )
    elif not _has_cents_precision(line.unit_price):
        errors[f"{prefix}PrecioUnitario"] = (
            f"El precio unitario del concepto {number} admite como máximo 2 decimales"
        )
    message = _check_charges(line, number)
    if message:
        errors[f"{prefix}Impuestos"] = message
    return errors


def _check_charges(line: LineItem, number: int) -> str | None:
    if not line.charges:
        return f"El concepto {number} debe tener al menos un impuesto"
    kinds = [charge.kind for charge in line.charges]
    if len(set(kinds)) != len(kinds):
        return f"El concepto {number} tiene impuestos repetidos"
    for charge in line.charges:
        rate = parse_decimal(charge.rate, default=None)
        if rate is None or not rate.is_finite() or rate < ZERO:
            return f"La tasa de {charge.kind.value} del concepto {number} no es válida"
    return None


def _check_payment(invoice: Invoice) -> dict[str, str]:
    payment = invoice.payment
    errors: dict[str, str] = {}

    if _is_blank(payment.payment_method):
        errors["metodoPago"] = "El método de pago es obligatorio"
    if _is_blank(payment.payment_form):
        errors["formaPago"] = "La forma de pago es obligatoria"
    if _is_blank(payment.currency):
        errors["moneda"] = "La moneda es obligatoria"
    elif payment.is_foreign_currency and not _is_positive(payment.exchange_rate):
        errors["tipoCambio"] = "El tipo de cambio debe ser mayor a cero"
    return errors


def _check_totals(invoice: Invoice) -> dict[str, str]:
    if not all(is_computable(line) for line in invoice.lines):
        # Lines with bad numbers are already reported on their own fields.
        return {}

    expected = compute_document_totals(recompute_line(line) for line in invoice.lines)

    errors: dict[str, str] = {}
    for key, label, stored, computed in (
        ("subtotal", "El subtotal", invoice.subtotal, expected.subtotal),
        ("totalImpuestos", "El total de impuestos", invoice.total_tax, expected.total_tax),
        ("total", "El total", invoice.total, expected.total),
    ):
        if parse_decimal(stored, default=None) != computed:
            errors[key] = f"{label} no coincide con los conceptos (esperado {computed:.2f})"
    return errors


def _check_catalog_codes(invoice: Invoice, catalog: CatalogService) -> dict[str, str]:
    errors: dict[str, str] = {}

    checks: list[tuple[str, str, str | None]] = [
        ("emisorRegimenFiscal", cat.FISCAL_REGIMES, invoice.issuer.fiscal_regime),
        ("receptorUsoCFDI", cat.CFDI_USES, invoice.recipient.cfdi_use),
        ("receptorRegimenFiscal", cat.FISCAL_REGIMES, invoice.recipient.fiscal_regime),
        ("metodoPago", cat.PAYMENT_METHODS, invoice.payment.payment_method),
        ("formaPago", cat.PAYMENT_FORMS, invoice.payment.payment_form),
    ]
    for index, line in enumerate(invoice.lines):
        checks.append(
            (f"concepto{index}ClaveProductoServicio", cat.PRODUCTS_SERVICES, line.product_code)
        )

    known: dict[str, set[str]] = {}
    for key, name, code in checks:
        if _is_blank(code):
            continue
        if name not in known:
            known[name] = catalog.codes(name)
        if code not in known[name]:
            errors[key] = f"La clave '{code}' no existe en el catálogo {name}"
    return errors


def _is_positive(value: object) -> bool:
    number = parse_decimal(value, default=None)
    return number is not None and number.is_finite() and number > ZERO


def _has_cents_precision(value: object) -> bool:
    number = parse_decimal(value, default=None)
    return number is not None and number == q2(number)


__all__ = [
    "POSTAL_CODE_PATTERN",
    "RFC_PATTERN",
    "ValidationIssue",
    "ValidationResult",
    "export_report",
    "is_valid_rfc",
    "validate",
]
