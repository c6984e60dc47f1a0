"""Conversion between :class:`~cfdimx.models.Invoice` and stored records.

Records are the plain JSON-compatible dictionaries kept by a document store,
using the field names of the ``cfdis`` table (``emisor``, ``conceptos``,
``informacionPago`` ...). Monetary values are written as strings so no
precision is lost; numbers are accepted when reading. Missing or empty
fields are read leniently so that :func:`cfdimx.validator.validate` can
report them instead of the codec failing first. Only values outside a closed
set (state, tax kind) raise :class:`~cfdimx.exceptions.InvalidRecord`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from .exceptions import InvalidRecord
from .models import (
    DEFAULT_CURRENCY,
    FiscalStamp,
    Invoice,
    InvoiceState,
    Issuer,
    LineItem,
    PaymentTerms,
    Recipient,
    TaxCharge,
    TaxKind,
)
from .utils import ZERO, format_timestamp, parse_decimal, parse_timestamp

Record = dict[str, Any]


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value).strip()


def _optional_text(data: Mapping[str, Any], key: str) -> str | None:
    return _text(data, key) or None


def _read_timestamp(data: Mapping[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    try:
        return parse_timestamp(value)
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidRecord(f"Fecha inválida en '{key}': {value!r}") from exc


def _money(value: Any) -> str:
    return f"{value:.2f}"


def _number(value: Any) -> str | None:
    return None if value is None else str(value)


def _timestamp(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def invoice_from_record(record: Mapping[str, Any]) -> Invoice:
    """Build an :class:`Invoice` from a stored record."""

    emisor = record.get("emisor") or {}
    receptor = record.get("receptor") or {}
    pago = record.get("informacionPago") or {}
    timbre = record.get("timbreFiscalDigital") or {}

    try:
        state = InvoiceState(record.get("estado") or InvoiceState.DRAFT.value)
    except ValueError as exc:
        raise InvalidRecord(f"Estado de CFDI desconocido: {record.get('estado')!r}") from exc

    return Invoice(
        id=_optional_text(record, "id"),
        owner_id=_optional_text(record, "userId"),
        issuer=Issuer(
            rfc=_text(emisor, "rfc"),
            name=_text(emisor, "nombre"),
            fiscal_regime=_text(emisor, "regimenFiscal"),
            postal_code=_text(emisor, "codigoPostal"),
        ),
        recipient=Recipient(
            rfc=_text(receptor, "rfc"),
            name=_text(receptor, "nombre"),
            cfdi_use=_text(receptor, "usoCFDI"),
            fiscal_domicile=_optional_text(receptor, "domicilioFiscal"),
            fiscal_regime=_optional_text(receptor, "regimenFiscalReceptor"),
        ),
        lines=tuple(_line_from_record(item) for item in record.get("conceptos") or ()),
        payment=PaymentTerms(
            payment_method=_text(pago, "metodoPago"),
            payment_form=_text(pago, "formaPago"),
            currency=_text(pago, "moneda") if "moneda" in pago else DEFAULT_CURRENCY,
            exchange_rate=parse_decimal(pago.get("tipoCambio"), default=None),
        ),
        stamp=FiscalStamp(
            uuid=_optional_text(timbre, "uuid"),
            stamped_at=_read_timestamp(timbre, "fechaTimbrado"),
            cfd_seal=_optional_text(timbre, "selloCFD"),
            sat_certificate=_optional_text(timbre, "noCertificadoSAT"),
            sat_seal=_optional_text(timbre, "selloSAT"),
        ),
        subtotal=parse_decimal(record.get("subtotal")),
        total_tax=parse_decimal(record.get("totalImpuestos")),
        total=parse_decimal(record.get("total")),
        state=state,
        issued_at=_read_timestamp(record, "fechaEmision"),
        series=_optional_text(record, "serie"),
        folio=_optional_text(record, "folio"),
        created_at=_read_timestamp(record, "created_at"),
        updated_at=_read_timestamp(record, "updated_at"),
    )


def _line_from_record(item: Mapping[str, Any]) -> LineItem:
    charges = []
    for tax in item.get("impuestos") or ():
        try:
            kind = TaxKind(tax.get("tipo"))
        except ValueError as exc:
            raise InvalidRecord(f"Tipo de impuesto desconocido: {tax.get('tipo')!r}") from exc
        charges.append(
            TaxCharge(
                kind=kind,
                rate=parse_decimal(tax.get("tasa"), default=None),
                amount=parse_decimal(tax.get("importe")),
            )
        )

    extra = {"id": _text(item, "id")} if _text(item, "id") else {}
    return LineItem(
        product_code=_text(item, "claveProductoServicio"),
        description=_text(item, "descripcion"),
        quantity=parse_decimal(item.get("cantidad"), default=None),
        unit_price=parse_decimal(item.get("precioUnitario"), default=None),
        charges=tuple(charges),
        amount=parse_decimal(item.get("importe"), default=ZERO),
        **extra,
    )


def invoice_to_record(invoice: Invoice, *, drop_empty: bool = True) -> Record:
    """Return the stored-record representation of ``invoice``.

    Optional values that are missing are left out of the record unless
    ``drop_empty`` is false, in which case they are kept as ``None`` so that
    merging the record into a stored one clears them.
    """

    receptor: Record = {
        "rfc": invoice.recipient.rfc,
        "nombre": invoice.recipient.name,
        "usoCFDI": invoice.recipient.cfdi_use,
    }
    if invoice.recipient.fiscal_domicile:
        receptor["domicilioFiscal"] = invoice.recipient.fiscal_domicile
    if invoice.recipient.fiscal_regime:
        receptor["regimenFiscalReceptor"] = invoice.recipient.fiscal_regime

    pago: Record = {
        "metodoPago": invoice.payment.payment_method,
        "formaPago": invoice.payment.payment_form,
        "moneda": invoice.payment.currency,
    }
    if invoice.payment.exchange_rate is not None:
        pago["tipoCambio"] = str(invoice.payment.exchange_rate)

    stamp = invoice.stamp
    timbre: Record = {
        key: value
        for key, value in (
            ("uuid", stamp.uuid),
            ("fechaTimbrado", format_timestamp(stamp.stamped_at) if stamp.stamped_at else None),
            ("selloCFD", stamp.cfd_seal),
            ("noCertificadoSAT", stamp.sat_certificate),
            ("selloSAT", stamp.sat_seal),
        )
        if value is not None
    }

    record: Record = {
        "id": invoice.id,
        "userId": invoice.owner_id,
        "emisor": {
            "rfc": invoice.issuer.rfc,
            "nombre": invoice.issuer.name,
            "regimenFiscal": invoice.issuer.fiscal_regime,
            "codigoPostal": invoice.issuer.postal_code,
        },
        "receptor": receptor,
        "conceptos": [_line_to_record(line) for line in invoice.lines],
        "informacionPago": pago,
        "timbreFiscalDigital": timbre,
        "subtotal": _money(invoice.subtotal),
        "totalImpuestos": _money(invoice.total_tax),
        "total": _money(invoice.total),
        "estado": InvoiceState(invoice.state).value,
        "fechaEmision": _timestamp(invoice.issued_at),
        "serie": invoice.series,
        "folio": invoice.folio,
        "created_at": _timestamp(invoice.created_at),
        "updated_at": _timestamp(invoice.updated_at),
    }
    if not drop_empty:
        return record
    return {key: value for key, value in record.items() if value is not None}


def _line_to_record(line: LineItem) -> Record:
    return {
        "id": line.id,
        "descripcion": line.description,
        "claveProductoServicio": line.product_code,
        "cantidad": _number(line.quantity),
        "precioUnitario": _number(line.unit_price),
        "importe": _money(line.amount),
        "impuestos": [
            {
                "tipo": charge.kind.value,
                "tasa": _number(charge.rate),
                "importe": _money(charge.amount),
            }
            for charge in line.charges
        ],
    }


__all__ = ["Record", "invoice_from_record", "invoice_to_record"]
