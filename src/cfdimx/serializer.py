"""Render invoices as CFDI 4.0 XML.

The document is built as an :mod:`lxml` element tree in the attribute order
of the SAT ``cfdv40.xsd`` schema and then written out. Optional attributes
are left out of the tree when their value is missing, never written empty.
Callers are expected to :func:`~cfdimx.validator.validate` first.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from lxml import etree

from .models import FiscalStamp, Invoice, LineItem, TaxCharge
from .utils import HUNDRED, fmt2, fmt6, format_timestamp, to_decimal

CFDI_VERSION = "4.0"
TFD_VERSION = "1.1"
NS_CFDI = "http://www.sat.gob.mx/cfd/4"
NS_TFD = "http://www.sat.gob.mx/TimbreFiscalDigital"
NS_XSI = "http://www.w3.org/2001/XMLSchema-instance"
TFD_SCHEMA_LOCATION = (
    f"{NS_TFD} "
    "http://www.sat.gob.mx/sitio_internet/cfd/TimbreFiscalDigital/TimbreFiscalDigitalv11.xsd"
)
FACTOR_TYPE = "Tasa"


def _cfdi(tag: str) -> str:
    return f"{{{NS_CFDI}}}{tag}"


def _set(element: etree._Element, name: str, value: object) -> None:
    """Set attribute ``name`` unless ``value`` is missing or blank."""

    if value is None:
        return
    text = str(value).strip()
    if text:
        element.set(name, text)


def build_tree(invoice: Invoice) -> etree._Element:
    """Return the ``cfdi:Comprobante`` element for ``invoice``."""

    payment = invoice.payment
    root = etree.Element(_cfdi("Comprobante"), nsmap={"cfdi": NS_CFDI, "xsi": NS_XSI})
    root.set("Version", CFDI_VERSION)
    _set(root, "Serie", invoice.series)
    _set(root, "Folio", invoice.folio)
    if invoice.issued_at is not None:
        root.set("Fecha", format_timestamp(invoice.issued_at))
    _set(root, "FormaPago", payment.payment_form)
    _set(root, "MetodoPago", payment.payment_method)
    _set(root, "Moneda", payment.currency)
    if payment.is_foreign_currency and payment.exchange_rate is not None:
        root.set("TipoCambio", fmt2(to_decimal(payment.exchange_rate)))
    root.set("SubTotal", fmt2(invoice.subtotal))
    root.set("Total", fmt2(invoice.total))

    issuer = etree.SubElement(root, _cfdi("Emisor"))
    _set(issuer, "Rfc", invoice.issuer.rfc)
    _set(issuer, "Nombre", invoice.issuer.name)
    _set(issuer, "RegimenFiscal", invoice.issuer.fiscal_regime)

    recipient = etree.SubElement(root, _cfdi("Receptor"))
    _set(recipient, "Rfc", invoice.recipient.rfc)
    _set(recipient, "Nombre", invoice.recipient.name)
    _set(recipient, "UsoCFDI", invoice.recipient.cfdi_use)
    _set(recipient, "DomicilioFiscalReceptor", invoice.recipient.fiscal_domicile)
    _set(recipient, "RegimenFiscalReceptor", invoice.recipient.fiscal_regime)

    lines = etree.SubElement(root, _cfdi("Conceptos"))
    for line in invoice.lines:
        lines.append(_build_line(line))

    if not invoice.stamp.is_empty:
        complement = etree.SubElement(root, _cfdi("Complemento"))
        complement.append(_build_stamp(invoice.stamp))

    return root


def _build_line(line: LineItem) -> etree._Element:
    element = etree.Element(_cfdi("Concepto"))
    _set(element, "ClaveProdServ", line.product_code)
    element.set("Cantidad", fmt2(to_decimal(line.quantity)))
    _set(element, "Descripcion", line.description)
    element.set("ValorUnitario", fmt2(to_decimal(line.unit_price)))
    element.set("Importe", fmt2(line.amount))

    if line.charges:
        taxes = etree.SubElement(element, _cfdi("Impuestos"))
        transfers = etree.SubElement(taxes, _cfdi("Traslados"))
        for charge in line.charges:
            transfers.append(_build_charge(line.amount, charge))
    return element


def _build_charge(base: Decimal, charge: TaxCharge) -> etree._Element:
    element = etree.Element(_cfdi("Traslado"))
    element.set("Base", fmt2(base))
    element.set("Impuesto", charge.kind.authority_code)
    element.set("TipoFactor", FACTOR_TYPE)
    element.set("TasaOCuota", fmt6(to_decimal(charge.rate) / HUNDRED))
    element.set("Importe", fmt2(charge.amount))
    return element


def _build_stamp(stamp: FiscalStamp) -> etree._Element:
    element = etree.Element(f"{{{NS_TFD}}}TimbreFiscalDigital", nsmap={"tfd": NS_TFD})
    element.set(f"{{{NS_XSI}}}schemaLocation", TFD_SCHEMA_LOCATION)
    element.set("Version", TFD_VERSION)
    element.set("UUID", stamp.uuid)
    if stamp.stamped_at is not None:
        element.set("FechaTimbrado", format_timestamp(stamp.stamped_at))
    _set(element, "SelloCFD", stamp.cfd_seal)
    _set(element, "NoCertificadoSAT", stamp.sat_certificate)
    _set(element, "SelloSAT", stamp.sat_seal)
    return element


def serialize(invoice: Invoice, *, pretty_print: bool = True) -> str:
    """Return the CFDI XML for ``invoice`` including the XML declaration."""

    data = etree.tostring(
        build_tree(invoice),
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=pretty_print,
    )
    return data.decode("utf-8")


def export_filename(invoice: Invoice) -> str:
    return f"CFDI_{invoice.id or 'borrador'}.xml"


def write_xml(invoice: Invoice, directory: Path) -> Path:
    """Write ``invoice`` to ``directory`` as ``CFDI_<id>.xml``."""

    directory.mkdir(parents=True, exist_ok=True)
    destination = directory / export_filename(invoice)
    destination.write_text(serialize(invoice), encoding="utf-8")
    return destination


__all__ = [
    "CFDI_VERSION",
    "NS_CFDI",
    "NS_TFD",
    "TFD_VERSION",
    "build_tree",
    "export_filename",
    "serialize",
    "write_xml",
]
