"""Helpers to aggregate invoices and build Excel reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook

from .models import Invoice, InvoiceState

RECENT_LIMIT = 5

_STATE_LABELS = {
    InvoiceState.DRAFT: "Borradores",
    InvoiceState.STAMPED: "Timbrados",
    InvoiceState.CANCELED: "Cancelados",
}


@dataclass
class Totals:
    """Aggregate of monetary values for a set of invoices."""

    count: int = 0
    subtotal: Decimal = field(default_factory=lambda: Decimal("0"))
    tax_total: Decimal = field(default_factory=lambda: Decimal("0"))
    total: Decimal = field(default_factory=lambda: Decimal("0"))

    def add(self, invoice: Invoice) -> None:
        """Add the amounts of ``invoice`` to the totals."""

        self.count += 1
        self.subtotal += invoice.subtotal
        self.tax_total += invoice.total_tax
        self.total += invoice.total


@dataclass
class ReportData:
    """Container for the figures shown on the invoice dashboard."""

    totals_by_state: dict[InvoiceState, Totals]
    overall_totals: Totals
    recent: list[Invoice]

    @property
    def stamped_amount(self) -> Decimal:
        """Amount billed: only stamped invoices count."""

        return self.totals_by_state[InvoiceState.STAMPED].total


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(invoice: Invoice) -> datetime:
    created = invoice.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def aggregate_invoices(invoices: Iterable[Invoice], *, recent: int = RECENT_LIMIT) -> ReportData:
    """Aggregate ``invoices`` by lifecycle state."""

    documents = list(invoices)
    totals_by_state = {state: Totals() for state in InvoiceState}
    overall = Totals()

    for invoice in documents:
        totals_by_state[InvoiceState(invoice.state)].add(invoice)
        overall.add(invoice)

    latest = sorted(documents, key=_created_key, reverse=True)[:recent]
    return ReportData(
        totals_by_state=totals_by_state,
        overall_totals=overall,
        recent=latest,
    )


def default_report_destination(directory: Path) -> Path:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return directory / f"cfdi_resumen_{stamp}.xlsx"


def write_excel_report(data: ReportData, destination: Path) -> None:
    """Generate an Excel workbook with totals per state and recent invoices."""

    destination.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    summary_ws = workbook.active
    summary_ws.title = "Resumen"
    summary_ws.append(["Estado", "CFDIs", "Subtotal", "Impuestos", "Total"])

    for state in InvoiceState:
        totals = data.totals_by_state[state]
        summary_ws.append(
            [
                _STATE_LABELS[state],
                totals.count,
                totals.subtotal,
                totals.tax_total,
                totals.total,
            ]
        )

    summary_ws.append([])
    summary_ws.append(
        [
            "Totales Generales",
            data.overall_totals.count,
            data.overall_totals.subtotal,
            data.overall_totals.tax_total,
            data.overall_totals.total,
        ]
    )
    summary_ws.append(["Monto facturado", None, None, None, data.stamped_amount])

    recent_ws = workbook.create_sheet(title="Recientes")
    recent_ws.append(["ID", "Serie", "Folio", "Receptor", "Estado", "Total", "Moneda"])

    for invoice in data.recent:
        recent_ws.append(
            [
                invoice.id,
                invoice.series,
                invoice.folio,
                invoice.recipient.name,
                InvoiceState(invoice.state).value,
                invoice.total,
                invoice.payment.currency,
            ]
        )

    workbook.save(destination)


__all__ = [
    "RECENT_LIMIT",
    "ReportData",
    "Totals",
    "aggregate_invoices",
    "default_report_destination",
    "write_excel_report",
]
