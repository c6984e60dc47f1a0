"""Invoice operations wired to a document store.

:class:`InvoiceService` runs the fixed pipeline every change goes through:
recompute the totals, validate where the operation requires it, check the
lifecycle, then persist. Store failures propagate unchanged as
:class:`~cfdimx.exceptions.StoreError`.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from . import lifecycle
from .calculator import recompute
from .catalogs import CatalogService
from .codec import invoice_from_record, invoice_to_record
from .exceptions import InvalidDocument
from .models import FiscalStamp, Invoice, InvoiceState
from .serializer import serialize
from .store import DocumentStore
from .utils import utcnow
from .validator import ValidationResult, validate

LOGGER = logging.getLogger("cfdimx.service")

# Keys owned by the store.
_STORE_KEYS = ("id", "created_at", "updated_at")


class CancellationNotConfirmed(ValueError):
    """Raised when :meth:`InvoiceService.cancel` is called without confirmation."""


class InvoiceService:
    def __init__(self, store: DocumentStore, catalog: CatalogService | None = None) -> None:
        self.store = store
        self.catalog = catalog

    def list(self) -> list[Invoice]:
        return [invoice_from_record(record) for record in self.store.list()]

    def get(self, invoice_id: str) -> Invoice:
        return invoice_from_record(self.store.get(invoice_id))

    def validate(self, invoice: Invoice) -> ValidationResult:
        return validate(recompute(invoice), self.catalog)

    def create_draft(self, invoice: Invoice) -> Invoice:
        """Persist ``invoice`` as a new draft with freshly computed totals.

        The issuance date defaults to now when ``invoice`` has none.
        """

        draft = recompute(
            replace(
                invoice,
                state=InvoiceState.DRAFT,
                stamp=FiscalStamp(),
                issued_at=invoice.issued_at or utcnow(),
            )
        )
        record = invoice_to_record(draft)
        for key in _STORE_KEYS:
            record.pop(key, None)
        created = invoice_from_record(self.store.create(record))
        LOGGER.info("Draft %s created", created.id)
        return created

    def save_draft(self, invoice: Invoice) -> Invoice:
        """Overwrite the stored draft ``invoice.id`` with ``invoice``."""

        current = self.get(invoice.id)
        edited = lifecycle.edit(
            current,
            issuer=invoice.issuer,
            recipient=invoice.recipient,
            lines=invoice.lines,
            payment=invoice.payment,
            issued_at=invoice.issued_at,
            series=invoice.series,
            folio=invoice.folio,
        )
        return self._persist(recompute(edited))

    def stamp(self, invoice_id: str, fiscal_stamp: FiscalStamp) -> Invoice:
        """Record the stamping acknowledgement for draft ``invoice_id``."""

        current = recompute(self.get(invoice_id))
        return self._persist(lifecycle.stamp(current, fiscal_stamp, catalog=self.catalog))

    def cancel(self, invoice_id: str, *, confirmed: bool = False) -> Invoice:
        """Cancel stamped invoice ``invoice_id`` once the user has confirmed."""

        if not confirmed:
            raise CancellationNotConfirmed("La cancelación del CFDI requiere confirmación")
        return self._persist(lifecycle.cancel(self.get(invoice_id)))

    def delete(self, invoice_id: str) -> None:
        lifecycle.ensure_deletable(self.get(invoice_id))
        self.store.delete(invoice_id)
        LOGGER.info("Draft %s deleted", invoice_id)

    def export_xml(self, invoice_id: str) -> str:
        """Return the CFDI XML of ``invoice_id``; the invoice must validate."""

        invoice = self.get(invoice_id)
        result = validate(invoice, self.catalog)
        if not result.is_valid:
            raise InvalidDocument(result.errors)
        return serialize(invoice)

    def _persist(self, invoice: Invoice) -> Invoice:
        record = invoice_to_record(invoice, drop_empty=False)
        for key in _STORE_KEYS:
            record.pop(key, None)
        return invoice_from_record(self.store.update(invoice.id, record))


__all__ = ["CancellationNotConfirmed", "InvoiceService"]
