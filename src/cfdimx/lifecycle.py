"""Lifecycle of a CFDI: ``borrador`` -> ``timbrado`` -> ``cancelado``.

Transitions never mutate the invoice they receive; they return a new
:class:`~cfdimx.models.Invoice`. A refused transition raises
:class:`~cfdimx.exceptions.InvalidTransition` and leaves the caller's document
untouched.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .catalogs import CatalogService
from .exceptions import InvalidTransition
from .models import FiscalStamp, Invoice, InvoiceState
from .utils import utcnow
from .validator import ValidationResult, validate

LOGGER = logging.getLogger("cfdimx.lifecycle")


class Action(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    STAMP = "stamp"
    CANCEL = "cancel"
    EXPORT = "export"


_ALLOWED_ACTIONS: dict[InvoiceState, frozenset[Action]] = {
    InvoiceState.DRAFT: frozenset({Action.EDIT, Action.DELETE, Action.STAMP, Action.EXPORT}),
    InvoiceState.STAMPED: frozenset({Action.CANCEL, Action.EXPORT}),
    InvoiceState.CANCELED: frozenset({Action.EXPORT}),
}

# Bookkeeping fields that may change outside of draft.
_EDITABLE_AFTER_DRAFT = frozenset({"updated_at"})
_INVOICE_FIELDS = frozenset(item.name for item in fields(Invoice))


class InvalidStampingError(InvalidTransition):
    """Stamping refused because the invoice does not validate."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(Action.STAMP.value, InvoiceState.DRAFT.value)


def allowed_actions(state: InvoiceState) -> frozenset[Action]:
    """Return the operations permitted for an invoice in ``state``."""

    return _ALLOWED_ACTIONS[InvoiceState(state)]


def can(invoice: Invoice, action: Action) -> bool:
    return action in allowed_actions(invoice.state)


def _require(invoice: Invoice, action: Action) -> None:
    if not can(invoice, action):
        state = InvoiceState(invoice.state)
        LOGGER.warning(
            "Refused %s on invoice %s in state %s", action.value, invoice.id, state.value
        )
        raise InvalidTransition(action.value, state.value)


def stamp(
    invoice: Invoice,
    fiscal_stamp: FiscalStamp,
    *,
    catalog: CatalogService | None = None,
    now: datetime | None = None,
) -> Invoice:
    """Apply an external stamping acknowledgement to a draft invoice.

    The invoice must pass :func:`cfdimx.validator.validate`; when it does not
    the transition is refused. ``fiscal_stamp`` must carry every
    TimbreFiscalDigital value: UUID, date, both seals and the certificate.
    """

    _require(invoice, Action.STAMP)
    missing = fiscal_stamp.missing_fields()
    if missing:
        raise ValueError(f"Incomplete fiscal stamp, missing: {', '.join(missing)}")

    result = validate(invoice, catalog)
    if not result.is_valid:
        LOGGER.warning(
            "Refused stamp on invoice %s: %d validation error(s)",
            invoice.id,
            len(result.errors),
        )
        raise InvalidStampingError(result)

    stamped = replace(
        invoice,
        stamp=fiscal_stamp,
        state=InvoiceState.STAMPED,
        updated_at=now or utcnow(),
    )
    LOGGER.info("Invoice %s stamped with UUID %s", invoice.id, fiscal_stamp.uuid)
    return stamped


def cancel(invoice: Invoice, *, now: datetime | None = None) -> Invoice:
    """Cancel a stamped invoice, keeping its fiscal stamp for audit."""

    _require(invoice, Action.CANCEL)
    canceled = replace(invoice, state=InvoiceState.CANCELED, updated_at=now or utcnow())
    LOGGER.info("Invoice %s canceled", invoice.id)
    return canceled


def edit(invoice: Invoice, **changes: Any) -> Invoice:
    """Return ``invoice`` with ``changes`` applied; only drafts are editable.

    ``state`` and ``stamp`` are driven by :func:`stamp` and :func:`cancel` and
    cannot be set here.
    """

    unknown = set(changes) - _INVOICE_FIELDS
    if unknown:
        raise TypeError(f"Unknown invoice field(s): {', '.join(sorted(unknown))}")
    if {"state", "stamp"} & set(changes):
        raise InvalidTransition(Action.EDIT.value, InvoiceState(invoice.state).value)

    if set(changes) - _EDITABLE_AFTER_DRAFT:
        _require(invoice, Action.EDIT)
    return replace(invoice, **changes)


def ensure_deletable(invoice: Invoice) -> None:
    """Raise :class:`InvalidTransition` unless ``invoice`` may be deleted."""

    _require(invoice, Action.DELETE)


__all__ = [
    "Action",
    "InvalidStampingError",
    "allowed_actions",
    "can",
    "cancel",
    "edit",
    "ensure_deletable",
    "stamp",
]
