"""Line and document arithmetic for CFDI invoices.

Every amount is rounded to cents at the step where it is produced: the line
amount is ``q2(quantity * unit_price)`` and each tax is ``q2(base * rate /
100)`` computed on the already rounded line amount. Document totals are plain
sums of those rounded components, which is how the SAT expects the
``Comprobante`` totals to add up even when the result differs by a cent from
an unrounded computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Sequence

from .models import Invoice, LineItem, TaxCharge, TaxKind
from .utils import HUNDRED, ZERO, parse_decimal, q2, to_decimal

# Order and default rate offered when a tax is added to a line.
DEFAULT_RATES: tuple[tuple[TaxKind, Decimal], ...] = (
    (TaxKind.IVA, Decimal("16")),
    (TaxKind.ISR, Decimal("10")),
    (TaxKind.IEPS, Decimal("8")),
)


@dataclass(frozen=True)
class LineComputation:
    amount: Decimal
    charges: tuple[TaxCharge, ...]


@dataclass
class DocumentTotals:
    """Aggregate of monetary values for a set of line items."""

    subtotal: Decimal = field(default_factory=lambda: Decimal("0.00"))
    total_tax: Decimal = field(default_factory=lambda: Decimal("0.00"))

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.total_tax

    def add(self, amount: Decimal, taxes: Iterable[Decimal]) -> None:
        """Add a line ``amount`` and its tax amounts to the totals."""

        self.subtotal += amount
        for tax in taxes:
            self.total_tax += tax


def compute_tax(base: Decimal, rate: Decimal) -> Decimal:
    return q2(to_decimal(base) * to_decimal(rate) / HUNDRED)


def compute_line(
    quantity: Decimal, unit_price: Decimal, charges: Sequence[TaxCharge]
) -> LineComputation:
    """Return the rounded line amount and ``charges`` with their amounts set."""

    amount = q2(to_decimal(quantity) * to_decimal(unit_price))
    computed = tuple(
        replace(charge, rate=to_decimal(charge.rate), amount=compute_tax(amount, charge.rate))
        for charge in charges
    )
    return LineComputation(amount=amount, charges=computed)


def compute_document_totals(lines: Iterable[LineItem]) -> DocumentTotals:
    """Sum the already computed line and tax amounts of ``lines``."""

    totals = DocumentTotals()
    for line in lines:
        totals.add(line.amount, (charge.amount for charge in line.charges))
    return totals


def is_computable(line: LineItem) -> bool:
    """Return whether quantity, unit price and every rate of ``line`` are usable.

    Quantity and unit price must be positive numbers and rates finite.
    """

    for value in (line.quantity, line.unit_price):
        number = parse_decimal(value, default=None)
        if number is None or not number.is_finite() or number <= ZERO:
            return False
    rates = [parse_decimal(charge.rate, default=None) for charge in line.charges]
    return all(rate is not None and rate.is_finite() for rate in rates)


def recompute_line(line: LineItem) -> LineItem:
    """Return ``line`` with its amounts recalculated.

    Lines that are not :func:`is_computable` get zero amounts; the validator
    reports their fields.
    """

    if not is_computable(line):
        charges = tuple(replace(charge, amount=ZERO) for charge in line.charges)
        return replace(line, amount=ZERO, charges=charges)
    result = compute_line(line.quantity, line.unit_price, line.charges)
    return replace(line, amount=result.amount, charges=result.charges)


def recompute(invoice: Invoice) -> Invoice:
    """Return ``invoice`` with every derived amount recalculated.

    Applying it twice yields the same document.
    """

    lines = tuple(recompute_line(line) for line in invoice.lines)
    totals = compute_document_totals(lines)
    return replace(
        invoice,
        lines=lines,
        subtotal=totals.subtotal,
        total_tax=totals.total_tax,
        total=totals.total,
    )


def next_default_charge(
    charges: Sequence[TaxCharge], base: Decimal = ZERO
) -> TaxCharge | None:
    """Return the next tax to offer for a line, or ``None`` when all are used.

    The amount is computed on ``base`` so the charge can be appended to an
    already computed line.
    """

    used = {charge.kind for charge in charges}
    for kind, rate in DEFAULT_RATES:
        if kind not in used:
            return TaxCharge(kind=kind, rate=rate, amount=compute_tax(base, rate))
    return None


def default_line_charges() -> tuple[TaxCharge, ...]:
    kind, rate = DEFAULT_RATES[0]
    return (TaxCharge(kind=kind, rate=rate),)


__all__ = [
    "DEFAULT_RATES",
    "DocumentTotals",
    "LineComputation",
    "compute_document_totals",
    "compute_line",
    "compute_tax",
    "default_line_charges",
    "is_computable",
    "next_default_charge",
    "recompute",
    "recompute_line",
]
