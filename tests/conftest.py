from __future__ import annotations

import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from cfdimx.calculator import recompute  # noqa: E402
from cfdimx.models import (  # noqa: E402
    FiscalStamp,
    Invoice,
    Issuer,
    LineItem,
    PaymentTerms,
    Recipient,
    TaxCharge,
    TaxKind,
)


def _line(quantity: str, price: str, *charges: tuple[TaxKind, str], **kwargs) -> LineItem:
    return LineItem(
        product_code=kwargs.pop("product_code", "84111500"),
        description=kwargs.pop("description", "Servicios contables"),
        quantity=Decimal(quantity),
        unit_price=Decimal(price),
        charges=tuple(TaxCharge(kind=kind, rate=Decimal(rate)) for kind, rate in charges),
        **kwargs,
    )


@pytest.fixture
def make_line() -> Callable[..., LineItem]:
    return _line


@pytest.fixture
def make_invoice() -> Callable[..., Invoice]:
    """Return a builder for a complete two-line invoice with computed totals."""

    def _build(*, compute: bool = True, **overrides) -> Invoice:
        values = dict(
            issuer=Issuer(
                rfc="AAA010101AAA",
                name="Contadores del Norte SA de CV",
                fiscal_regime="601",
                postal_code="64000",
            ),
            recipient=Recipient(
                rfc="XAXX010101000",
                name="Cliente Mostrador",
                cfdi_use="G03",
                fiscal_domicile="06600",
            ),
            lines=(
                _line("2", "50.00", (TaxKind.IVA, "16"), id="line-1"),
                _line("1", "10.00", (TaxKind.IVA, "16"), (TaxKind.ISR, "10"), id="line-2"),
            ),
            payment=PaymentTerms(payment_method="PUE", payment_form="03"),
            issued_at=datetime(2024, 3, 1, 12, 30, 0),
            series="A",
            folio="101",
            id="cfdi-1",
        )
        values.update(overrides)
        invoice = Invoice(**values)
        return recompute(invoice) if compute else invoice

    return _build


@pytest.fixture
def fiscal_stamp() -> FiscalStamp:
    return FiscalStamp(
        uuid="5FB2822E-396D-4725-8521-CDC4BDD20CCF",
        stamped_at=datetime(2024, 3, 1, 12, 35, 10),
        cfd_seal="c2VsbG9DRkQ=",
        sat_certificate="00001000000504465028",
        sat_seal="c2VsbG9TQVQ=",
    )
