"""Utility helpers shared across CFDI modules."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

AMT2 = Decimal("0.01")
AMT6 = Decimal("0.000001")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def q2(value: Decimal) -> Decimal:
    return value.quantize(AMT2, rounding=ROUND_HALF_UP)


def q6(value: Decimal) -> Decimal:
    return value.quantize(AMT6, rounding=ROUND_HALF_UP)


def fmt2(value: Decimal) -> str:
    return f"{q2(value):.2f}"


def fmt6(value: Decimal) -> str:
    return f"{q6(value):.6f}"


def to_decimal(value: object) -> Decimal:
    """Convert ``value`` to :class:`~decimal.Decimal` going through ``str``.

    Floats are converted from their shortest representation so that ``0.1``
    becomes ``Decimal("0.1")`` rather than its binary expansion.
    """

    if isinstance(value, Decimal):
        return value
    return Decimal(str(value).strip())


def parse_decimal(value: object, *, default: Decimal | None = ZERO) -> Decimal | None:
    """Lenient variant of :func:`to_decimal`.

    ``None``, empty strings and unparsable values return ``default``.
    """

    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        return default
    try:
        return Decimal(text)
    except (InvalidOperation, ValueError):
        return default


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS`` (no offset, no fraction)."""

    return value.replace(microsecond=0, tzinfo=None).isoformat()


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


__all__ = [
    "AMT2",
    "AMT6",
    "HUNDRED",
    "ZERO",
    "fmt2",
    "fmt6",
    "format_timestamp",
    "parse_decimal",
    "parse_timestamp",
    "q2",
    "q6",
    "to_decimal",
    "utcnow",
]
