"""Cancel a stamped CFDI."""

from __future__ import annotations

import argparse
from typing import Sequence

from . import add_common_arguments, open_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cancela un CFDI timbrado.")
    parser.add_argument("invoice_id", help="Identificador del CFDI")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirmar la cancelación (obligatorio; se notificará al SAT)",
    )
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.yes:
        parser.error("la cancelación requiere --yes")

    service = open_service(args)
    invoice = service.cancel(args.invoice_id, confirmed=True)
    print(f"CFDI {invoice.id} cancelado")
    return 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
