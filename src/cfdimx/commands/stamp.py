"""Record the fiscal stamp returned by the stamping provider (PAC)."""

from __future__ import annotations

import argparse
from typing import Sequence

from ..lifecycle import InvalidStampingError
from ..models import FiscalStamp
from ..utils import parse_timestamp, utcnow
from . import add_common_arguments, open_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Marca un CFDI en borrador como timbrado con los datos del timbre."
    )
    parser.add_argument("invoice_id", help="Identificador del CFDI")
    parser.add_argument("--uuid", required=True, help="Folio fiscal (UUID)")
    parser.add_argument("--certificate", required=True, help="NoCertificadoSAT")
    parser.add_argument("--cfd-seal", required=True, help="SelloCFD")
    parser.add_argument("--sat-seal", required=True, help="SelloSAT")
    parser.add_argument(
        "--stamped-at", default=None, help="FechaTimbrado ISO 8601 (por omisión ahora)"
    )
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        stamped_at = parse_timestamp(args.stamped_at) or utcnow()
    except ValueError:
        parser.error(f"--stamped-at no es una fecha ISO 8601: {args.stamped_at}")

    service = open_service(args)
    fiscal_stamp = FiscalStamp(
        uuid=args.uuid,
        stamped_at=stamped_at,
        cfd_seal=args.cfd_seal,
        sat_certificate=args.certificate,
        sat_seal=args.sat_seal,
    )
    missing = fiscal_stamp.missing_fields()
    if missing:
        parser.error(f"timbre incompleto, faltan: {', '.join(missing)}")
    try:
        invoice = service.stamp(args.invoice_id, fiscal_stamp)
    except InvalidStampingError as exc:
        for path, message in exc.result.errors.items():
            print(f"{path}: {message}")
        return 1

    print(f"CFDI {invoice.id} timbrado ({invoice.stamp.uuid})")
    return 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
