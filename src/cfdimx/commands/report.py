"""Generate an Excel summary of the stored CFDIs."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..reporting import aggregate_invoices, default_report_destination, write_excel_report
from . import add_common_arguments, open_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Genera un reporte en Excel con totales por estado y los CFDI más "
            "recientes."
        )
    )
    parser.add_argument(
        "--output-dir", type=Path, default=Path.cwd(), help="Carpeta de destino del reporte"
    )
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    service = open_service(args)
    data = aggregate_invoices(service.list())
    destination = default_report_destination(args.output_dir)
    write_excel_report(data, destination)
    print(f"Reporte de totales guardado en: {destination}")
    print(f"Monto facturado: {data.stamped_amount:.2f}")

    return 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
