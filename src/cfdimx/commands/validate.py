"""Validate CFDI JSON records and list every error found."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..calculator import recompute
from ..catalogs import JsonCatalogService
from ..codec import invoice_from_record
from ..logging import ExcelErrorLog, ExcelErrorLogConfig
from ..validator import validate
from . import configure_logging, read_record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Recalcula los totales de uno o varios CFDI en JSON y lista todos los "
            "errores de validación."
        )
    )
    parser.add_argument("records", type=Path, nargs="+", help="Ficheros JSON con los CFDI")
    parser.add_argument(
        "--catalogs",
        type=Path,
        default=None,
        help="Comprobar las claves contra estos catálogos SAT en JSON",
    )
    parser.add_argument(
        "--no-catalogs",
        action="store_true",
        help="No comprobar las claves contra los catálogos",
    )
    parser.add_argument(
        "--xlsx", type=Path, default=None, help="Guardar los errores de todos los CFDI en Excel"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Registro detallado")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    catalog = None if args.no_catalogs else JsonCatalogService(args.catalogs)
    error_log = ExcelErrorLog(ExcelErrorLogConfig(destination=args.xlsx)) if args.xlsx else None
    failed = 0

    for path in args.records:
        invoice = recompute(invoice_from_record(read_record(path)))
        result = validate(invoice, catalog)
        label = invoice.id or path.stem
        if error_log is not None:
            error_log.extend(result.issues(label))

        if result.is_valid:
            print(f"{path}: CFDI válido. Subtotal {invoice.subtotal:.2f} Total {invoice.total:.2f}")
            continue
        failed += 1
        for field_path, message in result.errors.items():
            print(f"{path}: {field_path}: {message}")

    if error_log is not None:
        print(f"Errores guardados en: {error_log.save()}")

    return 1 if failed else 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
