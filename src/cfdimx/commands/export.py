"""Export a stored CFDI as XML."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..exceptions import InvalidDocument
from ..schema import default_xsd_path, load_cfdi_file, validate_xsd
from ..serializer import export_filename
from . import add_common_arguments, open_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Genera el XML CFDI 4.0 de un CFDI guardado.")
    parser.add_argument("invoice_id", help="Identificador del CFDI")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path.cwd(),
        help="Carpeta de destino del XML (por omisión el directorio actual)",
    )
    parser.add_argument(
        "--xsd",
        type=Path,
        default=None,
        help="Esquema cfdv40.xsd para validar el XML (por omisión ./cfdv40.xsd o ./schemas)",
    )
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    service = open_service(args)
    try:
        xml = service.export_xml(args.invoice_id)
    except InvalidDocument as exc:
        for path, message in exc.errors.items():
            print(f"{path}: {message}")
        return 1

    invoice = service.get(args.invoice_id)
    args.output_dir.mkdir(parents=True, exist_ok=True)
    destination = args.output_dir / export_filename(invoice)
    destination.write_text(xml, encoding="utf-8")
    print(f"XML guardado en: {destination}")

    xsd_path = args.xsd or default_xsd_path()
    if xsd_path is None:
        return 0
    ok, errors = validate_xsd(load_cfdi_file(destination), xsd_path)
    if not ok:
        for message in errors:
            print(f"XSD: {message}")
        return 1
    print(f"XML válido contra {xsd_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
