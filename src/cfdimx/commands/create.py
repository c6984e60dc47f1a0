"""Register a draft CFDI from a JSON record."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..codec import invoice_from_record
from . import add_common_arguments, open_service, read_record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Guarda un CFDI en borrador a partir de un fichero JSON."
    )
    parser.add_argument("record", type=Path, help="Fichero JSON con el CFDI")
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    service = open_service(args)
    record = read_record(args.record)
    invoice = service.create_draft(invoice_from_record(record))
    print(invoice.id)
    return 0


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
