"""Command modules exposed through :mod:`cfdimx.cli`."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..catalogs import JsonCatalogService
from ..exceptions import InvalidRecord
from ..service import InvoiceService
from ..store import JsonDirectoryStore

_STORE_ENV_VAR = "CFDI_STORE_DIR"


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--store",
        type=Path,
        default=Path(os.getenv(_STORE_ENV_VAR, "cfdis")),
        help="Directorio con los CFDI en JSON (por omisión $CFDI_STORE_DIR o ./cfdis)",
    )
    parser.add_argument(
        "--catalogs",
        type=Path,
        default=None,
        help="Catálogos SAT en JSON (por omisión $CFDI_CATALOGS_PATH o los de ejemplo)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Registro detallado")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def read_record(path: Path) -> dict[str, Any]:
    """Load the CFDI record stored as JSON in ``path``."""

    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidRecord(f"No se pudo leer '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidRecord(f"'{path}' no es un JSON válido: {exc}") from exc
    if not isinstance(record, dict):
        raise InvalidRecord(f"'{path}' no contiene un objeto CFDI")
    return record


def open_service(args: argparse.Namespace) -> InvoiceService:
    configure_logging(args.verbose)
    return InvoiceService(JsonDirectoryStore(args.store), JsonCatalogService(args.catalogs))


__all__ = ["add_common_arguments", "configure_logging", "open_service", "read_record"]
