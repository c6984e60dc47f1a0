"""Reference catalogs (SAT ``c_*`` code lists) used to fill and check invoices.

The engine only needs ``{code, description}`` pairs. Production deployments
point ``CFDI_CATALOGS_PATH`` at a JSON export of the real catalogs; without
it the sample dataset bundled in ``cfdimx/data/catalogs.json`` is used,
which covers the codes most invoices need but is not exhaustive.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .exceptions import CatalogError

_CATALOGS_ENV_VAR = "CFDI_CATALOGS_PATH"
_DEFAULT_CATALOGS_PATH = Path(__file__).resolve().parent / "data" / "catalogs.json"

FISCAL_REGIMES = "regimenes_fiscales"
CFDI_USES = "usos_cfdi"
PAYMENT_METHODS = "metodos_pago"
PAYMENT_FORMS = "formas_pago"
PRODUCTS_SERVICES = "productos_servicios"

CATALOG_NAMES = (
    FISCAL_REGIMES,
    CFDI_USES,
    PAYMENT_METHODS,
    PAYMENT_FORMS,
    PRODUCTS_SERVICES,
)


@dataclass(frozen=True)
class CatalogItem:
    code: str
    description: str


class CatalogService(ABC):
    """Port for the reference catalog lookup."""

    @abstractmethod
    def list(self, name: str) -> list[CatalogItem]:
        """Return the entries of catalog ``name`` in source order."""

    def codes(self, name: str) -> set[str]:
        return {item.code for item in self.list(name)}

    def describe(self, name: str, code: str) -> str | None:
        """Return the description for ``code`` or ``None`` if unknown."""

        return next(
            (item.description for item in self.list(name) if item.code == code),
            None,
        )


class JsonCatalogService(CatalogService):
    """Catalog service backed by a JSON file, reloaded when it changes."""

    def __init__(self, path: Path | None = None) -> None:
        self._explicit_path = path
        self._cached: tuple[Path, float, dict[str, list[CatalogItem]]] | None = None

    @property
    def path(self) -> Path:
        if self._explicit_path is not None:
            return self._explicit_path
        return resolve_catalogs_path()

    def list(self, name: str) -> list[CatalogItem]:
        catalogs = self.load()
        if name not in catalogs:
            raise CatalogError(f"Unknown catalog '{name}'")
        return list(catalogs[name])

    def load(self, force_reload: bool = False) -> dict[str, list[CatalogItem]]:
        """Load every catalog from :attr:`path` with caching."""

        path = self.path
        mtime = path.stat().st_mtime if path.exists() else 0.0

        if not force_reload and self._cached:
            cached_path, cached_mtime, cached = self._cached
            if cached_path == path and cached_mtime == mtime:
                return cached

        catalogs = _load_catalogs_from_disk(path)
        self._cached = (path, mtime, catalogs)
        return catalogs


def resolve_catalogs_path() -> Path:
    candidate = os.getenv(_CATALOGS_ENV_VAR)
    if candidate:
        return Path(candidate)
    return _DEFAULT_CATALOGS_PATH


def _load_catalogs_from_disk(path: Path) -> dict[str, list[CatalogItem]]:
    if not path.exists():
        msg = f"Catalogs file '{path}' not found"
        raise CatalogError(msg)

    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            msg = f"Catalogs file '{path}' is not valid JSON"
            raise CatalogError(msg) from exc

    try:
        raw_catalogs = payload["catalogs"]
    except (KeyError, TypeError) as exc:
        msg = "Catalogs file is missing the 'catalogs' key"
        raise CatalogError(msg) from exc

    catalogs: dict[str, list[CatalogItem]] = {}
    for name, entries in raw_catalogs.items():
        try:
            catalogs[name] = [
                CatalogItem(code=str(entry["codigo"]), description=entry["descripcion"])
                for entry in entries
            ]
        except (KeyError, TypeError) as exc:
            msg = f"Catalog '{name}' has malformed entries"
            raise CatalogError(msg) from exc
    return catalogs


__all__ = [
    "CATALOG_NAMES",
    "CFDI_USES",
    "CatalogItem",
    "CatalogService",
    "FISCAL_REGIMES",
    "JsonCatalogService",
    "PAYMENT_FORMS",
    "PAYMENT_METHODS",
    "PRODUCTS_SERVICES",
    "resolve_catalogs_path",
]
