"""Document store contract and the stores shipped with the package.

The engine never persists anything itself; it reads and writes records
through a :class:`DocumentStore`. Stores own identifiers and the
``created_at``/``updated_at`` timestamps. Any failure surfaces as
:class:`~cfdimx.exceptions.StoreError`; no retry is attempted here.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from .codec import Record
from .exceptions import StoreError
from .utils import utcnow

LOGGER = logging.getLogger("cfdimx.store")


class DocumentStore(ABC):
    """CRUD port for CFDI records."""

    @abstractmethod
    def list(self) -> list[Record]:
        """Return every record, most recently created first."""

    @abstractmethod
    def get(self, document_id: str) -> Record:
        """Return the record ``document_id``."""

    @abstractmethod
    def create(self, document: Mapping[str, Any]) -> Record:
        """Store ``document`` under a new identifier and return it."""

    @abstractmethod
    def update(self, document_id: str, changes: Mapping[str, Any]) -> Record:
        """Merge ``changes`` into the stored record and return the result."""

    @abstractmethod
    def delete(self, document_id: str) -> None:
        """Remove the record ``document_id``."""


def _stamp_new(document: Mapping[str, Any]) -> Record:
    now = utcnow().isoformat()
    record = copy.deepcopy(dict(document))
    record["id"] = str(uuid.uuid4())
    record["created_at"] = now
    record["updated_at"] = now
    return record


def _merge(current: Record, changes: Mapping[str, Any]) -> Record:
    merged = copy.deepcopy(current)
    merged.update(copy.deepcopy(dict(changes)))
    merged["id"] = current["id"]
    merged["created_at"] = current.get("created_at")
    merged["updated_at"] = utcnow().isoformat()
    return merged


def _by_creation(records: list[Record]) -> list[Record]:
    return sorted(records, key=lambda item: item.get("created_at") or "", reverse=True)


class InMemoryDocumentStore(DocumentStore):
    """Store keeping records in a dictionary; handy for tests and embedding."""

    def __init__(self) -> None:
        self._records: dict[str, Record] = {}

    def list(self) -> list[Record]:
        return [copy.deepcopy(item) for item in _by_creation(list(self._records.values()))]

    def get(self, document_id: str) -> Record:
        try:
            return copy.deepcopy(self._records[document_id])
        except KeyError:
            raise StoreError(f"CFDI '{document_id}' no encontrado") from None

    def create(self, document: Mapping[str, Any]) -> Record:
        record = _stamp_new(document)
        self._records[record["id"]] = record
        return copy.deepcopy(record)

    def update(self, document_id: str, changes: Mapping[str, Any]) -> Record:
        record = _merge(self.get(document_id), changes)
        self._records[document_id] = record
        return copy.deepcopy(record)

    def delete(self, document_id: str) -> None:
        if self._records.pop(document_id, None) is None:
            raise StoreError(f"CFDI '{document_id}' no encontrado")


class JsonDirectoryStore(DocumentStore):
    """Store writing one ``<id>.json`` file per record under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, document_id: str) -> Path:
        if not document_id or Path(document_id).name != document_id:
            raise StoreError(f"Identificador de CFDI inválido: {document_id!r}")
        return self.root / f"{document_id}.json"

    def _read(self, path: Path) -> Record:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            raise StoreError(f"CFDI '{path.stem}' no encontrado") from None
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"No se pudo leer '{path}': {exc}") from exc

    def _write(self, record: Record) -> None:
        path = self._path(record["id"])
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as exc:
            raise StoreError(f"No se pudo escribir '{path}': {exc}") from exc
        LOGGER.debug("Wrote %s", path)

    def list(self) -> list[Record]:
        if not self.root.exists():
            return []
        return _by_creation([self._read(path) for path in sorted(self.root.glob("*.json"))])

    def get(self, document_id: str) -> Record:
        return self._read(self._path(document_id))

    def create(self, document: Mapping[str, Any]) -> Record:
        record = _stamp_new(document)
        self._write(record)
        return record

    def update(self, document_id: str, changes: Mapping[str, Any]) -> Record:
        record = _merge(self.get(document_id), changes)
        self._write(record)
        return record

    def delete(self, document_id: str) -> None:
        path = self._path(document_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise StoreError(f"CFDI '{document_id}' no encontrado") from None
        except OSError as exc:
            raise StoreError(f"No se pudo borrar '{path}': {exc}") from exc


__all__ = ["DocumentStore", "InMemoryDocumentStore", "JsonDirectoryStore"]
