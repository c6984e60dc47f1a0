from __future__ import annotations

import json
import os

import pytest

from cfdimx import catalogs
from cfdimx.catalogs import JsonCatalogService, resolve_catalogs_path
from cfdimx.exceptions import CatalogError


def _write_catalogs(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_bundled_catalogs_cover_every_name(monkeypatch) -> None:
    monkeypatch.delenv("CFDI_CATALOGS_PATH", raising=False)
    service = JsonCatalogService()

    for name in catalogs.CATALOG_NAMES:
        assert service.list(name), name
    assert "PUE" in service.codes(catalogs.PAYMENT_METHODS)
    assert service.describe(catalogs.CFDI_USES, "G03") == "Gastos en general"
    assert service.describe(catalogs.CFDI_USES, "ZZZ") is None


def test_env_var_overrides_path(tmp_path, monkeypatch) -> None:
    custom = tmp_path / "catalogs.json"
    _write_catalogs(
        custom,
        {"catalogs": {catalogs.PAYMENT_METHODS: [{"codigo": "PUE", "descripcion": "Una exhibición"}]}},
    )
    monkeypatch.setenv("CFDI_CATALOGS_PATH", str(custom))

    assert resolve_catalogs_path() == custom
    assert JsonCatalogService().codes(catalogs.PAYMENT_METHODS) == {"PUE"}


def test_cache_reloads_when_file_changes(tmp_path) -> None:
    path = tmp_path / "catalogs.json"
    _write_catalogs(path, {"catalogs": {"usos_cfdi": [{"codigo": "G01", "descripcion": "a"}]}})
    service = JsonCatalogService(path)

    first = service.load()
    assert service.load() is first

    _write_catalogs(path, {"catalogs": {"usos_cfdi": [{"codigo": 3, "descripcion": "b"}]}})
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    assert service.codes("usos_cfdi") == {"3"}
    assert service.load(force_reload=True) is not first


def test_unknown_catalog_name(tmp_path) -> None:
    path = tmp_path / "catalogs.json"
    _write_catalogs(path, {"catalogs": {}})

    with pytest.raises(CatalogError):
        JsonCatalogService(path).list("monedas")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"other": {}}),
        json.dumps({"catalogs": {"usos_cfdi": [{"codigo": "G01"}]}}),
    ],
)
def test_malformed_files(tmp_path, content) -> None:
    path = tmp_path / "catalogs.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CatalogError):
        JsonCatalogService(path).load()


def test_missing_file(tmp_path) -> None:
    with pytest.raises(CatalogError):
        JsonCatalogService(tmp_path / "missing.json").load()
