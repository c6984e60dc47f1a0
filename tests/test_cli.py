from __future__ import annotations

import json
from dataclasses import replace

import pytest
from openpyxl import load_workbook

from cfdimx import cli
from cfdimx.codec import invoice_to_record
from cfdimx.models import TaxKind
from cfdimx.schema import load_cfdi_file


@pytest.fixture
def record_file(tmp_path, make_invoice):
    def _write(invoice=None, name="cfdi.json"):
        path = tmp_path / name
        record = invoice_to_record(invoice or make_invoice())
        path.write_text(json.dumps(record, ensure_ascii=False), encoding="utf-8")
        return path

    return _write


def _stamp_args(invoice_id, store):
    return [
        "stamp",
        invoice_id,
        "--uuid",
        "5FB2822E-396D-4725-8521-CDC4BDD20CCF",
        "--certificate",
        "00001000000504465028",
        "--cfd-seal",
        "c2VsbG9DRkQ=",
        "--sat-seal",
        "c2VsbG9TQVQ=",
        "--stamped-at",
        "2024-03-01T12:35:10",
        "--store",
        str(store),
    ]


def test_available_commands() -> None:
    names = [spec.name for spec in cli.available_commands()]

    assert names == ["validate", "create", "stamp", "cancel", "export", "report"]


def test_validate_valid_record(record_file, capsys) -> None:
    exit_code = cli.main(["validate", str(record_file())])

    assert exit_code == 0
    assert "Total 128.60" in capsys.readouterr().out


def test_validate_lists_every_error(record_file, make_invoice, tmp_path, capsys) -> None:
    invoice = make_invoice()
    invoice = replace(invoice, issuer=replace(invoice.issuer, rfc="ABC1234", name=""))
    xlsx = tmp_path / "errores.xlsx"

    exit_code = cli.main(["validate", str(record_file(invoice)), "--no-catalogs", "--xlsx", str(xlsx)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "emisorRfc:" in out
    assert "emisorNombre:" in out
    rows = list(load_workbook(xlsx).active.iter_rows(values_only=True))
    assert len(rows) == 3


def test_validate_catalog_switch(record_file, make_invoice, make_line, monkeypatch, capsys) -> None:
    monkeypatch.delenv("CFDI_CATALOGS_PATH", raising=False)
    invoice = make_invoice(lines=(make_line("1", "10", (TaxKind.IVA, "16"), product_code="99999999"),))
    path = record_file(invoice)

    assert cli.main(["validate", str(path)]) == 1
    assert "concepto0ClaveProductoServicio" in capsys.readouterr().out
    assert cli.main(["validate", str(path), "--no-catalogs"]) == 0


def test_full_flow(record_file, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    store = tmp_path / "store"

    assert cli.main(["create", str(record_file()), "--store", str(store)]) == 0
    invoice_id = capsys.readouterr().out.strip()
    assert (store / f"{invoice_id}.json").exists()

    assert cli.main(_stamp_args(invoice_id, store)) == 0
    assert "timbrado" in capsys.readouterr().out

    output = tmp_path / "xml"
    assert cli.main(["export", invoice_id, "--output-dir", str(output), "--store", str(store)]) == 0
    root = load_cfdi_file(output / f"CFDI_{invoice_id}.xml")
    assert root.get("Total") == "128.60"

    assert cli.main(["cancel", invoice_id, "--store", str(store)]) == 2
    assert cli.main(["cancel", invoice_id, "--yes", "--store", str(store)]) == 0
    stored = json.loads((store / f"{invoice_id}.json").read_text(encoding="utf-8"))
    assert stored["estado"] == "cancelado"
    assert stored["timbreFiscalDigital"]["uuid"] == "5FB2822E-396D-4725-8521-CDC4BDD20CCF"

    reports = tmp_path / "reports"
    capsys.readouterr()
    assert cli.main(["report", "--output-dir", str(reports), "--store", str(store)]) == 0
    out = capsys.readouterr().out
    assert "Monto facturado: 0.00" in out
    assert len(list(reports.glob("cfdi_resumen_*.xlsx"))) == 1


def test_stamp_invalid_draft(record_file, make_invoice, tmp_path, capsys) -> None:
    store = tmp_path / "store"
    invoice = make_invoice(series="A")
    path = record_file(invoice)
    record = json.loads(path.read_text(encoding="utf-8"))
    record["receptor"]["usoCFDI"] = ""
    path.write_text(json.dumps(record), encoding="utf-8")

    cli.main(["create", str(path), "--store", str(store)])
    invoice_id = capsys.readouterr().out.strip()

    assert cli.main(_stamp_args(invoice_id, store)) == 1
    assert "receptorUsoCFDI" in capsys.readouterr().out


def test_store_errors_exit_with_two(tmp_path, capsys) -> None:
    exit_code = cli.main(["cancel", "missing", "--yes", "--store", str(tmp_path)])

    assert exit_code == 2
    assert "no encontrado" in capsys.readouterr().err


def test_command_help(capsys) -> None:
    assert cli.main(["export", "--help"]) == 0
    assert "--output-dir" in capsys.readouterr().out


def test_validate_incomplete_record_lists_errors(tmp_path, capsys) -> None:
    path = tmp_path / "incompleto.json"
    path.write_text(
        json.dumps(
            {
                "emisor": {
                    "rfc": "AAA010101AAA",
                    "nombre": "Contadores del Norte SA de CV",
                    "regimenFiscal": "601",
                    "codigoPostal": "64000",
                },
                "receptor": {"rfc": "XAXX010101000", "nombre": "Cliente", "usoCFDI": "G03"},
                "conceptos": [
                    {
                        "descripcion": "Servicios contables",
                        "claveProductoServicio": "84111500",
                        "precioUnitario": "10.00",
                        "impuestos": [{"tipo": "IVA"}],
                    }
                ],
                "informacionPago": {"metodoPago": "PUE", "formaPago": "03"},
                "fechaEmision": "2024-03-01T12:30:00",
            }
        ),
        encoding="utf-8",
    )

    exit_code = cli.main(["validate", str(path), "--no-catalogs"])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "concepto0Cantidad:" in out
    assert "concepto0Impuestos:" in out


def test_validate_several_records_into_one_log(record_file, make_invoice, tmp_path, capsys) -> None:
    good = record_file(name="bueno.json")
    bad = record_file(make_invoice(id="cfdi-2", issued_at=None), name="malo.json")
    xlsx = tmp_path / "errores.xlsx"

    exit_code = cli.main(["validate", str(good), str(bad), "--no-catalogs", "--xlsx", str(xlsx)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert f"{good}: CFDI válido" in out
    assert f"{bad}: fechaEmision:" in out
    rows = list(load_workbook(xlsx).active.iter_rows(values_only=True))
    assert rows[1:] == [("cfdi-2", "fechaEmision", "La fecha de emisión es obligatoria")]


@pytest.mark.parametrize(
    "content, message",
    [
        ('{"estado": "pagado"}', "Estado de CFDI desconocido"),
        ("{not json", "no es un JSON válido"),
        ("[]", "no contiene un objeto CFDI"),
    ],
)
def test_unreadable_records_exit_with_two(tmp_path, capsys, content, message) -> None:
    path = tmp_path / "cfdi.json"
    path.write_text(content, encoding="utf-8")

    assert cli.main(["validate", str(path)]) == 2
    assert message in capsys.readouterr().err


def test_corrupt_stored_record_exits_with_two(tmp_path, capsys) -> None:
    (tmp_path / "roto.json").write_text(
        json.dumps({"id": "roto", "estado": "pagado"}), encoding="utf-8"
    )

    assert cli.main(["export", "roto", "--store", str(tmp_path)]) == 2
    assert "Estado de CFDI desconocido" in capsys.readouterr().err


def test_stamp_with_incomplete_fiscal_stamp(record_file, tmp_path, capsys) -> None:
    store = tmp_path / "store"
    cli.main(["create", str(record_file()), "--store", str(store)])
    invoice_id = capsys.readouterr().out.strip()
    args = _stamp_args(invoice_id, store)
    args[args.index("--sat-seal") + 1] = ""

    assert cli.main(args) == 2
    assert "SelloSAT" in capsys.readouterr().err
    stored = json.loads((store / f"{invoice_id}.json").read_text(encoding="utf-8"))
    assert stored["estado"] == "borrador"


_XSD_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           targetNamespace="http://www.sat.gob.mx/cfd/4"
           elementFormDefault="qualified">
  <xs:element name="Comprobante">
    <xs:complexType>
      <xs:sequence>
        <xs:any minOccurs="0" maxOccurs="unbounded" processContents="skip"/>
      </xs:sequence>
      <xs:attribute name="Version" type="xs:string" fixed="{version}" use="required"/>
      <xs:anyAttribute processContents="skip"/>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


@pytest.mark.parametrize("version, expected", [("4.0", 0), ("3.3", 1)])
def test_export_checks_xsd(record_file, tmp_path, capsys, version, expected) -> None:
    store = tmp_path / "store"
    xsd = tmp_path / "cfdv40.xsd"
    xsd.write_text(_XSD_TEMPLATE.format(version=version), encoding="utf-8")
    cli.main(["create", str(record_file()), "--store", str(store)])
    invoice_id = capsys.readouterr().out.strip()

    exit_code = cli.main(
        [
            "export",
            invoice_id,
            "--output-dir",
            str(tmp_path / "xml"),
            "--xsd",
            str(xsd),
            "--store",
            str(store),
        ]
    )

    out = capsys.readouterr().out
    assert exit_code == expected
    if expected:
        assert "XSD: line" in out
    else:
        assert "XML válido" in out
