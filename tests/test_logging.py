from __future__ import annotations

from openpyxl import load_workbook

from cfdimx.logging import MAX_COLUMN_WIDTH, ExcelErrorLog, ExcelErrorLogConfig
from cfdimx.validator import ValidationResult


def test_error_log_collects_several_invoices(tmp_path) -> None:
    log = ExcelErrorLog(ExcelErrorLogConfig(destination=tmp_path / "out" / "errores.xlsx"))
    log.extend(ValidationResult({"emisorRfc": "El RFC del emisor es obligatorio"}).issues("A-1"))
    log.extend(ValidationResult({"moneda": "La moneda es obligatoria"}).issues("A-2"))
    log.extend(ValidationResult().issues("A-3"))

    destination = log.save()

    assert len(log) == 2
    sheet = load_workbook(destination)["Errores"]
    assert [row[0] for row in sheet.iter_rows(min_row=2, values_only=True)] == ["A-1", "A-2"]


def test_error_log_column_widths(tmp_path) -> None:
    log = ExcelErrorLog(ExcelErrorLogConfig(destination=tmp_path / "errores.xlsx"))
    log.extend(ValidationResult({"conceptos": "x" * 200}).issues())

    sheet = load_workbook(log.save()).active

    assert sheet["A2"].value is None
    assert sheet.column_dimensions["B"].width == len("conceptos") + 2
    assert sheet.column_dimensions["C"].width == MAX_COLUMN_WIDTH
