"""Excel error logs for CFDI validation.

Accountants receive the corrections to make as a spreadsheet: one row per
error with the CFDI it belongs to, the field path and the message.
:class:`ExcelErrorLog` collects the rows of one or several invoices and
writes them into a single sheet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

LOGGER = logging.getLogger("cfdimx.logging")

ERROR_COLUMNS = ("CFDI", "Campo", "Mensaje")
MAX_COLUMN_WIDTH = 80


class RowLike(Protocol):
    """Protocol for rows serialisable in tabular form."""

    def as_cells(self) -> Sequence[str | None]:
        """Return the ordered values to write to the sheet."""


@dataclass(slots=True)
class ExcelErrorLogConfig:
    """Configuration used by :class:`ExcelErrorLog`."""

    destination: Path
    sheet_title: str = "Errores"
    columns: Sequence[str] = ERROR_COLUMNS


class ExcelErrorLog:
    def __init__(self, config: ExcelErrorLogConfig) -> None:
        self.config = config
        self._rows: list[list[str | None]] = []

    def __len__(self) -> int:
        return len(self._rows)

    def extend(self, rows: Iterable[RowLike]) -> None:
        self._rows.extend(list(row.as_cells()) for row in rows)

    def save(self) -> Path:
        """Write the collected rows below a bold, frozen header."""

        destination = Path(self.config.destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = self.config.sheet_title
        worksheet.append(list(self.config.columns))
        for cell in worksheet[1]:
            cell.font = Font(bold=True)
        worksheet.freeze_panes = "A2"

        for row in self._rows:
            worksheet.append(row)

        for index, title in enumerate(self.config.columns, start=1):
            values = [title] + [row[index - 1] for row in self._rows if len(row) >= index]
            width = max(len(str(value or "")) for value in values) + 2
            worksheet.column_dimensions[get_column_letter(index)].width = min(
                width, MAX_COLUMN_WIDTH
            )

        workbook.save(destination)
        LOGGER.info("Wrote %d error row(s) to %s", len(self._rows), destination)
        return destination


__all__ = ["ERROR_COLUMNS", "ExcelErrorLog", "ExcelErrorLogConfig", "RowLike"]
