from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


@dataclass(frozen=True)
class Table:
    """Header names plus ordered rows of string cells, as decoded from a sheet."""

    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)

    def column_index(self, header: str) -> int | None:
        try:
            return self.headers.index(header)
        except ValueError:
            return None

    def cell(self, row: Sequence[str], header: str) -> str:
        """Trimmed cell value; missing columns and short rows read as empty."""
        index = self.column_index(header)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()


def read_csv_table(path: Path, *, delimiter: str = ",") -> Table:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.reader(handle, delimiter=delimiter)
        try:
            headers = [header.strip() for header in next(reader)]
        except StopIteration as err:
            raise ValueError(f"Table {path} is empty or missing headers") from err
        rows = [row for row in reader if any(cell.strip() for cell in row)]
    return Table(headers=headers, rows=rows)


__all__ = ["Table", "read_csv_table"]
