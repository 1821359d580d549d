"""Readers that turn a question source into raw rows of strings.

A source is a header row followed by data rows. Readers only deal with the
transport (files, workbooks); validating rows is the bank's job. Any failure
to open or decode the source becomes a :class:`LoadError`.
"""

from __future__ import annotations

import csv
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import LoadError

Row = List[str]

DEFAULT_SHEET = "Sheet1"
CSV_SUFFIXES = frozenset({".csv"})
XLSX_SUFFIXES = frozenset({".xlsx", ".xlsm"})


def read_rows(path: Path | str, *, sheet: Optional[str] = None) -> List[Row]:
    """Read every row (header included) from ``path``.

    The reader is chosen by file suffix.
    """

    source = Path(path).expanduser()
    suffix = source.suffix.lower()
    if suffix in CSV_SUFFIXES:
        return read_csv_rows(source)
    if suffix in XLSX_SUFFIXES:
        return read_xlsx_rows(source, sheet=sheet or DEFAULT_SHEET)
    supported = ", ".join(sorted(CSV_SUFFIXES | XLSX_SUFFIXES))
    raise LoadError(
        f"Unsupported question source '{source.name}'. "
        f"Expected one of: {supported}."
    )


def read_csv_rows(path: Path) -> List[Row]:
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return [
                [cell.strip() for cell in row] for row in csv.reader(handle)
            ]
    except FileNotFoundError as exc:
        raise LoadError(f"Question source not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise LoadError(f"Question source is not UTF-8 text: {path}") from exc
    except csv.Error as exc:
        raise LoadError(f"Malformed CSV in {path}: {exc}") from exc
    except OSError as exc:
        raise LoadError(
            f"Failed to read question source {path}: {exc}"
        ) from exc


def read_xlsx_rows(path: Path, *, sheet: str = DEFAULT_SHEET) -> List[Row]:
    """Read ``sheet`` from a workbook.

    Every row spans the sheet's used columns, so blank trailing cells come
    back as empty strings rather than shortening the row.
    """

    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except FileNotFoundError as exc:
        raise LoadError(f"Question source not found: {path}") from exc
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise LoadError(f"Unreadable workbook {path}: {exc}") from exc
    except OSError as exc:
        raise LoadError(
            f"Failed to read question source {path}: {exc}"
        ) from exc

    try:
        if sheet not in workbook.sheetnames:
            raise LoadError(
                f"Sheet '{sheet}' not found in {path.name} "
                f"(available: {', '.join(workbook.sheetnames) or 'none'})."
            )
        worksheet = workbook[sheet]
        return [
            [_cell_text(value) for value in values]
            for values in worksheet.iter_rows(values_only=True)
        ]
    finally:
        workbook.close()


def iter_source_rows(source: Iterable[Sequence[object]]) -> List[Row]:
    """Normalise an in-memory iterable of rows into lists of strings."""

    try:
        return [[_cell_text(value) for value in row] for row in source]
    except TypeError as exc:
        raise LoadError(
            f"Question source rows are not iterable: {exc}"
        ) from exc


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()

