from __future__ import annotations

from pathlib import Path

import pandas as pd

"""Marks spreadsheet reader.

The whole sheet is read as strings (no NA conversion, no header row) so that
every cell reaches the classifier exactly as the coordinator typed it. CSV is
the primary format; ``.xlsx`` workbooks are read from their first sheet.
"""

__all__ = [
    "SheetError",
    "read_marks_file",
    "split_max_marks_row",
    "ensure_columns_in_range",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


class SheetError(Exception):
    """Raised when the marks spreadsheet cannot be used (fatal)."""


def _frame_to_rows(df: pd.DataFrame) -> list[list[str]]:
    # 空セルは NaN -> "" に統一
    df = df.fillna("")
    rows: list[list[str]] = []
    for raw in df.itertuples(index=False, name=None):
        rows.append([str(v) for v in raw])
    return rows


def read_marks_file(path: Path) -> list[list[str]]:
    """Read a marks spreadsheet into an ordered list of rows of cell strings.

    Raises:
        SheetError: if the file is missing or cannot be parsed
    """
    if not path.exists():
        raise SheetError(f"marks file not found: {path}")

    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, header=None, dtype=str, keep_default_na=False)
        else:
            df = pd.read_csv(
                path,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise SheetError(f"CSV parser error: {e}") from e

    return _frame_to_rows(df)


def split_max_marks_row(
    rows: list[list[str]], max_marks_row_index: int
) -> tuple[list[str], int]:
    """Return the max-marks row and the index of the first student row.

    ``max_marks_row_index`` is 1-based, as it appears in the config file.

    Raises:
        SheetError: if the sheet has no row after the max-marks row
    """
    if len(rows) < max_marks_row_index + 1:
        raise SheetError("Not enough rows were found in the CSV file.")
    return rows[max_marks_row_index - 1], max_marks_row_index


def ensure_columns_in_range(rows: list[list[str]], indexes: dict[str, int]) -> None:
    """Check that every configured column exists in the sheet.

    Raises:
        SheetError: naming the first field whose column lies past the widest row
    """
    width = max((len(r) for r in rows), default=0)
    for field, idx in indexes.items():
        if idx >= width:
            raise SheetError(
                f"column for {field!r} (index {idx}) is outside the sheet ({width} columns)"
            )
