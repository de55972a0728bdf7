from __future__ import annotations

from dataclasses import dataclass

"""StudentRecord: the named fields of one spreadsheet row."""

__all__ = [
    "StudentRecord",
    "cell",
]


def cell(row: list[str], index: int | None) -> str:
    """Return the cell at ``index`` or "" when unmapped / past the row end."""
    if index is None or index >= len(row):
        return ""
    return row[index]


@dataclass(frozen=True)
class StudentRecord:
    """Named view over one spreadsheet row.

    row_index is the zero-based position in the sheet (max-marks row included).
    Values are the raw cell strings; ``student_number`` is not trimmed.
    """
    row_index: int
    student_number: str
    first_name: str
    last_name: str
    email: str = ""
    feedback: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def student_id(self) -> str:
        """Trimmed student number (filter key, file name part)."""
        return self.student_number.strip()

    def describe(self, recipient: str | None = None) -> str:
        """``First Last (number) <email>`` as used in the run log."""
        address = self.email if recipient is None else recipient
        return f"{self.display_name} ({self.student_number}) <{address}>"
