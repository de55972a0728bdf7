from __future__ import annotations

import pytest

from marks_to_pdf.sheet.columns import InvalidColumnReference, column_to_index


@pytest.mark.parametrize(
    "reference,expected",
    [("A", 0), ("B", 1), ("Z", 25), ("AA", 26), ("AB", 27), ("AZ", 51), ("BA", 52), ("ZZ", 701)],
)
def test_column_to_index(reference: str, expected: int):
    assert column_to_index(reference) == expected


@pytest.mark.parametrize("reference", ["", "a", "Aa", "AAA", "1", "A1", " A", None, 3])
def test_column_to_index_rejects_non_spreadsheet_references(reference):
    with pytest.raises(InvalidColumnReference) as exc:
        column_to_index(reference)
    assert exc.value.reference == reference
    assert "spreadsheet format" in str(exc.value)


def test_invalid_column_reference_is_value_error():
    with pytest.raises(ValueError):
        column_to_index("lower")
