from __future__ import annotations

"""Spreadsheet column references (A, B, ..., Z, AA, ..., AZ, BA, ...).

Column letters in the config file are resolved to zero-based indexes once,
when the config is loaded. Only one- and two-letter references are accepted.
"""

__all__ = [
    "InvalidColumnReference",
    "column_to_index",
]

_LETTERS = 26


class InvalidColumnReference(ValueError):
    """Raised when a column reference is not in spreadsheet format."""

    def __init__(self, reference: object) -> None:
        super().__init__(
            "Column index must be a string in spreadsheet format "
            f"(A, B, ..., Z, AA, AB, ..., AZ, BA, ...), not {reference!r}"
        )
        self.reference = reference


def _letter_value(ch: str) -> int | None:
    # 大文字 A-Z のみ許容
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A")
    return None


def column_to_index(reference: str) -> int:
    """Convert a spreadsheet column reference to a zero-based index.

    >>> column_to_index("A"), column_to_index("Z"), column_to_index("AA"), column_to_index("BA")
    (0, 25, 26, 52)

    Raises:
        InvalidColumnReference: for anything but one or two upper-case letters
    """
    if not isinstance(reference, str) or len(reference) not in (1, 2):
        raise InvalidColumnReference(reference)

    values = [_letter_value(ch) for ch in reference]
    if any(v is None for v in values):
        raise InvalidColumnReference(reference)

    if len(values) == 1:
        return values[0]  # type: ignore[return-value]
    high, low = values
    # AA follows Z: the high letter counts from 1, not 0
    return (high + 1) * _LETTERS + low  # type: ignore[operator]
