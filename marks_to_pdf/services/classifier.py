from __future__ import annotations

import re
from collections.abc import Collection

from ..models.classification import (
    REASON_INVALID_EMAIL,
    REASON_INVALID_STUDENT_NUMBER,
    REASON_NOT_IN_FILTER,
    ClassificationResult,
    RowAction,
)
from ..models.config_models import ColumnMap, ReportConfig
from ..models.student_record import StudentRecord, cell

"""Row classification.

A pure decision per student row: IGNORE, SKIP_INVALID, SKIP_FILTERED or
PROCESS. Nothing here writes output; the sequencer decides what to print
for each outcome.

Decision order (first match wins):
1. student number missing / not numeric / below MIN_STUDENT_NUMBER
   -> IGNORE when both name cells are empty, else SKIP_INVALID
2. mail mode and the email cell has no "@" -> SKIP_INVALID
3. inclusion list given and the trimmed number is not in it -> SKIP_FILTERED
4. PROCESS
"""

__all__ = [
    "MIN_STUDENT_NUMBER",
    "classify",
    "parse_ids_filter",
    "parse_student_number",
    "student_record",
]

MIN_STUDENT_NUMBER = 10000

# 先頭の空白・符号・数字列のみを見る (末尾のゴミは無視)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_student_number(value: str) -> int | None:
    """Lenient integer parse: ``" 12345x"`` -> 12345, ``"abc"`` -> None."""
    m = _LEADING_INT.match(value)
    if m is None:
        return None
    return int(m.group(1))


def parse_ids_filter(raw: str | None) -> frozenset[str] | None:
    """Split a ``--ids`` value on commas. Entries are trimmed, empties dropped.

    Returns None when no filter was given or nothing is left after trimming
    (every row passes).
    """
    if raw is None:
        return None
    ids = frozenset(part.strip() for part in raw.split(",") if part.strip())
    return ids or None


def student_record(row: list[str], row_index: int, columns: ColumnMap) -> StudentRecord:
    return StudentRecord(
        row_index=row_index,
        student_number=cell(row, columns.student_number),
        first_name=cell(row, columns.first_name),
        last_name=cell(row, columns.last_name),
        email=cell(row, columns.student_email),
        feedback=cell(row, columns.personal_feedback),
    )


def classify(
    row: list[str],
    max_marks_row: list[str],
    config: ReportConfig,
    ids_filter: Collection[str] | None,
    mail_enabled: bool,
    *,
    row_index: int = -1,
) -> ClassificationResult:
    """Decide what to do with one student row.

    ``max_marks_row`` is accepted so every decision sees the same inputs as
    the renderer; no current rule depends on it.
    """
    record = student_record(row, row_index, config.columns)
    in_filter = ids_filter is None or record.student_id in ids_filter

    number = parse_student_number(record.student_number)
    if number is None or number < MIN_STUDENT_NUMBER:
        if not record.first_name and not record.last_name:
            return ClassificationResult(RowAction.IGNORE, record, in_filter=in_filter)
        return ClassificationResult(
            RowAction.SKIP_INVALID, record, REASON_INVALID_STUDENT_NUMBER, in_filter
        )

    if mail_enabled and "@" not in record.email:
        return ClassificationResult(RowAction.SKIP_INVALID, record, REASON_INVALID_EMAIL, in_filter)

    if not in_filter:
        return ClassificationResult(RowAction.SKIP_FILTERED, record, REASON_NOT_IN_FILTER, False)

    return ClassificationResult(RowAction.PROCESS, record)
