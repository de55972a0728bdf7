from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .student_record import StudentRecord

"""Row classification outcome.

Every student row is routed to exactly one RowAction:

- IGNORE: no usable student number and no name, no output of any kind
- SKIP_INVALID: bad student number or (mail modes) bad email address
- SKIP_FILTERED: not in the --ids inclusion list
- PROCESS: render (and possibly deliver) a PDF
"""

__all__ = [
    "RowAction",
    "ClassificationResult",
    "REASON_INVALID_STUDENT_NUMBER",
    "REASON_INVALID_EMAIL",
    "REASON_NOT_IN_FILTER",
]

REASON_INVALID_STUDENT_NUMBER = "invalid student number"
REASON_INVALID_EMAIL = "invalid email address"
REASON_NOT_IN_FILTER = "not in inclusion list"


class RowAction(Enum):
    IGNORE = "ignore"
    SKIP_INVALID = "skip_invalid"
    SKIP_FILTERED = "skip_filtered"
    PROCESS = "process"


@dataclass(frozen=True)
class ClassificationResult:
    action: RowAction
    record: StudentRecord
    reason: str | None = None
    in_filter: bool = True  # False only when an inclusion list excludes the row

    @property
    def is_skip(self) -> bool:
        return self.action in (RowAction.SKIP_INVALID, RowAction.SKIP_FILTERED)
