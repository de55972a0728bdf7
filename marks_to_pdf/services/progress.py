from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for PDF-only runs.

Each student row leaves one marker:
    "."  PDF generated
    "x"  invalid student number
    "S"  skipped (not in --ids)
Blank rows leave nothing.

On a TTY the markers are replaced by a single tqdm bar over the student
rows with running counts as postfix. Otherwise (pipes, CI, log capture) the
markers are written straight to stdout on one line, which is what ends up
in a redirected log. Mail runs log a full line per student instead and do
not use this tracker.
"""

__all__ = [
    "MARK_FILTERED",
    "MARK_INVALID",
    "MARK_OK",
    "ProgressTracker",
    "is_tty_enabled",
]

MARK_OK = "."
MARK_INVALID = "x"
MARK_FILTERED = "S"

_POSTFIX_KEYS = {MARK_OK: "ok", MARK_INVALID: "invalid", MARK_FILTERED: "skipped"}


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Marker / tqdm progress over the student rows of one batch."""

    def __init__(self, total_rows: int, *, description: str = "Generating PDFs", show: bool = True) -> None:
        self.total_rows = total_rows
        self.description = description
        self.show = show
        self.marks = ""
        self.counts = {key: 0 for key in _POSTFIX_KEYS.values()}

        self.use_bar = show and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.use_bar:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def mark(self, marker: str) -> None:
        """Record the outcome of one row."""
        self.marks += marker
        key = _POSTFIX_KEYS.get(marker)
        if key is not None:
            self.counts[key] += 1
        if not self.show:
            return
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(**self.counts)
        else:
            sys.stdout.write(marker)
            sys.stdout.flush()

    def tick(self) -> None:
        """Advance past a row that leaves no marker."""
        if self.pbar is not None:
            self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
