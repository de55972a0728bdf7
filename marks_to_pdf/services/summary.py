from __future__ import annotations

from ..models.processing_result import BatchResult

"""Summary line rendering.

The last line of every completed run:

    Done. Generated PDFs for N students.           (--mail 0)
    Done. Sent test emails relating to N students. (--mail 1)
    Done. Sent email to N students.                (--mail 2)

"student." is used when N == 1. The "SUMMARY " label is added by the logger
(marks_to_pdf.logging.init.log_summary).
"""

__all__ = [
    "render_detail_line",
    "render_summary_line",
]

_VERBS = {
    0: "Generated PDFs for",
    1: "Sent test emails relating to",
    2: "Sent email to",
}


def render_summary_line(result: BatchResult) -> str:
    """Render the summary line for a finished batch.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> render_summary_line(BatchResult(0, 1, 0, 0, 0, 0, t, t, 0.0))
    'Done. Generated PDFs for 1 student.'
    """
    verb = _VERBS.get(result.mail_mode, _VERBS[0])
    noun = "student." if result.successful == 1 else "students."
    return f"Done. {verb} {result.successful} {noun}"


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}"


def render_detail_line(result: BatchResult) -> str:
    """Counter breakdown (debug output)."""
    return (
        f"successful={result.successful} "
        f"invalid={result.invalid} "
        f"filtered={result.filtered} "
        f"ignored={result.ignored} "
        f"failed={result.failed} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
