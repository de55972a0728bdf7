from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection
from datetime import UTC, datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Protocol

from ..logging.init import LOGGER_NAME, log_summary
from ..models.classification import ClassificationResult, RowAction
from ..models.config_models import Pacing, ReportConfig
from ..models.processing_result import BatchResult, BatchState, DeliveryOutcome
from ..models.student_record import StudentRecord
from ..sheet.reader import split_max_marks_row
from .classifier import classify
from .mailer import build_message, recipient_for
from .progress import MARK_FILTERED, MARK_INVALID, MARK_OK, ProgressTracker
from .renderer import RenderError
from .summary import render_detail_line, render_summary_line

"""Batch sequencing: one student row at a time.

A single worker coroutine walks the rows after the max-marks row in
ascending order. For each row it classifies, then (for PROCESS rows)
awaits the PDF render and, in mail modes, the delivery before pausing and
moving on. Rendering and SMTP I/O run in a worker thread so the loop only
ever has one unit of work in flight.

Pauses (Pacing) between units keep file writes and SMTP sends from piling
up on the file system and the mail provider's rate limit.
"""

__all__ = [
    "Dispatcher",
    "ProcessingError",
    "Renderer",
    "Sequencer",
    "process_batch",
    "run_batch",
]

logger = logging.getLogger(LOGGER_NAME)


class ProcessingError(Exception):
    """Base exception for fatal batch errors."""


class Renderer(Protocol):
    def render(self, record: StudentRecord, row: list[str], max_marks_row: list[str]) -> Path: ...


class Dispatcher(Protocol):
    def send(self, message: EmailMessage) -> DeliveryOutcome: ...

    def close(self) -> None: ...


class Sequencer:
    """Drives one batch from the first student row to the summary line."""

    def __init__(
        self,
        config: ReportConfig,
        rows: list[list[str]],
        renderer: Renderer,
        *,
        mail_mode: int = 0,
        mailer: Dispatcher | None = None,
        ids_filter: Collection[str] | None = None,
        pacing: Pacing | None = None,
    ) -> None:
        if mail_mode not in (0, 1, 2):
            raise ProcessingError(f"invalid mail mode: {mail_mode}")
        if mail_mode > 0 and mailer is None:
            raise ProcessingError("mail mode requires an open mailer")
        self.config = config
        self.rows = rows
        self.renderer = renderer
        self.mail_mode = mail_mode
        self.mailer = mailer
        self.ids_filter = ids_filter
        self.pacing = pacing or config.pacing

    @property
    def mail_enabled(self) -> bool:
        return self.mail_mode > 0

    async def run(self) -> BatchResult:
        """Process every student row, log the summary, release the mailer."""
        start_time = datetime.now(UTC)
        try:
            max_marks_row, first_row = split_max_marks_row(self.rows, self.config.max_marks_row_index)
            end = len(self.rows)
            state = BatchState(cursor=first_row, end=end, done=first_row >= end)

            with ProgressTracker(end - first_row, show=not self.mail_enabled) as progress:
                while not state.done:
                    pause = await self._step(state, max_marks_row, progress)
                    state.advance()
                    if not state.done:
                        await asyncio.sleep(pause)

            result = BatchResult.from_state(state, self.mail_mode, start_time, datetime.now(UTC))
            logger.info("")
            log_summary(render_summary_line(result))
            logger.debug(render_detail_line(result))
            return result
        finally:
            # 送信チャネルは最後に一度だけ解放
            if self.mailer is not None:
                self.mailer.close()

    async def _step(self, state: BatchState, max_marks_row: list[str], progress: ProgressTracker) -> float:
        """Handle the row under the cursor; returns the pause before the next one."""
        row = self.rows[state.cursor]
        result = classify(
            row,
            max_marks_row,
            self.config,
            self.ids_filter,
            self.mail_enabled,
            row_index=state.cursor,
        )

        if result.action is RowAction.IGNORE:
            state.ignored += 1
            progress.tick()
            return self.pacing.skip_seconds

        if result.action is RowAction.SKIP_INVALID:
            state.invalid += 1
            self._report_skip(result, progress, MARK_INVALID)
            return self.pacing.skip_seconds

        if result.action is RowAction.SKIP_FILTERED:
            state.filtered += 1
            self._report_skip(result, progress, MARK_FILTERED)
            return self.pacing.skip_seconds

        return await self._process(state, result.record, row, max_marks_row, progress)

    def _report_skip(self, result: ClassificationResult, progress: ProgressTracker, marker: str) -> None:
        if not self.mail_enabled:
            progress.mark(marker)
            return
        # mail モード: 絞り込み対象外の行は黙ってスキップ
        if result.action is RowAction.SKIP_INVALID and result.in_filter:
            logger.info(f"Skipping {result.record.describe()} due to {result.reason}")
        progress.tick()

    async def _process(
        self,
        state: BatchState,
        record: StudentRecord,
        row: list[str],
        max_marks_row: list[str],
        progress: ProgressTracker,
    ) -> float:
        try:
            pdf_path = await asyncio.to_thread(self.renderer.render, record, row, max_marks_row)
        except RenderError as e:
            state.failed += 1
            progress.tick()
            logger.error(f"FAILED to generate PDF for {record.describe()}: {e}")
            return self.pacing.render_seconds
        state.artifacts.append(pdf_path)

        if not self.mail_enabled:
            progress.mark(MARK_OK)
            state.successful += 1
            return self.pacing.render_seconds

        outcome = await self._deliver(record, pdf_path)
        if outcome.ok:
            logger.info(f"Sent email to {record.describe(outcome.recipient)}")
            state.successful += 1
        else:
            state.failed += 1
            logger.info("")
            logger.error(f"FAILED to send email to {record.describe(outcome.recipient)}")
            logger.error(outcome.error or "unknown error")
            logger.info("")
        progress.tick()
        return self.pacing.mail_seconds

    async def _deliver(self, record: StudentRecord, pdf_path: Path) -> DeliveryOutcome:
        if self.mailer is None:
            raise ProcessingError("mail mode requires an open mailer")
        recipient = recipient_for(self.config, record, self.mail_mode)
        try:
            message = build_message(self.config, recipient, pdf_path)
        except OSError as e:
            return DeliveryOutcome(ok=False, recipient=recipient, error=f"cannot attach {pdf_path.name}: {e}")
        return await asyncio.to_thread(self.mailer.send, message)


async def run_batch(
    config: ReportConfig,
    rows: list[list[str]],
    renderer: Renderer,
    *,
    mail_mode: int = 0,
    mailer: Dispatcher | None = None,
    ids_filter: Collection[str] | None = None,
    pacing: Pacing | None = None,
) -> BatchResult:
    sequencer = Sequencer(
        config,
        rows,
        renderer,
        mail_mode=mail_mode,
        mailer=mailer,
        ids_filter=ids_filter,
        pacing=pacing,
    )
    return await sequencer.run()


def process_batch(
    config: ReportConfig,
    rows: list[list[str]],
    renderer: Renderer,
    *,
    mail_mode: int = 0,
    mailer: Dispatcher | None = None,
    ids_filter: Collection[str] | None = None,
    pacing: Pacing | None = None,
) -> BatchResult:
    """Synchronous entry point: run one batch on a fresh event loop."""
    return asyncio.run(
        run_batch(
            config,
            rows,
            renderer,
            mail_mode=mail_mode,
            mailer=mailer,
            ids_filter=ids_filter,
            pacing=pacing,
        )
    )
