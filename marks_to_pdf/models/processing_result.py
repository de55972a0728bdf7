from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

"""Batch state and result models.

BatchState is the only mutable model in the tool and is owned by the
sequencer for the lifetime of one run. BatchResult is the frozen snapshot
handed back to the CLI for the summary line.
"""


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt (never raised, always returned)."""
    ok: bool
    recipient: str
    error: str | None = None


@dataclass
class BatchState:
    """Cursor and counters for the running batch."""
    cursor: int  # 現在行 (0-based, max-marks 行を含むシート上の位置)
    end: int  # 最終行 + 1
    successful: int = 0
    invalid: int = 0
    filtered: int = 0
    ignored: int = 0
    failed: int = 0
    done: bool = False
    artifacts: list[Path] = field(default_factory=list)

    def advance(self) -> None:
        self.cursor += 1
        if self.cursor >= self.end:
            self.done = True


@dataclass(frozen=True)
class BatchResult:
    """Aggregated results of one run."""
    mail_mode: int
    successful: int
    invalid: int
    filtered: int
    ignored: int
    failed: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    artifacts: tuple[Path, ...] = ()

    @classmethod
    def from_state(
        cls, state: BatchState, mail_mode: int, start_time: datetime, end_time: datetime
    ) -> BatchResult:
        return cls(
            mail_mode=mail_mode,
            successful=state.successful,
            invalid=state.invalid,
            filtered=state.filtered,
            ignored=state.ignored,
            failed=state.failed,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            artifacts=tuple(state.artifacts),
        )
