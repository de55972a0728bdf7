from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

"""Sidecar run log for mail modes.

Every log record of a mailing run is mirrored to
``<config stem>-YYYYmmdd-HHMMSS.log`` next to the config file, so there is a
record of who was (and was not) emailed after the terminal is gone.
PDF-only runs never create the file.
"""

__all__ = [
    "RunLogFile",
    "sidecar_log_path",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


def sidecar_log_path(config_path: Path, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FMT)
    return config_path.with_name(f"{config_path.stem}-{stamp}.log")


class RunLogFile:
    """FileHandler attached to the application logger for one run.

    Use as a context manager; the handler is detached and closed on exit.
    Records are written without level labels, one message per line.
    """

    def __init__(self, logger: logging.Logger, path: Path) -> None:
        self.logger = logger
        self.path = path
        self._handler: logging.FileHandler | None = None

    def open(self) -> Path:
        if self._handler is None:
            handler = logging.FileHandler(self.path, mode="w", encoding="utf-8")
            handler.setLevel(logging.INFO)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)
            self._handler = handler
        return self.path

    def close(self) -> None:
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def __enter__(self) -> RunLogFile:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
