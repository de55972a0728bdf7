from .init import get_logger, log_summary, reset_logging, set_debug, setup_logging
from .run_log import RunLogFile, sidecar_log_path

__all__ = [
    "RunLogFile",
    "get_logger",
    "log_summary",
    "reset_logging",
    "set_debug",
    "setup_logging",
    "sidecar_log_path",
]
