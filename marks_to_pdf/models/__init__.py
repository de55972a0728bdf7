"""Domain models for the marks-to-PDF tool.

Configuration, per-row classification and batch bookkeeping types used
throughout the application.
"""

from .classification import ClassificationResult, RowAction
from .config_models import ColumnMap, CriteriaSection, FontConfig, Pacing, ReportConfig, SmtpConfig
from .processing_result import BatchResult, BatchState, DeliveryOutcome
from .student_record import StudentRecord

__all__ = [
    # Configuration models
    "ColumnMap",
    "CriteriaSection",
    "FontConfig",
    "Pacing",
    "ReportConfig",
    "SmtpConfig",
    # Processing models
    "BatchResult",
    "BatchState",
    "ClassificationResult",
    "DeliveryOutcome",
    "RowAction",
    "StudentRecord",
]
