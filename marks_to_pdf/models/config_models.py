from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the marks-to-PDF tool.

The loader (marks_to_pdf/config/loader.py) validates the raw document with
jsonschema and converts it into these frozen structures once, at startup.
Column references are already resolved to zero-based indexes here.
"""

__all__ = [
    "ColumnMap",
    "CriteriaSection",
    "FontConfig",
    "Pacing",
    "ReportConfig",
    "SmtpConfig",
]


@dataclass(frozen=True)
class CriteriaSection:
    """One titled group of criteria in the marks table."""
    title: str
    criteria: tuple[tuple[str, int], ...]  # (criterion title, column index)


@dataclass(frozen=True)
class ColumnMap:
    """Logical field -> zero-based spreadsheet column."""
    student_number: int
    first_name: int
    last_name: int
    criteria_sections: tuple[CriteriaSection, ...]
    total_marks: int
    personal_feedback: int | None = None  # None -> feedback section omitted
    student_email: int | None = None  # mail modes only

    def indexes(self) -> dict[str, int]:
        """Every resolved column keyed by a readable field name (range checks)."""
        result = {
            "studentNumber": self.student_number,
            "studentFirstName": self.first_name,
            "studentLastName": self.last_name,
            "totalMarks": self.total_marks,
        }
        for section in self.criteria_sections:
            for criterion, idx in section.criteria:
                result[f"criteriaSections.{section.title}.{criterion}"] = idx
        if self.personal_feedback is not None:
            result["personalFeedback"] = self.personal_feedback
        if self.student_email is not None:
            result["studentEmail"] = self.student_email
        return result


@dataclass(frozen=True)
class SmtpConfig:
    """Outbound SMTP transport. The password is never stored in the config file."""
    host: str
    user: str
    port: int = 587
    secure: bool = False  # implicit TLS (SMTP_SSL)
    starttls: bool = True  # ignored when secure=True
    timeout: float = 30.0


@dataclass(frozen=True)
class Pacing:
    """Pauses between units of work, in seconds.

    skip: after a row that produced nothing
    render: after a PDF is written (PDF-only mode)
    mail: after each delivery attempt (mail modes)
    """
    skip_seconds: float = 0.001
    render_seconds: float = 0.1
    mail_seconds: float = 5.0


@dataclass(frozen=True)
class FontConfig:
    """Optional TrueType fonts. None -> built-in Helvetica family."""
    regular: str | None = None
    bold: str | None = None
    semibold: str | None = None


@dataclass(frozen=True)
class ReportConfig:
    """Root configuration object for one assignment."""
    header: tuple[str, ...]
    footer: tuple[str, ...]
    assignment_name: str
    coordinator_name: str
    max_marks_row_index: int  # 1-based, as written in the config file
    columns: ColumnMap
    coordinator_email: str | None = None
    smtp: SmtpConfig | None = None
    email_subject: str | None = None
    email_body: tuple[str, ...] = ()
    pacing: Pacing = field(default_factory=Pacing)
    fonts: FontConfig = field(default_factory=FontConfig)
