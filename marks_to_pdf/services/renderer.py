from __future__ import annotations

import re
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.doctemplate import LayoutError

from .. import VERSION_STRING
from ..models.config_models import FontConfig, ReportConfig
from ..models.student_record import StudentRecord, cell

"""Per-student feedback PDF rendering with reportlab.

Layout (top to bottom):
- config header paragraphs
- "<assignment> feedback for <name> (<number>)"
- marks table: header row, one spanning row per criteria section, one row
  per criterion, overall total row
- personal feedback (only when a feedback column is configured)
- config footer paragraphs

Header and footer entries are trusted reportlab paragraph markup from the
config file; every spreadsheet value is escaped.
"""

__all__ = [
    "NO_FEEDBACK_TEXT",
    "PdfRenderer",
    "RenderError",
    "pdf_file_name",
]

NO_FEEDBACK_TEXT = (
    "No feedback was provided. Contact the subject coordinator for more information."
)

HEADER_FILL = HexColor("#eeeeee")
MARK_COLOR = HexColor("#0011cc")
GRID_COLOR = HexColor("#bbbbbb")
MARK_COLUMN_WIDTH = 62  # points, "Available marks" / "Your mark"
CRITERION_INDENT = 12

_PATH_SEPARATORS = re.compile(r"[\\/]")


class RenderError(Exception):
    """Raised when a PDF could not be written for one student (per-row)."""


def pdf_file_name(assignment_name: str, record: StudentRecord) -> str:
    # 学籍番号セルは緩く解釈されるため、区切り文字で --out-dir の外に出さない
    student_id = _PATH_SEPARATORS.sub("_", record.student_id)
    return f"{assignment_name} - {student_id}.pdf"


def _register_fonts(fonts: FontConfig) -> tuple[str, str, str]:
    """Register configured TTF fonts; returns (regular, bold, semibold) names."""
    regular, bold, semibold = "Helvetica", "Helvetica-Bold", "Helvetica-Bold"
    for attr, name in (("regular", "Marks-Regular"), ("bold", "Marks-Bold"), ("semibold", "Marks-SemiBold")):
        path = getattr(fonts, attr)
        if not path:
            continue
        try:
            pdfmetrics.registerFont(TTFont(name, path))
        except Exception as e:  # reportlab raises TTFError / OSError variants
            raise RenderError(f"cannot load font {attr}={path}: {e}") from e
        if attr == "regular":
            regular = name
        elif attr == "bold":
            bold = name
        else:
            semibold = name
    # semibold 未指定なら bold を流用
    if not fonts.semibold and fonts.bold:
        semibold = bold
    return regular, bold, semibold


def _text(value: str) -> str:
    return escape(value).replace("\n", "<br/>")


class PdfRenderer:
    """Renders one feedback PDF per student into ``out_dir``."""

    def __init__(self, config: ReportConfig, out_dir: Path, *, creator: str = VERSION_STRING) -> None:
        self.config = config
        self.out_dir = out_dir
        self.creator = creator
        regular, bold, semibold = _register_fonts(config.fonts)

        base = getSampleStyleSheet()
        self.body = ParagraphStyle(
            "MarksBody", parent=base["Normal"], fontName=regular, fontSize=11, leading=15
        )
        self.semibold = ParagraphStyle("MarksSemi", parent=self.body, fontName=semibold)
        self.bold = ParagraphStyle("MarksBold", parent=self.body, fontName=bold)
        self.title = ParagraphStyle(
            "MarksTitle", parent=self.body, fontName=semibold, fontSize=14, leading=18,
            spaceBefore=10, spaceAfter=10,
        )
        self.criterion = ParagraphStyle("MarksCriterion", parent=self.body, leftIndent=CRITERION_INDENT)
        self.mark = ParagraphStyle("MarksMark", parent=self.semibold, textColor=MARK_COLOR)
        self.total_mark = ParagraphStyle("MarksTotal", parent=self.bold, textColor=MARK_COLOR)
        self._bold_font = bold

    def output_path(self, record: StudentRecord) -> Path:
        return self.out_dir / pdf_file_name(self.config.assignment_name, record)

    def _criteria_table(self, row: list[str], max_marks_row: list[str], width: float) -> Table:
        cfg = self.config
        body: list[list[object]] = [[
            Paragraph("Criterion", self.semibold),
            Paragraph("Available<br/>marks", self.semibold),
            Paragraph("Your mark", self.semibold),
        ]]
        style: list[tuple] = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]

        for section in cfg.columns.criteria_sections:
            r = len(body)
            body.append([Paragraph(_text(section.title), self.semibold), "", ""])
            style.append(("SPAN", (0, r), (-1, r)))
            for criterion, idx in section.criteria:
                body.append([
                    Paragraph(_text(criterion), self.criterion),
                    Paragraph(_text(cell(max_marks_row, idx)), self.body),
                    Paragraph(_text(cell(row, idx)), self.mark),
                ])

        total_idx = cfg.columns.total_marks
        body.append([
            Paragraph(_text(f"Overall mark for {cfg.assignment_name}"), self.semibold),
            Paragraph(_text(cell(max_marks_row, total_idx)), self.semibold),
            Paragraph(_text(cell(row, total_idx)), self.total_mark),
        ])
        style.append(("BACKGROUND", (0, -1), (-1, -1), HEADER_FILL))

        first = width - 2 * MARK_COLUMN_WIDTH
        table = Table(body, colWidths=[first, MARK_COLUMN_WIDTH, MARK_COLUMN_WIDTH], repeatRows=1)
        table.setStyle(TableStyle(style))
        return table

    def _story(self, record: StudentRecord, row: list[str], max_marks_row: list[str], width: float) -> list:
        cfg = self.config
        story: list = [Paragraph(block, self.body) for block in cfg.header]
        story.append(Paragraph(
            f"{_text(cfg.assignment_name)} feedback for "
            f"<font name=\"{self._bold_font}\">{_text(record.display_name)} "
            f"({_text(record.student_number)})</font>",
            self.title,
        ))
        story.append(self._criteria_table(row, max_marks_row, width))

        if cfg.columns.personal_feedback is not None:
            story.append(Spacer(1, 4 * mm))
            story.append(Paragraph("Personal feedback", self.semibold))
            story.append(Spacer(1, 2 * mm))
            story.append(Paragraph(_text(record.feedback or NO_FEEDBACK_TEXT), self.body))

        story.append(Spacer(1, 4 * mm))
        story.extend(Paragraph(block, self.body) for block in cfg.footer)
        return story

    def render(self, record: StudentRecord, row: list[str], max_marks_row: list[str]) -> Path:
        """Write the PDF for one student and return its path (overwrites).

        Raises:
            RenderError: on layout, markup or file system failures
        """
        path = self.output_path(record)
        cfg = self.config
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            doc = SimpleDocTemplate(
                str(path),
                pagesize=A4,
                leftMargin=20 * mm,
                rightMargin=20 * mm,
                topMargin=20 * mm,
                bottomMargin=20 * mm,
                title=f"{cfg.assignment_name} feedback",
                author=cfg.coordinator_name,
                creator=self.creator,
                invariant=1,  # 再実行で同一内容 (日付/ID を固定)
            )
            doc.build(self._story(record, row, max_marks_row, doc.width))
        except (OSError, ValueError, LayoutError) as e:
            raise RenderError(f"{path.name}: {e}") from e
        return path
