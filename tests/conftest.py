# Shared pytest fixtures
from __future__ import annotations
import json
import tempfile
from pathlib import Path

import pytest

from marks_to_pdf.config.loader import load_config, strip_json_comments
from marks_to_pdf.logging.init import reset_logging
from marks_to_pdf.models.config_models import ReportConfig


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "out").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_text() -> str:
    # コメント付き JSON (URL 内の // は残ること)
    return """{
  // COMP10001 project 1
  "header": [
    "<b>COMP10001 Foundations of Computing</b>",
    "School of Computing and Information Systems"
  ],
  "footer": "Marks are provisional. See https://example.edu/marks for the release date.",
  "assignmentName": "Project 1",
  "subjectCoordName": "Alan \\"Al\\" Thomas",
  "maxMarksRowIndex": 1,
  "columns": {
    "studentNumber": "A",
    "studentFirstName": "B",
    "studentLastName": "C",
    "studentEmail": "D",
    /* criteria are rendered in this order */
    "criteriaSections": {
      "Code quality": {"Structure": "E", "Comments": "F"},
      "Correctness": {"Tests pass": "G"}
    },
    "totalMarks": "H",
    "personalFeedback": "I"
  },
  "subjectCoordEmail": "coord@example.edu",
  "smtp": {"host": "smtp.example.edu", "port": 587, "user": "coord"},
  "emailSubject": "Project 1 feedback",
  "emailBody": ["Hi,", "", "Your Project 1 feedback is attached."],
  "pacing": {"skipSeconds": 0, "renderSeconds": 0, "mailSeconds": 0}
}
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_text: str) -> Path:
    cfg = temp_workdir / "config" / "project1.json"
    cfg.write_text(sample_config_text, encoding="utf-8")
    return cfg


@pytest.fixture()
def config_dict(sample_config_text: str) -> dict:
    return json.loads(strip_json_comments(sample_config_text))


@pytest.fixture()
def report_config(write_config: Path) -> ReportConfig:
    return load_config(write_config, mail_mode=1)


# max-marks 行 + 学生 3 行 (有効 / 空行 / 不正な学籍番号)
SAMPLE_ROWS = [
    ["", "", "", "", "5", "5", "10", "20", ""],
    ["123456", "Ada", "Lovelace", "ada@student.example.edu", "4", "5", "9", "18", "Great work"],
    ["", "", "", "", "", "", "", "", ""],
    ["abc", "Bob", "Builder", "bob@student.example.edu", "3", "3", "5", "11", ""],
]

# mail モード用: 有効な学生 2 名
MAIL_ROWS = [
    ["", "", "", "", "5", "5", "10", "20", ""],
    ["123456", "Ada", "Lovelace", "ada@student.example.edu", "4", "5", "9", "18", "Great work"],
    ["234567", "Grace", "Hopper", "grace@student.example.edu", "5", "4", "10", "19", ""],
    ["345678", "Alan", "Turing", "not-an-address", "2", "2", "4", "8", "See me"],
]


def _write_csv(path: Path, rows: list[list[str]]) -> Path:
    path.write_text("\n".join(",".join(r) for r in rows) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def sample_rows() -> list[list[str]]:
    return [list(r) for r in SAMPLE_ROWS]


@pytest.fixture()
def mail_rows() -> list[list[str]]:
    return [list(r) for r in MAIL_ROWS]


@pytest.fixture()
def write_csv(temp_workdir: Path) -> Path:
    return _write_csv(temp_workdir / "data" / "marks.csv", SAMPLE_ROWS)


@pytest.fixture()
def write_mail_csv(temp_workdir: Path) -> Path:
    return _write_csv(temp_workdir / "data" / "marks_mail.csv", MAIL_ROWS)
