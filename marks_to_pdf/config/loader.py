from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ColumnMap,
    CriteriaSection,
    FontConfig,
    Pacing,
    ReportConfig,
    SmtpConfig,
)
from ..sheet.columns import InvalidColumnReference, column_to_index

"""Assignment config loader.

Responsibilities:
- Load the config document (JSON with // and /* */ comments, or YAML)
- Validate required keys against config_schema.json, plus
  mail_config_schema.json when mailing is enabled
- Resolve spreadsheet column letters to indexes
- Return a frozen ReportConfig; every failure is a ConfigError
"""

_here = Path(__file__).parent
SCHEMA_PATH = _here / "config_schema.json"
MAIL_SCHEMA_PATH = _here / "mail_config_schema.json"

YAML_SUFFIXES = {".yml", ".yaml"}


class ConfigError(Exception):
    pass


def strip_json_comments(text: str) -> str:
    """Blank out // line comments and /* */ block comments outside strings.

    Comment characters are replaced by spaces (newlines kept) so JSON error
    positions still point at the original line and column.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            out.append(" " * (end - i))
            i = end
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append("".join(c if c == "\n" else " " for c in text[i:end]))
            i = end
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
    try:
        return json.loads(strip_json_comments(text))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid json: {e}") from e


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    """Validate config data against a bundled JSON schema.

    Raises:
        ConfigError: if the schema file is missing/broken or the data fails validation
    """
    if not schema_path.exists():
        raise ConfigError(f"config schema not found: {schema_path}")
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path)
        prefix = f"{where}: " if where else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def _text_block(value: str | list[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(value)


def _resolve(field: str, reference: str) -> int:
    try:
        return column_to_index(reference)
    except InvalidColumnReference as e:
        raise ConfigError(f"columns.{field}: {e}") from e


def _build_columns(raw: dict[str, Any]) -> ColumnMap:
    sections: list[CriteriaSection] = []
    for title, criteria in raw["criteriaSections"].items():
        resolved = tuple(
            (criterion, _resolve(f"criteriaSections.{title}.{criterion}", ref))
            for criterion, ref in criteria.items()
        )
        sections.append(CriteriaSection(title=title, criteria=resolved))

    feedback_ref = raw.get("personalFeedback")
    email_ref = raw.get("studentEmail")
    return ColumnMap(
        student_number=_resolve("studentNumber", raw["studentNumber"]),
        first_name=_resolve("studentFirstName", raw["studentFirstName"]),
        last_name=_resolve("studentLastName", raw["studentLastName"]),
        criteria_sections=tuple(sections),
        total_marks=_resolve("totalMarks", raw["totalMarks"]),
        personal_feedback=_resolve("personalFeedback", feedback_ref) if feedback_ref else None,
        # PDF のみのモードでは email 列は任意
        student_email=_resolve("studentEmail", email_ref) if email_ref else None,
    )


def _build_smtp(raw: dict[str, Any]) -> SmtpConfig:
    user = raw.get("user") or (raw.get("auth") or {}).get("user")
    return SmtpConfig(
        host=raw["host"],
        user=user,
        port=int(raw.get("port", 587)),
        secure=bool(raw.get("secure", False)),
        starttls=bool(raw.get("starttls", True)),
        timeout=float(raw.get("timeout", 30.0)),
    )


def load_config(path: Path, mail_mode: int = 0) -> ReportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    data = _read_document(path)
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be an object")

    _validate_schema(data, SCHEMA_PATH)
    mail_enabled = mail_mode > 0
    if mail_enabled:
        _validate_schema(data, MAIL_SCHEMA_PATH)

    pacing_raw = data.get("pacing", {})
    defaults = Pacing()
    pacing = Pacing(
        skip_seconds=float(pacing_raw.get("skipSeconds", defaults.skip_seconds)),
        render_seconds=float(pacing_raw.get("renderSeconds", defaults.render_seconds)),
        mail_seconds=float(pacing_raw.get("mailSeconds", defaults.mail_seconds)),
    )
    fonts_raw = data.get("fonts", {})

    return ReportConfig(
        header=_text_block(data["header"]),
        footer=_text_block(data["footer"]),
        assignment_name=data["assignmentName"],
        coordinator_name=data["subjectCoordName"],
        max_marks_row_index=data["maxMarksRowIndex"],
        columns=_build_columns(data["columns"]),
        coordinator_email=data.get("subjectCoordEmail"),
        smtp=_build_smtp(data["smtp"]) if mail_enabled else None,
        email_subject=data.get("emailSubject"),
        email_body=tuple(data.get("emailBody", ())),
        pacing=pacing,
        fonts=FontConfig(
            regular=fonts_raw.get("regular"),
            bold=fonts_raw.get("bold"),
            semibold=fonts_raw.get("semibold"),
        ),
    )
