from __future__ import annotations

import dataclasses
import smtplib
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from marks_to_pdf.models.config_models import ReportConfig, SmtpConfig
from marks_to_pdf.models.student_record import StudentRecord
from marks_to_pdf.services.mailer import (
    MAIL_MODE_COORDINATOR,
    MAIL_MODE_STUDENTS,
    MailerError,
    SmtpMailer,
    build_message,
    recipient_for,
)

RECORD = StudentRecord(1, "123456", "Ada", "Lovelace", "ada@student.example.edu")


@pytest.fixture()
def pdf_file(tmp_path: Path) -> Path:
    p = tmp_path / "Project 1 - 123456.pdf"
    p.write_bytes(b"%PDF-1.4 test")
    return p


def test_recipient_for_modes(report_config: ReportConfig):
    assert recipient_for(report_config, RECORD, MAIL_MODE_COORDINATOR) == "coord@example.edu"
    assert recipient_for(report_config, RECORD, MAIL_MODE_STUDENTS) == "ada@student.example.edu"


def test_build_message(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "ada@student.example.edu", pdf_file)
    assert msg["To"] == "ada@student.example.edu"
    assert msg["Subject"] == "Project 1 feedback"
    # 表示名の " は ' に置換される
    assert "Alan 'Al' Thomas" in msg["From"]
    assert "<coord@example.edu>" in msg["From"]
    assert msg.get_body(("plain",)).get_content() == "Hi,\n\nYour Project 1 feedback is attached.\n"
    attachments = list(msg.iter_attachments())
    assert len(attachments) == 1
    assert attachments[0].get_filename() == "Project 1 - 123456.pdf"
    assert attachments[0].get_content_type() == "application/pdf"
    assert attachments[0].get_content() == b"%PDF-1.4 test"


def test_open_uses_starttls_and_login():
    smtp_cfg = SmtpConfig(host="smtp.example.edu", user="coord", port=587)
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_smtp:
        mailer = SmtpMailer(smtp_cfg, "secret")
        mailer.open()
        mock_smtp.assert_called_once_with("smtp.example.edu", 587, timeout=30.0)
        conn = mock_smtp.return_value
        conn.starttls.assert_called_once()
        conn.login.assert_called_once_with("coord", "secret")
        assert mailer.is_open
        mailer.close()
        conn.quit.assert_called_once()


def test_open_secure_uses_smtp_ssl():
    smtp_cfg = SmtpConfig(host="smtp.example.edu", user="coord", port=465, secure=True)
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP_SSL") as mock_ssl, \
         patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_plain:
        SmtpMailer(smtp_cfg, "secret").open()
        mock_ssl.assert_called_once()
        mock_plain.assert_not_called()
        mock_ssl.return_value.starttls.assert_not_called()


def test_open_failure_raises_mailer_error():
    smtp_cfg = SmtpConfig(host="smtp.example.edu", user="coord")
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_smtp:
        conn = mock_smtp.return_value
        conn.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        mailer = SmtpMailer(smtp_cfg, "wrong")
        with pytest.raises(MailerError, match="smtp.example.edu:587"):
            mailer.open()
        conn.close.assert_called_once()
        assert not mailer.is_open


def test_open_connection_refused():
    smtp_cfg = SmtpConfig(host="smtp.example.edu", user="coord")
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
        with pytest.raises(MailerError):
            SmtpMailer(smtp_cfg, "secret").open()


def test_send_outcomes(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "coord@example.edu", pdf_file)
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_smtp:
        conn = mock_smtp.return_value
        conn.send_message.side_effect = [
            {},
            {"coord@example.edu": (550, b"mailbox unavailable")},
            smtplib.SMTPServerDisconnected("gone"),
            smtplib.SMTPServerDisconnected("gone again"),
        ]
        mailer = SmtpMailer(report_config.smtp, "secret")
        mailer.open()

        ok = mailer.send(msg)
        refused = mailer.send(msg)
        broken = mailer.send(msg)

    assert ok.ok and ok.recipient == "coord@example.edu" and ok.error is None
    assert not refused.ok and "rejected" in refused.error
    # 再接続後の再送も失敗した場合のみ失敗扱い
    assert not broken.ok and broken.error == "gone again"
    assert mock_smtp.call_count == 2


def test_send_when_closed(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "coord@example.edu", pdf_file)
    outcome = SmtpMailer(report_config.smtp, "secret").send(msg)
    assert not outcome.ok
    assert "not open" in outcome.error


def test_close_is_idempotent_and_falls_back():
    conn = MagicMock()
    conn.quit.side_effect = smtplib.SMTPServerDisconnected("gone")
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP", return_value=conn):
        mailer = SmtpMailer(SmtpConfig(host="h", user="u", starttls=False), None)
        mailer.open()
        mailer.close()
        mailer.close()
    conn.quit.assert_called_once()
    conn.close.assert_called_once()
    # パスワード無しならログインしない
    conn.login.assert_not_called()
    conn.starttls.assert_not_called()


def test_context_manager(report_config: ReportConfig):
    smtp_cfg = dataclasses.replace(report_config.smtp, timeout=5.0)
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_smtp:
        with SmtpMailer(smtp_cfg, "secret") as mailer:
            assert mailer.is_open
        mock_smtp.assert_called_once_with("smtp.example.edu", 587, timeout=5.0)
        mock_smtp.return_value.quit.assert_called_once()


def test_send_reconnects_after_server_disconnect(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "coord@example.edu", pdf_file)
    dropped, fresh = MagicMock(), MagicMock()
    dropped.send_message.side_effect = smtplib.SMTPServerDisconnected("please run connect() first")
    fresh.send_message.return_value = {}
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP", side_effect=[dropped, fresh]) as mock_smtp:
        mailer = SmtpMailer(report_config.smtp, "secret")
        mailer.open()
        first = mailer.send(msg)
        second = mailer.send(msg)

    assert first.ok and second.ok
    assert mock_smtp.call_count == 2
    dropped.close.assert_called_once()
    fresh.login.assert_called_once_with("coord", "secret")
    assert fresh.send_message.call_count == 2
    assert mailer.is_open


def test_failed_reconnect_is_retried_on_next_send(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "coord@example.edu", pdf_file)
    dropped, later = MagicMock(), MagicMock()
    dropped.send_message.side_effect = smtplib.SMTPServerDisconnected("gone")
    later.send_message.return_value = {}
    with patch(
        "marks_to_pdf.services.mailer.smtplib.SMTP",
        side_effect=[dropped, ConnectionRefusedError("down"), later],
    ):
        mailer = SmtpMailer(report_config.smtp, "secret")
        mailer.open()
        failed = mailer.send(msg)
        assert not mailer.is_open
        recovered = mailer.send(msg)

    assert not failed.ok and "cannot connect to SMTP server" in failed.error
    assert recovered.ok
    later.send_message.assert_called_once()


def test_send_after_close_does_not_reconnect(report_config: ReportConfig, pdf_file: Path):
    msg = build_message(report_config, "coord@example.edu", pdf_file)
    with patch("marks_to_pdf.services.mailer.smtplib.SMTP") as mock_smtp:
        mailer = SmtpMailer(report_config.smtp, "secret")
        mailer.open()
        mailer.close()
        outcome = mailer.send(msg)
    assert not outcome.ok and "not open" in outcome.error
    assert mock_smtp.call_count == 1
