from __future__ import annotations

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path

from ..models.config_models import ReportConfig, SmtpConfig
from ..models.processing_result import DeliveryOutcome
from ..models.student_record import StudentRecord

"""SMTP delivery of feedback PDFs.

One connection is opened (and verified with a login) before the batch
starts and closed once after the last row. A connection dropped by the
server during the pauses between sends is reopened and the message retried
once. Per-message failures are
returned as DeliveryOutcome(ok=False) so that one bad address never stops
the batch; only the initial connection failure is raised (MailerError).

Mail modes:
    1: every message goes to the subject coordinator (dry run)
    2: every message goes to the student's own address
"""

__all__ = [
    "MAIL_MODE_COORDINATOR",
    "MAIL_MODE_STUDENTS",
    "MailerError",
    "SmtpMailer",
    "build_message",
    "recipient_for",
]

MAIL_MODE_COORDINATOR = 1
MAIL_MODE_STUDENTS = 2


class MailerError(Exception):
    """Raised when the SMTP server cannot be reached or refuses the login."""


def recipient_for(config: ReportConfig, record: StudentRecord, mail_mode: int) -> str:
    if mail_mode == MAIL_MODE_STUDENTS:
        return record.email
    return config.coordinator_email or ""


def build_message(config: ReportConfig, recipient: str, pdf_path: Path) -> EmailMessage:
    """Build the outgoing message with the PDF attached."""
    msg = EmailMessage()
    # 表示名中の " は ' に置換
    msg["From"] = formataddr(
        (config.coordinator_name.replace('"', "'"), config.coordinator_email or "")
    )
    msg["To"] = recipient
    msg["Subject"] = config.email_subject or ""
    msg.set_content("\n".join(config.email_body))
    msg.add_attachment(
        pdf_path.read_bytes(),
        maintype="application",
        subtype="pdf",
        filename=pdf_path.name,
    )
    return msg


class SmtpMailer:
    """Single SMTP connection for one batch run."""

    def __init__(self, smtp: SmtpConfig, password: str | None) -> None:
        self.smtp = smtp
        self._password = password
        self._conn: smtplib.SMTP | None = None
        self._dropped = False  # 切断検知後、再接続待ち

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Connect and log in; this doubles as the transport verification.

        Raises:
            MailerError: on connection, TLS or authentication failure
        """
        if self._conn is not None:
            return
        cfg = self.smtp
        context = ssl.create_default_context()
        conn: smtplib.SMTP | None = None
        try:
            if cfg.secure:
                conn = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout, context=context)
            else:
                conn = smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout)
                if cfg.starttls:
                    conn.starttls(context=context)
            if cfg.user and self._password:
                conn.login(cfg.user, self._password)
        except (smtplib.SMTPException, OSError) as e:
            if conn is not None:
                try:
                    conn.close()
                except OSError:  # pragma: no cover
                    pass
            raise MailerError(f"cannot connect to SMTP server {cfg.host}:{cfg.port}: {e}") from e
        self._conn = conn

    def _reconnect(self) -> smtplib.SMTP:
        """Drop the current connection and open a fresh one.

        Raises:
            MailerError: when the server cannot be reached again
        """
        conn, self._conn = self._conn, None
        self._dropped = True
        if conn is not None:
            try:
                conn.close()
            except OSError:  # pragma: no cover
                pass
        self.open()
        reopened = self._conn
        if reopened is None:  # pragma: no cover
            raise MailerError("SMTP connection could not be reopened")
        self._dropped = False
        return reopened

    def send(self, message: EmailMessage) -> DeliveryOutcome:
        recipient = str(message["To"])
        if self._conn is None and not self._dropped:
            return DeliveryOutcome(ok=False, recipient=recipient, error="SMTP connection is not open")
        try:
            conn = self._conn if self._conn is not None else self._reconnect()
            try:
                refused = conn.send_message(message)
            except smtplib.SMTPServerDisconnected:
                # 送信間隔中にサーバ側で切断された: 再接続して一度だけ再送
                refused = self._reconnect().send_message(message)
        except MailerError as e:
            return DeliveryOutcome(ok=False, recipient=recipient, error=str(e))
        except (smtplib.SMTPException, OSError) as e:
            return DeliveryOutcome(ok=False, recipient=recipient, error=str(e) or type(e).__name__)
        if refused:
            return DeliveryOutcome(ok=False, recipient=recipient, error=f"rejected: {refused}")
        return DeliveryOutcome(ok=True, recipient=recipient)

    def close(self) -> None:
        self._dropped = False
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            conn.quit()
        except (smtplib.SMTPException, OSError):
            conn.close()

    def __enter__(self) -> SmtpMailer:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
