"""Batch services: classification, rendering, delivery and sequencing."""

from .classifier import classify, parse_ids_filter
from .mailer import MailerError, SmtpMailer
from .renderer import PdfRenderer, RenderError
from .sequencer import ProcessingError, Sequencer, process_batch, run_batch

__all__ = [
    "MailerError",
    "PdfRenderer",
    "ProcessingError",
    "RenderError",
    "Sequencer",
    "SmtpMailer",
    "classify",
    "parse_ids_filter",
    "process_batch",
    "run_batch",
]
