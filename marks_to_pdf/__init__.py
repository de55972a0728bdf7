"""Marks to PDF: per-student feedback PDFs from a marks spreadsheet."""

__version__ = "1.0"

VERSION_STRING = f"Marks to PDF {__version__}"
