from __future__ import annotations

import argparse
import getpass
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from .. import VERSION_STRING
from ..config.loader import ConfigError, load_config
from ..logging.init import set_debug, setup_logging
from ..logging.run_log import RunLogFile, sidecar_log_path
from ..services.classifier import parse_ids_filter
from ..services.mailer import MAIL_MODE_STUDENTS, MailerError, SmtpMailer
from ..services.renderer import PdfRenderer, RenderError
from ..services.sequencer import ProcessingError, process_batch
from ..sheet.reader import SheetError, ensure_columns_in_range, read_marks_file, split_max_marks_row

"""CLI entrypoint.

Flow:
- Parse arguments (usage + non-zero exit on bad input)
- Load and validate the config (mail keys only in mail modes)
- Read the marks spreadsheet and check it against the config
- Mail modes: confirm whole-class sends, get the SMTP password, verify the
  connection, open the sidecar run log
- Run the batch and log the summary line
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1

PASSWORD_ENV = "MARKS_TO_PDF_SMTP_PASSWORD"
CONFIRM_WORD = "sure"

USAGE_EPILOG = """\
--mail 1: send all the emails to the subject coordinator
--mail 2: actually send an email to each student
"""


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="marks-to-pdf",
        description="Generate per-student feedback PDFs from a marks spreadsheet",
        epilog=USAGE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--ids", help="only generate PDFs for the given comma-separated student IDs")
    p.add_argument(
        "--mail", type=int, choices=(0, 1, 2), default=0,
        help="whether to email the generated PDFs (default: 0, no email)",
    )
    p.add_argument("--config", required=True, help="the config file for this assignment (JSON or YAML)")
    p.add_argument("--csv", required=True, help="the CSV file containing the marks data")
    p.add_argument("--out-dir", default=".", help="directory to write the PDFs to (default: current directory)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (SMTP password may live there)."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _confirm_whole_class(logger) -> bool:
    logger.warning("You are about to send emails to the ENTIRE class.")
    logger.warning("If you only want to send emails to some students, set the --ids parameter.")
    try:
        answer = input(f'To proceed, type "{CONFIRM_WORD}": ')
    except EOFError:
        return False
    return answer.strip() == CONFIRM_WORD


def _smtp_password() -> str:
    password = os.getenv(PASSWORD_ENV)
    if password:
        return password
    return getpass.getpass("Enter your email password: ")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # argv=[] (テスト) のとき sys.argv を読まない
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    logger.info(VERSION_STRING)
    _load_env_file(Path(".env"), override=True)

    mail_mode: int = args.mail
    ids_filter = parse_ids_filter(args.ids)
    config_path = Path(args.config)

    try:
        cfg = load_config(config_path, mail_mode)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        rows = read_marks_file(Path(args.csv))
        split_max_marks_row(rows, cfg.max_marks_row_index)
        ensure_columns_in_range(rows, cfg.columns.indexes())
    except SheetError as e:
        logger.error(f"csv: {e}")
        return EXIT_FATAL

    try:
        renderer = PdfRenderer(cfg, Path(args.out_dir))
    except RenderError as e:
        logger.error(f"fonts: {e}")
        return EXIT_FATAL

    if mail_mode == MAIL_MODE_STUDENTS and ids_filter is None:
        if not _confirm_whole_class(logger):
            logger.info("Aborted.")
            return EXIT_FATAL

    mailer: SmtpMailer | None = None
    run_log: RunLogFile | None = None
    if mail_mode > 0:
        if cfg.smtp is None:
            logger.error("config: smtp settings are required for --mail 1 and --mail 2")
            return EXIT_FATAL
        mailer = SmtpMailer(cfg.smtp, _smtp_password())
        try:
            mailer.open()
        except MailerError as e:
            logger.error(f"smtp: {e}")
            return EXIT_FATAL
        logger.info("Successfully connected to SMTP server")
        run_log = RunLogFile(logger, sidecar_log_path(config_path))
        run_log.open()
        logger.debug(f"run log: {run_log.path}")
    else:
        logger.info("S = skipped, x = invalid student ID")
    logger.info("")

    try:
        process_batch(
            cfg,
            rows,
            renderer,
            mail_mode=mail_mode,
            mailer=mailer,
            ids_filter=ids_filter,
        )
    except (ProcessingError, SheetError) as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    finally:
        if run_log is not None:
            run_log.close()

    return EXIT_SUCCESS

