"""Application startup and command-line entry point.

Orchestrates configuration parsing, logging setup and one extraction run
over a transcript or invoice text file.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from app.application import Application
from config.service import ConfigurationServiceFactory
from core.exceptions import ConfigurationError
from extraction.invoice_header import parse_invoice_header
from extraction.models import RawTextBlock, SourceType
from extraction.text_utils import detect_language

LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}"


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Replace loguru's default sink with a stderr sink at ``level``.

    When ``log_dir`` is given, a rotating file sink is added as well.
    """
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            str(Path(log_dir) / "inventory_{time}.log"),
            format=LOG_FORMAT,
            level=level,
            rotation="10 MB",
            retention=10,
        )


def _parse_run_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract inventory items from a transcript or invoice text")
    parser.add_argument("--input", required=True, help="Text file to read, '-' for stdin")
    parser.add_argument("--source", choices=[s.value for s in SourceType], default=SourceType.VOICE.value)
    parser.add_argument("--location", default="", help="Inventory location of this run")
    parser.add_argument("--period", default="", help="Inventory period (e.g. 2026-10)")
    parser.add_argument("--commit", action="store_true", help="Finalize, reconcile and write to the sink")
    parser.add_argument("--log-dir", help="Directory for rotating log files")
    return parser.parse_args(argv)


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Run one extraction; returns the process exit code.

    Steps:
    1. Parse configuration from all sources (defaults, files, env, CLI)
    2. Configure logging
    3. Extract items from the input text against the catalog
    4. Optionally finalize the review session and reconcile it to the sink
    """
    argv = sys.argv[1:] if argv is None else argv
    try:
        config_service, unknown_args = ConfigurationServiceFactory.create_from_args(argv)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    args = _parse_run_args(unknown_args)
    configure_logging(config_service.log_level, args.log_dir)

    app = Application(config_service, period=args.period)
    app.install()
    app.log_session_info()

    source = SourceType(args.source)
    text = _read_input(args.input)
    block = RawTextBlock(text, source, detect_language(text))

    extraction = app.extract_items.execute(block)
    if extraction.is_failure():
        logger.error(f"Extraction failed: {extraction.error}")
        return 1
    result = extraction.unwrap()

    output = {
        "items": [item.to_dict() for item in result.items],
        "skipped": [{"fragment": s.fragment, "reason": s.reason} for s in result.skipped],
    }
    if source is SourceType.INVOICE:
        output["invoice"] = vars(parse_invoice_header(text))

    if args.commit:
        session = app.start_review.execute(result, args.location, args.period).unwrap()
        batch = app.finalize_review.execute(session.session_id)
        if batch.is_failure():
            logger.error(f"Reconciliation failed: {batch.error}")
            return 1
        output["batch"] = batch.unwrap().to_dict()

    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0
