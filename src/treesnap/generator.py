"""Snapshot generation: template header, encoded folders, template footer."""

import logging
import threading
from datetime import datetime
from typing import Optional, TextIO

from .core import GenerationOptions, GenerationResult, ScanResult
from .errors import OutputError, TemplateError
from .serializer import WriteProgress, write_dir_data
from .templates import apply_replacements, load_template, split_template

logger = logging.getLogger(__name__)


def write_snapshot(
    scan_result: ScanResult,
    writer: TextIO,
    header: str,
    footer: str,
    start_index: int = 0,
    progress: Optional[WriteProgress] = None,
    cancel: Optional[threading.Event] = None,
) -> bool:
    """Write header, encoded folders and footer to any text sink.

    Returns:
        True if complete, False if cancelled (the footer is not written)
    """
    writer.write(header)
    if cancel is not None and cancel.is_set():
        return False
    if not write_dir_data(scan_result.folders, writer, start_index, cancel, progress):
        return False
    writer.write(footer)
    return True


def generate_snapshot(
    scan_result: ScanResult,
    options: GenerationOptions,
    progress: Optional[WriteProgress] = None,
    cancel: Optional[threading.Event] = None,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """Render a scan result into the output file named by ``options``.

    Template problems are reported before the output file is created. Write
    failures after that are reported as errors; bytes already written stay.

    Returns:
        GenerationResult with exactly one of success, cancelled or error
    """
    try:
        template = load_template(options.template_path)
        template = apply_replacements(template, scan_result, options, now)
        header, footer = split_template(template)
    except (TemplateError, OSError) as e:
        return GenerationResult.failure(f"Failed to load template: {e}", scan=scan_result)

    if cancel is not None and cancel.is_set():
        return GenerationResult.cancelled(scan=scan_result)

    try:
        with open(options.output_file, "w", encoding="utf-8", errors="replace", newline="\n") as f:
            completed = write_snapshot(
                scan_result, f, header, footer,
                progress=progress, cancel=cancel,
            )
    except OSError as e:
        error = OutputError(options.output_file, str(e))
        logger.error("%s", error)
        return GenerationResult.failure(str(error), scan=scan_result)

    if not completed:
        logger.info("Snapshot generation cancelled; partial output left at %s", options.output_file)
        return GenerationResult.cancelled(scan=scan_result)

    return GenerationResult.success(options.output_file, scan=scan_result)
