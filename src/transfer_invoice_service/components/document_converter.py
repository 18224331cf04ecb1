#!/usr/bin/env python3
"""
Transfer Invoice Service
Component: Document Converter - rasterizes a filled spreadsheet to PDF with headless LibreOffice.
"""

import logging
import subprocess
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from ..config import ServiceConfig
from ..exceptions import ConversionFailed


class ConversionGate:
    """
    Single-permit lock around soffice invocations.

    soffice corrupts output when started again too soon on the same working
    directory, so after every release the next holder waits out the rest of
    the settle window before it proceeds.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._released_at: Optional[float] = None

    @contextmanager
    def hold(self, settle_delay: float):
        with self._lock:
            if self._released_at is not None:
                remaining = settle_delay - (time.monotonic() - self._released_at)
                if remaining > 0:
                    time.sleep(remaining)
            try:
                yield
            finally:
                self._released_at = time.monotonic()


# Shared by every converter in the process: single and batch requests alike.
CONVERSION_GATE = ConversionGate()


def pdf_path_for(spreadsheet_path: Path) -> Path:
    """Same directory and stem as the input, with a .pdf extension."""
    return Path(spreadsheet_path).with_suffix(".pdf")


class DocumentConverter:
    """Runs soffice as a child process, one conversion at a time"""

    def __init__(self, config: ServiceConfig, gate: ConversionGate = CONVERSION_GATE):
        self.config = config
        self._gate = gate

    def build_command(self, spreadsheet_path: Path) -> List[str]:
        return [
            self.config.soffice_path,
            "--headless",
            "--convert-to", "pdf",
            str(spreadsheet_path),
            "--outdir", str(spreadsheet_path.parent),
        ]

    def convert(self, spreadsheet_path: Path) -> Path:
        """
        Converts one spreadsheet to PDF. The input file is left in place.

        Raises:
            ConversionFailed: On spawn failure, timeout, non-zero exit or missing output
        """
        spreadsheet_path = Path(spreadsheet_path)
        pdf_path = pdf_path_for(spreadsheet_path)
        command = self.build_command(spreadsheet_path)

        with self._gate.hold(self.config.settle_delay):
            logging.info(f"Converting {spreadsheet_path.name} to PDF")
            try:
                result = subprocess.run(
                    command,
                    check=True,
                    capture_output=True,
                    text=True,
                    encoding='utf-8',
                    errors='replace',
                    timeout=self.config.conversion_timeout,
                )
            except subprocess.CalledProcessError as e:
                diagnostic = ((e.stderr or '') + (e.stdout or '')).strip() or None
                logging.error(f"soffice exited with code {e.returncode} for {spreadsheet_path.name}: {diagnostic}")
                raise ConversionFailed(
                    f"PDF conversion failed (exit code {e.returncode})"
                    + (f": {diagnostic}" if diagnostic else ""),
                    diagnostic=diagnostic,
                ) from e
            except subprocess.TimeoutExpired as e:
                logging.error(f"soffice timed out after {e.timeout}s for {spreadsheet_path.name}")
                raise ConversionFailed(f"PDF conversion timed out after {e.timeout} seconds") from e
            except OSError as e:
                logging.error(f"Could not start soffice at '{self.config.soffice_path}': {e}")
                raise ConversionFailed(
                    "PDF conversion failed. Please ensure LibreOffice is installed and accessible.",
                    diagnostic=str(e),
                ) from e

        if not pdf_path.is_file():
            diagnostic = ((result.stderr or '') + (result.stdout or '')).strip() or None
            raise ConversionFailed(
                f"PDF conversion produced no output at {pdf_path.name}",
                diagnostic=diagnostic,
            )

        return pdf_path
