#!/usr/bin/env python3
"""
Transfer Invoice Service
Single-invoice pipeline: Template Filler -> Document Converter -> cleanup
"""

import logging
from pathlib import Path

from .components.document_converter import DocumentConverter
from .components.template_filler import TemplateFiller
from .models import InvoiceRecord


def discard(path: Path) -> bool:
    """Deletes a temp file. Failures are logged, never raised."""
    try:
        Path(path).unlink(missing_ok=True)
        return True
    except OSError as e:
        logging.warning(f"Failed to clean up file {path}: {e}")
        return False


class InvoicePipeline:
    """Produces one PDF from one record. The caller owns the returned file."""

    def __init__(self, filler: TemplateFiller, converter: DocumentConverter):
        self.filler = filler
        self.converter = converter

    def generate(self, record: InvoiceRecord) -> Path:
        """
        Args:
            record: The validated invoice record

        Returns:
            Path to the generated PDF

        Raises:
            TemplateMissing, TemplateMalformed, ConversionFailed
        """
        spreadsheet_path = self.filler.fill(record)
        try:
            pdf_path = self.converter.convert(spreadsheet_path)
        finally:
            discard(spreadsheet_path)

        logging.info(f"Generated PDF for invoice '{record.invoice_num}' at {pdf_path}")
        return pdf_path
