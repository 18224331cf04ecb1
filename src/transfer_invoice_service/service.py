#!/usr/bin/env python3
"""
Transfer Invoice Service
Main InvoiceService Class - wires the components together behind one facade
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .archiver import BatchArchiver, download_name
from .components.document_converter import DocumentConverter
from .components.record_reader import TransferSheetReader
from .components.template_filler import TemplateFiller
from .config import ServiceConfig
from .exceptions import InvoiceGenerationError
from .models import InvoiceRecord
from .pipeline import InvoicePipeline


class InvoiceService:
    """
    Entry point used by the HTTP layer and the CLI. Builds the filler,
    converter, pipeline and archiver from one configuration.
    """

    def __init__(
        self,
        config: ServiceConfig,
        converter: Optional[DocumentConverter] = None,
        today: Callable[[], date] = date.today,
    ):
        self.config = config.ensure_directories()
        self.filler = TemplateFiller(config, today=today)
        self.converter = converter or DocumentConverter(config)
        self.pipeline = InvoicePipeline(self.filler, self.converter)
        self.archiver = BatchArchiver(config, self.pipeline, today=today)
        self.reader = TransferSheetReader()

    def generate_invoice(self, record: InvoiceRecord) -> Path:
        """Generates a single PDF. The caller must delete the returned file."""
        return self.pipeline.generate(record)

    def generate_archive(self, records: List[InvoiceRecord]) -> Path:
        """Generates a zip of PDFs. The caller must delete the returned file."""
        logging.info(f"InvoiceService: generating archive for {len(records)} record(s)")
        return self.archiver.archive_all(records)

    def archive_download_name(self, archive_path: Path) -> str:
        return download_name(archive_path)

    def read_transfer_sheet(self, source: Union[str, Path, bytes]) -> Tuple[List[InvoiceRecord], List[str]]:
        return self.reader.read(source)

    def check_template(self) -> bool:
        """
        Validates the template at start-up. Problems are logged, not raised,
        so the service can still start and report errors per request.
        """
        try:
            tax_rate = self.filler.validate_template()
        except InvoiceGenerationError as e:
            logging.error(f"Invoice template check failed: {e}")
            return False
        logging.info(f"Invoice template OK ({self.config.template_path}), default tax rate {tax_rate}")
        return True
