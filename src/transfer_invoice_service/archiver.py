#!/usr/bin/env python3
"""
Transfer Invoice Service
Batch Archiver: runs the single-invoice pipeline over a batch and zips the results
"""

import logging
import uuid
import zipfile
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List

from .config import ServiceConfig
from .exceptions import ArchiveFailed, BatchFailed, PerRecordGenerationFailed
from .models import InvoiceRecord
from .pipeline import InvoicePipeline, discard
from .result import BatchResult, GeneratedFile, RecordFailure

ERRORS_ENTRY = "_errors.txt"


def archive_date_prefix(day: date) -> str:
    return day.strftime("%y%m%d")


def download_name(archive_path: Path) -> str:
    """
    User-facing archive name, `YYMMDD.zip`, taken from the creation date
    embedded in the temp file name.
    """
    return f"{Path(archive_path).stem.split('_')[0]}.zip"


def _unique_name(name: str, used: set) -> str:
    # Repeated invoice numbers get a numeric suffix instead of a duplicate zip entry.
    candidate = name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 2
    while candidate in used:
        candidate = f"{stem}_{counter}{suffix}"
        counter += 1
    used.add(candidate)
    return candidate


class BatchArchiver:
    """
    Drives InvoicePipeline over a batch, strictly one record at a time.

    The converter's settle window spaces consecutive conversions, so no
    additional sleep happens here.
    """

    def __init__(self, config: ServiceConfig, pipeline: InvoicePipeline, today: Callable[[], date] = date.today):
        self.config = config
        self.pipeline = pipeline
        self._today = today

    def _generate_one(self, record: InvoiceRecord) -> GeneratedFile:
        try:
            pdf_path = self.pipeline.generate(record)
        except Exception as e:
            raise PerRecordGenerationFailed(record.invoice_num, e) from e
        return GeneratedFile(path=pdf_path, logical_name=record.pdf_name)

    def generate_all(self, records: Iterable[InvoiceRecord]) -> BatchResult:
        """Runs every record; one record's failure never stops the loop."""
        result = BatchResult()
        for record in records:
            try:
                result.succeeded.append(self._generate_one(record))
            except PerRecordGenerationFailed as failure:
                logging.error(f"Failed to generate PDF for invoice {failure.invoice_num}", exc_info=failure.cause)
                result.failed.append(RecordFailure(failure.invoice_num, str(failure.cause) or "Unknown error"))
        return result

    def archive_all(self, records: List[InvoiceRecord]) -> Path:
        """
        Generates every record and packs the PDFs into one zip archive.

        Returns:
            Path to the archive in the tmp directory; the caller owns it

        Raises:
            BatchFailed: If not a single record could be generated
            ArchiveFailed: If the archive could not be written
        """
        created_on = self._today()
        archive_path = self.config.tmp_dir / f"{archive_date_prefix(created_on)}_{uuid.uuid4().hex[:8]}.zip"

        result = self.generate_all(records)
        try:
            if not result.succeeded:
                details = "\n".join(failure.to_line() for failure in result.failed)
                raise BatchFailed(
                    f"No PDFs were successfully generated. Errors:\n{details}",
                    failures=result.failed,
                )
            self._write_archive(result, archive_path)
        finally:
            for generated in result.succeeded:
                discard(generated.path)

        if result.has_failures:
            logging.warning(
                f"Some PDFs failed to generate ({len(result.failed)} of {len(result.failed) + len(result.succeeded)}): "
                + "; ".join(failure.to_line() for failure in result.failed)
            )
        logging.info(f"Archived {len(result.succeeded)} invoice(s) into {archive_path.name}")
        return archive_path

    def _write_archive(self, result: BatchResult, archive_path: Path):
        try:
            with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED, compresslevel=9) as zip_file:
                used_names = set()
                for generated in result.succeeded:
                    arcname = _unique_name(generated.logical_name, used_names)
                    zip_file.write(generated.path, arcname=arcname)
                if result.has_failures:
                    zip_file.writestr(ERRORS_ENTRY, result.error_report())
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            discard(archive_path)
            raise ArchiveFailed(f"Failed to create zip file: {e}") from e
