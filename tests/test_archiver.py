"""
Unit tests for the BatchArchiver: partial failures, total failure and archive I/O errors.
"""

import zipfile
from unittest.mock import patch

import pytest

from conftest import FIXED_DAY, FakeConverter, make_record, tmp_files
from transfer_invoice_service.archiver import BatchArchiver, download_name
from transfer_invoice_service.components.template_filler import TemplateFiller
from transfer_invoice_service.exceptions import ArchiveFailed, BatchFailed
from transfer_invoice_service.pipeline import InvoicePipeline


def _archiver(config, converter):
    pipeline = InvoicePipeline(TemplateFiller(config, today=lambda: FIXED_DAY), converter)
    return BatchArchiver(config, pipeline, today=lambda: FIXED_DAY)


class TestBatchArchiver:
    """Test archive_all end to end with a fake converter."""

    def test_all_records_archived(self, config, template, fake_converter):
        records = [make_record(f"INV-00{i}") for i in (1, 2, 3)]
        archive_path = _archiver(config, fake_converter).archive_all(records)

        with zipfile.ZipFile(archive_path) as archive:
            assert archive.namelist() == ["INV-001.pdf", "INV-002.pdf", "INV-003.pdf"]
            assert archive.read("INV-002.pdf").startswith(b"%PDF")
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist())
        assert tmp_files(config) == [archive_path.name]

    def test_records_processed_in_order(self, config, template, fake_converter):
        records = [make_record(n) for n in ("C-3", "A-1", "B-2")]
        _archiver(config, fake_converter).archive_all(records)
        assert fake_converter.converted == ["C-3", "A-1", "B-2"]

    def test_partial_failure_adds_error_manifest(self, config, template):
        converter = FakeConverter(fail_for={"INV-002"})
        records = [make_record(f"INV-00{i}") for i in (1, 2, 3)]
        archive_path = _archiver(config, converter).archive_all(records)

        with zipfile.ZipFile(archive_path) as archive:
            assert sorted(archive.namelist()) == ["INV-001.pdf", "INV-003.pdf", "_errors.txt"]
            report = archive.read("_errors.txt").decode("utf-8").splitlines()
        assert report[0] == "Failed to generate the following PDFs:"
        assert report[1:] == ["INV-002: soffice crashed on INV-002"]
        assert tmp_files(config) == [archive_path.name]

    def test_missing_sheet_for_one_record(self, config, template, fake_converter, monkeypatch):
        original_load = TemplateFiller._load
        calls = {"count": 0}

        def load_dropping_second_sheet(self):
            workbook = original_load(self)
            calls["count"] += 1
            if calls["count"] == 2:
                workbook["Invoice"].title = "Renamed"
            return workbook

        monkeypatch.setattr(TemplateFiller, "_load", load_dropping_second_sheet)
        records = [make_record(f"INV-00{i}") for i in (1, 2, 3)]
        archive_path = _archiver(config, fake_converter).archive_all(records)

        with zipfile.ZipFile(archive_path) as archive:
            names = archive.namelist()
            report = archive.read("_errors.txt").decode("utf-8")
        assert [n for n in names if n.endswith(".pdf")] == ["INV-001.pdf", "INV-003.pdf"]
        assert "INV-002: Sheet 'Invoice' not found" in report

    def test_every_record_failing_raises_batch_failed(self, config, template):
        converter = FakeConverter(fail_for={"INV-001", "INV-002"})
        records = [make_record("INV-001"), make_record("INV-002")]

        with pytest.raises(BatchFailed) as excinfo:
            _archiver(config, converter).archive_all(records)

        assert "INV-001: soffice crashed on INV-001" in str(excinfo.value)
        assert [f.invoice_num for f in excinfo.value.failures] == ["INV-001", "INV-002"]
        assert tmp_files(config) == []

    def test_missing_template_single_record(self, config, fake_converter):
        with pytest.raises(BatchFailed, match="No PDFs were successfully generated"):
            _archiver(config, fake_converter).archive_all([make_record()])
        assert tmp_files(config) == []

    def test_archive_write_failure_cleans_up(self, config, template, fake_converter, monkeypatch):
        # openpyxl saves through ZipFile.write too, so only the archive step may fail.
        original_write_archive = BatchArchiver._write_archive

        def write_archive_on_full_disk(self, *args, **kwargs):
            with patch.object(zipfile.ZipFile, "write", side_effect=OSError("No space left on device")):
                return original_write_archive(self, *args, **kwargs)

        monkeypatch.setattr(BatchArchiver, "_write_archive", write_archive_on_full_disk)
        records = [make_record("INV-001"), make_record("INV-002")]

        with pytest.raises(ArchiveFailed, match="No space left"):
            _archiver(config, fake_converter).archive_all(records)
        assert fake_converter.converted == ["INV-001", "INV-002"]
        assert tmp_files(config) == []

    def test_duplicate_invoice_numbers_get_distinct_entries(self, config, template, fake_converter):
        archive_path = _archiver(config, fake_converter).archive_all([make_record("INV-001"), make_record("INV-001")])
        with zipfile.ZipFile(archive_path) as archive:
            assert archive.namelist() == ["INV-001.pdf", "INV-001_2.pdf"]

    def test_archive_named_after_creation_date(self, config, template, fake_converter):
        archive_path = _archiver(config, fake_converter).archive_all([make_record()])
        assert archive_path.name.startswith("240307_")
        assert download_name(archive_path) == "240307.zip"

    def test_same_day_batches_get_unique_archive_names(self, config, template, fake_converter):
        archiver = _archiver(config, fake_converter)
        first = archiver.archive_all([make_record("INV-001")])
        second = archiver.archive_all([make_record("INV-002")])
        assert first != second
        assert download_name(first) == download_name(second)
