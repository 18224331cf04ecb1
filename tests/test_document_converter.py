"""
Unit tests for the DocumentConverter component and its conversion gate.
"""

import subprocess
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import patch

import pytest

from transfer_invoice_service.components.document_converter import (
    ConversionGate,
    DocumentConverter,
    pdf_path_for,
)
from transfer_invoice_service.config import ServiceConfig
from transfer_invoice_service.exceptions import ConversionFailed

RUN = "transfer_invoice_service.components.document_converter.subprocess.run"


@pytest.fixture
def spreadsheet(config):
    path = config.tmp_dir / "invoice_abc.xlsx"
    path.write_bytes(b"xlsx bytes")
    return path


def _writes_pdf(command, **kwargs):
    source = Path(command[4])
    outdir = Path(command[6])
    (outdir / f"{source.stem}.pdf").write_bytes(b"%PDF-1.4")
    return subprocess.CompletedProcess(command, 0, stdout="convert ok", stderr="")


class TestDocumentConverter:
    """Test running soffice and mapping its failures."""

    def test_pdf_path_is_derived_from_input(self):
        assert pdf_path_for(Path("/tmp/work/invoice_1.xlsx")) == Path("/tmp/work/invoice_1.pdf")

    def test_command_line(self, config, spreadsheet):
        command = DocumentConverter(config, gate=ConversionGate()).build_command(spreadsheet)
        assert command == [
            "soffice", "--headless", "--convert-to", "pdf",
            str(spreadsheet), "--outdir", str(config.tmp_dir),
        ]

    def test_successful_conversion(self, config, spreadsheet):
        with patch(RUN, side_effect=_writes_pdf) as run:
            pdf_path = DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)

        assert pdf_path == config.tmp_dir / "invoice_abc.pdf"
        assert pdf_path.read_bytes() == b"%PDF-1.4"
        assert spreadsheet.exists()
        kwargs = run.call_args.kwargs
        assert kwargs["check"] is True
        assert kwargs["timeout"] is None

    def test_timeout_is_passed_through(self, config, spreadsheet):
        config.conversion_timeout = 30
        with patch(RUN, side_effect=_writes_pdf) as run:
            DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)
        assert run.call_args.kwargs["timeout"] == 30

    def test_non_zero_exit(self, config, spreadsheet):
        error = subprocess.CalledProcessError(1, ["soffice"], output="", stderr="Error: source file could not be loaded")
        with patch(RUN, side_effect=error):
            with pytest.raises(ConversionFailed) as excinfo:
                DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)
        assert excinfo.value.diagnostic == "Error: source file could not be loaded"
        assert "exit code 1" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, subprocess.CalledProcessError)

    def test_spawn_failure(self, config, spreadsheet):
        with patch(RUN, side_effect=FileNotFoundError(2, "No such file or directory", "soffice")):
            with pytest.raises(ConversionFailed, match="LibreOffice"):
                DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)

    def test_timeout(self, config, spreadsheet):
        with patch(RUN, side_effect=subprocess.TimeoutExpired(["soffice"], 5)):
            with pytest.raises(ConversionFailed, match="timed out"):
                DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)

    def test_missing_output(self, config, spreadsheet):
        completed = subprocess.CompletedProcess(["soffice"], 0, stdout="", stderr="Warning: failed to launch javaldx")
        with patch(RUN, return_value=completed):
            with pytest.raises(ConversionFailed) as excinfo:
                DocumentConverter(config, gate=ConversionGate()).convert(spreadsheet)
        assert excinfo.value.diagnostic == "Warning: failed to launch javaldx"


class TestConversionGate(unittest.TestCase):
    """Test serialisation and the settle window."""

    def test_first_holder_does_not_wait(self):
        gate = ConversionGate()
        with patch("time.sleep") as sleep:
            with gate.hold(0.5):
                pass
        sleep.assert_not_called()

    def test_next_holder_waits_out_settle_window(self):
        gate = ConversionGate()
        with patch("time.monotonic", side_effect=[10.0, 10.1, 10.2]), patch("time.sleep") as sleep:
            with gate.hold(0.5):
                pass
            with gate.hold(0.5):
                pass
        sleep.assert_called_once()
        self.assertAlmostEqual(sleep.call_args.args[0], 0.4)

    def test_no_wait_once_window_has_passed(self):
        gate = ConversionGate()
        with patch("time.monotonic", side_effect=[10.0, 11.0, 11.5]), patch("time.sleep") as sleep:
            with gate.hold(0.5):
                pass
            with gate.hold(0.5):
                pass
        sleep.assert_not_called()

    def test_conversions_never_overlap(self):
        gate = ConversionGate()
        state = {"active": 0, "peak": 0}
        counter_lock = threading.Lock()

        def convert():
            with gate.hold(0):
                with counter_lock:
                    state["active"] += 1
                    state["peak"] = max(state["peak"], state["active"])
                time.sleep(0.01)
                with counter_lock:
                    state["active"] -= 1

        threads = [threading.Thread(target=convert) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(state["peak"], 1)

    def test_shared_gate_by_default(self):
        config = ServiceConfig(assets_dir=Path("assets"), tmp_dir=Path("tmp"))
        self.assertIs(DocumentConverter(config)._gate, DocumentConverter(config)._gate)
