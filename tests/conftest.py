"""
Shared fixtures: a throwaway invoice template and a converter stand-in for soffice.
"""

from datetime import date
from pathlib import Path

import openpyxl
import pytest

from transfer_invoice_service.components.document_converter import pdf_path_for
from transfer_invoice_service.config import ServiceConfig
from transfer_invoice_service.exceptions import ConversionFailed
from transfer_invoice_service.models import InvoiceRecord

FIXED_DAY = date(2024, 3, 7)


def build_template(path: Path, tax_rate=0, sheet_name: str = "Invoice") -> Path:
    """Writes a minimal template: the Invoice sheet with a default tax rate in F25."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet["B2"] = "INVOICE"
    sheet["E4"] = "Date"
    sheet["E5"] = "Invoice No."
    sheet["E24"] = "Subtotal"
    sheet["E25"] = "Tax rate"
    sheet["F25"] = tax_rate
    sheet["E28"] = "Total"
    workbook.save(path)
    return path


class FakeConverter:
    """Writes a small PDF-looking file next to the spreadsheet instead of running soffice."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.converted = []

    def convert(self, spreadsheet_path: Path) -> Path:
        workbook = openpyxl.load_workbook(spreadsheet_path)
        invoice_num = workbook["Invoice"]["F5"].value
        workbook.close()
        self.converted.append(invoice_num)
        if invoice_num in self.fail_for:
            raise ConversionFailed(f"soffice crashed on {invoice_num}", diagnostic="core dumped")
        pdf_path = pdf_path_for(spreadsheet_path)
        pdf_path.write_bytes(b"%PDF-1.4\n% invoice " + str(invoice_num).encode("utf-8") + b"\n%%EOF\n")
        return pdf_path


@pytest.fixture
def config(tmp_path):
    return ServiceConfig(
        assets_dir=tmp_path / "assets",
        tmp_dir=tmp_path / "tmp",
        soffice_path="soffice",
        settle_delay=0,
    ).ensure_directories()


@pytest.fixture
def template(config):
    return build_template(config.template_path)


@pytest.fixture
def fake_converter():
    return FakeConverter()


def make_record(invoice_num: str = "INV-001", amount=10000, **overrides) -> InvoiceRecord:
    payload = {
        "invoiceNum": invoice_num,
        "fullName": "Jane Doe",
        "fullAddress": "1 Main St",
        "amount": amount,
        "bankName": "Test Bank",
        "bankBranch": "HQ",
        "accountNumber": "123456",
    }
    payload.update(overrides)
    return InvoiceRecord.model_validate(payload)


def tmp_files(config: ServiceConfig):
    return sorted(p.name for p in config.tmp_dir.iterdir())
