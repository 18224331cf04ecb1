#!/usr/bin/env python3
"""
Transfer Invoice Service
Component: Template Filler - writes one record into a copy of the invoice template.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional

import openpyxl
from openpyxl.styles import Alignment
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ServiceConfig
from ..exceptions import RenderingError, TemplateMalformed, TemplateMissing
from ..models import InvoiceRecord
from ..result import TAX_PLACEHOLDER, ComputedInvoice

# Cell coordinates of the Invoice sheet. Any change to the template asset
# must be mirrored here.
CELL_LAYOUT = {
    "date": "F4",
    "invoice_num": "F5",
    "full_name": "B12",
    "full_address": "B15",
    "amount": "F19",
    "subtotal": "F24",
    "tax_rate": "F25",
    "tax_amount": "F26",
    "other": "F27",
    "total": "F28",
    "bank_name": "B26",
    "bank_branch": "B27",
    "account_number": "B29",
    "account_holder": "B30",
}

AMOUNT_FORMAT = "#,##0.00"
TOTAL_FORMAT = "¥#,##0.00"


def read_tax_rate(sheet: Worksheet) -> Decimal:
    """Returns the template's default tax rate; anything non-numeric counts as 0."""
    value = sheet[CELL_LAYOUT["tax_rate"]].value
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    if not rate.is_finite():
        return Decimal(0)
    return rate if rate > 0 else Decimal(0)


def compute(record: InvoiceRecord, tax_rate: Decimal, today: Optional[date] = None) -> ComputedInvoice:
    """
    Derives subtotal, tax and total for a record.

    With a zero tax rate the tax line is the placeholder dash and the total
    equals the subtotal.
    """
    subtotal = record.amount
    if tax_rate > 0:
        tax_amount = subtotal * tax_rate
        total = subtotal + tax_amount
    else:
        tax_amount = TAX_PLACEHOLDER
        total = subtotal
    return ComputedInvoice(
        issue_date=today or date.today(),
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total=total,
    )


class TemplateFiller:
    """Loads the invoice template, fills one record in and saves a uniquely named copy"""

    def __init__(self, config: ServiceConfig, today: Callable[[], date] = date.today):
        self.config = config
        self._today = today

    def _load(self) -> Workbook:
        template_path = self.config.template_path
        if not template_path.is_file():
            raise TemplateMissing(
                f"Invoice template not found. Please ensure {self.config.template_name} "
                f"exists in {self.config.assets_dir}."
            )
        try:
            return openpyxl.load_workbook(template_path)
        except Exception as e:
            raise TemplateMalformed(f"Failed to load template {template_path}: {e}") from e

    def _invoice_sheet(self, workbook: Workbook) -> Worksheet:
        if self.config.sheet_name not in workbook.sheetnames:
            raise TemplateMalformed(
                f"Sheet '{self.config.sheet_name}' not found in template. "
                f"Available sheets: {', '.join(workbook.sheetnames)}"
            )
        return workbook[self.config.sheet_name]

    def validate_template(self) -> Decimal:
        """
        Checks the template up front instead of failing mid-generation.

        Returns:
            The default tax rate found in the template

        Raises:
            TemplateMissing: If the template file is absent
            TemplateMalformed: If the sheet is missing or the tax-rate cell holds text
        """
        workbook = self._load()
        try:
            sheet = self._invoice_sheet(workbook)
            raw_rate = sheet[CELL_LAYOUT["tax_rate"]].value
            if isinstance(raw_rate, str) and raw_rate.strip():
                try:
                    Decimal(raw_rate.strip())
                except InvalidOperation:
                    raise TemplateMalformed(
                        f"Tax rate cell {CELL_LAYOUT['tax_rate']} must be numeric or empty, got {raw_rate!r}"
                    )
            return read_tax_rate(sheet)
        finally:
            workbook.close()

    def fill(self, record: InvoiceRecord) -> Path:
        """
        Fills the template with a record.

        Args:
            record: The validated invoice record

        Returns:
            Path to the filled .xlsx inside the tmp directory
        """
        workbook = self._load()
        output_path = self.config.tmp_dir / f"invoice_{uuid.uuid4().hex}.xlsx"
        try:
            sheet = self._invoice_sheet(workbook)

            computed = compute(record, read_tax_rate(sheet), today=self._today())
            self._write_header(sheet, record, computed)
            self._write_payee(sheet, record)
            self._write_totals(sheet, record, computed)

            try:
                workbook.save(output_path)
            except Exception as e:
                output_path.unlink(missing_ok=True)
                raise RenderingError(f"Failed to write filled invoice {output_path.name}: {e}") from e
        finally:
            workbook.close()

        logging.info(f"Filled template for invoice '{record.invoice_num}' -> {output_path.name}")
        return output_path

    def _write_header(self, sheet: Worksheet, record: InvoiceRecord, computed: ComputedInvoice):
        date_cell = sheet[CELL_LAYOUT["date"]]
        date_cell.value = computed.date_text
        date_cell.alignment = Alignment(horizontal="center")

        number_cell = sheet[CELL_LAYOUT["invoice_num"]]
        number_cell.value = record.invoice_num
        number_cell.alignment = Alignment(horizontal="center")

    def _write_payee(self, sheet: Worksheet, record: InvoiceRecord):
        sheet[CELL_LAYOUT["full_name"]] = record.full_name
        sheet[CELL_LAYOUT["full_address"]] = record.full_address
        sheet[CELL_LAYOUT["bank_name"]] = f" Bank name: {record.bank_name}"
        sheet[CELL_LAYOUT["bank_branch"]] = f" Branch name: {record.bank_branch}"
        sheet[CELL_LAYOUT["account_number"]] = f" Account number: {record.account_number}"
        sheet[CELL_LAYOUT["account_holder"]] = f" Account holder: {record.full_name}"

    def _write_totals(self, sheet: Worksheet, record: InvoiceRecord, computed: ComputedInvoice):
        amount_cell = sheet[CELL_LAYOUT["amount"]]
        amount_cell.value = float(record.amount)
        amount_cell.number_format = AMOUNT_FORMAT

        subtotal_cell = sheet[CELL_LAYOUT["subtotal"]]
        subtotal_cell.value = float(computed.subtotal)
        subtotal_cell.number_format = AMOUNT_FORMAT

        tax_cell = sheet[CELL_LAYOUT["tax_amount"]]
        if computed.has_tax:
            tax_cell.value = float(computed.tax_amount)
            tax_cell.number_format = AMOUNT_FORMAT
        else:
            tax_cell.value = TAX_PLACEHOLDER
            tax_cell.alignment = Alignment(horizontal="right")

        other_cell = sheet[CELL_LAYOUT["other"]]
        other_cell.value = TAX_PLACEHOLDER
        other_cell.alignment = Alignment(horizontal="right")

        total_cell = sheet[CELL_LAYOUT["total"]]
        total_cell.value = float(computed.total)
        total_cell.number_format = TOTAL_FORMAT
