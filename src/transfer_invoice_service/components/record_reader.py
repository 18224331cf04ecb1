#!/usr/bin/env python3
"""
Transfer Invoice Service
Component: Transfer Sheet Reader - turns an uploaded transfer workbook into invoice records.
"""

import io
import logging
import re
from pathlib import Path
from typing import List, Tuple, Union

import openpyxl
from openpyxl.utils import column_index_from_string
from pydantic import ValidationError

from ..exceptions import DataParsingError
from ..models import InvoiceRecord

INPUT_SHEET = "입력"
FIRST_DATA_ROW = 3

COLUMNS = {
    "invoice_num": "A",
    "amount": "O",
    "first_name": "P",
    "last_name": "R",
    "bank_name": "T",
    "bank_branch": "W",
    "account_number": "Z",
    "city": "AC",
    "address": "AD",
}


def parse_amount(value) -> float:
    """Strips currency symbols and separators from text amounts."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    cleaned = re.sub(r"[^0-9.\-]+", "", str(value))
    try:
        return float(cleaned) if cleaned else 0
    except ValueError:
        return 0


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class TransferSheetReader:
    """Reads the input sheet of a transfer workbook"""

    def __init__(self, sheet_name: str = INPUT_SHEET):
        self.sheet_name = sheet_name
        self._indexes = {key: column_index_from_string(col) - 1 for key, col in COLUMNS.items()}

    def read(self, source: Union[str, Path, bytes]) -> Tuple[List[InvoiceRecord], List[str]]:
        """
        Parses every usable row of the transfer sheet.

        Args:
            source: Path to the workbook or its raw bytes

        Returns:
            (records, warnings) where warnings describe skipped rows

        Raises:
            DataParsingError: If the workbook is unreadable, the sheet is missing or no row is usable
        """
        try:
            if isinstance(source, bytes):
                workbook = openpyxl.load_workbook(io.BytesIO(source), data_only=True, read_only=True)
            else:
                workbook = openpyxl.load_workbook(source, data_only=True, read_only=True)
        except Exception as e:
            raise DataParsingError(f"Could not read transfer workbook: {e}") from e

        try:
            if self.sheet_name not in workbook.sheetnames:
                raise DataParsingError(f"Sheet '{self.sheet_name}' not found in the uploaded workbook")
            sheet = workbook[self.sheet_name]

            records: List[InvoiceRecord] = []
            warnings: List[str] = []
            for row_number, row in enumerate(sheet.iter_rows(min_row=FIRST_DATA_ROW, values_only=True), FIRST_DATA_ROW):
                if not any(cell not in (None, "") for cell in row):
                    continue
                record, warning = self._parse_row(row_number, row)
                if record is not None:
                    records.append(record)
                if warning:
                    warnings.append(warning)
        finally:
            workbook.close()

        for warning in warnings:
            logging.warning(warning)

        if not records:
            raise DataParsingError("No usable rows found in the transfer sheet")

        logging.info(f"Read {len(records)} record(s) from transfer sheet, total amount {sum(r.amount for r in records)}")
        return records, warnings

    def _cell(self, row, key: str):
        index = self._indexes[key]
        return row[index] if index < len(row) else None

    def _parse_row(self, row_number: int, row):
        first_name = _text(self._cell(row, "first_name"))
        last_name = _text(self._cell(row, "last_name"))
        bank_name = _text(self._cell(row, "bank_name"))
        if not first_name or not last_name or not bank_name:
            return None, f"Row {row_number} skipped: first name, last name and bank name are required"

        city = _text(self._cell(row, "city"))
        address = _text(self._cell(row, "address"))
        payload = {
            "invoiceNum": _text(self._cell(row, "invoice_num")),
            "fullName": f"{last_name} {first_name}".strip(),
            "fullAddress": f"{city} {address}".strip(),
            "amount": parse_amount(self._cell(row, "amount")),
            "bankName": bank_name,
            "bankBranch": _text(self._cell(row, "bank_branch")),
            "accountNumber": _text(self._cell(row, "account_number")),
        }
        try:
            return InvoiceRecord.model_validate(payload), None
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            return None, f"Row {row_number} skipped: invalid {fields}"
