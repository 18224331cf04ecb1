#!/usr/bin/env python3
"""
Transfer Invoice Service - Result Handling
Value objects passed between the pipeline stages
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Union

TAX_PLACEHOLDER = "-"


@dataclass(frozen=True)
class ComputedInvoice:
    """Values derived from a record and the template's tax rate"""
    issue_date: date
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Union[Decimal, str]
    total: Decimal

    @property
    def has_tax(self) -> bool:
        return self.tax_rate > 0

    @property
    def date_text(self) -> str:
        return self.issue_date.strftime("%Y.%m.%d")


@dataclass(frozen=True)
class GeneratedFile:
    """A temp file owned by whichever stage created it until it is deleted"""
    path: Path
    logical_name: str


@dataclass(frozen=True)
class RecordFailure:
    """A record that could not be turned into a PDF"""
    invoice_num: str
    error_message: str

    def to_line(self) -> str:
        return f"{self.invoice_num}: {self.error_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"invoiceNum": self.invoice_num, "error": self.error_message}


@dataclass
class BatchResult:
    """Outcome of the sequential generation loop"""
    succeeded: List[GeneratedFile] = field(default_factory=list)
    failed: List[RecordFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def error_report(self) -> str:
        """Body of the `_errors.txt` manifest"""
        lines = ["Failed to generate the following PDFs:"]
        lines.extend(failure.to_line() for failure in self.failed)
        return "\n".join(lines)
