#!/usr/bin/env python3
"""
Transfer Invoice Service
Pydantic models for standardized data structures
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from .exceptions import ValidationFailed

CENT = Decimal("0.01")


class InvoiceRecord(BaseModel):
    """One payee's transfer data; produces exactly one invoice"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    invoice_num: str = Field(..., alias="invoiceNum", min_length=1)
    full_name: str = Field(..., alias="fullName", min_length=1)
    full_address: str = Field(..., alias="fullAddress")
    amount: Decimal = Field(..., ge=0)
    bank_name: str = Field(..., alias="bankName", min_length=1)
    bank_branch: str = Field(..., alias="bankBranch")
    account_number: str = Field(..., alias="accountNumber")

    @field_validator("invoice_num", "account_number", mode="before")
    @classmethod
    def _coerce_numeric_ids(cls, value: Any) -> Any:
        # Spreadsheet uploads deliver numeric invoice/account numbers as ints.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value

    @field_validator("invoice_num")
    @classmethod
    def _safe_file_stem(cls, value: str) -> str:
        # The invoice number becomes the PDF and zip entry name.
        if "/" in value or "\\" in value or ".." in value:
            raise ValueError("invoice number must not contain '/', '\\' or '..'")
        return value

    @field_validator("amount")
    @classmethod
    def _round_to_cents(cls, value: Decimal) -> Decimal:
        try:
            return value.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError("amount is too large to represent in cents")

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)

    @property
    def pdf_name(self) -> str:
        return f"{self.invoice_num}.pdf"


class InvoiceBatchRequest(BaseModel):
    """Payload of a bulk generation request"""
    invoices: List[InvoiceRecord] = Field(..., min_length=1)


def _validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in error.errors()
    ]


def parse_record(payload: Any) -> InvoiceRecord:
    """
    Validates a raw JSON payload into an InvoiceRecord.

    Raises:
        ValidationFailed: with one detail entry per offending field
    """
    try:
        return InvoiceRecord.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailed("Invalid invoice record", details=_validation_details(e)) from e


def parse_batch(payload: Any) -> InvoiceBatchRequest:
    """Validates a raw `{invoices: [...]}` payload."""
    try:
        return InvoiceBatchRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailed("Invalid invoice batch", details=_validation_details(e)) from e
