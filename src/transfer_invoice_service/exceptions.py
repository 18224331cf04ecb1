#!/usr/bin/env python3
"""
Transfer Invoice Service
Custom exceptions for better error handling
"""

from typing import Any, Dict, List, Optional


class InvoiceGenerationError(Exception):
    """Base exception for the invoice generator service."""
    pass

class TemplateMissing(InvoiceGenerationError):
    """Raised when the invoice template file cannot be found."""
    pass

class TemplateMalformed(InvoiceGenerationError):
    """Raised when the template exists but does not match the expected layout."""
    pass

class RenderingError(InvoiceGenerationError):
    """Raised when the filled workbook cannot be written to the tmp directory."""
    pass

class ConversionFailed(InvoiceGenerationError):
    """Raised when the external document converter cannot produce a PDF."""

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        super().__init__(message)
        self.diagnostic = diagnostic

class PerRecordGenerationFailed(InvoiceGenerationError):
    """Wraps the failure of one record inside a batch. Recorded, never propagated."""

    def __init__(self, invoice_num: str, cause: BaseException):
        super().__init__(f"{invoice_num}: {cause}")
        self.invoice_num = invoice_num
        self.cause = cause

class BatchFailed(InvoiceGenerationError):
    """Raised when no record of a batch could be generated."""

    def __init__(self, message: str, failures: Optional[List[Any]] = None):
        super().__init__(message)
        self.failures = failures or []

class ArchiveFailed(InvoiceGenerationError):
    """Raised when writing or finalizing the zip archive fails."""
    pass

class StreamingFailed(InvoiceGenerationError):
    """Raised when a generated file cannot be streamed back to the client."""
    pass

class ValidationFailed(InvoiceGenerationError):
    """Raised when an incoming request payload does not describe a valid record."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []

class DataParsingError(InvoiceGenerationError):
    """Exception raised for errors when parsing an uploaded transfer sheet."""
    pass
