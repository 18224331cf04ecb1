#!/usr/bin/env python3
"""
Transfer Invoice Service
Fills the invoice template per transfer record and converts it to PDF, singly or as a zip batch
"""

__version__ = "1.0.0"

from .config import ServiceConfig
from .exceptions import (
    ArchiveFailed,
    BatchFailed,
    ConversionFailed,
    DataParsingError,
    InvoiceGenerationError,
    PerRecordGenerationFailed,
    RenderingError,
    StreamingFailed,
    TemplateMalformed,
    TemplateMissing,
    ValidationFailed,
)
from .models import InvoiceBatchRequest, InvoiceRecord, parse_batch, parse_record
from .service import InvoiceService

__all__ = [
    'ServiceConfig',
    'InvoiceService',
    'InvoiceRecord',
    'InvoiceBatchRequest',
    'parse_record',
    'parse_batch',
    'InvoiceGenerationError',
    'TemplateMissing',
    'TemplateMalformed',
    'RenderingError',
    'ConversionFailed',
    'PerRecordGenerationFailed',
    'BatchFailed',
    'ArchiveFailed',
    'StreamingFailed',
    'ValidationFailed',
    'DataParsingError',
]
