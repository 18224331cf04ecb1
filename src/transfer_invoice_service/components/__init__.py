#!/usr/bin/env python3
"""
Transfer Invoice Service Components
Template filling, PDF conversion and transfer-sheet reading
"""

from .document_converter import CONVERSION_GATE, ConversionGate, DocumentConverter, pdf_path_for
from .record_reader import TransferSheetReader
from .template_filler import CELL_LAYOUT, TemplateFiller, compute, read_tax_rate

__all__ = [
    'TemplateFiller',
    'CELL_LAYOUT',
    'compute',
    'read_tax_rate',
    'DocumentConverter',
    'ConversionGate',
    'CONVERSION_GATE',
    'pdf_path_for',
    'TransferSheetReader',
]
