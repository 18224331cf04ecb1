#!/usr/bin/env python3
"""
Transfer Invoice API - FastAPI Implementation
Accepts invoice records as JSON and streams back a PDF or a zip of PDFs
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__
from .config import ServiceConfig
from .exceptions import BatchFailed, DataParsingError, InvoiceGenerationError, StreamingFailed, ValidationFailed
from .models import parse_batch, parse_record
from .pipeline import discard
from .service import InvoiceService

CHUNK_SIZE = 64 * 1024

router = APIRouter()


def _content_disposition(filename: str) -> str:
    try:
        filename.encode("latin-1")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        return f"attachment; filename*=utf-8''{quote(filename)}"


def _stream_and_discard(path: Path) -> Iterator[bytes]:
    """Yields the file in chunks and deletes it once the stream ends or breaks."""
    try:
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                yield chunk
    except OSError as e:
        # Headers are already sent; the status cannot change any more.
        logging.error(f"Error streaming file {path.name}: {e}")
        raise StreamingFailed(f"Failed to stream {path.name}: {e}") from e
    finally:
        discard(path)


def _file_response(path: Path, media_type: str, filename: str) -> StreamingResponse:
    try:
        size = path.stat().st_size
    except OSError as e:
        discard(path)
        raise StreamingFailed(f"Generated file is not readable: {e}") from e
    return StreamingResponse(
        _stream_and_discard(path),
        media_type=media_type,
        headers={
            "Content-Disposition": _content_disposition(filename),
            "Content-Length": str(size),
        },
    )


def _error(message: str, status_code: int = 500, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _service(request: Request) -> InvoiceService:
    return request.app.state.invoice_service


@router.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Transfer Invoice API",
        "version": __version__,
        "timestamp": datetime.now().isoformat(),
    }


@router.post("/invoice/generate")
def generate_invoice(request: Request, payload: Any = Body(...)):
    """Generate one invoice PDF from a JSON record"""
    record = parse_record(payload)
    try:
        pdf_path = _service(request).generate_invoice(record)
        return _file_response(pdf_path, "application/pdf", record.pdf_name)
    except InvoiceGenerationError as e:
        logging.error(f"Error generating PDF for invoice {record.invoice_num}: {e}", exc_info=True)
        return _error("Failed to generate PDF file")
    except Exception as e:
        logging.error(f"Unexpected error generating PDF for invoice {record.invoice_num}: {e}", exc_info=True)
        return _error("Failed to generate PDF file")


@router.post("/invoice/generate-zip")
def generate_invoice_zip(request: Request, payload: Any = Body(...)):
    """Generate a zip of invoice PDFs from `{invoices: [...]}`"""
    batch = parse_batch(payload)
    service = _service(request)
    try:
        archive_path = service.generate_archive(batch.invoices)
        return _file_response(archive_path, "application/zip", service.archive_download_name(archive_path))
    except BatchFailed as e:
        logging.error(f"Error generating zip: {e}")
        return _error(str(e), failures=[failure.to_dict() for failure in e.failures])
    except InvoiceGenerationError as e:
        logging.error(f"Error generating zip: {e}", exc_info=True)
        return _error(str(e) or "Failed to generate zip file")
    except Exception as e:
        logging.error(f"Unexpected error generating zip: {e}", exc_info=True)
        return _error("Failed to generate zip file")


@router.post("/invoice/parse-upload")
def parse_upload(request: Request, file: UploadFile = File(...)):
    """Read invoice records from an uploaded transfer workbook"""
    if not (file.filename or "").lower().endswith((".xlsx", ".xlsm")):
        return _error("Invalid file type. Only .xlsx workbooks are supported.", status_code=400)
    try:
        records, warnings = _service(request).read_transfer_sheet(file.file.read())
    except DataParsingError as e:
        return _error(str(e), status_code=400)
    return {
        "invoices": [record.model_dump(mode="json", by_alias=True) for record in records],
        "warnings": warnings,
    }


def create_app(service: Optional[InvoiceService] = None, config: Optional[ServiceConfig] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        service: Pre-built service (tests inject one with a fake converter)
        config: Used when no service is given; defaults to ServiceConfig.from_env()
    """
    if service is None:
        service = InvoiceService(config or ServiceConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.check_template()
        yield

    app = FastAPI(
        title="Transfer Invoice API",
        description="Generate invoice PDFs from transfer records",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.invoice_service = service

    if service.config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=service.config.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )

    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed):
        return _error(str(exc), status_code=400, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return _error("Invalid request body", status_code=400, details=details)

    @app.exception_handler(StreamingFailed)
    async def _streaming_failed(request: Request, exc: StreamingFailed):
        return _error(str(exc))

    app.include_router(router, prefix="/api")
    return app
